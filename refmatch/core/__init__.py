"""Core computational modules for RefMatch.

This package contains the classification engine:
- features: Gene intersection and marker reindexing
- scoring: Rank remapping, scaled ranks and quantile scores
- classification: Training, single-reference and integrated classification
- matrix: Column extraction from dense, sparse and AnnData matrices
"""
