"""RefMatch: rank-correlation cell-type assignment against labeled references.

This package provides tools for:
- Aligning test and reference gene spaces (feature intersection)
- Reducing pairwise marker lists to a compact shared index space
- Scoring cells by scaled-rank (Spearman) correlation against reference profiles
- Integrating per-reference assignments into a single best reference per cell

Only already-computed marker lists are consumed; how markers are chosen is
outside the scope of this package.

Example usage:
    >>> from refmatch.core.classification import (
    ...     train_single, classify_single,
    ...     prepare_integrated_input, train_integrated, classify_integrated,
    ... )
    >>>
    >>> trained = train_single(ref, labels, markers)
    >>> single = classify_single(test, trained)
    >>>
    >>> integrated = train_integrated([prepare_integrated_input(ref, labels, trained), ...])
    >>> result = classify_integrated(test, [single.best, ...], integrated)
"""

__version__ = "0.1.0"
