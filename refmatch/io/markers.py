"""Loading of pairwise marker lists.

A marker document maps each label to, for every other label, the genes
up-regulated in the first label relative to the second, most informative
first::

    {
        "T cell": {"B cell": ["CD3E", "CD3D"], "Monocyte": ["CD3E", "IL7R"]},
        "B cell": {"T cell": ["MS4A1", "CD79A"], "Monocyte": ["CD79A"]},
        ...
    }

Documents are resolved against a reference's label and gene names into the
nested row-index lists used by training.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Hashable, List, Optional, Sequence, Union

MarkerDocument = Dict[str, Dict[str, List[str]]]


def load_marker_document(source: Union[MarkerDocument, str, Path]) -> MarkerDocument:
    """Load a marker document from a dict or a JSON file.

    Raises:
        FileNotFoundError: If ``source`` is a path that does not exist
        ValueError: If the document is not a mapping of mappings of lists
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Marker file not found: {path}")
        with open(path, "r") as f:
            document = json.load(f)
    else:
        document = source

    if not isinstance(document, dict):
        raise ValueError("Marker document must be a mapping of label -> label -> genes")
    for label, inner in document.items():
        if not isinstance(inner, dict):
            raise ValueError(f"Markers for label '{label}' must be a mapping")
        for other, genes in inner.items():
            if not isinstance(genes, list):
                raise ValueError(f"Markers for '{label}' vs '{other}' must be a list")
    return document


def resolve_marker_lists(
    document: MarkerDocument,
    label_names: Sequence[str],
    gene_names: Sequence[Hashable],
    logger: Optional[logging.Logger] = None,
) -> List[List[List[int]]]:
    """Convert a marker document into nested row-index lists.

    Genes that are not in ``gene_names`` are dropped. Label pairs missing
    from the document get empty lists.

    Args:
        document: Marker document from ``load_marker_document``
        label_names: Reference labels; their order defines label indices
        gene_names: Reference gene names; their order defines row indices
        logger: Optional logger instance

    Returns:
        ``markers[a][b]`` row indices for every label pair

    Raises:
        ValueError: If the document names a label not in ``label_names``
    """
    _logger = logger or logging.getLogger(__name__)
    label_index = {str(name): k for k, name in enumerate(label_names)}
    gene_index: Dict[Hashable, int] = {}
    for row, name in enumerate(gene_names):
        gene_index.setdefault(name, row)

    unknown = sorted(
        {label for label in document if label not in label_index}
        | {other for inner in document.values() for other in inner if other not in label_index}
    )
    if unknown:
        raise ValueError(f"Marker document names unknown labels: {unknown}")

    n_labels = len(label_names)
    markers: List[List[List[int]]] = [[[] for _ in range(n_labels)] for _ in range(n_labels)]
    n_missing = 0
    for label, inner in document.items():
        a = label_index[label]
        for other, genes in inner.items():
            b = label_index[other]
            if a == b:
                continue
            rows = []
            for gene in genes:
                row = gene_index.get(gene)
                if row is None:
                    n_missing += 1
                else:
                    rows.append(row)
            markers[a][b] = rows

    if n_missing:
        _logger.debug("Dropped %d marker entries not found among the reference genes", n_missing)
    return markers
