"""Classification engine for AnnData inputs.

This module provides the ReferenceIntegrationEngine class that orchestrates
the full pipeline: marker loading, per-reference training and
classification, and integration across references.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
import yaml

from ...io.markers import MarkerDocument, load_marker_document, resolve_marker_lists
from ...io.results import ensure_output_dir, results_to_frame, write_dataframe
from ..matrix import matrix_from_anndata
from .config import RefMatchConfig
from .integrated import ClassifyIntegratedResults, classify_integrated
from .single import ClassifySingleResults, classify_single
from .training import prepare_integrated_input_intersect, train_integrated, train_single

if TYPE_CHECKING:
    import anndata


@dataclass
class ReferenceDataset:
    """A labeled reference and its marker lists.

    Attributes:
        name: Reference name, used as a column prefix in the outputs
        adata: Reference AnnData (cells x genes)
        markers: Marker document, or path to its JSON file
        label_key: Column in adata.obs with labels (config default if None)
    """

    name: str
    adata: "anndata.AnnData"
    markers: Union[MarkerDocument, str, Path]
    label_key: Optional[str] = None


@dataclass
class IntegrationResult:
    """Result from the classification pipeline.

    Attributes:
        cell_results: Per-cell table of per-reference and final calls
        single_results: Per-reference single classification results
        integrated: Integrated classification results
        label_names: Per-reference label names (label index -> name)
    """

    cell_results: pd.DataFrame
    single_results: Dict[str, ClassifySingleResults]
    integrated: ClassifyIntegratedResults
    label_names: Dict[str, List[str]]


class ReferenceIntegrationEngine:
    """Classify test cells against several labeled references.

    For every reference, the engine:
    1. Loads and resolves the marker lists against the reference genes
    2. Trains the reference on the genes it shares with the test data
    3. Assigns a reference label to every test cell
    Then it integrates the assignments to pick the best reference per cell.

    Example:
        >>> engine = ReferenceIntegrationEngine(RefMatchConfig(num_threads=4))
        >>> result = engine.run(
        ...     test_adata,
        ...     [ReferenceDataset("blood", blood, "blood_markers.json")],
        ...     output_dir=Path("output/"),
        ... )
        >>> result.cell_results["label"]
    """

    def __init__(
        self,
        config: Optional[RefMatchConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or RefMatchConfig()
        self.logger = logger or logging.getLogger(__name__)

    def validate_input(
        self,
        test_adata: "anndata.AnnData",
        references: Sequence[ReferenceDataset],
    ) -> List[str]:
        """Validate inputs.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []
        if not references:
            errors.append("No references supplied")

        names = [ref.name for ref in references]
        duplicated = sorted({name for name in names if names.count(name) > 1})
        if duplicated:
            errors.append(f"Duplicated reference names: {duplicated}")

        layer = self.config.layer
        for ref in references:
            label_key = ref.label_key or self.config.label_key
            if label_key not in ref.adata.obs.columns:
                errors.append(f"Reference '{ref.name}' is missing label column: {label_key}")
            if layer is not None and layer not in ref.adata.layers:
                self.logger.warning(
                    "Layer '%s' not found in reference '%s', using X", layer, ref.name
                )

        if layer is not None and layer not in test_adata.layers:
            self.logger.warning("Layer '%s' not found in test data, using X", layer)
        return errors

    def run(
        self,
        test_adata: "anndata.AnnData",
        references: Sequence[ReferenceDataset],
        output_dir: Optional[Path] = None,
    ) -> IntegrationResult:
        """Run the full classification pipeline.

        Args:
            test_adata: Test AnnData (cells x genes)
            references: Labeled references with marker lists
            output_dir: Where to write CSVs (None = don't write)

        Returns:
            IntegrationResult with per-cell calls and raw result objects
        """
        errors = self.validate_input(test_adata, references)
        if errors:
            raise ValueError("; ".join(errors))

        cfg = self.config
        self.logger.info("=" * 70)
        self.logger.info("REFERENCE INTEGRATION ENGINE")
        self.logger.info("=" * 70)
        self.logger.info("Test cells: %d, genes: %d", test_adata.n_obs, test_adata.n_vars)
        self.logger.info("References: %s", ", ".join(ref.name for ref in references))
        self.logger.info("")

        test = matrix_from_anndata(test_adata, cfg.layer)
        test_ids = [str(name) for name in test_adata.var_names]

        single_results: Dict[str, ClassifySingleResults] = {}
        label_names: Dict[str, List[str]] = {}
        inputs = []

        for r, ref in enumerate(references, start=1):
            self.logger.info("Phase 1.%d: Reference '%s'", r, ref.name)
            label_key = ref.label_key or cfg.label_key
            categories = pd.Categorical(ref.adata.obs[label_key].astype(str))
            names = [str(c) for c in categories.categories]
            codes = np.asarray(categories.codes, dtype=np.int64)
            ref_ids = [str(name) for name in ref.adata.var_names]

            document = load_marker_document(ref.markers)
            markers = resolve_marker_lists(document, names, ref_ids, logger=self.logger)
            ref_matrix = matrix_from_anndata(ref.adata, cfg.layer)

            trained = train_single(
                ref_matrix,
                codes,
                markers,
                top=cfg.train.top,
                test_ids=test_ids,
                ref_ids=ref_ids,
                logger=self.logger,
            )
            single = classify_single(test, trained, cfg.single_options(), logger=self.logger)
            inputs.append(
                prepare_integrated_input_intersect(test_ids, ref_matrix, ref_ids, codes, trained)
            )
            single_results[ref.name] = single
            label_names[ref.name] = names

        self.logger.info("Phase 2: Integrating %d references...", len(references))
        integrated_trained = train_integrated(inputs, logger=self.logger)
        integrated = classify_integrated(
            test,
            [single_results[ref.name].best for ref in references],
            integrated_trained,
            cfg.integrated_options(),
            logger=self.logger,
        )

        reference_names = [ref.name for ref in references]
        cell_results = results_to_frame(
            cell_names=[str(name) for name in test_adata.obs_names],
            reference_names=reference_names,
            reference_labels=[
                np.asarray(label_names[name], dtype=object)[single_results[name].best]
                for name in reference_names
            ],
            reference_deltas=[single_results[name].delta for name in reference_names],
            best_reference=integrated.best,
            reference_scores=integrated.scores,
            delta=integrated.delta,
        )

        if output_dir:
            self._write_outputs(Path(output_dir), cell_results, single_results, label_names, test_adata)

        self.logger.info("")
        self.logger.info("Classification complete!")
        counts = cell_results["best_reference"].value_counts()
        for name, count in counts.items():
            self.logger.info("  %s: %d cells", name, count)

        return IntegrationResult(
            cell_results=cell_results,
            single_results=single_results,
            integrated=integrated,
            label_names=label_names,
        )

    def _write_outputs(
        self,
        output_dir: Path,
        cell_results: pd.DataFrame,
        single_results: Dict[str, ClassifySingleResults],
        label_names: Dict[str, List[str]],
        test_adata: "anndata.AnnData",
    ) -> None:
        ensure_output_dir(output_dir)
        write_dataframe(cell_results, output_dir / "cell_assignments.csv")

        for name, single in single_results.items():
            scores = pd.DataFrame(
                single.scores,
                index=pd.Index([str(c) for c in test_adata.obs_names], name="cell_id"),
                columns=label_names[name],
            )
            write_dataframe(scores, output_dir / f"{name}_scores.csv")

        with open(output_dir / "refmatch_config.yaml", "w") as f:
            yaml.safe_dump(self.config.to_dict(), f, sort_keys=False)
        self.logger.info("Wrote refmatch_config.yaml")
