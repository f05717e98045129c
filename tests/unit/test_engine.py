"""Unit tests for the reference integration engine."""

import pytest
import numpy as np
import pandas as pd
import yaml

from refmatch.core.classification import (
    RefMatchConfig,
    ReferenceDataset,
    ReferenceIntegrationEngine,
)


@pytest.fixture
def references(reference_datasets):
    return [
        ReferenceDataset(name=name, adata=adata, markers=document)
        for name, adata, document in reference_datasets
    ]


class TestValidateInput:
    """Tests for ReferenceIntegrationEngine.validate_input."""

    def test_valid(self, test_adata, references):
        """Test well-formed input has no errors."""
        engine = ReferenceIntegrationEngine()
        assert engine.validate_input(test_adata, references) == []

    def test_no_references(self, test_adata):
        """Test an empty reference list is reported."""
        errors = ReferenceIntegrationEngine().validate_input(test_adata, [])
        assert any("No references" in e for e in errors)

    def test_duplicate_names(self, test_adata, references):
        """Test duplicated reference names are reported."""
        duplicated = [references[0], ReferenceDataset("full", references[1].adata, {})]
        errors = ReferenceIntegrationEngine().validate_input(test_adata, duplicated)
        assert any("Duplicated" in e for e in errors)

    def test_missing_label_column(self, test_adata, references):
        """Test a missing label column is reported."""
        engine = ReferenceIntegrationEngine(RefMatchConfig(label_key="celltype"))
        errors = engine.validate_input(test_adata, references)
        assert len(errors) == 2

    def test_run_raises_on_errors(self, test_adata):
        """Test run refuses invalid input."""
        with pytest.raises(ValueError):
            ReferenceIntegrationEngine().run(test_adata, [])


class TestRun:
    """Tests for ReferenceIntegrationEngine.run."""

    def test_recovers_labels(self, test_adata, references):
        """Test every cell gets its true label from both references."""
        result = ReferenceIntegrationEngine().run(test_adata, references)
        df = result.cell_results
        truth = test_adata.obs["cell_type"].astype(str).to_numpy()

        assert len(df) == test_adata.n_obs
        np.testing.assert_array_equal(df["full_label"].to_numpy(), truth)
        np.testing.assert_array_equal(df["partial_label"].to_numpy(), truth)
        np.testing.assert_array_equal(df["label"].to_numpy(), truth)
        assert set(df["best_reference"]) <= {"full", "partial"}

    def test_result_objects(self, test_adata, references):
        """Test raw per-reference and integrated results are returned."""
        result = ReferenceIntegrationEngine().run(test_adata, references)
        assert set(result.single_results) == {"full", "partial"}
        assert result.label_names["full"] == ["B cell", "Monocyte", "T cell"]
        assert result.integrated.scores.shape == (test_adata.n_obs, 2)
        assert result.single_results["partial"].scores.shape == (test_adata.n_obs, 3)

    def test_threads_do_not_change_results(self, test_adata, references):
        """Test multi-threaded runs match single-threaded runs."""
        one = ReferenceIntegrationEngine(RefMatchConfig(num_threads=1)).run(test_adata, references)
        three = ReferenceIntegrationEngine(RefMatchConfig(num_threads=3)).run(test_adata, references)
        pd.testing.assert_frame_equal(one.cell_results, three.cell_results)

    def test_label_key_override(self, test_adata, references):
        """Test a per-reference label column overrides the config."""
        adata = references[0].adata.copy()
        adata.obs["annotation"] = adata.obs["cell_type"]
        del adata.obs["cell_type"]
        custom = ReferenceDataset("custom", adata, references[0].markers, label_key="annotation")
        result = ReferenceIntegrationEngine().run(test_adata, [custom])
        assert result.cell_results["best_reference"].eq("custom").all()
        assert result.cell_results["delta"].isna().all()

    def test_writes_outputs(self, test_adata, references, tmp_output_dir):
        """Test CSV and config files are written."""
        ReferenceIntegrationEngine().run(test_adata, references, output_dir=tmp_output_dir)

        assignments = pd.read_csv(tmp_output_dir / "cell_assignments.csv", index_col=0)
        assert assignments.index.tolist() == list(test_adata.obs_names)
        assert "label" in assignments.columns

        scores = pd.read_csv(tmp_output_dir / "partial_scores.csv", index_col=0)
        assert list(scores.columns) == ["B cell", "Monocyte", "T cell"]
        assert (tmp_output_dir / "full_scores.csv").exists()

        with open(tmp_output_dir / "refmatch_config.yaml") as f:
            assert yaml.safe_load(f)["label_key"] == "cell_type"
