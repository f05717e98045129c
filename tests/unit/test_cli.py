"""Unit tests for the command-line interface."""

import pytest
import click
import pandas as pd
from click.testing import CliRunner

from refmatch.cli import cli
from refmatch.cli.main import parse_reference_option


@pytest.fixture
def runner():
    return CliRunner()


class TestParseReferenceOption:
    """Tests for parse_reference_option."""

    def test_valid(self):
        """Test the name and both paths are extracted."""
        name, ref, markers = parse_reference_option("blood=data/blood.h5ad:data/blood.json")
        assert name == "blood"
        assert str(ref) == "data/blood.h5ad"
        assert str(markers) == "data/blood.json"

    @pytest.mark.parametrize("value", ["blood.h5ad:blood.json", "blood=blood.h5ad", "=a:b"])
    def test_invalid(self, value):
        """Test malformed reference options are rejected."""
        with pytest.raises(click.BadParameter):
            parse_reference_option(value)


class TestCli:
    """Tests for the refmatch command group."""

    def test_help(self, runner):
        """Test the group help lists the commands."""
        result = runner.invoke(cli, ["--help"], obj={})
        assert result.exit_code == 0
        assert "classify" in result.output
        assert "show-config" in result.output

    def test_show_config(self, runner):
        """Test the default configuration is printed as YAML."""
        result = runner.invoke(cli, ["show-config"], obj={})
        assert result.exit_code == 0
        assert "refmatch:" in result.output
        assert "quantile: 0.8" in result.output

    def test_classify(self, runner, reference_files, tmp_path):
        """Test a full classification run writes its outputs."""
        out_dir = tmp_path / "out"
        args = ["classify", "--test", str(reference_files["test"]), "--out", str(out_dir)]
        for option in reference_files["references"]:
            args.extend(["--reference", option])
        args.extend(["--threads", "2", "--quantile", "0.9"])

        result = runner.invoke(cli, args, obj={})
        assert result.exit_code == 0, result.output
        assert "Classified 15 cells" in result.output

        assignments = pd.read_csv(out_dir / "cell_assignments.csv", index_col=0)
        assert len(assignments) == 15
        assert (out_dir / "full_scores.csv").exists()
        assert list(out_dir.glob("refmatch_*.log"))

    def test_classify_bad_reference(self, runner, reference_files, tmp_path):
        """Test a malformed reference option is a usage error."""
        result = runner.invoke(
            cli,
            ["classify", "--test", str(reference_files["test"]),
             "--reference", "broken", "--out", str(tmp_path / "out")],
            obj={},
        )
        assert result.exit_code == 2

    def test_classify_missing_markers(self, runner, reference_files, tmp_path):
        """Test a missing marker file exits with an error."""
        name_and_ref = reference_files["references"][0].rsplit(":", 1)[0]
        result = runner.invoke(
            cli,
            ["classify", "--test", str(reference_files["test"]),
             "--reference", f"{name_and_ref}:{tmp_path / 'missing.json'}",
             "--out", str(tmp_path / "out")],
            obj={},
        )
        assert result.exit_code == 1
        assert "Marker file not found" in result.output
