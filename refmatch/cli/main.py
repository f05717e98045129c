"""Command-line interface for RefMatch.

Provides CLI commands for classifying test cells against labeled references.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
import yaml

from refmatch import __version__


def setup_logging(verbose: bool = False, debug: bool = False) -> logging.Logger:
    """Setup logging for CLI commands."""
    level = logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    return logging.getLogger("refmatch")


def parse_reference_option(value: str) -> Tuple[str, Path, Path]:
    """Parse ``NAME=REFERENCE.h5ad:MARKERS.json`` into its parts."""
    name, sep, paths = value.partition("=")
    if not sep or not name:
        raise click.BadParameter(
            f"Expected NAME=REFERENCE.h5ad:MARKERS.json, got '{value}'", param_hint="--reference"
        )
    ref_path, sep, marker_path = paths.rpartition(":")
    if not sep or not ref_path or not marker_path:
        raise click.BadParameter(
            f"Expected NAME=REFERENCE.h5ad:MARKERS.json, got '{value}'", param_hint="--reference"
        )
    return name, Path(ref_path), Path(marker_path)


@click.group()
@click.version_option(version=__version__, prog_name="refmatch")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, debug: bool) -> None:
    """RefMatch: rank-correlation cell-type assignment against references.

    Each test cell is classified against every reference using marker-gene
    Spearman correlations, then the best reference is chosen per cell.

    Examples:

        # Classify against two references
        refmatch classify --test test.h5ad \\
            --reference blood=blood.h5ad:blood_markers.json \\
            --reference atlas=atlas.h5ad:atlas_markers.json \\
            --out results/

        # Print the default configuration
        refmatch show-config
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug
    ctx.obj["logger"] = setup_logging(verbose, debug)


@cli.command()
@click.option("--test", "-t", "test_path", required=True, type=click.Path(exists=True),
              help="Test AnnData file (.h5ad)")
@click.option("--reference", "-r", "reference_options", required=True, multiple=True,
              help="Reference as NAME=REFERENCE.h5ad:MARKERS.json (repeatable)")
@click.option("--out", "-o", "output_path", required=True, type=click.Path(),
              help="Output directory")
@click.option("--config", "-c", type=click.Path(exists=True),
              help="Configuration file (YAML)")
@click.option("--label-key", help="Reference obs column with labels")
@click.option("--layer", help="Expression layer to use (default: X)")
@click.option("--threads", type=int, help="Number of worker threads")
@click.option("--quantile", type=float, help="Correlation quantile used as score")
@click.option("--top", type=int, help="Markers kept per label pair")
@click.option("--no-fine-tune", is_flag=True, help="Disable fine-tuning")
@click.pass_context
def classify(
    ctx: click.Context,
    test_path: str,
    reference_options: Tuple[str, ...],
    output_path: str,
    config: Optional[str],
    label_key: Optional[str],
    layer: Optional[str],
    threads: Optional[int],
    quantile: Optional[float],
    top: Optional[int],
    no_fine_tune: bool,
) -> None:
    """Classify test cells against one or more references."""
    logger = ctx.obj["logger"]

    # Import here to avoid slow startup
    import anndata as ad

    from refmatch.core.classification import (
        RefMatchConfig,
        ReferenceDataset,
        ReferenceIntegrationEngine,
    )
    from refmatch.io import get_logger, log_yaml

    references_parsed = [parse_reference_option(value) for value in reference_options]

    cfg = RefMatchConfig.from_yaml(Path(config)) if config else RefMatchConfig()
    if label_key:
        cfg.label_key = label_key
    if layer:
        cfg.layer = layer
    if threads is not None:
        cfg.num_threads = threads
    if quantile is not None:
        cfg.single.quantile = quantile
        cfg.integrated.quantile = quantile
    if top is not None:
        cfg.train.top = top
    if no_fine_tune:
        cfg.single.fine_tune = False

    out_dir = Path(output_path)
    out_dir.mkdir(parents=True, exist_ok=True)
    run_logger, log_path = get_logger(
        "refmatch",
        out_dir / "refmatch.log",
        level=logging.DEBUG if ctx.obj["debug"] else logging.INFO,
    )
    log_yaml(log_path, {"config": cfg.to_dict()}, logger=run_logger)

    logger.info(f"Loading test data: {test_path}")
    test_adata = ad.read_h5ad(test_path)

    references = []
    for name, ref_path, marker_path in references_parsed:
        if not ref_path.exists():
            raise click.BadParameter(f"Reference file not found: {ref_path}", param_hint="--reference")
        logger.info(f"Loading reference '{name}': {ref_path}")
        references.append(
            ReferenceDataset(name=name, adata=ad.read_h5ad(ref_path), markers=marker_path)
        )

    engine = ReferenceIntegrationEngine(cfg, logger=run_logger)
    try:
        result = engine.run(test_adata, references, output_dir=out_dir)
    except (ValueError, FileNotFoundError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Classified {len(result.cell_results)} cells; results in {out_dir}")
    click.echo(f"Log: {log_path}")


@cli.command("show-config")
def show_config() -> None:
    """Print the default configuration as YAML."""
    from refmatch.core.classification import RefMatchConfig

    click.echo(yaml.safe_dump({"refmatch": RefMatchConfig.default().to_dict()}, sort_keys=False))


def main() -> None:
    """Main entry point for CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
