"""Console script for webbaseline."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
import logging
from pathlib import Path

import click
from rich.console import Console

from . import __version__ as _version
from .catalog import FeatureCatalog, default_data_path
from .config import PerformanceConfig
from .constants import AUDIT_BATCH_SIZE, AUDIT_TIMEOUT_MS, DATA_PATH_ENV, FEATURES_DATA_URL
from .exceptions import WebBaselineError
from .http import fetch_catalog_payload, save_catalog_payload, use_shared_client
from .model import Finding, SourceDocument
from .orchestrator import AnalysisOrchestrator
from .render_basic import render_feature, render_findings, render_summary
from .reporting import ErrorReporter
from .resolver import BaselineTarget, CompatibilityResolver
from .scheduler import AnalysisScheduler
from .util.files import iter_source_paths, load_document
from .util.html import debug_enabled

_DATA_OPTION_HELP = f"Feature dataset JSON to use instead of ${DATA_PATH_ENV} or the bundled copy."


def _build_orchestrator(
    data_path: Path | None, reporter: ErrorReporter, target: BaselineTarget
) -> AnalysisOrchestrator:
    catalog = FeatureCatalog(data_path, reporter)
    scheduler = AnalysisScheduler(PerformanceConfig.from_env(reporter=reporter), reporter)
    return AnalysisOrchestrator(
        CompatibilityResolver(catalog, reporter),
        scheduler,
        reporter=reporter,
        baseline_target=target,
    )


async def _audit(
    orchestrator: AnalysisOrchestrator,
    documents: Sequence[SourceDocument],
    batch_size: int,
    timeout_ms: int,
) -> dict[str, list[Finding]]:
    await orchestrator.initialize()
    try:
        return await orchestrator.analyze_many(documents, batch_size, timeout_ms)
    finally:
        orchestrator.scheduler.dispose()


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(_version, "-v", "--version")
@click.option("--verbose", is_flag=True, help="Log diagnostics to stderr.")
def main(verbose: bool) -> None:
    """
    Check web sources against Baseline browser support

    \b
    Example usages:
      webbaseline check src/
      webbaseline check --target high index.html styles.css
      webbaseline feature css.properties.float
    """
    if verbose or debug_enabled():
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@main.command()
@click.argument(
    "paths",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, path_type=Path),
)
@click.option(
    "--target",
    type=click.Choice(["low", "high"]),
    default="low",
    show_default=True,
    help="'high' also reports features that are only newly available.",
)
@click.option(
    "--data",
    "data_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help=_DATA_OPTION_HELP,
)
@click.option("--batch-size", default=AUDIT_BATCH_SIZE, show_default=True, type=click.IntRange(1))
@click.option(
    "--timeout",
    "timeout_ms",
    default=AUDIT_TIMEOUT_MS,
    show_default=True,
    type=click.IntRange(1),
    help="Per-file deadline in milliseconds.",
)
def check(
    paths: tuple[Path, ...],
    target: BaselineTarget,
    data_path: Path | None,
    batch_size: int,
    timeout_ms: int,
) -> None:
    """Report non-Baseline features used in files or directories."""
    console = Console()
    try:
        documents = [load_document(path) for path in iter_source_paths(paths)]
    except OSError as exc:
        raise click.ClickException(str(exc)) from exc
    if not documents:
        raise click.ClickException("No supported source files found.")

    reporter = ErrorReporter()
    orchestrator = _build_orchestrator(data_path, reporter, target)
    results = asyncio.run(_audit(orchestrator, documents, batch_size, timeout_ms))

    critical = [info for info in reporter.history() if info.severity == "critical"]
    if critical:
        raise click.ClickException(critical[-1].message)

    for uri, findings in results.items():
        if findings:
            console.print(render_findings(uri, findings))
    console.print(render_summary(results))

    if any(results.values()):
        click.get_current_context().exit(1)


@main.command()
@click.argument("feature_id")
@click.option(
    "--data",
    "data_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help=_DATA_OPTION_HELP,
)
def feature(feature_id: str, data_path: Path | None) -> None:
    """Show the Baseline status of one feature or compat key."""
    catalog = FeatureCatalog(data_path, ErrorReporter())
    try:
        catalog.load()
    except WebBaselineError as exc:
        raise click.ClickException(str(exc)) from exc

    record = catalog.get(feature_id.strip())
    if record is None:
        raise click.ClickException(f"Unknown feature: {feature_id}")
    Console().print(render_feature(record))


@main.command("update-data")
@click.option("--url", default=FEATURES_DATA_URL, show_default=True)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help=f"Where to write the dataset (defaults to ${DATA_PATH_ENV}).",
)
def update_data(url: str, output: Path | None) -> None:
    """Download the latest web-features dataset."""
    target = output or default_data_path()
    if target is None:
        raise click.ClickException(
            f"Pass --output or set {DATA_PATH_ENV} to choose where the dataset is written."
        )

    try:
        with use_shared_client():
            payload = fetch_catalog_payload(url)
    except WebBaselineError as exc:
        raise click.ClickException(str(exc)) from exc

    count = save_catalog_payload(payload, target)
    Console().print(f"Saved {count} features to {target}")
