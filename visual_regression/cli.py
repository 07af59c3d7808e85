"""CLI entry point for visual regression checks."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from visual_regression.core.artifact_store import ArtifactStore, atomic_write
from visual_regression.core.comparator import ImageComparator
from visual_regression.core.evaluator import RegressionEvaluator
from visual_regression.core.naming import diff_name
from visual_regression.errors import DimensionMismatch, VisualRegressionError
from visual_regression.models.config import VisualRegressionConfig
from visual_regression.models.screenshot import ScreenshotKey, coerce_selector

console = Console()


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(config: str) -> VisualRegressionConfig:
    try:
        return VisualRegressionConfig.load(config)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {config}[/red]")
        console.print("Run 'visual-regression init' to create a default config.")
        sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Screenshot baseline comparison for UI tests"""
    setup_logging(verbose)


@cli.command()
@click.option("--config", "-c", default="visual-regression.json", help="Config file path")
def init(config: str) -> None:
    """Create a default configuration file."""
    config_path = Path(config)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return
    VisualRegressionConfig().save(config_path)
    console.print(f"[green]Created {config_path}[/green]")


@cli.command()
@click.argument("current", type=click.Path(exists=True, dir_okay=False))
@click.argument("baseline", type=click.Path(exists=True, dir_okay=False))
@click.option("--tolerance", "-t", type=float, default=None, help="Mismatch tolerance in percent [default: from config]")
@click.option("--pixel-tolerance", type=int, default=None, help="Per-channel colour tolerance [default: from config]")
@click.option("--config", "-c", default=None, help="Config file path; built-in defaults when omitted")
def compare(current: str, baseline: str, tolerance: float | None, pixel_tolerance: int | None, config: str | None) -> None:
    """Compare two images and write a diff image next to CURRENT."""
    cfg = _load_config(config) if config else VisualRegressionConfig()
    if tolerance is None:
        tolerance = cfg.mismatch_tolerance
    if pixel_tolerance is None:
        pixel_tolerance = cfg.pixel_tolerance

    comparator = ImageComparator(pixel_tolerance=pixel_tolerance, ignore_antialiasing=cfg.ignore_antialiasing)
    try:
        result = comparator.compare(Path(current).read_bytes(), Path(baseline).read_bytes())
    except DimensionMismatch as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)

    diff_path = Path(current).parent / diff_name(Path(current).name)
    try:
        atomic_write(diff_path, result.diff_image)
    except OSError as e:
        console.print(f"[red]Failed to write diff image {escape(str(diff_path))}: {escape(str(e))}[/red]")
        sys.exit(2)
    passed = result.mismatch_percent < tolerance

    table = Table(title="Comparison")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Size", f"{result.width}x{result.height}")
    table.add_row("Differing pixels", str(result.differing_pixels))
    table.add_row("Mismatch", f"{result.mismatch_percent}%")
    table.add_row("Tolerance", f"{tolerance}%")
    table.add_row("Result", "[green]pass[/green]" if passed else "[red]fail[/red]")
    table.add_row("Diff image", str(diff_path))
    console.print(table)
    if not passed:
        sys.exit(1)


@cli.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@click.option("--module", "test_module", required=True, help="Test module name")
@click.option("--step", "test_step", required=True, help="Test step name")
@click.option("--browser", "browser_name", required=True, help="Browser name")
@click.option("--browser-version", required=True, help="Browser version")
@click.option("--platform", "os_name", required=True, help="Platform name")
@click.option("--width", required=True, type=int, help="Viewport width")
@click.option("--height", required=True, type=int, help="Viewport height")
@click.option("--selector", "-s", multiple=True, help="Element selector; repeat for ancestor-first fragments")
@click.option("--label", "-l", default=None, help="Optional filename label")
@click.option("--config", "-c", default="visual-regression.json", help="Config file path")
def evaluate(
    image: str,
    test_module: str,
    test_step: str,
    browser_name: str,
    browser_version: str,
    os_name: str,
    width: int,
    height: int,
    selector: tuple[str, ...],
    label: str | None,
    config: str,
) -> None:
    """Evaluate a captured IMAGE against its baseline."""
    cfg = _load_config(config)
    if len(selector) > 1:
        target = coerce_selector(list(selector))
    else:
        target = coerce_selector(selector[0] if selector else None)
    try:
        key = ScreenshotKey(
            test_module=test_module,
            test_step=test_step,
            browser_name=browser_name,
            browser_version=browser_version,
            platform=os_name,
            width=width,
            height=height,
            selector=target,
            label=label,
        )
    except ValidationError as e:
        console.print(f"[red]Invalid screenshot key: {escape(str(e))}[/red]")
        sys.exit(2)
    try:
        verdict = RegressionEvaluator(cfg).evaluate_file(key, image)
    except VisualRegressionError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(2)

    for warning in verdict.warnings:
        console.print(f"[yellow]Warning:[/yellow] {escape(warning)}")
    color = "green" if verdict.passed else "red"
    console.print(f"[{color}]{escape(verdict.message)}[/{color}]")
    if not verdict.passed:
        sys.exit(1)


@cli.command()
@click.argument("relative_path")
@click.option("--config", "-c", default="visual-regression.json", help="Config file path")
def approve(relative_path: str, config: str) -> None:
    """Accept the current screenshot at RELATIVE_PATH as the new baseline."""
    cfg = _load_config(config)
    try:
        dest = ArtifactStore(cfg).approve(relative_path)
    except FileNotFoundError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)
    console.print(f"[green]Baseline updated:[/green] {dest}")


@cli.command()
@click.option("--config", "-c", default="visual-regression.json", help="Config file path")
def report(config: str) -> None:
    """List screenshots currently failing comparison."""
    cfg = _load_config(config)
    store = ArtifactStore(cfg)
    failing = store.list_errors()
    if not failing:
        console.print("[green]No failing screenshots[/green]")
        return

    table = Table(title=f"Failing screenshots ({len(failing)})")
    table.add_column("Screenshot", style="bold")
    table.add_column("Error artifact")
    for path in failing:
        table.add_row(str(path), str(store.resolve_error(path)))
    console.print(table)


if __name__ == "__main__":
    cli()
