"""CLI entry point for page-diff."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from page_diff.comparator import PageComparator
from page_diff.errors import CoreError
from page_diff.models.config import CompareConfig
from page_diff.reporter.assembler import build_error_payload, build_payload, write_outputs

console = Console()
log_console = Console(stderr=True)

DEFAULT_CONFIG = "page-diff.json"


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=log_console, rich_tracebacks=True)],
    )


def _load_config(path: str) -> CompareConfig:
    """Load the config file, falling back to defaults when the default file is absent."""
    try:
        return CompareConfig.load(path)
    except FileNotFoundError:
        if path != DEFAULT_CONFIG:
            console.print(f"[red]Config file not found: {path}[/red]")
            sys.exit(1)
        return CompareConfig()
    except (ValidationError, json.JSONDecodeError) as e:
        console.print(f"[red]Invalid config file {path}:[/red] {escape(str(e))}")
        sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Capture two web pages and diff their pixels."""
    setup_logging(verbose)


@cli.command()
@click.argument("url_a")
@click.argument("url_b")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
@click.option("--full-page/--viewport-only", default=None, help="Capture the whole page")
@click.option("--wait-selector", default=None, help="CSS selector to wait for before capture")
@click.option("--wait-ms", type=int, default=None, help="Extra settle time in ms (max 15000)")
@click.option("--remove", "remove_selectors", multiple=True,
              help="CSS selector of elements to delete before capture (repeatable)")
@click.option("--timeout-ms", type=int, default=None, help="Navigation timeout in ms")
@click.option("--threshold", type=float, default=None, help="Color threshold 0..1 (smaller is stricter)")
@click.option("--exclude-anti-aliased", is_flag=True, help="Ignore anti-aliased edge pixels")
@click.option("--alpha", type=int, default=None, help="Alpha of highlighted diff pixels (0..255)")
@click.option("--no-diff", is_flag=True, help="Capture only, skip the pixel diff")
@click.option("--output-dir", "-o", default=None, help="Directory for PNGs and report.json")
@click.option("--json", "as_json", is_flag=True, help="Print the JSON payload instead of a summary")
def compare(
    url_a: str,
    url_b: str,
    config: str,
    full_page: Optional[bool],
    wait_selector: Optional[str],
    wait_ms: Optional[int],
    remove_selectors: tuple[str, ...],
    timeout_ms: Optional[int],
    threshold: Optional[float],
    exclude_anti_aliased: bool,
    alpha: Optional[int],
    no_diff: bool,
    output_dir: Optional[str],
    as_json: bool,
) -> None:
    """Capture URL_A and URL_B and write a pixel diff."""
    cfg = _load_config(config)

    if full_page is not None:
        cfg.full_page = full_page
    if timeout_ms is not None:
        cfg.timeout_ms = timeout_ms
    if wait_selector:
        cfg.stabilization.wait_selector = wait_selector
    if wait_ms is not None:
        cfg.stabilization.wait_ms = wait_ms
    if remove_selectors:
        cfg.stabilization.remove_selectors = list(remove_selectors)
    if threshold is not None:
        cfg.diff.threshold = threshold
    if exclude_anti_aliased:
        cfg.diff.include_anti_aliased = False
    if alpha is not None:
        cfg.diff.output_alpha = alpha
    if no_diff:
        cfg.diff.enabled = False

    comparator = PageComparator(cfg)
    try:
        outcome = comparator.compare(
            cfg.capture_request(url_a), cfg.capture_request(url_b), cfg.diff,
        )
    except CoreError as e:
        if as_json:
            click.echo(json.dumps(build_error_payload(e)))
        else:
            console.print(f"[red]Comparison failed ({type(e).__name__}):[/red] {escape(str(e))}")
        sys.exit(1)

    try:
        artifacts = write_outputs(outcome, Path(output_dir or cfg.output_dir), comparator.codec)
    except OSError as e:
        if as_json:
            click.echo(json.dumps({
                "ok": False, "error": str(e), "error_type": type(e).__name__, "side": None,
            }))
        else:
            console.print(f"[red]Could not write outputs:[/red] {escape(str(e))}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(build_payload(outcome, comparator.codec)))
        return

    console.print("\n[bold green]Comparison Complete[/bold green]")
    table = Table(title="Results Summary")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("URL A", outcome.capture_a.url)
    table.add_row("URL B", outcome.capture_b.url)
    table.add_row("Size A", f"{outcome.capture_a.width}x{outcome.capture_a.height}")
    table.add_row("Size B", f"{outcome.capture_b.width}x{outcome.capture_b.height}")
    if outcome.diff:
        diff = outcome.diff
        color = "green" if diff.differing_pixel_count == 0 else "red"
        table.add_row("Compared region", f"{diff.width}x{diff.height}")
        table.add_row("Differing pixels", f"[{color}]{diff.differing_pixel_count}[/{color}]")
        table.add_row("Mismatch", f"[{color}]{diff.mismatch_ratio:.2%}[/{color}]")
    else:
        table.add_row("Diff", "[yellow]disabled[/yellow]")
    console.print(table)

    for name, path in artifacts.items():
        console.print(f"  {name.upper()}: [blue]{path}[/blue]")


@cli.command()
@click.option("--path", "-p", default=DEFAULT_CONFIG, help="Where to write the config file")
def init(path: str) -> None:
    """Create a default configuration file."""
    config_path = Path(path)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    CompareConfig().save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nYou can now customize this file and run:")
    console.print("  [blue]page-diff compare https://example.com https://example.org[/blue]")


if __name__ == "__main__":
    cli()
