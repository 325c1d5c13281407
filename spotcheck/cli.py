"""CLI entry point for spotcheck."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from spotcheck.capture.builders import file_builder
from spotcheck.capture.pool import BrowserPool
from spotcheck.capture.screenshot import compare
from spotcheck.diff.visual_diff import visual_diff
from spotcheck.matcher import MatchResult, match_screenshot
from spotcheck.models.config import CaptureOptions, SpotcheckConfig
from spotcheck.models.result import ALL_PLATFORMS, ALL_STATES, ScreenshotDiff

console = Console()


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(config: Optional[str]) -> SpotcheckConfig:
    if config is None:
        return SpotcheckConfig()
    try:
        return SpotcheckConfig.load(config)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {config}[/red]")
        console.print("Run 'spotcheck init' to create a default config.")
        sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Visual regression screenshots for markup fragments"""
    setup_logging(verbose)


@cli.command()
@click.argument("fragment", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--name", "-n", default=None, help="Baseline name (defaults to the file stem)")
@click.option("--css", multiple=True, help="Stylesheet to inline (repeatable)")
@click.option("--path", "-p", default=None, help="Screenshot directory")
@click.option("--state", "states", multiple=True,
              type=click.Choice([s.value for s in ALL_STATES]), help="State to capture (repeatable)")
@click.option("--platform", "platforms", multiple=True,
              type=click.Choice([p.value for p in ALL_PLATFORMS]), help="Platform to check (repeatable)")
@click.option("--update", "-u", is_flag=True, help="Re-record the local baseline")
@click.option("--compare", "diff_mode", is_flag=True,
              help="Always capture and diff each image instead of gating on the content hash")
@click.option("--config", "-c", default=None, help="Config file path")
def capture(
    fragment: Path,
    name: Optional[str],
    css: tuple[str, ...],
    path: Optional[str],
    states: tuple[str, ...],
    platforms: tuple[str, ...],
    update: bool,
    diff_mode: bool,
    config: Optional[str],
) -> None:
    """Screenshot an HTML fragment file and check it against its baseline."""
    cfg = _load_config(config)
    overrides: dict = {"base_dir": cfg.capture.base_dir or Path.cwd()}
    if css:
        overrides["css"] = list(css)
    if path:
        overrides["path"] = path
    if states:
        overrides["states"] = list(states)
    if platforms:
        overrides["platforms"] = list(platforms)
    if update:
        overrides["update"] = True
    opts = CaptureOptions.model_validate({**cfg.capture.model_dump(exclude_unset=True), **overrides})

    markup = fragment.read_text(encoding="utf-8")
    name = name or fragment.stem
    builder = file_builder(opts.base_dir)

    async def _run() -> bool:
        async with BrowserPool(cfg.pool) as pool:
            if diff_mode:
                diffs = await compare(markup, name, builder, pool, opts)
                _print_diffs(name, diffs)
                return all(d.identical for d in diffs)
            result = await match_screenshot(markup, name, builder, pool, opts,
                                            update=True if update else None)
            _print_platforms(name, result)
            return result.passed

    if not asyncio.run(_run()):
        sys.exit(1)


def _print_platforms(name: str, result: MatchResult) -> None:
    table = Table(title=f"Screenshot: {name}")
    table.add_column("Platform", style="bold")
    table.add_column("Changed")
    table.add_column("Updated")
    table.add_column("Captures")
    for r in result.results:
        color = "red" if r.changed and not r.updated else "white"
        table.add_row(
            r.platform.value,
            f"[{color}]{'changed' if r.changed else 'unchanged'}[/{color}]",
            "updated" if r.updated else "not updated",
            str(len(r.captures)),
        )
    console.print(table)
    if not result.passed:
        console.print(f"[red]{result.message}[/red]")


def _print_diffs(name: str, diffs: list[ScreenshotDiff]) -> None:
    table = Table(title=f"Comparison: {name}")
    table.add_column("State", style="bold")
    table.add_column("Element")
    table.add_column("Result")
    table.add_column("Diff")
    for d in diffs:
        verdict = "[green]identical[/green]" if d.identical else "[red]differs[/red]"
        table.add_row(d.state.value, str(d.idx), verdict, d.diff_path or "")
    console.print(table)


@cli.command()
@click.argument("before", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("after", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--out", "-o", default="diff.png", help="Where to write the composite image")
@click.option("--threshold", "-t", default=0.1, show_default=True, type=click.FloatRange(0, 1),
              help="Tolerated colour distance per pixel, 0 flags any change")
def diff(before: Path, after: Path, out: str, threshold: float) -> None:
    """Compare two PNG files pixel by pixel."""
    try:
        result = visual_diff(before.read_bytes(), after.read_bytes(), threshold)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)

    out_path = Path(out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(result.img)

    if result.identical:
        console.print("[green]Images are identical[/green]")
        return
    if result.mismatch is None:
        console.print("[red]Image dimensions differ[/red]")
    else:
        console.print(f"[red]{result.mismatch} pixel(s) differ[/red]")
    console.print(f"  Composite: [blue]{out_path}[/blue]")
    sys.exit(1)


@cli.command()
@click.option("--config", "-c", default="spotcheck.json", help="Config file path")
def init(config: str) -> None:
    """Create a default configuration file."""
    config_path = Path(config)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    SpotcheckConfig().save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nYou can now capture a fragment with:")
    console.print(f"  [blue]spotcheck capture button.html --config {config_path}[/blue]")


if __name__ == "__main__":
    cli()
