"""CLI entry point for Argus."""

from __future__ import annotations

import asyncio
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

from argus.auth.credentials import (
    CredentialProvider,
    StaticCredentialProvider,
    TerminalCredentialProvider,
)
from argus.capture.capture_engine import run_capture
from argus.diff.comparison_engine import (
    approve_screenshots,
    promote_new_screenshots,
    run_comparison,
)
from argus.explorer.explorer_engine import run_explorer
from argus.models.comparison import ComparisonReport
from argus.models.config import (
    CONFIG_FILENAMES,
    ArgusConfig,
    RouteConfig,
    ViewportConfig,
    find_config_file,
)
from argus.models.explorer import Credentials, ExplorerOptions, ExplorerReport
from argus.reporter.json_report import create_json_report, generate_json_report, save_explorer_report
from argus.reporter.junit_report import generate_junit_report

console = Console()

_STATUS_STYLES = {
    "passed": "green",
    "failed": "red",
    "new": "yellow",
    "missing": "magenta",
    "error": "red",
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def _parse_viewport(ctx, param, value: Optional[str]) -> Optional[ViewportConfig]:
    if value is None:
        return None
    try:
        return ViewportConfig.parse(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


def _load_config(config: Optional[str], required: bool = True) -> Optional[ArgusConfig]:
    """Load the config file, printing a friendly error and exiting on failure."""
    path = Path(config) if config else find_config_file()
    if path is None:
        if not required:
            return None
        console.print(f"[red]No config file found ({' or '.join(CONFIG_FILENAMES)})[/red]")
        console.print("Run 'argus init' to create a default config.")
        sys.exit(1)

    try:
        return ArgusConfig.load(path)
    except FileNotFoundError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        console.print("Run 'argus init' to create a default config.")
        sys.exit(1)
    except (ValidationError, json.JSONDecodeError) as e:
        console.print(f"[red]Invalid config file {path}:[/red]\n{escape(str(e))}")
        sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Argus: visual regression testing for websites"""
    setup_logging(verbose)


@cli.command()
@click.option("--base-url", "-u", prompt="Base URL", help="Website URL to test")
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing config file")
def init(base_url: str, force: bool) -> None:
    """Create a default configuration file."""
    config_path = Path(CONFIG_FILENAMES[0])
    if config_path.exists() and not force:
        console.print(f"[red]{config_path} already exists. Use --force to overwrite.[/red]")
        sys.exit(1)

    try:
        cfg = ArgusConfig(base_url=base_url, routes=[RouteConfig(path="/", name="home")])
    except ValidationError as e:
        console.print(f"[red]Invalid base URL:[/red] {e.errors()[0]['msg']}")
        sys.exit(1)

    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nAdd routes to this file, then capture baselines with:")
    console.print("  [blue]argus capture --baseline[/blue]")
    console.print("\nOr discover pages automatically:")
    console.print(f"  [blue]argus explore {base_url} --baseline[/blue]")


@cli.command()
@click.option("--baseline", "-b", is_flag=True, help="Save captures as baseline images")
@click.option("--config", "-c", default=None, help="Config file path")
@click.option("--viewport", callback=_parse_viewport, help="Only capture this viewport (e.g. 1920x1080)")
@click.option("--route", "route_name", default=None, help="Only capture this route (name or path)")
@click.option("--concurrency", type=click.IntRange(1, 20), default=None, help="Parallel captures")
@click.option("--headless/--no-headless", default=True, help="Run the browser headless")
def capture(
    baseline: bool,
    config: Optional[str],
    viewport: Optional[ViewportConfig],
    route_name: Optional[str],
    concurrency: Optional[int],
    headless: bool,
) -> None:
    """Screenshot every configured route."""
    cfg = _load_config(config)
    if concurrency is not None:
        cfg.concurrency = concurrency

    if route_name and not any(
        route_name.lower() in (r.name.lower(), r.path.lower()) for r in cfg.routes
    ):
        console.print(f"[red]Route '{route_name}' not found in configuration[/red]")
        sys.exit(1)

    mode = "baseline" if baseline else "current"
    console.print(f"[bold]Capturing {mode} screenshots[/bold] for {cfg.base_url}")
    report = asyncio.run(run_capture(
        cfg, baseline=baseline, route_filter=route_name, viewport=viewport, headless=headless,
    ))

    table = Table(title="Capture Summary")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Total", str(report.total))
    table.add_row("Successful", f"[green]{report.successful}[/green]")
    table.add_row("Failed", f"[red]{report.failed}[/red]")
    table.add_row("Warnings", f"[yellow]{sum(len(r.warnings) for r in report.results)}[/yellow]")
    table.add_row("Duration", f"{report.duration_ms / 1000:.1f}s")
    console.print(table)

    for error in report.errors:
        console.print(f"  [red]✗[/red] {escape(f'{error.route} [{error.viewport}]: {error.error}')}")

    if report.failed:
        sys.exit(1)


def _print_explorer_report(report: ExplorerReport) -> None:
    table = Table(title="Explore Summary")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Discovered", str(report.discovered))
    table.add_row("Captured", f"[green]{report.captured}[/green]")
    table.add_row("Failed", f"[red]{report.failed}[/red]")
    table.add_row("Screenshots", str(report.screenshots))
    table.add_row("Warnings", f"[yellow]{sum(len(r.warnings) for r in report.results)}[/yellow]")
    table.add_row("Authenticated", "yes" if report.authenticated else "no")
    table.add_row("Duration", f"{report.duration_ms / 1000:.1f}s")
    console.print(table)

    for result in report.results:
        if result.error:
            console.print(f"  [red]✗[/red] {escape(f'{result.url}: {result.error}')}")


@cli.command()
@click.argument("url")
@click.option("--depth", "-d", type=click.IntRange(0, 10), default=None, help="Maximum crawl depth")
@click.option("--pages", "-p", type=click.IntRange(1, 1000), default=None,
              help="Maximum pages to capture")
@click.option("--exclude", multiple=True, help="Path glob to skip (repeatable)")
@click.option("--include", multiple=True, help="Only crawl paths matching this glob (repeatable)")
@click.option("--viewport", callback=_parse_viewport, help="Viewport size (e.g. 1920x1080)")
@click.option("--baseline", "-b", is_flag=True, help="Save captures as baseline images")
@click.option("--output", "-o", default=None, help="Output directory")
@click.option("--headless/--no-headless", default=True, help="Run the browser headless")
@click.option("--username", default=None, help="Login username for authenticated pages")
@click.option("--password", default=None, help="Login password for authenticated pages")
@click.option("--config", "-c", default=None, help="Config file path (optional)")
@click.option("--report", "report_path", default=None, help="Write the explorer report as JSON")
def explore(
    url: str,
    depth: Optional[int],
    pages: Optional[int],
    exclude: tuple[str, ...],
    include: tuple[str, ...],
    viewport: Optional[ViewportConfig],
    baseline: bool,
    output: Optional[str],
    headless: bool,
    username: Optional[str],
    password: Optional[str],
    config: Optional[str],
    report_path: Optional[str],
) -> None:
    """Crawl a site from URL and screenshot every page found."""
    try:
        cfg = _load_config(config, required=False) or ArgusConfig(base_url=url)
    except ValidationError as e:
        console.print(f"[red]Invalid URL:[/red] {e.errors()[0]['msg']}")
        sys.exit(1)
    if viewport:
        cfg.viewports = [viewport]
    if output:
        cfg.output_dir = output

    provider: Optional[CredentialProvider] = None
    if username and password:
        provider = StaticCredentialProvider(Credentials(username=username, password=password))
    elif sys.stdin.isatty():
        provider = TerminalCredentialProvider(console)

    options = ExplorerOptions(
        start_url=url,
        max_depth=depth,
        max_pages=pages,
        exclude=list(exclude) or None,
        include=list(include) or None,
        mode="baseline" if baseline else "current",
        headless=headless,
    )

    report = asyncio.run(run_explorer(cfg, options, credential_provider=provider))
    _print_explorer_report(report)
    if report_path:
        save_explorer_report(report, report_path)

    if report.failed:
        sys.exit(1)


def _print_comparison_report(report: ComparisonReport) -> None:
    table = Table(title="Comparison Results")
    table.add_column("Screenshot")
    table.add_column("Status")
    table.add_column("Diff", justify="right")
    table.add_column("Details")
    for r in report.results:
        if r.status == "passed":
            continue
        style = _STATUS_STYLES[r.status]
        diff = "" if r.diff_percentage is None or r.status in ("new", "missing") \
            else f"{r.diff_percentage:.2f}%"
        table.add_row(escape(r.name), f"[{style}]{r.status}[/{style}]", diff,
                      escape(r.error or r.diff_image_path or ""))
    if table.row_count:
        console.print(table)

    console.print(
        f"\n[bold]{report.total}[/bold] compared: "
        f"[green]{report.passed} passed[/green], [red]{report.failed} failed[/red], "
        f"[yellow]{report.new} new[/yellow], [magenta]{report.missing} missing[/magenta], "
        f"[red]{report.errors} errors[/red] ({report.duration_ms / 1000:.1f}s)"
    )


@cli.command()
@click.option("--config", "-c", default=None, help="Config file path")
@click.option("--threshold", type=click.FloatRange(0, 1), default=None,
              help="Per-pixel colour sensitivity (0-1)")
@click.option("--update-missing", is_flag=True, help="Promote new screenshots to baselines")
@click.option("--json", "as_json", is_flag=True, help="Print the results as JSON")
@click.option("--report", "report_path", default=None, help="Write a JSON report to this path")
@click.option("--junit", "junit_path", default=None, help="Write a JUnit XML report to this path")
def compare(
    config: Optional[str],
    threshold: Optional[float],
    update_missing: bool,
    as_json: bool,
    report_path: Optional[str],
    junit_path: Optional[str],
) -> None:
    """Compare current screenshots against baselines."""
    cfg = _load_config(config)
    if threshold is not None:
        cfg.threshold.pixel = threshold

    report = run_comparison(cfg)

    if update_missing:
        promoted = promote_new_screenshots(report)
        if promoted:
            console.print(f"[yellow]Created {len(promoted)} new baselines[/yellow]")

    if as_json:
        console.print_json(data=create_json_report(report, cfg))
    else:
        _print_comparison_report(report)

    if report_path:
        generate_json_report(report, cfg, report_path)
    if junit_path:
        generate_junit_report(report, cfg, junit_path)

    if report.has_failures(update_missing=update_missing):
        sys.exit(1)


@cli.command()
@click.option("--config", "-c", default=None, help="Config file path")
@click.option("--all", "approve_all", is_flag=True, help="Approve every current screenshot")
@click.option("--route", "routes", multiple=True, help="Approve screenshots whose name contains this")
def approve(config: Optional[str], approve_all: bool, routes: tuple[str, ...]) -> None:
    """Promote current screenshots to baselines."""
    if not approve_all and not routes:
        console.print("[yellow]Specify --all or at least one --route[/yellow]")
        sys.exit(1)

    cfg = _load_config(config)
    result = approve_screenshots(cfg, None if approve_all else list(routes))

    if not result.approved:
        console.print("[yellow]No screenshots approved[/yellow]")
        return
    console.print(f"[green]Approved {len(result.approved)} screenshots[/green]")
    for name in result.approved:
        console.print(f"  [green]✓[/green] {name}")


if __name__ == "__main__":
    cli()
