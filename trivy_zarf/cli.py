"""CLI interface for trivy-zarf."""

import asyncio
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from trivy_zarf.config import PluginConfig, load_config
from trivy_zarf.consts import ENV_PREFIX
from trivy_zarf.exceptions import ConfigError, ScanFailed, ToolNotInstalled, ZarfScanError
from trivy_zarf.logging_setup import setup_logging
from trivy_zarf.models.model_scanner import ScanRunResult, Vulnerabilities
from trivy_zarf.pipeline import run_scan_pipeline
from trivy_zarf.scanner import TrivyScanner, ZarfPackageTool

app = typer.Typer(
    name="trivy-zarf",
    help="Zarf plugin for Trivy - scans the container images in Zarf packages.",
    no_args_is_help=True,
)

console = Console()

MAX_FAILURES_SHOWN = 20


def _env(key: str) -> str:
    """Environment variable name for a config key."""
    return f"{ENV_PREFIX}_{key.upper().replace('-', '_').replace('.', '_')}"


@app.callback()
def main(
    ctx: typer.Context,
    config: Path = typer.Option(
        None,
        "--config",
        "-c",
        envvar=_env("config"),
        help="Config file (default $HOME/.trivy_plugin_zarf.yaml)",
    ),
    log_level: str = typer.Option(
        None, "--log-level", "-l", envvar=_env("log-level"), help="Log level [debug, info, warn, error]"
    ),
    log_format: str = typer.Option(
        None, "--log-format", envvar=_env("log-format"), help="Log format [console, json, dev, none]"
    ),
    no_color: bool = typer.Option(
        False, "--no-color", envvar=_env("no-color"), help="Disable colorized output"
    ),
) -> None:
    """Load configuration and set up logging for all commands."""
    try:
        plugin_config = load_config(config)
        setup_logging(
            log_level or plugin_config.log_level,
            log_format or plugin_config.log_format,
            color=not (no_color or plugin_config.no_color),
        )
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    ctx.obj = plugin_config


def _print_summary(result: ScanRunResult) -> None:
    """Print run summary, vulnerability totals and failed images."""
    summary_table = Table(title="Scan Summary")
    summary_table.add_column("Metric", style="cyan")
    summary_table.add_column("Count", justify="right", style="magenta")

    summary_table.add_row("Images", str(result.total))
    summary_table.add_row("Succeeded", str(result.succeeded))
    summary_table.add_row("Failed", str(result.failed))
    summary_table.add_row("Duration", f"{result.duration_seconds:.1f}s")

    console.print(summary_table)

    # Vulnerability summary table (only when JSON reports were written)
    reports = [o.report for o in result.outcomes if o.report and o.report.vulnerabilities]
    if reports:
        console.print()
        vuln_table = Table(title="Vulnerability Summary")
        vuln_table.add_column("Severity", style="cyan")
        vuln_table.add_column("Count", justify="right")

        totals = Vulnerabilities()
        for report in reports:
            vulns = report.vulnerabilities
            totals = Vulnerabilities(
                critical=totals.critical + vulns.critical,
                high=totals.high + vulns.high,
                medium=totals.medium + vulns.medium,
                low=totals.low + vulns.low,
                unknown=totals.unknown + vulns.unknown,
            )

        vuln_table.add_row("Critical", f"[red]{totals.critical}[/red]")
        vuln_table.add_row("High", f"[orange1]{totals.high}[/orange1]")
        vuln_table.add_row("Medium", f"[yellow]{totals.medium}[/yellow]")
        vuln_table.add_row("Low", f"[dim]{totals.low}[/dim]")
        vuln_table.add_row("Unknown", f"[dim]{totals.unknown}[/dim]")

        console.print(vuln_table)

    # Show failures if any
    if result.failures:
        console.print(f"\n[yellow]Failed images ({len(result.failures)}):[/yellow]")
        for outcome in result.failures[:MAX_FAILURES_SHOWN]:
            kind = ""
            if isinstance(outcome.error, ScanFailed):
                kind = f" ({outcome.error.error_type.value})"
            console.print(
                f"  [dim]{escape(outcome.resolved_name)}:[/dim] {escape(str(outcome.error))}{kind}"
            )
        if len(result.failures) > MAX_FAILURES_SHOWN:
            console.print(f"  [dim]... and {len(result.failures) - MAX_FAILURES_SHOWN} more[/dim]")


@app.command()
def scan(
    ctx: typer.Context,
    package: str = typer.Argument(..., help="Zarf package file (.tar.zst) or oci:// reference"),
    output: Path = typer.Option(
        None,
        "--output",
        "-o",
        envvar=_env("scan.output"),
        help="Output directory for JSON scan results (default: print to stdout)",
    ),
    db_repository: str = typer.Option(
        None, "--db-repository", envvar=_env("scan.db-repository"), help="Trivy DB repository to use"
    ),
    skip_signature_validation: bool = typer.Option(
        False,
        "--skip-signature-validation",
        envvar=_env("scan.skip-signature-validation"),
        help="Skip signature validation when pulling a package from an OCI registry",
    ),
    arch: str = typer.Option(
        None, "--arch", "-a", envvar=_env("scan.arch"), help="Architecture to pull (default: host)"
    ),
    timeout: int = typer.Option(None, "--timeout", help="Per-image scan timeout in seconds"),
) -> None:
    """Scan every container image in a Zarf package."""
    plugin_config: PluginConfig = ctx.obj or PluginConfig()

    try:
        settings = plugin_config.scan.merged(
            output=output,
            db_repository=db_repository,
            skip_signature_validation=skip_signature_validation or None,
            arch=arch,
        )
    except ValidationError as e:
        console.print(f"[red]Error:[/red] invalid scan options: {escape(str(e))}")
        raise typer.Exit(1)

    # Check external tools
    scanner = TrivyScanner(timeout=timeout)
    package_tool = ZarfPackageTool()
    try:
        scanner.ensure_installed()
        package_tool.ensure_installed()
    except ToolNotInstalled as e:
        console.print(f"[red]Error: {e}[/red]")
        console.print(f"\nInstall {e.tool} from: {e.install_url}")
        raise typer.Exit(1)

    console.print(f"\n[bold]Scanning Zarf package {escape(package)}...[/bold]\n")

    async def run_scan() -> ScanRunResult:
        if settings.output is None:
            # Trivy prints its tables to stdout, a live progress bar would garble them
            return await run_scan_pipeline(package, settings, package_tool=package_tool, scanner=scanner)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            console=console,
        ) as progress:
            task = progress.add_task("Scanning images...", total=None)

            def on_progress(current: int, total: int):
                progress.update(task, completed=current, total=total)

            return await run_scan_pipeline(
                package,
                settings,
                package_tool=package_tool,
                scanner=scanner,
                progress_callback=on_progress,
            )

    try:
        result = asyncio.run(run_scan())
    except ZarfScanError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if result.total == 0:
        console.print("[yellow]No images found in the Zarf package[/yellow]")
        return

    console.print("\n[bold green]Scan complete![/bold green]")
    _print_summary(result)

    if result.failed:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
