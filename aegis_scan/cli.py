"""Command line interface for running simulated scans."""

import asyncio
from typing import List, Optional, Sequence

import click
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from .core.config.config_manager import ConfigManager
from .core.exceptions import (
    AegisScanException, ConfigurationError, ConfigValidationError,
    ExportError, InvalidRequestError, SynthesisError
)
from .core.logger.logger_manager import LoggerManager
from .core.scanning.data_structures import (
    Category, LogEntry, LogKind, ReportFormat, ScanRequest, ScanResult, Severity
)
from .core.scanning.planner import plan_phases
from .core.scanning.scan_engine import ScanEngine
from .core.scanning.severity_filter import SeverityFilterState
from .progress.driver import ScanHandle
from .reporting.exporter import ReportExporter


console = Console()

SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "blue",
}

LOG_STYLES = {
    LogKind.INFO: "cyan",
    LogKind.WARNING: "yellow",
    LogKind.ERROR: "red",
    LogKind.SUCCESS: "green",
    LogKind.PAYLOAD: "magenta",
}


class ScanCLI:
    """Runs scans and renders them to the terminal."""

    LIVE_LOG_LINES = 8

    def __init__(self, config: ConfigManager):
        self.config = config

    async def run_scan(self, target_url: str, categories: Sequence[str],
                       formats: Sequence[str], severities: Sequence[str],
                       output_dir: Optional[str] = None, live: bool = True) -> int:
        """Run one scan to completion.

        Returns:
            Process exit code
        """
        try:
            request = ScanRequest.create(
                target_url,
                categories or [category.value for category in Category],
                formats or self.config.get('reporting.default_formats', ['json']),
            )
        except InvalidRequestError as e:
            for problem in e.problems:
                console.print(f"[red]{problem}[/red]")
            return 2

        engine = ScanEngine(self.config)
        try:
            handle = await engine.start_scan(request)
            if live:
                await self._follow(handle)
            try:
                result = await handle.result()
            except SynthesisError as e:
                console.print(f"[red]Scan failed: {e.message}[/red]")
                return 1
        finally:
            await engine.shutdown()

        filter_state = SeverityFilterState.of(severities or None)
        self._print_summary(result, filter_state)

        output_dir = output_dir or self.config.get('reporting.output_dir', 'reports')
        try:
            await self._write_reports(result, filter_state, output_dir)
        except ExportError as e:
            console.print(f"[red]{e.message}[/red]")
            return 1
        return 0

    def show_plan(self, categories: Sequence[str]) -> None:
        chosen = [Category.parse(category) for category in categories] or list(Category)
        table = Table(title="Scan Phases")
        table.add_column("#", justify="right")
        table.add_column("Phase")
        table.add_column("Category")
        table.add_column("Stage")
        table.add_column("Target", justify="right")

        for index, phase in enumerate(plan_phases(chosen), start=1):
            table.add_row(
                str(index),
                phase.label,
                phase.category.display_name if phase.category else "-",
                phase.stage.value.replace("_", " "),
                f"{phase.target_progress:.2f}%"
            )
        console.print(table)

    async def _follow(self, handle: ScanHandle) -> None:
        with Live(self._render(handle), console=console, refresh_per_second=4) as live:
            while not handle.done:
                await asyncio.sleep(0.25)
                live.update(self._render(handle))
            live.update(self._render(handle))

    def _render(self, handle: ScanHandle) -> Panel:
        snapshot = handle.snapshot()
        header = Text.assemble(
            (snapshot.phase_label or "Preparing scan...", "bold"),
            f"  {snapshot.progress:.0f}%  ",
            (f"elapsed {snapshot.elapsed_label}", "dim"),
            (f"  payloads {snapshot.payloads_tested}", "dim"),
        )
        lines = [self._log_line(entry) for entry in snapshot.log_entries[-self.LIVE_LOG_LINES:]]
        return Panel(
            Group(header, ProgressBar(total=100, completed=snapshot.progress), *lines),
            title=f"Scanning {handle.request.target_url}",
            border_style="cyan",
        )

    @staticmethod
    def _log_line(entry: LogEntry) -> Text:
        return Text(entry.format_line(), style=LOG_STYLES.get(entry.kind, ""))

    def _print_summary(self, result: ScanResult, filter_state: SeverityFilterState) -> None:
        counts = filter_state.badge_counts(result.findings)
        badges = Text()
        for severity in Severity:
            badges.append(f" {severity.value}: {counts[severity]} ", style=SEVERITY_STYLES[severity])
        console.print(Panel(
            badges,
            title=f"{result.summary.total} finding(s) on {result.target_url}",
            subtitle=f"elapsed {result.elapsed_seconds}s, {result.payloads_tested} payloads",
        ))

        shown = filter_state.apply(result.findings)
        if not shown:
            console.print("[green]No findings match the selected severities.[/green]")
            return

        table = Table(title="Findings")
        table.add_column("Severity")
        table.add_column("Type")
        table.add_column("Subtype")
        table.add_column("Parameter")
        table.add_column("Description")
        for finding in shown:
            table.add_row(
                Text(finding.severity.value, style=SEVERITY_STYLES[finding.severity]),
                finding.category.display_name,
                finding.subtype if not finding.dbms_guess
                else f"{finding.subtype} ({finding.dbms_guess})",
                finding.parameter,
                finding.description,
            )
        console.print(table)

    async def _write_reports(self, result: ScanResult, filter_state: SeverityFilterState,
                             output_dir: str) -> None:
        exporter = ReportExporter()
        for report in await exporter.export_all(result, filter_state.active):
            path = exporter.write(report, output_dir)
            console.print(f"[green]Wrote {report.format.value.upper()} report:[/green] {path}")


def _build_config(config_path: Optional[str], verbose: bool) -> ConfigManager:
    try:
        config = ConfigManager(config_path)
        config.validate_or_raise()
    except (ConfigurationError, ConfigValidationError) as e:
        raise click.ClickException(str(e))

    if not verbose:
        # Keep log lines from tearing the live display
        config.set('logging.level', 'WARNING')
    LoggerManager(config.to_dict())
    return config


# Click CLI commands

@click.group()
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False),
              help='YAML configuration file')
@click.option('--verbose', '-v', is_flag=True, help='Show info-level logs')
@click.version_option(package_name='aegis-scan')
@click.pass_context
def cli(ctx, config_path, verbose):
    """AegisScan simulated vulnerability scanner."""
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path
    ctx.obj['verbose'] = verbose


@cli.command()
@click.argument('target_url')
@click.option('--category', '-t', 'categories', multiple=True,
              type=click.Choice([c.value for c in Category], case_sensitive=False),
              help='Scan category (repeatable; all when omitted)')
@click.option('--format', '-f', 'formats', multiple=True,
              type=click.Choice([f.value for f in ReportFormat], case_sensitive=False),
              help='Report format (repeatable)')
@click.option('--severity', '-s', 'severities', multiple=True,
              type=click.Choice([s.value for s in Severity], case_sensitive=False),
              help='Only show and export these severities (repeatable)')
@click.option('--output-dir', '-o', type=click.Path(file_okay=False), help='Report directory')
@click.option('--tick', type=float, help='Seconds between phases')
@click.option('--seed', type=int, help='Random seed for a reproducible run')
@click.option('--no-probe', is_flag=True, help='Skip the CSRF page fetch')
@click.option('--no-live', is_flag=True, help='Do not render the live progress panel')
@click.pass_context
def scan(ctx, target_url, categories, formats, severities, output_dir, tick, seed,
         no_probe, no_live):
    """Scan TARGET_URL and write the requested reports."""
    config = _build_config(ctx.obj.get('config_path'), ctx.obj.get('verbose', False))
    if tick is not None:
        config.set('simulation.tick_interval', tick)
        config.set('simulation.elapsed_interval', min(tick, 1.0))
    if seed is not None:
        config.set('simulation.seed', seed)
    if no_probe:
        config.set('simulation.csrf_probe.enabled', False)

    errors = config.validate()
    if errors:
        raise click.BadParameter("; ".join(errors))

    try:
        exit_code = asyncio.run(ScanCLI(config).run_scan(
            target_url, list(categories), list(formats), list(severities),
            output_dir=output_dir, live=not no_live
        ))
    except AegisScanException as e:
        raise click.ClickException(str(e))
    ctx.exit(exit_code)


@cli.command()
@click.option('--category', '-t', 'categories', multiple=True,
              type=click.Choice([c.value for c in Category], case_sensitive=False),
              help='Scan category (repeatable; all when omitted)')
@click.pass_context
def plan(ctx, categories):
    """Print the phase plan for a category selection."""
    config = _build_config(ctx.obj.get('config_path'), ctx.obj.get('verbose', False))
    ScanCLI(config).show_plan(list(categories))


def main() -> None:
    cli(obj={})


if __name__ == '__main__':
    main()
