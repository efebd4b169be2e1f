"""Entry point for herald CLI.

The CLI replays a JSONL report trace against a component tree configured
from TOML files and command-line overrides, then prints a report summary.
It exits 0 on normal completion, 3 after a fatal termination, 4 after a
quit-count termination, and 1 on input or configuration errors.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Union

import rich_click as click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from herald.core.actions import Action
from herald.core.config import ConfigLoader, apply_config
from herald.core.overrides import ActionOverride, VerbosityOverride
from herald.core.plugin import PluginManager
from herald.core.policy import ConfigError
from herald.core.reporter import Reporter
from herald.core.termination import EXIT_OK, ReportTermination
from herald.models.severity import Severity
from herald.models.trace import TraceRecord

click.rich_click.TEXT_MARKUP = "rich"
click.rich_click.SHOW_ARGUMENTS = True


class _TraceClock:
    """Time source that returns the timestamp of the record being replayed."""

    def __init__(self) -> None:
        self.now: Optional[Union[int, float]] = None

    def __call__(self) -> Optional[Union[int, float]]:
        return self.now


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _read_trace(path: Path) -> list[TraceRecord]:
    """Parse a JSONL trace file.

    Blank lines and lines starting with '#' are skipped.

    Raises:
        ConfigError: With the offending line number if a record is invalid.
    """
    records = []
    with path.open(encoding="utf-8") as f:
        for lineno, raw in enumerate(f, start=1):
            raw = raw.strip()
            if not raw or raw.startswith("#"):
                continue
            try:
                records.append(TraceRecord.model_validate(json.loads(raw)))
            except json.JSONDecodeError as e:
                raise ConfigError(f"Invalid JSON: {e.msg}", line=lineno, path=path) from e
            except ValidationError as e:
                errors = "; ".join(
                    f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
                )
                raise ConfigError(f"Invalid record: {errors}", line=lineno, path=path) from e
    return records


def _list_plugins(console: Console) -> None:
    manager = PluginManager()
    manager.discover()
    plugins = manager.list_plugins()

    if not plugins:
        console.print("[yellow]No plugins found.[/yellow]")
        return

    table = Table(title="Available Plugins")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Version", style="green")
    table.add_column("Description")

    for name in sorted(plugins):
        info = manager.get_plugin_info(name)
        if info:
            table.add_row(info["name"], info.get("version", "unknown"), info.get("description", ""))

    console.print(table)


def _configure(
    reporter: Reporter,
    records: list[TraceRecord],
    config_paths: tuple[str, ...],
    set_verbosity: tuple[str, ...],
    set_action: tuple[str, ...],
    max_quit_count: Optional[int],
    log_file: Optional[str],
) -> None:
    """Build the component tree and apply configuration in order:
    config files, command-line overrides, then plugins."""
    for record in records:
        try:
            reporter.ensure_component(record.component)
        except ValueError as e:
            raise ConfigError(str(e)) from e

    loader = ConfigLoader()
    paths = [Path(p) for p in config_paths] if config_paths else None
    apply_config(loader.load_merged(paths), reporter)

    store = reporter.policy
    for spec in set_verbosity:
        VerbosityOverride.parse(spec).apply(store)
    for spec in set_action:
        ActionOverride.parse(spec).apply(store)
    if max_quit_count is not None:
        store.set_global_max_quit_count(max_quit_count)
    if log_file:
        store.set_global_default_file(reporter.open_file(log_file))
        for severity in Severity:
            store.set_global_action(severity, store.defaults.actions[severity] | Action.LOG)

    reporter.plugins.discover()
    reporter.plugins.configure(reporter)


def _replay(reporter: Reporter, records: list[TraceRecord], clock: _TraceClock) -> int:
    """Replay records until the trace ends or the run terminates.

    Returns:
        The process exit code.
    """
    try:
        for record in records:
            clock.now = record.time
            reporter.report(
                reporter.get_component(record.component),
                record.id,
                record.severity,
                record.verbosity,
                record.text,
                filename=record.filename,
                line=record.line,
            )
    except ReportTermination as exc:
        return exc.event.exit_code
    finally:
        reporter.close()
    return EXIT_OK


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("trace", required=False, type=click.Path(exists=True, dir_okay=False))
@click.option("--version", is_flag=True, help="Show version and exit.")
@click.option(
    "--list-plugins",
    is_flag=True,
    help="List all available callback plugins and exit."
)
@click.option(
    "--config",
    "config_paths",
    type=click.Path(exists=True, dir_okay=False),
    multiple=True,
    help="TOML config file (can be repeated, later files win). Default: discovered herald.toml."
)
@click.option(
    "--verbosity",
    type=str,
    envvar="HERALD_VERBOSITY",
    help="Global verbosity (NONE, LOW, MEDIUM, HIGH, FULL, DEBUG or a number). Overrides config files."
)
@click.option(
    "--set-verbosity",
    "set_verbosity",
    type=str,
    multiple=True,
    help="Override as COMPONENT,ID,VERBOSITY. COMPONENT is a glob, ID may be _ALL_. Can be repeated."
)
@click.option(
    "--set-action",
    "set_action",
    type=str,
    multiple=True,
    help="Override as COMPONENT,ID,SEVERITY,ACTIONS (e.g. 'top.*,_ALL_,WARNING,DISPLAY|LOG'). Can be repeated."
)
@click.option(
    "--max-quit-count",
    type=click.IntRange(min=0),
    help="Terminate after this many counted errors across the run (0 = unlimited)."
)
@click.option(
    "--log",
    "log_file",
    type=click.Path(dir_okay=False),
    help="Append accepted reports to this file (adds LOG to the default actions)."
)
@click.option(
    "--report",
    "report_file",
    type=click.Path(dir_okay=False),
    help="Write a JSON summary report to this file."
)
@click.option(
    "--summary/--no-summary",
    default=True,
    help="Print the report summary at the end of the run."
)
@click.option("--no-color", is_flag=True, help="Disable severity colors.")
@click.option("--debug", is_flag=True, help="Enable debug logging on stderr.")
@click.pass_context
def cli(
    ctx: click.Context,
    trace: str | None,
    version: bool,
    list_plugins: bool,
    config_paths: tuple[str, ...],
    verbosity: str | None,
    set_verbosity: tuple[str, ...],
    set_action: tuple[str, ...],
    max_quit_count: int | None,
    log_file: str | None,
    report_file: str | None,
    summary: bool,
    no_color: bool,
    debug: bool,
) -> None:
    """Herald - hierarchical message reporting.

    Replay a JSONL report trace through a configured component tree.
    """
    console = Console()

    if version:
        from herald import __version__
        click.echo(f"herald {__version__}")
        return

    if list_plugins:
        _list_plugins(console)
        return

    if not trace:
        click.echo(ctx.get_help())
        return

    _setup_logging(debug)
    clock = _TraceClock()

    try:
        reporter = Reporter(
            console=console,
            color=not no_color,
            startup_verbosity=verbosity,
            time_source=clock,
        )
        records = _read_trace(Path(trace))
        _configure(reporter, records, config_paths, set_verbosity, set_action, max_quit_count, log_file)
    except (ConfigError, FileNotFoundError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False, soft_wrap=True)
        ctx.exit(1)

    exit_code = _replay(reporter, records, clock)

    if summary:
        reporter.summarize()

    if report_file:
        report = {
            "trace": trace,
            "exit_code": exit_code,
            "termination": reporter.termination.event.reason.value if reporter.termination.event else None,
            "error_count": reporter.policy.error_count(),
            "counts": reporter.counts.to_dict(),
        }
        report_path = Path(report_file)
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(json.dumps(report, indent=2))

    if exit_code != EXIT_OK:
        ctx.exit(exit_code)


if __name__ == "__main__":
    cli()
