"""Command-line interface for minisheet (formula engine + browser editor API)."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click
import yaml

from minisheet import __version__


@click.group()
@click.version_option(version=__version__, prog_name="minisheet")
def main() -> None:
    """minisheet -- spreadsheet formula engine with a browser editor API."""


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _load_config(path: str | None) -> dict[str, Any]:
    from minisheet.config import load_config

    try:
        return load_config(Path(path) if path else None)
    except (ValueError, yaml.YAMLError) as e:
        raise click.ClickException(str(e))


def _load_grid(path: str) -> list[list[Any]]:
    """Read a YAML grid: a list of rows, or a mapping with a ``rows`` key."""
    try:
        data = yaml.safe_load(Path(path).read_text())
    except yaml.YAMLError as e:
        raise click.ClickException(f"Invalid YAML in {path}: {e}")
    if isinstance(data, dict):
        data = data.get("rows")
    if data is None:
        return []
    if not isinstance(data, list) or not all(isinstance(r, list) for r in data):
        raise click.ClickException(f"{path} must contain a list of rows")
    return data


# ---------------------------------------------------------------------------
# Serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="Config file or directory.")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
@click.option("--port", type=int, default=None, help="Port (auto-select if omitted).")
@click.option("--no-open", is_flag=True, help="Don't auto-open browser.")
def serve(config_path: str | None, host: str, port: int | None, no_open: bool) -> None:
    """Serve the editor API."""
    import socket
    import webbrowser

    import uvicorn

    from minisheet.ui.server import create_app

    app = create_app(_load_config(config_path))

    if port is None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind((host, 0))
            port = s.getsockname()[1]

    url = f"http://{host}:{port}"
    click.echo(f"Serving minisheet at {url}")
    click.echo("Press Ctrl+C to stop")

    if not no_open:
        import threading
        threading.Timer(0.8, lambda: webbrowser.open(f"{url}/docs")).start()

    try:
        uvicorn.run(app, host=host, port=port, log_level="warning")
    except KeyboardInterrupt:
        click.echo("\nStopped.")


# ---------------------------------------------------------------------------
# Formulas
# ---------------------------------------------------------------------------


@main.command("eval")
@click.argument("formula")
@click.option("--grid", "grid_path", default=None, type=click.Path(exists=True), help="YAML grid the formula may reference.")
def eval_cmd(formula: str, grid_path: str | None) -> None:
    """Evaluate FORMULA (with or without the leading '=') and print the result."""
    from minisheet.formulas import ErrorValue, FormulaError, evaluate_formula, format_number, parse_formula
    from minisheet.sheet import Sheet

    sheet = Sheet(1, 1)
    if grid_path:
        sheet.load_from_matrix(_load_grid(grid_path))

    body = formula[1:] if formula.startswith("=") else formula
    try:
        value = evaluate_formula(parse_formula(body), sheet)
    except FormulaError as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    except RecursionError:
        click.echo("Maximum evaluation depth exceeded", err=True)
        sys.exit(1)

    click.echo(value.code if isinstance(value, ErrorValue) else format_number(value))


@main.command()
@click.argument("body")
@click.option("--rows", "d_row", default=0, type=int, help="Row offset.")
@click.option("--cols", "d_col", default=0, type=int, help="Column offset.")
def shift(body: str, d_row: int, d_col: int) -> None:
    """Print BODY with relative references moved by the given offsets."""
    from minisheet.ui.service import EditorService

    click.echo(EditorService.shift_formula(body, d_row, d_col))


@main.command()
@click.argument("grid_file", type=click.Path(exists=True))
@click.option("--errors", "show_errors", is_flag=True, help="List cells whose formula failed.")
def show(grid_file: str, show_errors: bool) -> None:
    """Print the evaluated GRID_FILE as tab-separated rows."""
    from minisheet.ui.service import EditorService

    svc = EditorService()
    svc.load_matrix(_load_grid(grid_file))
    view = svc.get_view()

    for row in view["cells"]:
        click.echo("\t".join(row).rstrip("\t"))

    if show_errors and view["errors"]:
        click.echo("")
        for err in view["errors"]:
            click.echo(f"{err['addr']}: {err['message']}")


@main.command("functions")
def functions_cmd() -> None:
    """List the available formula functions."""
    from minisheet.ui.service import EditorService

    for name in EditorService.list_functions():
        click.echo(name)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@main.command("events")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="Config file or directory.")
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]), help="Filter by level.")
@click.option("--type", "event_type", default=None, help="Filter by event type.")
@click.option("--limit", default=100, type=int, help="Maximum events to show.")
@click.option("--json", "as_json", is_flag=True, help="Output raw JSON lines.")
def events_cmd(
    config_path: str | None,
    level: str | None,
    event_type: str | None,
    limit: int,
    as_json: bool,
) -> None:
    """Show the structured event log."""
    from minisheet.logging.sink import EventSink

    config = _load_config(config_path)
    if not config.get("log_dir"):
        raise click.ClickException("Event logging is disabled (no log_dir configured)")

    sink = EventSink(Path(config["log_dir"]), tail_bytes=config.get("logging_tail_bytes"))
    events = sink.read_recent(level=level, event_type=event_type, limit=limit)

    if not events:
        click.echo("No events found.")
        return

    for evt in events:
        if as_json:
            click.echo(json.dumps(evt, sort_keys=True))
            continue
        code = f" [{evt['error_code']}]" if evt.get("error_code") else ""
        click.echo(f"{evt.get('ts', '')}  {evt.get('level', ''):7s}  {evt.get('event_type', '')}{code}  {evt.get('message', '')}")
