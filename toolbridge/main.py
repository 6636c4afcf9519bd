"""
toolbridge — CLI entrypoint.

Usage:
    python -m toolbridge.main --help
    toolbridge sources
    toolbridge diagnose README.md
    toolbridge format src/app.py --write
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click

from toolbridge import __version__
from toolbridge.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="toolbridge")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to toolbridge.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """toolbridge — run linters and formatters as editor sources."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = None

    setup_logging(level=resolve_level(level), quiet_third_party=not debug)


def _session(ctx: click.Context):
    """Load configuration and build a session, or exit with the error."""
    from toolbridge.core.config.loader import find_config_file, load_config, workspace_root
    from toolbridge.core.context import Session
    from toolbridge.core.errors import ConfigurationError

    config_path = ctx.obj.get("config_path") or find_config_file()
    try:
        config = load_config(config_path)
        root = workspace_root(config_path) if config_path else Path.cwd()
        return Session.from_config(config, root)
    except ConfigurationError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


def _open(session, file: str, filetype: str | None) -> str:
    """Open ``file`` in the session's document store and return its id."""
    path = Path(file).resolve()
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        click.secho(f"❌ Cannot read {file}: {e}", fg="red", err=True)
        sys.exit(1)
    snapshot = session.documents.open(str(path), text, path=str(path), filetype=filetype)
    return snapshot.document_id


def _report_failures(result) -> None:
    for outcome in result.outcomes:
        if outcome.failed or outcome.timed_out:
            click.secho(f"   ✗ {outcome.source}: {outcome.error}", fg="yellow", err=True)


# ── Sources ─────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def sources(ctx: click.Context, as_json: bool) -> None:
    """List configured sources and their status."""
    session = _session(ctx)
    status = session.registry.source_status()

    if as_json:
        click.echo(json.dumps(status, indent=2))
        return

    if not status:
        click.echo("No sources configured.")
        return

    for name, info in status.items():
        if not info["alive"]:
            marker, color = "⊘", "red"
        elif not info["enabled"]:
            marker, color = "○", "yellow"
        else:
            marker, color = "✓", "green"
        filetypes = ", ".join(info["filetypes"]) or "all"
        click.secho(f"  {marker} ", fg=color, nl=False)
        click.echo(f"{name}  [{info['capability']}]  ({filetypes})")


# ── Config ──────────────────────────────────────────────────────


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate toolbridge.yml."""
    from toolbridge.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.config is not None
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   File: {result.config_path}")
        click.echo(f"   Sources: {len(result.config.sources)}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        sys.exit(1)


# ── Capabilities ────────────────────────────────────────────────


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--filetype", "-t", default=None, help="Override the detected file type.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def diagnose(ctx: click.Context, file: str, filetype: str | None, as_json: bool) -> None:
    """Run diagnostics sources on FILE.

    Exits 1 when any error-level diagnostic is reported.
    """
    from toolbridge.core.models.payloads import Severity

    session = _session(ctx)
    document_id = _open(session, file, filetype)
    result = asyncio.run(session.dispatcher.diagnostics(document_id))
    published = session.diagnostics.all()

    if as_json:
        click.echo(json.dumps(
            {
                "result": result.to_dict(),
                "diagnostics": {
                    doc: [d.model_dump(mode="json") for d in diags]
                    for doc, diags in published.items()
                },
            },
            indent=2,
        ))
    else:
        if not ctx.obj.get("quiet"):
            _report_failures(result)
        if not published:
            click.secho("✅ No diagnostics", fg="green")
        for doc, diags in published.items():
            click.secho(doc, bold=True)
            for d in diags:
                color = {Severity.ERROR: "red", Severity.WARNING: "yellow"}.get(d.severity, "white")
                click.echo(f"  {d.start_line + 1}:{d.start_col + 1}  ", nl=False)
                click.secho(f"{d.severity.name.lower():<11}", fg=color, nl=False)
                click.echo(f" {d.message}")

    has_errors = any(d.severity == Severity.ERROR for diags in published.values() for d in diags)
    sys.exit(1 if has_errors else 0)


def _parse_line_range(value: str):
    """``START:END`` (1-based, inclusive lines) to a Range."""
    from toolbridge.core.models.text import Range

    try:
        start, _, end = value.partition(":")
        first, last = int(start), int(end or start)
    except ValueError:
        raise click.BadParameter(f"expected START:END, got '{value}'", param_hint="--range")
    if first < 1 or last < first:
        raise click.BadParameter(f"invalid line range '{value}'", param_hint="--range")
    return Range.of(first - 1, 0, last, 0)


@cli.command("format")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--range", "line_range", default=None, help="Only format lines START:END (1-based).")
@click.option("--write", "-w", is_flag=True, help="Write the result back to FILE.")
@click.option("--filetype", "-t", default=None, help="Override the detected file type.")
@click.pass_context
def format_file(
    ctx: click.Context,
    file: str,
    line_range: str | None,
    write: bool,
    filetype: str | None,
) -> None:
    """Run the formatting chain on FILE."""
    session = _session(ctx)
    document_id = _open(session, file, filetype)
    range_ = _parse_line_range(line_range) if line_range else None

    result = asyncio.run(session.dispatcher.format(document_id, range_))
    if not ctx.obj.get("quiet"):
        _report_failures(result)

    formatted = session.documents.text(document_id)
    if write:
        if result.applied:
            Path(document_id).write_text(formatted, encoding="utf-8")
            click.secho(f"✅ Formatted {file}", fg="green", err=True)
        else:
            click.echo(f"   {file} unchanged", err=True)
        return
    click.echo(formatted, nl=False)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.argument("line", type=int)
@click.argument("col", type=int)
@click.option("--filetype", "-t", default=None, help="Override the detected file type.")
@click.pass_context
def hover(ctx: click.Context, file: str, line: int, col: int, filetype: str | None) -> None:
    """Show hover text for FILE at LINE:COL (1-based)."""
    from toolbridge.core.models.text import Position

    session = _session(ctx)
    document_id = _open(session, file, filetype)
    position = Position(line=max(line - 1, 0), col=max(col - 1, 0))
    result = asyncio.run(session.dispatcher.hover(document_id, position))

    if not result.payload:
        click.echo("No hover information.", err=True)
        sys.exit(1)
    for text in result.payload:
        click.echo(text)


if __name__ == "__main__":
    cli()
