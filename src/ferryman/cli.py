# src/ferryman/cli.py
"""Ferryman Command Line Interface.

Entry point for the ferryman CLI tool.
"""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Literal

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from ferryman import __version__
from ferryman.contracts import (
    CheckpointCorruptionError,
    EnvelopeAuthenticationError,
    EnvelopeFormatError,
    InvalidDocumentError,
    KeyMaterialError,
)
from ferryman.core.config import load_settings, resolve_config

if TYPE_CHECKING:
    from ferryman.core.config import FerrymanSettings

__all__ = [
    "app",
    "load_settings",  # Re-exported from config for convenience
]

app = typer.Typer(
    name="ferryman",
    help="Ferryman: Resumable key-value migration with field-level PII encryption.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"ferryman version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from .env file.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(
                f"Error: .env file not found: {env_file}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)  # Don't override existing env vars


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
        exists=False,  # We handle existence check ourselves for better error message
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """Ferryman: Resumable key-value migration with field-level PII encryption."""
    # Configure logging before any subcommand runs
    from ferryman.core.logging import configure_logging

    log_level = "DEBUG" if verbose else "INFO"
    configure_logging(json_output=json_logs, level=log_level)

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho(
            "Warning: --env-file ignored because --no-dotenv is set.",
            fg=typer.colors.YELLOW,
            err=True,
        )


def _format_validation_error(
    title: str,
    message: str,
    hint: str | None = None,
    details: list[str] | None = None,
) -> None:
    """Display a formatted validation error with optional hint and details."""
    from rich.console import Console
    from rich.panel import Panel
    from rich.text import Text

    console = Console(stderr=True)

    content = Text()
    content.append(message, style="white")

    if details:
        content.append("\n\n")
        for detail in details:
            content.append(f"  • {detail}\n", style="dim")

    if hint:
        content.append("\n")
        content.append("Hint: ", style="yellow bold")
        content.append(hint, style="yellow")

    panel = Panel(
        content,
        title=f"[red bold]{title}[/]",
        border_style="red",
        padding=(0, 1),
    )
    console.print(panel)


def _load_config_or_exit(settings: str) -> FerrymanSettings:
    """Load settings, printing a readable error and exiting 1 on failure."""
    settings_path = Path(settings).expanduser()
    try:
        return load_settings(settings_path)
    except (YamlParserError, YamlScannerError) as e:
        # e.problem contains the specific error (e.g., "expected ']'", "found a tab")
        typer.echo(f"YAML syntax error in {settings}: {e.problem}", err=True)
        raise typer.Exit(1) from None
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None


@app.command()
def validate(
    settings: str = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
    show_config: bool = typer.Option(
        False,
        "--show-config",
        help="Print the resolved configuration (passwords removed) as YAML.",
    ),
) -> None:
    """Validate configuration and key material without running."""
    import yaml

    from ferryman.cli_helpers import build_scanner, load_key_from_settings

    config = _load_config_or_exit(settings)

    try:
        field_key = load_key_from_settings(config)
    except KeyMaterialError as e:
        _format_validation_error(
            title="Key Material Error",
            message=str(e),
            hint=f"Set {config.encryption.key_env or 'encryption.key_env'} or encryption.key_file to a base64 256-bit key.",
        )
        raise typer.Exit(1) from None

    build_scanner(config, field_key)

    typer.echo("Configuration valid.")
    typer.echo(f"  Source: {config.source.table}")
    typer.echo(f"  Destination: {config.destination.table}")
    typer.echo(f"  Key id: {field_key.key_id} (from {field_key.source})")
    typer.echo(f"  Dry run: {config.migration.dry_run}")
    if show_config:
        typer.echo(yaml.dump(resolve_config(config), default_flow_style=False, sort_keys=False))


@app.command()
def run(
    settings: str = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
    execute: bool = typer.Option(
        False,
        "--execute",
        "-x",
        help="Actually execute the migration (required for safety).",
    ),
    output_format: Literal["console", "json"] = typer.Option(
        "console",
        "--format",
        "-f",
        help="Output format: 'console' (human-readable) or 'json' (structured JSON).",
    ),
) -> None:
    """Execute a migration run.

    Requires --execute flag to actually run (safety feature). Whether
    documents are written is controlled by migration.dry_run in the settings.
    """
    config = _load_config_or_exit(settings)

    if not execute:
        if output_format == "console":
            typer.echo("Migration configuration valid.")
            typer.echo(f"  Dry run: {config.migration.dry_run}")
            typer.echo("")
            typer.echo("To execute, add --execute (or -x) flag:", err=True)
            typer.echo(f"  ferryman run -s {settings} --execute", err=True)
        raise typer.Exit(1)

    run_id = uuid.uuid4().hex
    try:
        summary = _execute_migration(config, run_id)
    except Exception as e:
        _report_fatal(run_id, e, output_format)
        raise typer.Exit(1) from None

    if output_format == "json":
        typer.echo(json.dumps(summary))
        return

    counts = summary["counts"]
    if summary["stopped_by_kill_switch"]:
        typer.echo("Migration stopped by kill switch.")
    elif summary["stopped_by_signal"]:
        typer.echo("Migration stopped by shutdown signal.")
    else:
        typer.echo("Migration complete.")
    typer.echo(f"  Run id: {run_id}")
    typer.echo(f"  Scanned: {counts['scanned']}")
    typer.echo(f"  Encrypted: {counts['encrypted']}")
    typer.echo(f"  Written: {counts['written']}")
    typer.echo(f"  Quarantined: {counts['quarantined']}")
    typer.echo(f"  Audit record: {summary['audit_path']}")


def _execute_migration(config: FerrymanSettings, run_id: str) -> dict[str, object]:
    """Run the migration and write its audit record.

    Returns:
        Summary dict for CLI output
    """
    from ferryman.cli_helpers import build_orchestrator, build_stores, load_key_from_settings
    from ferryman.engine.audit import AuditRecord, config_checksum, write_audit_record

    started_at = datetime.now(UTC)
    field_key = load_key_from_settings(config)
    checksum = config_checksum(config, field_key.key_id)

    source, destination = build_stores(config)
    with source, destination:
        orchestrator = build_orchestrator(config, field_key, source, destination)
        final_checkpoint = orchestrator.run()
    stats = orchestrator.last_stats

    record = AuditRecord(
        run_id=run_id,
        started_at=started_at,
        ended_at=datetime.now(UTC),
        config_checksum=checksum,
        key_id=field_key.key_id,
        durability=config.migration.durability,
        dry_run=config.migration.dry_run,
        checkpoint=final_checkpoint,
        stopped_by_kill_switch=stats.stopped_by_kill_switch if stats is not None else False,
    )
    audit_path = write_audit_record(config.migration.audit_dir, record)

    return {
        "event": "completed",
        "run_id": run_id,
        "stopped_by_kill_switch": record.stopped_by_kill_switch,
        "stopped_by_signal": stats.stopped_by_signal if stats is not None else False,
        "last_successful_id_present": final_checkpoint.last_successful_id is not None,
        "counts": record.to_dict()["counts"],
        "audit_path": str(audit_path),
    }


def _report_fatal(run_id: str, error: Exception, output_format: str) -> None:
    """Log a fatal run error without its message.

    Messages can echo document ids or content, so only the class and a
    SHA-256 of the message are emitted.
    """
    from ferryman.core.logging import get_logger
    from ferryman.core.quarantine.writer import exception_class_name
    from ferryman.core.security import message_digest

    error_class = exception_class_name(error)
    digest = message_digest(str(error))
    get_logger(__name__).error(
        "Migration run failed",
        run_id=run_id,
        error_class=error_class,
        error_message_sha256=digest,
    )
    if output_format == "json":
        typer.echo(
            json.dumps({"event": "error", "run_id": run_id, "error_type": error_class, "error_message_sha256": digest}),
            err=True,
        )
    else:
        typer.echo(f"Error during migration: {error_class} (run id {run_id})", err=True)


@app.command()
def checkpoint(
    settings: str = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
) -> None:
    """Show the persisted checkpoint as JSON."""
    from ferryman.core.checkpoint import CheckpointStore

    config = _load_config_or_exit(settings)
    store = CheckpointStore(config.migration.checkpoint.path)
    try:
        current = store.load()
    except CheckpointCorruptionError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    if current is None:
        typer.echo(f"No checkpoint at {store.path}")
        return
    typer.echo(json.dumps(current.to_dict(), indent=2))


@app.command()
def decrypt(
    document: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="File holding a migrated JSON document.",
    ),
    doc_id: str = typer.Option(
        ...,
        "--doc-id",
        help="Id the document was migrated under (bound into every envelope).",
    ),
    settings: str = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
) -> None:
    """Decrypt a migrated document for verification and print it."""
    from ferryman.cli_helpers import build_scanner, load_key_from_settings

    config = _load_config_or_exit(settings)
    try:
        field_key = load_key_from_settings(config)
    except KeyMaterialError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    scanner = build_scanner(config, field_key)
    try:
        plaintext = scanner.decrypt(document.read_bytes(), doc_id)
    except InvalidDocumentError:
        typer.echo(f"Error: {document} is not valid JSON", err=True)
        raise typer.Exit(1) from None
    except EnvelopeAuthenticationError:
        typer.echo("Error: envelope failed authentication (wrong key, wrong --doc-id, or tampered data)", err=True)
        raise typer.Exit(1) from None
    except EnvelopeFormatError as e:
        typer.echo(f"Error: malformed envelope: {e}", err=True)
        raise typer.Exit(1) from None

    typer.echo(plaintext.decode("utf-8"))


if __name__ == "__main__":
    app()
