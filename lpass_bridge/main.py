"""
lpass-bridge — CLI entrypoint.

Usage:
    python -m lpass_bridge.main --help
    lpass-bridge status
    lpass-bridge accounts ls --filter bank
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from lpass_bridge import __version__
from lpass_bridge.core.observability.logging_config import resolve_level, setup_logging
from lpass_bridge.ui.cli.accounts import accounts, get_source


@click.group()
@click.version_option(version=__version__, prog_name="lpass-bridge")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to lpass-bridge.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """lpass-bridge — drive the LastPass CLI through typed operations."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get("LPB_LOG_FILE"),
        log_file_level=os.environ.get("LPB_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Check that lpass is installed and logged in."""
    source = get_source(ctx)
    available = source.check_availability()

    if as_json:
        click.echo(
            json.dumps(
                {
                    "available": available,
                    "cli_path": source.locator.path,
                    "namespace": source.settings.namespace,
                },
                indent=2,
            )
        )
        sys.exit(0 if available else 1)

    if available:
        click.secho("✅ LastPass CLI ready", fg="green", bold=True)
        if not ctx.obj.get("quiet"):
            click.echo(f"   Binary:    {source.locator.path}")
            click.echo(f"   Namespace: {source.settings.namespace}")
        return

    click.secho("❌ LastPass CLI unavailable", fg="red", bold=True)
    click.echo(f"   Binary: {source.locator.path}")
    sys.exit(1)


# ── Register sub-command groups from lpass_bridge/ui/cli/ ─────────

cli.add_command(accounts)


if __name__ == "__main__":
    cli()
