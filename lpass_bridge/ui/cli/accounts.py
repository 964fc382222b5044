"""
CLI commands for LastPass accounts.

Thin wrappers over ``lpass_bridge.core.services.lastpass_source``. The
click prompt and notifier defined here are the terminal versions of the
collaborators the core only knows as interfaces.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from lpass_bridge.core.services.notifier import LOGIN_MESSAGE, TIMEOUT_MESSAGE


def prompt_for_secret(message: str) -> str | None:
    """Master-password prompt on the terminal; None if the user aborts."""
    try:
        return click.prompt(message, hide_input=True, default="", show_default=False, err=True)
    except click.Abort:
        return None


class ClickNotifier:
    """Prints operation failures to stderr."""

    def timed_out(self, message: str) -> None:
        click.secho(f"⏱  {TIMEOUT_MESSAGE} {message}", fg="yellow", err=True)

    def login_required(self) -> None:
        click.secho(f"🔒 {LOGIN_MESSAGE}", fg="yellow", err=True)

    def failed(self, error: Exception, message: str) -> None:
        click.secho(f"❌ {message}", fg="red", err=True)
        click.echo(f"   {error}", err=True)


def get_source(ctx: click.Context):
    """Build (once per command) the data source from --config / defaults."""
    source = ctx.obj.get("source")
    if source is not None:
        return source

    from lpass_bridge.core.config.loader import ConfigError, load_settings
    from lpass_bridge.core.services.lastpass_source import LastPassDataSource

    config_path: Path | None = ctx.obj.get("config_path")
    try:
        settings = load_settings(config_path)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    source = LastPassDataSource(
        settings=settings,
        prompt=prompt_for_secret,
        notifier=ClickNotifier(),
    )
    ctx.obj["source"] = source
    return source


@click.group()
def accounts() -> None:
    """Accounts — list, read, change, add and remove LastPass records."""


@accounts.command("ls")
@click.option("--filter", "-f", "filter_text", default="", help="Match account or user name.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_accounts(ctx: click.Context, filter_text: str, as_json: bool) -> None:
    """List synced accounts in the configured namespace."""
    source = get_source(ctx)
    result = source.accounts()
    if result is None:
        sys.exit(1)

    matched = [a for a in result if a.matches(filter_text)]

    if as_json:
        click.echo(json.dumps([a.model_dump(mode="json") for a in matched], indent=2))
        return

    if not matched:
        click.secho("   No accounts found.", fg="yellow")
        return

    for account in matched:
        click.secho(f"   {account.identifier.value:>12}", fg="cyan", nl=False)
        click.echo(f"  {account.display_string}")


@accounts.command()
@click.argument("identifier")
@click.pass_context
def show(ctx: click.Context, identifier: str) -> None:
    """Print the password of account IDENTIFIER."""
    password = get_source(ctx).fetch_password(identifier)
    if password is None:
        sys.exit(1)
    click.echo(password)


@accounts.command("set-password")
@click.argument("identifier")
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="New password (prompted if omitted).",
)
@click.pass_context
def set_password(ctx: click.Context, identifier: str, password: str) -> None:
    """Replace the password of account IDENTIFIER."""
    if not get_source(ctx).set_password(identifier, password):
        sys.exit(1)
    click.secho(f"✅ Password updated for {identifier}", fg="green")


@accounts.command("rm")
@click.argument("identifier")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation.")
@click.pass_context
def remove(ctx: click.Context, identifier: str, yes: bool) -> None:
    """Delete account IDENTIFIER."""
    if not yes:
        click.confirm(f"Delete account {identifier}?", abort=True)
    if not get_source(ctx).delete(identifier):
        sys.exit(1)
    click.secho(f"✅ Deleted {identifier}", fg="green")


@accounts.command()
@click.argument("name")
@click.option("--user", "-u", "user_name", required=True, help="User name for the account.")
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Initial password (prompted if omitted).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def add(ctx: click.Context, name: str, user_name: str, password: str, as_json: bool) -> None:
    """Create account NAME, sync it and print its id."""
    source = get_source(ctx)
    identifier = source.add(user_name=user_name, account_name=name, password=password)
    if identifier is None:
        sys.exit(1)

    if as_json:
        click.echo(json.dumps({"identifier": identifier.value, "account_name": name}))
        return
    click.secho(f"✅ Added {source.settings.qualified_name(name)}", fg="green", bold=True)
    click.echo(f"   Id: {identifier.value}")
