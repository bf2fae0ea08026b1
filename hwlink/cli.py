"""
Operator commands, available as ``flask --app wsgi hwlink <command>``.
"""

import json
import logging

import click
from flask import Flask, current_app
from flask.cli import AppGroup

from hwlink.codes import derive_code, verify_code
from hwlink.errors import LedgerUnavailableError, StorageError

logger = logging.getLogger(__name__)

hwlink_cli = AppGroup("hwlink", help="HWLink link authority administration.")


def _config():
    return current_app.config["APP_CONFIG"]


def _authority():
    return current_app.extensions["hwlink"]["authority"]


def _require_link_config(world: str, secret: str) -> None:
    if not world or not secret:
        raise click.UsageError("HWLINK_WORLD_NAME and HWLINK_SECRET_KEY must be set (or pass --world/--secret)")


@hwlink_cli.command("generate-code")
@click.argument("username")
@click.option("--world", default=None, help="World name (defaults to HWLINK_WORLD_NAME).")
@click.option("--secret", default=None, help="Secret key (defaults to HWLINK_SECRET_KEY).")
def generate_code_command(username, world, secret):
    """Print the code the Discord bot issues for USERNAME."""
    world = world or _config().get("WORLD_NAME")
    secret = secret or _config().get("SECRET_KEY")
    _require_link_config(world, secret)
    click.echo(derive_code(world, username, secret))


@hwlink_cli.command("verify-code")
@click.argument("code")
@click.argument("username")
def verify_code_command(code, username):
    """Check CODE against USERNAME without touching any state."""
    cfg = _config()
    _require_link_config(cfg.get("WORLD_NAME"), cfg.get("SECRET_KEY"))
    if verify_code(code, username, cfg["WORLD_NAME"], cfg["SECRET_KEY"]):
        click.echo("valid")
        return
    click.echo("invalid")
    click.get_current_context().exit(1)


@hwlink_cli.command("reset-player")
@click.argument("player_id", type=int)
def reset_player_command(player_id):
    """Mark PLAYER_ID as not linked."""
    try:
        _authority().reset_link(player_id)
    except StorageError as e:
        raise click.ClickException(str(e))
    click.echo(f"Player {player_id} reset")


@hwlink_cli.command("clear-codes")
@click.confirmation_option(prompt="This clears used codes on every instance of the world. Continue?")
def clear_codes_command():
    """Empty the global used code ledger."""
    try:
        count = _authority().clear_codes()
    except LedgerUnavailableError as e:
        raise click.ClickException(str(e))
    click.echo(f"Cleared {count} used codes")


@hwlink_cli.command("list-codes")
def list_codes_command():
    """Print the used code ledger as JSON."""
    ledger = _authority().ledger
    ledger.ensure_loaded()
    click.echo(json.dumps(ledger.entries(), indent=2, sort_keys=True))


@hwlink_cli.command("init-db")
def init_db_command():
    """Create the database tables."""
    from hwlink.database import ensure_tables

    if _config().get("STORAGE_BACKEND") == "memory":
        raise click.UsageError("STORAGE_BACKEND=memory has no tables to create")
    ensure_tables()
    click.echo("Database tables created")


def register_cli(app: Flask) -> None:
    app.cli.add_command(hwlink_cli)
