"""Configuration display and database setup commands."""

from __future__ import annotations
import click
import json as _json

from .helpers import cli, get_db


@cli.command(name="config")
@click.option("--section", "-s", help="Only show a specific top-level section (e.g. interaction, scoring, database).")
@click.pass_context
def show_config(ctx: click.Context, section: str | None):
    """Show current configuration settings."""
    data = ctx.obj
    if section:
        section = section.lower()
        if section not in data:
            raise click.UsageError(f"Unknown section '{section}'. Available: {', '.join(sorted(data.keys()))}")
        data = {section: data[section]}
    click.echo(_json.dumps(data, indent=2, sort_keys=True))


@cli.command(name="init-db")
@click.pass_context
def init_db(ctx: click.Context):
    """Create the database schema (idempotent)."""
    with get_db(ctx.obj) as db:
        click.echo(f"✓ Database ready at {db.path}")


__all__ = ["show_config", "init_db"]
