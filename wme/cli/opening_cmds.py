"""Opening-message commands."""

from __future__ import annotations
import click

from .helpers import cli, get_db, get_components, engine_errors


@cli.group()
def opening():
    """Send and answer opening messages."""


@opening.command()
@click.argument('sender_id', type=int)
@click.argument('recipient_id', type=int)
@click.argument('content')
@click.pass_context
@engine_errors
def send(ctx: click.Context, sender_id: int, recipient_id: int, content: str):
    """Send an opening message to a user without a match."""
    with get_db(ctx.obj) as db:
        message = get_components(db, ctx.obj).openings.send_opening(sender_id, recipient_id, content)
    click.echo(f"✓ Opening message {message.id} sent")


@opening.command()
@click.argument('message_id', type=int)
@click.argument('recipient_id', type=int)
@click.pass_context
@engine_errors
def approve(ctx: click.Context, message_id: int, recipient_id: int):
    """Accept an opening message; creates (or reuses) the match."""
    with get_db(ctx.obj) as db:
        row = get_components(db, ctx.obj).openings.approve(message_id, recipient_id)
    click.echo(f"✓ Match {row.id} open for chat")


@opening.command()
@click.argument('message_id', type=int)
@click.argument('recipient_id', type=int)
@click.pass_context
@engine_errors
def reject(ctx: click.Context, message_id: int, recipient_id: int):
    """Reject an opening message."""
    with get_db(ctx.obj) as db:
        get_components(db, ctx.obj).openings.reject(message_id, recipient_id)
    click.echo(f"✓ Opening message {message_id} rejected")


@opening.command(name="pending")
@click.argument('recipient_id', type=int)
@click.option('--limit', type=int, default=20, show_default=True)
@click.pass_context
def pending(ctx: click.Context, recipient_id: int, limit: int):
    """List opening messages awaiting RECIPIENT_ID."""
    with get_db(ctx.obj) as db:
        rows = get_components(db, ctx.obj).openings.pending_for(recipient_id, limit)
    if not rows:
        click.echo("(none)")
    for row in rows:
        click.echo(f"#{row.id} from {row.sender_id}: {row.content}")


__all__ = ["opening"]
