"""Match lifecycle commands."""

from __future__ import annotations
import click

from .helpers import cli, get_db, get_components, engine_errors, echo_json
from ..db.models import MatchRow, MatchStatus


def _summary(match: MatchRow) -> str:
    return (f"#{match.id} ({match.user_low_id}, {match.user_high_id}) "
            f"{match.status.value} score={match.score if match.score is not None else '-'} "
            f"source={match.source or '-'}")


@cli.group()
def match():
    """Create, approve and manage matches."""


@match.command(name="create")
@click.argument('user_a', type=int)
@click.argument('user_b', type=int)
@click.option('--meeting', 'meeting_context_id', type=int, default=None, help='Meeting context (event id)')
@click.option('--origin', 'origin_context_id', type=int, default=None, help='First-contact context')
@click.option('--score', type=float, default=None)
@click.option('--source', default=None, help='Defaults to "wedding" with --meeting, else "global"')
@click.pass_context
@engine_errors
def create_match(ctx: click.Context, user_a: int, user_b: int, meeting_context_id, origin_context_id,
                 score, source):
    """Create the match for a pair or merge into the existing one."""
    with get_db(ctx.obj) as db:
        row = get_components(db, ctx.obj).lifecycle.create_or_get(
            user_a, user_b, meeting_context_id, origin_context_id, score, source)
    click.echo(f"✓ {_summary(row)}")


@match.command()
@click.argument('match_id', type=int)
@click.argument('user_id', type=int)
@click.pass_context
@engine_errors
def approve(ctx: click.Context, match_id: int, user_id: int):
    """Approve MATCH_ID as USER_ID."""
    with get_db(ctx.obj) as db:
        row = get_components(db, ctx.obj).lifecycle.approve(match_id, user_id)
    click.echo(f"✓ {_summary(row)}")


@match.command()
@click.argument('match_id', type=int)
@click.argument('user_id', type=int)
@click.pass_context
@engine_errors
def unapprove(ctx: click.Context, match_id: int, user_id: int):
    """Withdraw USER_ID's approval (ends a mutual match)."""
    with get_db(ctx.obj) as db:
        row = get_components(db, ctx.obj).lifecycle.unapprove(match_id, user_id)
    click.echo(f"✓ {_summary(row)}")


@match.command()
@click.argument('match_id', type=int)
@click.argument('user_id', type=int)
@click.pass_context
@engine_errors
def unmatch(ctx: click.Context, match_id: int, user_id: int):
    """Close MATCH_ID on behalf of member USER_ID."""
    with get_db(ctx.obj) as db:
        row = get_components(db, ctx.obj).lifecycle.unmatch(match_id, user_id)
    click.echo(f"✓ {_summary(row)}")


@match.command(name="block")
@click.argument('match_id', type=int)
@click.option('--undo', is_flag=True, help='Unblock instead')
@click.pass_context
@engine_errors
def block_match(ctx: click.Context, match_id: int, undo: bool):
    """Block (or unblock) a match."""
    with get_db(ctx.obj) as db:
        lifecycle = get_components(db, ctx.obj).lifecycle
        row = lifecycle.unblock(match_id) if undo else lifecycle.block(match_id)
    click.echo(f"✓ {_summary(row)}")


@match.command(name="freeze")
@click.argument('match_id', type=int)
@click.option('--reason', default=None)
@click.option('--undo', is_flag=True, help='Unfreeze instead')
@click.pass_context
@engine_errors
def freeze_match(ctx: click.Context, match_id: int, reason: str | None, undo: bool):
    """Freeze (or unfreeze) a match."""
    with get_db(ctx.obj) as db:
        lifecycle = get_components(db, ctx.obj).lifecycle
        row = lifecycle.unfreeze(match_id) if undo else lifecycle.freeze(match_id, reason)
    click.echo(f"✓ {_summary(row)}")


@match.command(name="archive")
@click.argument('match_id', type=int)
@click.option('--undo', is_flag=True, help='Unarchive instead')
@click.pass_context
@engine_errors
def archive_match(ctx: click.Context, match_id: int, undo: bool):
    """Archive (or unarchive) a match."""
    with get_db(ctx.obj) as db:
        lifecycle = get_components(db, ctx.obj).lifecycle
        row = lifecycle.unarchive(match_id) if undo else lifecycle.archive(match_id)
    click.echo(f"✓ {_summary(row)}")


@match.command()
@click.argument('match_id', type=int)
@click.argument('sender_id', type=int)
@click.pass_context
@engine_errors
def message(ctx: click.Context, match_id: int, sender_id: int):
    """Count a chat message from SENDER_ID (open chat, cooldown applies)."""
    with get_db(ctx.obj) as db:
        row = get_components(db, ctx.obj).lifecycle.record_message(match_id, sender_id)
    click.echo(f"✓ Message recorded; unread={row.unread_count}")


@match.command()
@click.argument('match_id', type=int)
@click.pass_context
def show(ctx: click.Context, match_id: int):
    """Print one match as JSON."""
    with get_db(ctx.obj) as db:
        row = get_components(db, ctx.obj).lifecycle.get(match_id)
    if row is None:
        raise click.ClickException(f"Match {match_id} not found")
    echo_json(row.to_dict())


@match.command(name="list")
@click.option('--user', 'user_id', type=int, default=None)
@click.option('--status', type=click.Choice([s.value for s in MatchStatus], case_sensitive=False), default=None)
@click.option('--source', default=None)
@click.option('--min-score', type=float, default=None)
@click.option('--context', 'context_id', type=int, default=None)
@click.option('--limit', type=int, default=100, show_default=True)
@click.pass_context
def list_matches(ctx: click.Context, user_id, status, source, min_score, context_id, limit: int):
    """List matches by user, source, score or context."""
    with get_db(ctx.obj) as db:
        lifecycle = get_components(db, ctx.obj).lifecycle
        if user_id is not None:
            rows = lifecycle.for_user(user_id, MatchStatus(status.upper()) if status else None, limit)
        elif source is not None:
            rows = lifecycle.by_source(source, limit)
        elif min_score is not None:
            rows = lifecycle.by_min_score(min_score, limit)
        elif context_id is not None:
            rows = lifecycle.by_context(context_id, limit)
        else:
            raise click.UsageError("Pass one of --user, --source, --min-score or --context")
    if not rows:
        click.echo("(none)")
    for row in rows:
        click.echo(_summary(row))


__all__ = ["match"]
