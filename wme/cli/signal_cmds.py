"""Signal commands: like, dislike, super-like, freeze, block and their reversals."""

from __future__ import annotations
import click

from .helpers import cli, get_db, get_components, engine_errors
from ..db.models import InteractionMode
from ..interactions.engine import InteractionContext, InteractionResult


def _context(context_id: int | None = None, origin_context_id: int | None = None, live: bool = False,
             mode: str | None = None, source: str = "user") -> InteractionContext:
    if mode:
        chosen = InteractionMode(mode.upper())
    else:
        chosen = InteractionMode.LIVE_EVENT if live else InteractionMode.GLOBAL
    return InteractionContext(
        mode=chosen,
        context_id=context_id,
        origin_context_id=origin_context_id,
        source=source,
    )


def _report(result: InteractionResult) -> None:
    record = result.record
    line = f"✓ {result.message}"
    if record is not None and record.id is not None:
        line += f" (signal {record.id})"
    click.echo(line)
    if result.mutual_now:
        click.echo(click.style("♥ It's mutual!", fg='magenta', bold=True))
    if result.match is not None:
        click.echo(f"  match #{result.match.id} {result.match.status.value}")


def _context_options(func):
    func = click.option('--source', default='user', show_default=True, help='Signal source (user/admin/system)')(func)
    func = click.option('--mode', type=click.Choice([m.value for m in InteractionMode], case_sensitive=False),
                        default=None, help='Interaction mode (overrides --live)')(func)
    func = click.option('--live', is_flag=True, help='Apply live-event rules')(func)
    func = click.option('--origin', 'origin_context_id', type=int, default=None,
                        help='First-contact context for a resulting match')(func)
    func = click.option('--context', 'context_id', type=int, default=None, help='Current event id')(func)
    return func


@cli.group()
def signal():
    """Record signals between two users."""


@signal.command()
@click.argument('actor_id', type=int)
@click.argument('target_id', type=int)
@_context_options
@click.pass_context
@engine_errors
def like(ctx: click.Context, actor_id: int, target_id: int, **context_opts):
    """ACTOR_ID likes TARGET_ID."""
    with get_db(ctx.obj) as db:
        result = get_components(db, ctx.obj).interactions.like(actor_id, target_id, _context(**context_opts))
    _report(result)


@signal.command(name="super-like")
@click.argument('actor_id', type=int)
@click.argument('target_id', type=int)
@_context_options
@click.pass_context
@engine_errors
def super_like(ctx: click.Context, actor_id: int, target_id: int, **context_opts):
    """ACTOR_ID super-likes TARGET_ID (daily cap applies)."""
    with get_db(ctx.obj) as db:
        result = get_components(db, ctx.obj).interactions.super_like(
            actor_id, target_id, _context(**context_opts))
    _report(result)


@signal.command()
@click.argument('actor_id', type=int)
@click.argument('target_id', type=int)
@_context_options
@click.pass_context
@engine_errors
def dislike(ctx: click.Context, actor_id: int, target_id: int, **context_opts):
    """ACTOR_ID dislikes TARGET_ID."""
    with get_db(ctx.obj) as db:
        result = get_components(db, ctx.obj).interactions.dislike(
            actor_id, target_id, _context(**context_opts))
    _report(result)


@signal.command(name="undo-dislike")
@click.argument('actor_id', type=int)
@click.argument('target_id', type=int)
@click.pass_context
@engine_errors
def undo_dislike(ctx: click.Context, actor_id: int, target_id: int):
    """Withdraw a recent dislike."""
    with get_db(ctx.obj) as db:
        undone = get_components(db, ctx.obj).interactions.undo_dislike(actor_id, target_id)
    click.echo("✓ Dislike withdrawn" if undone else "No active dislike")


@signal.command()
@click.argument('actor_id', type=int)
@click.argument('target_id', type=int)
@click.option('--days', type=int, default=None, help='Freeze length (clamped to the configured maximum)')
@_context_options
@click.pass_context
@engine_errors
def freeze(ctx: click.Context, actor_id: int, target_id: int, days: int | None, **context_opts):
    """ACTOR_ID hides TARGET_ID for a number of days."""
    with get_db(ctx.obj) as db:
        result = get_components(db, ctx.obj).interactions.freeze(
            actor_id, target_id, days, _context(**context_opts))
    _report(result)


@signal.command()
@click.argument('actor_id', type=int)
@click.argument('target_id', type=int)
@click.option('--reason', default=None)
@click.pass_context
@engine_errors
def block(ctx: click.Context, actor_id: int, target_id: int, reason: str | None):
    """ACTOR_ID blocks TARGET_ID."""
    with get_db(ctx.obj) as db:
        result = get_components(db, ctx.obj).interactions.block(actor_id, target_id, reason)
    _report(result)


@signal.command()
@click.argument('actor_id', type=int)
@click.argument('target_id', type=int)
@click.option('--reason', default=None)
@click.pass_context
@engine_errors
def unblock(ctx: click.Context, actor_id: int, target_id: int, reason: str | None):
    """Lift ACTOR_ID's block on TARGET_ID."""
    with get_db(ctx.obj) as db:
        lifted = get_components(db, ctx.obj).interactions.unblock(actor_id, target_id, reason)
    click.echo("✓ Unblocked" if lifted else "No active block")


@signal.command()
@click.argument('actor_id', type=int)
@click.argument('target_id', type=int)
@click.option('--reason', default=None)
@click.pass_context
@engine_errors
def unfreeze(ctx: click.Context, actor_id: int, target_id: int, reason: str | None):
    """Lift ACTOR_ID's freeze on TARGET_ID."""
    with get_db(ctx.obj) as db:
        lifted = get_components(db, ctx.obj).interactions.unfreeze(actor_id, target_id, reason)
    click.echo("✓ Unfrozen" if lifted else "No active freeze")


@signal.command()
@click.argument('viewer_id', type=int)
@click.argument('profile_user_id', type=int)
@click.pass_context
@engine_errors
def view(ctx: click.Context, viewer_id: int, profile_user_id: int):
    """Record a profile view and print the view count."""
    with get_db(ctx.obj) as db:
        count = get_components(db, ctx.obj).interactions.view_profile(viewer_id, profile_user_id)
    click.echo(f"Profile {profile_user_id} views: {count}")


@signal.command(name="list")
@click.argument('user_id', type=int)
@click.option('--kind', type=click.Choice(['likes', 'super-likes', 'dislikes', 'freezes', 'received', 'mutual']),
              default='likes', show_default=True)
@click.option('--limit', type=int, default=100, show_default=True)
@click.pass_context
@engine_errors
def list_signals(ctx: click.Context, user_id: int, kind: str, limit: int):
    """List user ids related to USER_ID by active signals."""
    with get_db(ctx.obj) as db:
        engine = get_components(db, ctx.obj).interactions
        lookup = {
            'likes': engine.likes_given,
            'super-likes': engine.super_likes_given,
            'dislikes': engine.dislikes_given,
            'freezes': engine.freezes_given,
            'received': engine.likes_received,
            'mutual': engine.mutual_targets,
        }
        ids = lookup[kind](user_id, limit)
    click.echo(" ".join(str(i) for i in ids) if ids else "(none)")


__all__ = ["signal"]
