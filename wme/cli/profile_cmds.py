"""Profile snapshot commands (gate flags and scoring attributes)."""

from __future__ import annotations
import click

from .helpers import cli, get_db, echo_json
from ..db.models import ProfileRow


@cli.group()
def profile():
    """Manage profile snapshots used by gates and scoring."""


@profile.command(name="set")
@click.argument('user_id', type=int)
@click.option('--gender', default=None)
@click.option('--age', type=int, default=None)
@click.option('--pref-min', type=int, default=None, help='Youngest preferred age')
@click.option('--pref-max', type=int, default=None, help='Oldest preferred age')
@click.option('--area', default=None)
@click.option('--religious-level', default=None)
@click.option('--event', 'last_event_id', type=int, default=None, help='Last attended event (cohort id)')
@click.option('--photo/--no-photo', default=False, help='Has a primary photo')
@click.option('--complete/--incomplete', default=False, help='Basic profile completed')
@click.option('--deletion-requested', is_flag=True, help='Account deletion is pending')
@click.pass_context
def set_profile(ctx: click.Context, user_id: int, gender, age, pref_min, pref_max, area, religious_level,
                last_event_id, photo: bool, complete: bool, deletion_requested: bool):
    """Create or replace a profile snapshot."""
    row = ProfileRow(
        user_id=user_id,
        gender=gender,
        age=age,
        preferred_age_min=pref_min,
        preferred_age_max=pref_max,
        area=area,
        religious_level=religious_level,
        last_event_id=last_event_id,
        has_primary_photo=photo,
        basic_profile_completed=complete,
        deletion_requested=deletion_requested,
    )
    with get_db(ctx.obj) as db:
        db.upsert_profile(row)
    click.echo(f"✓ Profile {user_id} saved")


@profile.command(name="show")
@click.argument('user_id', type=int)
@click.pass_context
def show_profile(ctx: click.Context, user_id: int):
    """Print a stored profile snapshot."""
    with get_db(ctx.obj) as db:
        row = db.get_profile(user_id)
    if row is None:
        raise click.ClickException(f"Profile {user_id} not found")
    echo_json(row.to_dict())


__all__ = ["profile", "set_profile", "show_profile"]
