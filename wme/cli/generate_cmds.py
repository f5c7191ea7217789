"""Compatibility scoring and cohort generation commands."""

from __future__ import annotations
import click

from .helpers import cli, get_db, get_components
from ..services.generation_service import run_generation
from ..utils.logging_helpers import format_summary


@cli.command()
@click.argument('user_a', type=int)
@click.argument('user_b', type=int)
@click.pass_context
def score(ctx: click.Context, user_a: int, user_b: int):
    """Show the compatibility score of two stored profiles."""
    with get_db(ctx.obj) as db:
        first, second = db.get_profile(user_a), db.get_profile(user_b)
        if first is None or second is None:
            missing = user_a if first is None else user_b
            raise click.ClickException(f"Profile {missing} not found")
        breakdown = get_components(db, ctx.obj).scorer.evaluate(first, second)
    click.echo(f"Score {user_a} <-> {user_b}: {click.style(f'{breakdown.score:g}', fg='cyan', bold=True)}")
    for note in breakdown.notes:
        click.echo(f"  {note}")


@cli.command()
@click.argument('cohort_id', type=int)
@click.option('--min-score', type=float, default=None, help='Threshold (defaults to generation.min_score)')
@click.pass_context
def generate(ctx: click.Context, cohort_id: int, min_score: float | None):
    """Score every pair in a cohort and create matches above the threshold."""
    click.echo(click.style(f"=== Generating matches for cohort {cohort_id} ===", fg='cyan', bold=True))
    with get_db(ctx.obj) as db:
        result = run_generation(db, ctx.obj, cohort_id, min_score)
    click.echo(format_summary(
        new=result.created,
        updated=result.updated,
        unchanged=result.pairs_scanned - result.qualifying,
        duration_seconds=result.duration_seconds,
        item_name=f"{result.pairs_scanned} pairs",
    ))


__all__ = ["score", "generate"]
