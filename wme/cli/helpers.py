from __future__ import annotations
import functools
import json
import sys
import click
from pathlib import Path
from ..config import load_typed_config
from ..config_types import AppConfig
from ..db import Database
from ..errors import EngineError
from ..services.components import EngineComponents, build_components
from ..version import __version__


def get_db(cfg) -> Database:
    """Get database instance from config.

    Args:
        cfg: Configuration dictionary

    Returns:
        Database instance (usable as a context manager)
    """
    return Database(Path(cfg["database"]["path"]))


def get_components(db: Database, cfg) -> EngineComponents:
    return build_components(db, AppConfig.from_dict(cfg))


def engine_errors(func):
    """Report engine errors as a red one-liner and exit with status 1."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except EngineError as e:
            click.echo(click.style(f"✗ {type(e).__name__}: {e}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


def echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, sort_keys=True, default=str))


@click.group()
@click.version_option(version=__version__, prog_name="wedding-match-engine")
@click.option('--db', 'db_path', type=click.Path(dir_okay=False), default=None, help='Database file (overrides config)')
@click.pass_context
def cli(ctx: click.Context, db_path: str | None):
    """Interaction and match lifecycle engine.

    \b
    TYPICAL WORKFLOWS:

    \b
    Setup:
      wme init-db                         # Create the database
      wme profile set 10 --gender m ...   # Load profile snapshots

    \b
    Signals:
      wme signal like 10 20        # 10 likes 20
      wme signal block 10 20       # Blocks in both directions

    \b
    Matches:
      wme generate 7 --min-score 60     # Score every pair of event 7
      wme match approve 1 10            # Approve match 1 as user 10

    \b
    Opening messages:
      wme opening send 10 20 "Hi!"
      wme opening approve 1 20
    """
    # Tests inject a ready config dict through CliRunner(obj=...)
    if not isinstance(ctx.obj, dict):
        ctx.obj = load_typed_config().to_dict()

    if db_path:
        ctx.obj.setdefault('database', {})['path'] = db_path


__all__ = ["cli", "get_db", "get_components", "engine_errors", "echo_json"]
