"""CLI package bootstrap.

Defines root group (`cli`) in helpers and imports submodules so their
decorators register commands. Keep this file minimal to avoid circular
imports and duplication.
"""
from wme.cli.helpers import cli  # root group
from wme.cli import config_cmds  # noqa: F401
from wme.cli import profile_cmds  # noqa: F401
from wme.cli import signal_cmds  # noqa: F401
from wme.cli import match_cmds  # noqa: F401
from wme.cli import opening_cmds  # noqa: F401
from wme.cli import generate_cmds  # noqa: F401

__all__ = ["cli"]
