"""Progress and summary lines for batch match generation."""

import logging
import click

logger = logging.getLogger(__name__)


def log_progress(
    processed: int,
    total: int | None,
    new: int = 0,
    updated: int = 0,
    qualifying: int | None = None,
    elapsed_seconds: float = 0.0,
    item_name: str = "pairs",
) -> None:
    """Log one progress line for a long-running scan.

    Args:
        processed: Items handled so far
        total: Expected item count (None if unknown)
        new: Matches inserted so far
        updated: Existing matches refreshed so far
        qualifying: Items at or above the score threshold, when tracked
        elapsed_seconds: Wall time since the scan started
        item_name: Plural noun used in the line ("pairs", "signals")
    """
    if total:
        pct = processed / total * 100
        head = f"{click.style(f'{processed}/{total}', fg='cyan')} {item_name} ({pct:.0f}%)"
    else:
        head = f"{click.style(str(processed), fg='cyan')} {item_name} processed"
    parts = [head]

    if qualifying is not None:
        parts.append(f"{qualifying} qualifying")
    if new:
        parts.append(click.style(f"{new} new", fg='green'))
    if updated:
        parts.append(click.style(f"{updated} updated", fg='blue'))
    if elapsed_seconds > 0:
        parts.append(f"{processed / elapsed_seconds:.1f} {item_name}/s")

    logger.info(" | ".join(parts))


def format_summary(
    new: int,
    updated: int,
    unchanged: int,
    duration_seconds: float = 0.0,
    item_name: str = "Matches",
) -> str:
    """One-line colored result of a generation run; ``unchanged`` counts pairs below threshold."""
    line = " ".join([
        click.style('✓', fg='green'),
        f"{item_name}:",
        click.style(f'{new} new', fg='green'),
        click.style(f'{updated} updated', fg='blue'),
        click.style(f'{unchanged} below threshold', fg='yellow'),
    ])
    if duration_seconds > 0:
        line += f" in {duration_seconds:.2f}s"
    return line


__all__ = ["log_progress", "format_summary"]
