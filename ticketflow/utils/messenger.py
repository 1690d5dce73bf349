"""User-facing progress messages.

Commands report what they are doing through a Messenger, one line per
step with a leading emoji. Diagnostic output goes to structlog instead.
"""

from enum import Enum

import click
import structlog

log = structlog.get_logger(__name__)


class Emoji(str, Enum):
    """Emoji prefixes for progress messages."""

    BUG = "🐛"
    BOOKMARK = "🔖"
    TADA = "🎉"
    ROCKET = "🚀"
    LINK = "🔗"
    MEMO = "📝"
    PACKAGE = "📦"
    SPARKLES = "✨"


def format_duration(seconds: float) -> str:
    """Human readable duration: milliseconds under a second, else seconds."""
    if seconds < 1:
        return f"{round(seconds * 1000)}ms"
    return f"{seconds:.1f}s"


class Messenger:
    """Writes progress messages to the terminal.

    Every emitted message is also kept in ``messages`` so callers (and
    tests) can inspect what the user was told.
    """

    def __init__(self, quiet: bool = False) -> None:
        self.quiet = quiet
        self.messages: list[str] = []

    def emit(self, message: str, emoji: Emoji | None = None) -> None:
        """Show one progress line."""
        self.messages.append(message)
        log.debug("message_emitted", message=message)
        if not self.quiet:
            click.echo(f"{emoji.value}  {message}" if emoji else message)

    def footer(self, elapsed_seconds: float) -> None:
        """Show the closing "Done in" line."""
        self.emit(f"Done in {format_duration(elapsed_seconds)}.", Emoji.SPARKLES)
