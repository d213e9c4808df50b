"""Human-readable elapsed time for batch results."""
from __future__ import annotations


def _unit(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _pair(major: int, major_word: str, minor: int, minor_word: str) -> str:
    if minor == 0:
        return _unit(major, major_word)
    return f"{_unit(major, major_word)} {_unit(minor, minor_word)}"


def format_elapsed(milliseconds: int) -> str:
    """Format a duration in milliseconds.

    Examples:
        500      -> "500ms"
        2500     -> "2.5 seconds"
        61000    -> "1 minute 1 second"
        3600000  -> "1 hour"
        90000000 -> "1 day 1 hour"
    """
    milliseconds = int(milliseconds)
    if milliseconds < 1000:
        return f"{milliseconds}ms"

    if milliseconds < 60_000:
        if milliseconds % 1000 == 0:
            return f"{milliseconds // 1000} seconds"
        return f"{milliseconds / 1000:.1f} seconds"

    total_seconds = milliseconds // 1000
    minutes, seconds = divmod(total_seconds, 60)
    if minutes < 60:
        return _pair(minutes, "minute", seconds, "second")

    hours, minutes = divmod(minutes, 60)
    if hours < 24:
        return _pair(hours, "hour", minutes, "minute")

    days, hours = divmod(hours, 24)
    return _pair(days, "day", hours, "hour")
