"""Elapsed-time formatting with date-fns style patterns.

WHY: Segment offsets are elapsed seconds, but users configure timestamps
with familiar clock patterns ("mm:ss", "HH:mm:ss"). Formatting through a
calendar date would drag timezone offsets into what is really a
duration, so offsets are kept as timedelta values and the pattern is
applied to their components directly.

HOW: parse_pattern() tokenizes a pattern once into literal runs and
field tokens; format_duration() fills the fields from a timedelta.

RULES:
- H / HH: total hours (not wrapped at 24), zero-padded to token width
- m / mm: minutes within the hour; s / ss: seconds within the minute
- S / SS / SSS: fraction of a second (tenths, hundredths, milliseconds)
- Text inside single quotes is literal; '' is a literal apostrophe
- Non-letter characters are literal; any other letter is an error
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from typing import List, Tuple

AUTO_FORMAT = "auto"
SHORT_PATTERN = "mm:ss"
LONG_PATTERN = "HH:mm:ss"
ONE_HOUR_S = 3600

_FIELD_LETTERS = frozenset("HmsS")

# ("lit", text) or (letter, width)
Token = Tuple[str, object]


@lru_cache(maxsize=32)
def parse_pattern(pattern: str) -> Tuple[Token, ...]:
    """Tokenize a timestamp pattern.

    Raises:
        ValueError: unterminated quote, unsupported letter, or a
            fractional-second token longer than three characters.
    """
    tokens: List[Token] = []
    i = 0
    n = len(pattern)
    while i < n:
        char = pattern[i]
        if char == "'":
            if i + 1 < n and pattern[i + 1] == "'":
                tokens.append(("lit", "'"))
                i += 2
                continue
            j = i + 1
            buf = []
            while j < n:
                if pattern[j] == "'":
                    if j + 1 < n and pattern[j + 1] == "'":
                        buf.append("'")
                        j += 2
                        continue
                    break
                buf.append(pattern[j])
                j += 1
            if j >= n:
                raise ValueError(
                    "Unterminated quote in timestamp format {!r}".format(pattern)
                )
            tokens.append(("lit", "".join(buf)))
            i = j + 1
        elif char.isascii() and char.isalpha():
            j = i
            while j < n and pattern[j] == char:
                j += 1
            width = j - i
            if char not in _FIELD_LETTERS:
                raise ValueError(
                    "Unsupported token {!r} in timestamp format {!r}".format(
                        pattern[i:j], pattern
                    )
                )
            if char == "S" and width > 3:
                raise ValueError(
                    "Fractional seconds support at most 3 digits, got {!r}".format(
                        pattern[i:j]
                    )
                )
            tokens.append((char, width))
            i = j
        else:
            tokens.append(("lit", char))
            i += 1
    return tuple(tokens)


def seconds_to_duration(seconds: float) -> timedelta:
    """Convert float seconds to a timedelta truncated to whole milliseconds."""
    return timedelta(milliseconds=int(seconds * 1000))


def format_duration(duration: timedelta, pattern: str) -> str:
    """Render an elapsed duration with a date-fns style pattern.

    >>> format_duration(timedelta(seconds=65), "mm:ss")
    '01:05'
    """
    total_ms = duration // timedelta(milliseconds=1)
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    seconds, millis = divmod(rest, 1000)

    parts: List[str] = []
    for kind, value in parse_pattern(pattern):
        if kind == "lit":
            parts.append(str(value))
        elif kind == "H":
            parts.append(str(hours).zfill(int(value)))
        elif kind == "m":
            parts.append(str(minutes).zfill(int(value)))
        elif kind == "s":
            parts.append(str(seconds).zfill(int(value)))
        else:
            width = int(value)
            parts.append(str(millis // 10 ** (3 - width)).zfill(width))
    return "".join(parts)


def resolve_pattern(timestamp_format: str, max_end_s: float) -> str:
    """Pick the concrete pattern for a format setting.

    "auto" becomes "mm:ss" below one hour and "HH:mm:ss" otherwise;
    explicit patterns are returned unchanged.
    """
    if timestamp_format != AUTO_FORMAT:
        return timestamp_format
    return SHORT_PATTERN if max_end_s < ONE_HOUR_S else LONG_PATTERN
