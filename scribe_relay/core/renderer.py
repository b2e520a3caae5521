"""Render timed segments as "<start> - <end>: <text>" lines.

WHY: Transcript bodies and outlines both arrive as lists of timed
segments. Readers want one timestamped line per segment, or per fixed
time window when the segments are short and numerous.

HOW: The timestamp pattern is resolved once from the largest segment
end ("auto" picks mm:ss below an hour, HH:mm:ss otherwise). Without an
interval every segment becomes a line. With an interval, segments are
grouped by floor(start / interval); each bucket keeps the first
member's start, the largest member end, and the members' texts
concatenated as-is.

RULES:
- Every line ends with "\\n"; empty input renders as ""
- Line text is stripped of surrounding whitespace
- Buckets are emitted in ascending bucket order
- Pure function: no I/O, no mutation of the input
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from scribe_relay.core.models import TimedSegment
from scribe_relay.core.timestamps import format_duration, resolve_pattern, seconds_to_duration


@dataclass
class _Bucket:
    start: float
    end: float
    texts: List[str] = field(default_factory=list)


def _render_line(start: float, end: float, text: str, pattern: str) -> str:
    return "{} - {}: {}\n".format(
        format_duration(seconds_to_duration(start), pattern),
        format_duration(seconds_to_duration(end), pattern),
        text.strip(),
    )


def bucket_segments(
    segments: Sequence[TimedSegment],
    interval: float,
) -> List[TimedSegment]:
    """Merge segments into fixed-width windows keyed by their start time."""
    buckets: Dict[int, _Bucket] = {}
    for segment in segments:
        key = math.floor(segment.start / interval)
        bucket = buckets.get(key)
        if bucket is None:
            buckets[key] = _Bucket(segment.start, segment.end, [segment.text])
        else:
            bucket.end = max(bucket.end, segment.end)
            bucket.texts.append(segment.text)

    return [
        TimedSegment(
            start=buckets[key].start,
            end=buckets[key].end,
            text="".join(buckets[key].texts).strip(),
        )
        for key in sorted(buckets)
    ]


def segments_to_timestamped_string(
    segments: Sequence[TimedSegment],
    timestamp_format: str,
    interval: float = 0,
) -> str:
    """Render segments as timestamped lines.

    Args:
        segments: Timed segments in start order.
        timestamp_format: "auto" or an explicit pattern such as "HH:mm:ss".
        interval: Bucket width in seconds; 0 renders each segment on its own line.

    Returns:
        The rendered lines, each terminated by a newline.
    """
    max_end = max((segment.end for segment in segments), default=0.0)
    pattern = resolve_pattern(timestamp_format, max_end)

    if interval > 0:
        segments = bucket_segments(segments, interval)

    return "".join(
        _render_line(segment.start, segment.end, segment.text, pattern)
        for segment in segments
    )
