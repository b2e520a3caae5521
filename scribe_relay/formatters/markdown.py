"""Markdown document assembled from a completed transcript.

WHY: A completed job carries several independent pieces (body text or
timed segments, summary, outline, keywords). Users choose which of them
end up in the note, and the result must look the same no matter which
provider or which combination of sections produced it.

HOW: Sections are appended in a fixed order, each under a "## Heading"
line. After every section the accumulated text is terminated with a
newline unless it already ends in one, so sections never run together
and never get an extra blank line. The optional deep link is appended
last without a heading.

RULES:
- Order: Transcript (always), Summary, Outline, Keywords, deep link
- Transcript body: rendered segments when timestamps are on, else text or ""
- Summary skipped when empty or equal to the "insufficient information" sentinel
- Outline / Keywords skipped when empty
- Keywords joined with ", "
- Output is a pure function of (result, options)
"""

from __future__ import annotations

from dataclasses import dataclass

from scribe_relay.config import Settings
from scribe_relay.core.models import TranscriptResult
from scribe_relay.core.renderer import segments_to_timestamped_string

DEEP_LINK_TEMPLATE = "[...](obsidian://swiftink_transcript_functions?id={id})"


@dataclass(frozen=True)
class FormatOptions:
    """Inclusion flags and timestamp settings for format_transcript_result."""

    timestamps: bool = False
    timestamp_format: str = "auto"
    embed_summary: bool = False
    embed_outline: bool = False
    embed_keywords: bool = False
    embed_additional_functionality: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> FormatOptions:
        return cls(
            timestamps=settings.timestamps,
            timestamp_format=settings.timestamp_format,
            embed_summary=settings.embed_summary,
            embed_outline=settings.embed_outline,
            embed_keywords=settings.embed_keywords,
            embed_additional_functionality=settings.embed_additional_functionality,
        )


def _terminate(text: str) -> str:
    return text if text.endswith("\n") else text + "\n"


def format_transcript_result(result: TranscriptResult, options: FormatOptions) -> str:
    """Build the markdown document for a completed transcript.

    Args:
        result: The completed transcript.
        options: Which optional sections to include and how to timestamp.

    Returns:
        The assembled document.
    """
    text = "## Transcript\n"
    if options.timestamps:
        text += segments_to_timestamped_string(result.segments, options.timestamp_format)
    else:
        text += result.text or ""
    text = _terminate(text)

    if options.embed_summary and result.has_summary:
        text += "## Summary\n{}".format(result.summary)
    text = _terminate(text)

    if options.embed_outline and result.outline_segments:
        text += "## Outline\n{}".format(
            segments_to_timestamped_string(result.outline_segments, options.timestamp_format)
        )
    text = _terminate(text)

    if options.embed_keywords and result.keywords:
        text += "## Keywords\n{}".format(", ".join(result.keywords))
    text = _terminate(text)

    if options.embed_additional_functionality:
        text += DEEP_LINK_TEMPLATE.format(id=result.id)

    return text
