"""Result formatting — turns a completed transcript into the final document.

The markdown formatter is the only output format; backends call
format_transcript_result() with options derived from the job Settings.
"""

from scribe_relay.formatters.markdown import (
    DEEP_LINK_TEMPLATE,
    FormatOptions,
    format_transcript_result,
)

__all__ = ["DEEP_LINK_TEMPLATE", "FormatOptions", "format_transcript_result"]
