"""scribe_relay — drive remote transcription jobs to a single markdown document.

WHY: Remote transcription services each have their own upload, job and
polling protocol, and each returns a different result shape. This
package hides those differences behind one call that returns a
normalized markdown transcript.

HOW: Three layers — backends (submit + poll a provider), core (data
model, segment rendering), formatters (assemble the document). The
TranscriptionEngine picks the backend from configuration.

RULES:
- Backends return finished text or raise a TranscriptionError
- Rendering and formatting are pure functions
"""

__version__ = "0.1.0"
