"""User-facing progress notices.

WHY: Long jobs need visible progress (upload percentage, "Transcribing
...") and a final success message. Rendering is up to the caller: the
CLI prints to stderr, the HTTP API stores the latest message on the job.

HOW: A Notifier wraps a sink callable and hands out Notice objects whose
message can be updated in place. NoticeHandle owns at most one Notice
per job, creates it lazily on the first update, and is shared by the
upload progress observer and the poll loop.

RULES:
- One NoticeHandle per job; it creates its Notice once, then updates it
- Hidden notices ignore further updates
- Sinks must not raise; they are called from inside the pipeline
"""

from __future__ import annotations

import sys
from typing import Callable, Optional


def _stderr_sink(message: str) -> None:
    print(message, file=sys.stderr, flush=True)


class Notice:
    """A single notice whose text can be replaced until it is hidden."""

    def __init__(self, notifier: Notifier, message: str) -> None:
        self._notifier = notifier
        self.message = message
        self.hidden = False
        notifier.emit(message)

    def set_message(self, message: str) -> None:
        if self.hidden or message == self.message:
            return
        self.message = message
        self._notifier.emit(message)

    def hide(self) -> None:
        self.hidden = True


class Notifier:
    """Creates notices and forwards their text to a sink (stderr by default)."""

    def __init__(self, sink: Optional[Callable[[str], None]] = None) -> None:
        self._sink = sink or _stderr_sink

    def show(self, message: str) -> Notice:
        return Notice(self, message)

    def emit(self, message: str) -> None:
        self._sink(message)


class NoticeHandle:
    """The single, lazily created progress notice of one job."""

    def __init__(self, notifier: Notifier) -> None:
        self._notifier = notifier
        self._notice: Optional[Notice] = None

    @property
    def notice(self) -> Optional[Notice]:
        return self._notice

    def update(self, message: str) -> None:
        if self._notice is None:
            self._notice = self._notifier.show(message)
        else:
            self._notice.set_message(message)

    def hide(self) -> None:
        if self._notice is not None:
            self._notice.hide()
