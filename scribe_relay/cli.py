"""Command-line interface for scribe_relay.

WHY: Users need a simple way to transcribe a media file from the
terminal and get the markdown transcript on stdout or in a file.

HOW: argparse flags override the environment-based Settings snapshot.
The file is read once into a MediaFile, the TranscriptionEngine runs
under asyncio.run(), and the document is printed or written to
--output. Progress notices and logs go to stderr.

RULES:
- Positional argument: input media file path
- Flags left unset fall back to the environment (.env) settings
- stdout carries only the transcript so the CLI can be piped
- Any TranscriptionError or configuration error exits with status 1
- --debug turns on DEBUG logging and logs the traceback on failure
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

from scribe_relay.backends import BACKENDS
from scribe_relay.config import Settings, load_settings
from scribe_relay.core.models import MediaFile
from scribe_relay.engine import TranscriptionEngine
from scribe_relay.errors import TranscriptionError

logger = logging.getLogger(__name__)


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> NoReturn:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def settings_from_args(args: argparse.Namespace, base: Optional[Settings] = None) -> Settings:
    """Apply the CLI flags that were given on top of ``base`` (env settings by default)."""
    base = base or load_settings()
    return base.with_overrides(
        transcription_engine=args.engine,
        language=args.language,
        timestamps=args.timestamps,
        timestamp_format=args.timestamp_format,
        embed_summary=args.summary,
        embed_outline=args.outline,
        embed_keywords=args.keywords,
        embed_additional_functionality=args.link,
        debug=True if args.debug else None,
    )


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    Boolean flags default to None so that unset flags keep the
    environment value.
    """
    parser = argparse.ArgumentParser(
        prog="scribe-relay",
        description="Transcribe a media file with a remote transcription service "
                    "and print the result as markdown.",
    )

    parser.add_argument(
        "input_file",
        help="Path to the audio or video file to transcribe.",
    )

    parser.add_argument(
        "--engine",
        choices=sorted(BACKENDS),
        default=None,
        help="Transcription backend (default: SCRIBE_ENGINE or swiftink).",
    )

    parser.add_argument(
        "--language",
        default=None,
        help="Language code of the speech, or 'auto' (default: SCRIBE_LANGUAGE or auto).",
    )

    parser.add_argument(
        "--timestamps",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Render the transcript as timestamped segments.",
    )

    parser.add_argument(
        "--timestamp-format",
        default=None,
        help="Timestamp pattern such as 'HH:mm:ss', or 'auto'.",
    )

    for flag, what in (
        ("summary", "the summary"),
        ("outline", "the outline"),
        ("keywords", "the keyword list"),
    ):
        parser.add_argument(
            "--{}".format(flag),
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Include {} section.".format(what),
        )

    parser.add_argument(
        "--link",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Append the transcript functions deep link.",
    )

    parser.add_argument(
        "--output",
        "-o",
        default=None,
        help="Write the transcript to this file instead of stdout.",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the ``scribe-relay`` console script.

    argv=None means use sys.argv; explicit argv is for testing.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = settings_from_args(args).validate()
    except ValueError as exc:
        _fail(str(exc))

    configure_logging(settings.debug)

    input_path = Path(args.input_file).resolve()
    if not input_path.is_file():
        _fail("File not found: {}".format(input_path))

    media = MediaFile.from_path(input_path)
    engine = TranscriptionEngine(settings)
    _status("Transcribing {} with {}...".format(media.name, settings.transcription_engine))

    try:
        transcript = asyncio.run(engine.get_transcription(media))
    except (TranscriptionError, ValueError) as exc:
        if settings.debug:
            logger.exception("Transcription failed")
        _fail(str(exc))

    if args.output:
        output_path = Path(args.output)
        output_path.write_text(transcript, encoding="utf-8")
        _status("Saved transcript to {}".format(output_path))
    else:
        sys.stdout.write(transcript)
        if not transcript.endswith("\n"):
            sys.stdout.write("\n")


if __name__ == "__main__":
    main()
