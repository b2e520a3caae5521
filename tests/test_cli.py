"""Tests for the scribe-relay command line.

WHY: The CLI is mostly wiring (flags → Settings → engine → stdout), so
the tests replace the engine with a stub and check what reaches it and
what the user sees.
"""

from __future__ import annotations

import pytest

from scribe_relay import cli
from scribe_relay.config import Settings
from scribe_relay.errors import JobFailedError

DOCUMENT = "## Transcript\nHello.\n"


class StubEngine:
    """Records the settings it was built with and returns a fixed result."""

    instances = []
    raise_error = None

    def __init__(self, settings, **kwargs):
        self.settings = settings
        self.media = None
        StubEngine.instances.append(self)

    async def get_transcription(self, media):
        self.media = media
        if StubEngine.raise_error is not None:
            raise StubEngine.raise_error
        return DOCUMENT


@pytest.fixture(autouse=True)
def stub_engine(monkeypatch):
    StubEngine.instances = []
    StubEngine.raise_error = None
    monkeypatch.setattr(cli, "TranscriptionEngine", StubEngine)
    return StubEngine


@pytest.fixture
def media_file(tmp_path):
    path = tmp_path / "talk.mp3"
    path.write_bytes(b"audio")
    return path


class TestSettingsFromArgs:

    def test_unset_flags_keep_base(self):
        args = cli.build_parser().parse_args(["in.mp3"])
        base = Settings(language="fi", timestamps=True)
        assert cli.settings_from_args(args, base=base) == base

    def test_flags_override_base(self):
        args = cli.build_parser().parse_args([
            "in.mp3",
            "--engine", "whisper_asr",
            "--language", "de",
            "--no-timestamps",
            "--timestamp-format", "HH:mm",
            "--summary",
            "--outline",
            "--keywords",
            "--link",
            "--debug",
        ])
        settings = cli.settings_from_args(args, base=Settings(timestamps=True))
        assert settings.transcription_engine == "whisper_asr"
        assert settings.language == "de"
        assert settings.timestamps is False
        assert settings.timestamp_format == "HH:mm"
        assert settings.embed_summary is True
        assert settings.embed_outline is True
        assert settings.embed_keywords is True
        assert settings.embed_additional_functionality is True
        assert settings.debug is True

    def test_unknown_engine_rejected_by_parser(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["in.mp3", "--engine", "nope"])


class TestMain:

    def test_prints_transcript_to_stdout(self, media_file, capsys):
        cli.main([str(media_file)])

        captured = capsys.readouterr()
        assert captured.out == DOCUMENT
        assert "Transcribing talk.mp3 with swiftink..." in captured.err
        assert StubEngine.instances[0].media.name == "talk.mp3"
        assert StubEngine.instances[0].media.data == b"audio"

    def test_writes_output_file(self, media_file, tmp_path, capsys):
        out = tmp_path / "talk.md"
        cli.main([str(media_file), "-o", str(out)])

        assert out.read_text(encoding="utf-8") == DOCUMENT
        assert capsys.readouterr().out == ""

    def test_flags_reach_engine(self, media_file):
        cli.main([str(media_file), "--timestamps", "--summary"])
        settings = StubEngine.instances[0].settings
        assert settings.timestamps is True
        assert settings.embed_summary is True

    def test_missing_file_exits_1(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main([str(tmp_path / "missing.mp3")])
        assert exc_info.value.code == 1
        assert "File not found" in capsys.readouterr().err

    def test_invalid_timestamp_format_exits_1(self, media_file, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main([str(media_file), "--timestamp-format", "yyyy"])
        assert exc_info.value.code == 1
        assert StubEngine.instances == []

    def test_transcription_error_exits_1(self, media_file, capsys):
        StubEngine.raise_error = JobFailedError("Swiftink failed to transcribe the file")
        with pytest.raises(SystemExit) as exc_info:
            cli.main([str(media_file)])
        assert exc_info.value.code == 1
        assert "Error: Swiftink failed to transcribe the file" in capsys.readouterr().err
