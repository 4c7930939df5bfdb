"""Tests for the transcription stage."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from vidpost.errors import ExternalProcessError, NotFoundError
from vidpost.stages import transcribe as transcribe_module
from vidpost.stages.captions import parse_captions
from vidpost.stages.transcribe import (
    _get_compute_type,
    build_audio_command,
    build_whisper_command,
    transcribe_local,
)


class TestCommands:
    """Tests for command construction."""

    def test_audio_command(self) -> None:
        cmd = build_audio_command(Path("in.mp4"), Path("out.wav"), ffmpeg="ff")
        assert cmd[0] == "ff"
        assert cmd[cmd.index("-i") + 1] == "in.mp4"
        assert cmd[cmd.index("-ar") + 1] == "16000"
        assert cmd[cmd.index("-ac") + 1] == "1"
        assert cmd[cmd.index("-c:a") + 1] == "pcm_s16le"
        assert cmd[-1] == "out.wav"

    def test_whisper_command(self) -> None:
        cmd = build_whisper_command(
            Path("a.wav"), Path("job/video"), model="model.bin", language="en"
        )
        assert cmd == [
            "whisper-cli", "-m", "model.bin", "-l", "en", "-ovtt", "-of", "job/video", "a.wav",
        ]


class TestComputeType:
    """Tests for _get_compute_type()."""

    def test_cuda(self) -> None:
        assert _get_compute_type("cuda") == "float16"

    def test_cpu(self) -> None:
        assert _get_compute_type("cpu") == "int8"


class TestTranscribeLocal:
    """Tests for transcribe_local() with faster-whisper mocked."""

    @pytest.fixture(autouse=True)
    def reset_model_cache(self):
        transcribe_module._whisper_model = None
        yield
        transcribe_module._whisper_model = None

    def test_missing_audio(self, temp_dir: Path) -> None:
        with pytest.raises(NotFoundError):
            list(transcribe_local(temp_dir / "missing.wav", temp_dir / "out.vtt"))

    def test_writes_vtt(self, temp_dir: Path) -> None:
        wav = temp_dir / "audio.wav"
        wav.write_bytes(b"RIFF")
        vtt = temp_dir / "audio.vtt"

        segments = [
            MagicMock(start=0.0, end=2.5, text=" Hello there "),
            MagicMock(start=2.5, end=3.0, text="   "),
            MagicMock(start=3.0, end=6.0, text="Second line"),
        ]
        model = MagicMock()
        model.transcribe.return_value = (iter(segments), MagicMock(language="en"))

        with patch(
            "vidpost.stages.transcribe._load_whisper_model", return_value=model
        ):
            lines = list(transcribe_local(wav, vtt, language="en"))

        assert len(lines) == 2
        assert "Hello there" in lines[0]
        cues = parse_captions(vtt.read_text(encoding="utf-8"))
        assert [c.text for c in cues] == ["Hello there", "Second line"]
        assert cues[1].start == 3.0

    def test_model_failure_wrapped(self, temp_dir: Path) -> None:
        wav = temp_dir / "audio.wav"
        wav.write_bytes(b"RIFF")
        model = MagicMock()
        model.transcribe.side_effect = RuntimeError("decoder exploded")

        with patch("vidpost.stages.transcribe._load_whisper_model", return_value=model):
            with pytest.raises(ExternalProcessError, match="decoder exploded"):
                list(transcribe_local(wav, temp_dir / "out.vtt"))
