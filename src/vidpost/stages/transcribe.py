"""Transcription stage: audio extraction and speech-to-text.

This stage handles:
- Audio track extraction via ffmpeg (16kHz mono PCM, what Whisper expects)
- Transcription to a WebVTT caption document, either with the whisper.cpp
  CLI as an external process or with faster-whisper in-process

The faster-whisper model is lazy-loaded and cached, so the dependency is only
needed when that backend is selected.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING

from vidpost.errors import ExternalProcessError, NotFoundError
from vidpost.stages.captions import Cue, format_timestamp, format_vtt

if TYPE_CHECKING:
    from faster_whisper import WhisperModel

logger = logging.getLogger(__name__)

# Lazy-loaded model reference
_whisper_model: WhisperModel | None = None
_whisper_model_size: str | None = None
_whisper_device: str | None = None


def build_audio_command(
    video: Path,
    wav_path: Path,
    ffmpeg: str = "ffmpeg",
    sample_rate: int = 16000,
    channels: int = 1,
) -> list[str]:
    """Build the ffmpeg command that writes the audio track as PCM WAV."""
    return [
        ffmpeg,
        "-hide_banner",
        "-i", str(video),
        "-vn",  # No video
        "-ar", str(sample_rate),
        "-ac", str(channels),
        "-c:a", "pcm_s16le",  # 16-bit PCM
        "-y",
        str(wav_path),
    ]


def build_whisper_command(
    wav_path: Path,
    output_base: Path,
    model: str,
    language: str = "ja",
    whisper_cli: str = "whisper-cli",
) -> list[str]:
    """Build the whisper.cpp command that writes `<output_base>.vtt`."""
    return [
        whisper_cli,
        "-m", model,
        "-l", language,
        "-ovtt",  # WebVTT output with timestamps
        "-of", str(output_base),
        str(wav_path),
    ]


def _get_compute_type(device: str) -> str:
    """Get the appropriate faster-whisper compute type for the device."""
    if device == "cuda":
        return "float16"
    return "int8"


def _load_whisper_model(model_size: str = "small", device: str = "cpu") -> WhisperModel:
    """Lazy-load the faster-whisper model.

    Raises:
        ExternalProcessError: If faster-whisper is missing or the model fails to load.
    """
    global _whisper_model, _whisper_model_size, _whisper_device

    if (
        _whisper_model is not None
        and _whisper_model_size == model_size
        and _whisper_device == device
    ):
        return _whisper_model

    start_time = time.perf_counter()
    logger.info(f"Loading Whisper model '{model_size}' on {device}...")

    try:
        from faster_whisper import WhisperModel
    except ImportError as e:
        raise ExternalProcessError(
            f"Failed to import faster-whisper: {e}\n"
            "Install with: pip install 'vidpost[local-whisper]'"
        ) from e

    compute_type = _get_compute_type(device)

    try:
        _whisper_model = WhisperModel(model_size, device=device, compute_type=compute_type)
        _whisper_model_size = model_size
        _whisper_device = device
    except Exception as e:
        raise ExternalProcessError(f"Failed to load Whisper model: {e}") from e

    elapsed = time.perf_counter() - start_time
    logger.info(
        f"Whisper model loaded in {elapsed:.2f}s "
        f"(size={model_size}, device={device}, compute_type={compute_type})"
    )
    return _whisper_model


def transcribe_local(
    wav_path: Path,
    vtt_path: Path,
    model_size: str = "small",
    language: str | None = "ja",
    device: str = "cpu",
) -> Iterator[str]:
    """Transcribe with faster-whisper and write a WebVTT document.

    Yields one line per recognised segment as it is decoded, so the caller
    can forward progress the same way it forwards external process output.

    Raises:
        NotFoundError: If the audio file doesn't exist.
        ExternalProcessError: If transcription fails.
    """
    if not wav_path.exists():
        raise NotFoundError(f"Audio file not found: {wav_path}")

    model = _load_whisper_model(model_size, device)

    logger.info(f"Transcribing {wav_path.name}...")
    start_time = time.perf_counter()
    cues: list[Cue] = []

    try:
        segments_iter, info = model.transcribe(
            str(wav_path),
            language=language,
            vad_filter=True,
            vad_parameters=dict(min_silence_duration_ms=500),
        )

        for segment in segments_iter:
            text = segment.text.strip()
            if not text:
                continue
            cues.append(Cue(start=segment.start, end=segment.end, text=text))
            yield (
                f"[{format_timestamp(segment.start)} --> {format_timestamp(segment.end)}]  {text}\n"
            )

    except Exception as e:
        if isinstance(e, (NotFoundError, ExternalProcessError)):
            raise
        raise ExternalProcessError(f"Transcription failed: {e}") from e

    vtt_path.write_text(format_vtt(cues), encoding="utf-8")

    elapsed = time.perf_counter() - start_time
    logger.info(
        f"Transcription complete: {len(cues)} segments in {elapsed:.2f}s "
        f"(lang: {info.language})"
    )
