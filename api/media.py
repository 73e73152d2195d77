"""
Audio and video processing with ffmpeg/ffprobe.

Every function here is a pure function of file paths. Tool failures surface
as ``MediaToolError``; the callers that own a fallback catch it.
"""
import logging
import shutil
import subprocess
import wave
from pathlib import Path
from typing import NamedTuple

from django.conf import settings
from PIL import Image

from .exceptions import FatalStageError, TransientProviderError

logger = logging.getLogger(__name__)

# A WAV at or below this size carries no usable speech (header only or near it).
MIN_AUDIO_BYTES = 1000

CANONICAL_SAMPLE_RATE = 16000


class MediaToolError(TransientProviderError):
    pass


class MuxResult(NamedTuple):
    path: str
    copied: bool  # True when the original video was copied instead of muxed


def run(cmd: list[str], *, timeout: float | None = None) -> str:
    """Run a media tool and return its combined output."""
    logger.debug("Running: %s", " ".join(map(str, cmd)))
    try:
        proc = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            check=False,
            timeout=timeout or settings.MEDIA_TOOL_TIMEOUT_SECONDS,
        )
    except FileNotFoundError as e:
        raise MediaToolError(f"{cmd[0]} is not installed") from e
    except subprocess.TimeoutExpired as e:
        raise MediaToolError(f"{cmd[0]} timed out after {e.timeout}s") from e
    if proc.returncode != 0:
        raise MediaToolError(f"{cmd[0]} exited with code {proc.returncode}: {proc.stdout[-500:]}")
    return proc.stdout


def ensure_dir(path: str | Path) -> None:
    Path(path).mkdir(parents=True, exist_ok=True)


def has_audio_stream(path: str) -> bool:
    try:
        out = run([
            settings.FFPROBE_BIN,
            "-v", "error",
            "-select_streams", "a:0",
            "-show_entries", "stream=codec_type",
            "-of", "default=noprint_wrappers=1:nokey=1",
            str(path),
        ])
    except MediaToolError as e:
        logger.warning("Could not probe %s: %s", path, e)
        return False
    return bool(out.strip())


def write_silence(out_path: str, seconds: float = 0.0, sample_rate: int = CANONICAL_SAMPLE_RATE,
                  channels: int = 1) -> str:
    """Write a valid 16-bit PCM WAV holding ``seconds`` of silence (zero means header only)."""
    ensure_dir(Path(out_path).parent)
    frames = max(0, int(seconds * sample_rate))
    with wave.open(str(out_path), "wb") as w:
        w.setnchannels(channels)
        w.setsampwidth(2)
        w.setframerate(sample_rate)
        w.writeframes(b"\x00\x00" * frames * channels)
    return str(out_path)


def extract_audio(video_path: str, out_path: str, sample_rate: int = CANONICAL_SAMPLE_RATE,
                  channels: int = 1) -> str:
    """
    Extract the audio track as 16-bit PCM WAV (mono 16 kHz by default).

    When the video has no audio stream, or extraction fails, an empty WAV of
    the same format is written instead so downstream stages always get a
    structurally valid file.
    """
    ensure_dir(Path(out_path).parent)
    if not has_audio_stream(video_path):
        logger.warning("No audio stream in %s; writing empty waveform", video_path)
        return write_silence(out_path, 0, sample_rate, channels)
    try:
        run([
            settings.FFMPEG_BIN, "-y",
            "-i", str(video_path),
            "-vn",
            "-acodec", "pcm_s16le",
            "-ar", str(sample_rate),
            "-ac", str(channels),
            str(out_path),
        ])
    except MediaToolError as e:
        logger.warning("Audio extraction failed (%s); writing empty waveform", e)
        return write_silence(out_path, 0, sample_rate, channels)
    if Path(out_path).stat().st_size < MIN_AUDIO_BYTES:
        logger.warning("Extracted audio from %s is too small; writing empty waveform", video_path)
        return write_silence(out_path, 0, sample_rate, channels)
    return str(out_path)


def convert(path: str, target_format: str) -> str:
    """Convert between WAV and MP3 at the canonical rate; returns the new path."""
    codecs = {
        "wav": ["-acodec", "pcm_s16le"],
        "mp3": ["-acodec", "libmp3lame", "-b:a", "128k"],
    }
    if target_format not in codecs:
        raise ValueError(f"Unsupported audio format: {target_format}")
    out_path = str(Path(path).with_suffix(f".{target_format}"))
    run([
        settings.FFMPEG_BIN, "-y",
        "-i", str(path),
        *codecs[target_format],
        "-ar", str(CANONICAL_SAMPLE_RATE),
        "-ac", "1",
        out_path,
    ])
    return out_path


def copy_file(src: str, dst: str) -> str:
    ensure_dir(Path(dst).parent)
    shutil.copyfile(src, dst)
    return str(dst)


def mux(video_path: str, audio_path: str, out_path: str) -> MuxResult:
    """
    Replace the audio track of ``video_path`` with ``audio_path`` (video stream copied).

    Falls back to copying the video unchanged. Only when that copy fails too
    is there no output, and ``FatalStageError`` is raised.
    """
    ensure_dir(Path(out_path).parent)
    try:
        run([
            settings.FFMPEG_BIN, "-y",
            "-i", str(video_path),
            "-i", str(audio_path),
            "-c:v", "copy",
            "-c:a", "aac",
            "-map", "0:v:0",
            "-map", "1:a:0",
            "-shortest",
            str(out_path),
        ])
        return MuxResult(str(out_path), copied=False)
    except MediaToolError as e:
        logger.warning("Muxing failed (%s); copying original video as output", e)
    try:
        copy_file(video_path, out_path)
    except OSError as e:
        raise FatalStageError(f"Failed to create output file: {e}") from e
    return MuxResult(str(out_path), copied=True)


def mix(first_path: str, second_path: str, out_path: str,
        first_gain: float = 1.0, second_gain: float = 0.3) -> str:
    """Linear mix of two tracks; output length follows the first one."""
    ensure_dir(Path(out_path).parent)
    run([
        settings.FFMPEG_BIN, "-y",
        "-i", str(first_path),
        "-i", str(second_path),
        "-filter_complex",
        f"[0:a]volume={first_gain}[a1];[1:a]volume={second_gain}[a2];"
        "[a1][a2]amix=inputs=2:duration=first:dropout_transition=2",
        str(out_path),
    ])
    return str(out_path)


def make_thumbnail(video_path: str, out_path: str, size: int = 512) -> str:
    """Grab a poster frame and save it as a JPEG that fits in size x size."""
    ensure_dir(Path(out_path).parent)
    frame = Path(out_path).with_suffix(".png")
    try:
        run([
            settings.FFMPEG_BIN, "-y",
            "-ss", "1",
            "-i", str(video_path),
            "-frames:v", "1",
            str(frame),
        ])
        with Image.open(frame) as src:
            img = src.convert("RGB")
        img.thumbnail((size, size))
        img.save(out_path, format="JPEG", quality=90)
    except OSError as e:
        raise MediaToolError(f"Thumbnail failed: {e}") from e
    finally:
        frame.unlink(missing_ok=True)
    return str(out_path)
