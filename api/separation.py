"""
Vocal / background-music separation and mixing.

Spleeter gives proper stems when it is installed; the ffmpeg mid/side
heuristic is always available and used when it is not.
"""
import logging
from pathlib import Path
from typing import NamedTuple

from django.conf import settings

from . import media
from .exceptions import TransientProviderError
from .fallback import first_success

logger = logging.getLogger(__name__)

DEFAULT_VOCALS_GAIN = 1.0
DEFAULT_BACKGROUND_GAIN = 0.3


class Stems(NamedTuple):
    vocals: str
    background: str
    method: str


class SpleeterStrategy:
    name = "spleeter"
    degraded = False

    def attempt(self, audio_path: str, out_dir: str) -> Stems:
        media.ensure_dir(out_dir)
        media.run([settings.SPLEETER_PATH, "separate", "-p", "spleeter:2stems", "-o", str(out_dir), str(audio_path)])
        stem_dir = Path(out_dir) / Path(audio_path).stem
        vocals, background = stem_dir / "vocals.wav", stem_dir / "accompaniment.wav"
        if not (vocals.exists() and background.exists()):
            raise media.MediaToolError(f"spleeter produced no stems in {stem_dir}")
        return Stems(str(vocals), str(background), self.name)


class StereoDifferenceStrategy:
    """Center channel approximates vocals, side channel approximates the score."""

    name = "stereo-difference"
    degraded = True

    def attempt(self, audio_path: str, out_dir: str) -> Stems:
        media.ensure_dir(out_dir)
        base = Path(audio_path).stem
        vocals = Path(out_dir) / f"{base}_vocals.wav"
        background = Path(out_dir) / f"{base}_background.wav"
        media.run([settings.FFMPEG_BIN, "-y", "-i", str(audio_path), "-af", "pan=mono|c0=0.5*c0+0.5*c1", str(vocals)])
        media.run([settings.FFMPEG_BIN, "-y", "-i", str(audio_path), "-af", "pan=mono|c0=0.5*c0-0.5*c1", str(background)])
        return Stems(str(vocals), str(background), self.name)


STRATEGIES = [SpleeterStrategy(), StereoDifferenceStrategy()]


def separate(audio_path: str, out_dir: str) -> Stems | None:
    """Split into vocals and background; None when neither strategy works."""
    try:
        stems, _, _ = first_success(STRATEGIES, audio_path, out_dir)
    except TransientProviderError as e:
        logger.warning("Background music extraction failed: %s", e)
        return None
    logger.info("Separated %s with %s", audio_path, stems.method)
    return stems


def mix(vocals_path: str, background_path: str, out_path: str,
        vocals_gain: float = DEFAULT_VOCALS_GAIN, background_gain: float = DEFAULT_BACKGROUND_GAIN) -> str:
    return media.mix(vocals_path, background_path, out_path, vocals_gain, background_gain)


def normalize(audio_path: str, out_path: str) -> str:
    """EBU R128 loudness normalisation; returns the input path if it fails."""
    try:
        media.run([settings.FFMPEG_BIN, "-y", "-i", str(audio_path), "-af", "loudnorm=I=-16:TP=-1.5:LRA=11", str(out_path)])
    except media.MediaToolError as e:
        logger.warning("Audio normalization failed: %s", e)
        return audio_path
    return str(out_path)
