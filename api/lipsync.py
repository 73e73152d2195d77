"""
Lip sync.

A remote model service does the real alignment when ``LIPSYNC_API_URL`` is
configured. Without it the video passes through unchanged, optionally with
Rhubarb mouth-cue data generated from the dubbed audio for custom rendering.
Producing no video at all is fatal for the job.
"""
import json
import logging
from pathlib import Path
from typing import NamedTuple

import httpx
from django.conf import settings

from . import media
from .exceptions import FatalStageError, TransientProviderError
from .fallback import first_success

logger = logging.getLogger(__name__)

# Preston Blair mouth shapes as emitted by Rhubarb.
PHONEME_DESCRIPTIONS = {
    "A": "Closed mouth (M, B, P)",
    "B": "Slightly open (K, S, T)",
    "C": "Open mouth (E, I)",
    "D": "Wide open (A, Ah)",
    "E": "Rounded (O, U)",
    "F": "Wide rounded (OO)",
    "G": "F, V shape",
    "H": "L shape",
    "X": "Rest position",
}


class LipSync(NamedTuple):
    path: str
    method: str
    data_path: str = ""
    degraded: bool = False


def parse_mouth_cues(data: dict) -> list[dict]:
    return [
        {"start": cue["start"], "end": cue["end"], "value": cue["value"]}
        for cue in (data or {}).get("mouthCues", [])
    ]


def describe_phoneme(code: str) -> str:
    return PHONEME_DESCRIPTIONS.get(code, "Unknown")


class LipSyncServiceStrategy:
    name = "service"
    degraded = False

    def __init__(self, http: httpx.Client, url: str | None, api_key: str | None):
        self.http = http
        self.url = url
        self.api_key = api_key

    def attempt(self, video_path: str, audio_path: str, out_path: str, data_path: str) -> LipSync:
        if not self.url:
            raise TransientProviderError("LIPSYNC_API_URL is not set")
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        try:
            with open(video_path, "rb") as video, open(audio_path, "rb") as audio:
                r = self.http.post(
                    self.url,
                    headers=headers,
                    files={
                        "video": (Path(video_path).name, video, "video/mp4"),
                        "audio": (Path(audio_path).name, audio, "audio/wav"),
                    },
                )
            r.raise_for_status()
        except (httpx.HTTPError, OSError) as e:
            raise TransientProviderError(f"Lip sync service failed: {e}") from e
        if not r.content:
            raise TransientProviderError("Lip sync service returned an empty video")
        media.ensure_dir(Path(out_path).parent)
        Path(out_path).write_bytes(r.content)
        return LipSync(str(out_path), self.name)


class RhubarbStrategy:
    """Mouth-cue data for the dubbed audio; the video itself is passed through."""

    name = "rhubarb"
    degraded = True

    def attempt(self, video_path: str, audio_path: str, out_path: str, data_path: str) -> LipSync:
        media.run([settings.RHUBARB_PATH, "-f", "json", "-o", str(data_path), str(audio_path)])
        try:
            cues = parse_mouth_cues(json.loads(Path(data_path).read_text(encoding="utf-8")))
            media.copy_file(video_path, out_path)
        except (OSError, ValueError, KeyError) as e:
            raise TransientProviderError(f"Rhubarb output unusable: {e}") from e
        logger.info("Generated %d mouth cues", len(cues))
        return LipSync(str(out_path), self.name, str(data_path), degraded=True)


class PassThroughStrategy:
    name = "passthrough"
    degraded = True

    def attempt(self, video_path: str, audio_path: str, out_path: str, data_path: str) -> LipSync:
        try:
            media.copy_file(video_path, out_path)
        except OSError as e:
            raise TransientProviderError(f"Could not copy video: {e}") from e
        return LipSync(str(out_path), self.name, degraded=True)


class LipSyncEngine:
    def __init__(self, http: httpx.Client | None = None, url: str | None = None, api_key: str | None = None):
        self.http = http or httpx.Client(timeout=settings.PROVIDER_TIMEOUT_SECONDS)
        self.strategies = [
            LipSyncServiceStrategy(
                self.http,
                url if url is not None else settings.LIPSYNC_API_URL,
                api_key if api_key is not None else settings.LIPSYNC_API_KEY,
            ),
            RhubarbStrategy(),
            PassThroughStrategy(),
        ]

    def sync(self, video_path: str, audio_path: str, out_path: str, data_path: str) -> LipSync:
        try:
            result, _, _ = first_success(self.strategies, video_path, audio_path, out_path, data_path)
        except TransientProviderError as e:
            raise FatalStageError(f"Lip sync produced no video: {e}") from e
        return result
