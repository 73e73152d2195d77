"""
Text-to-speech with ElevenLabs.

Voice identity and prosody come from the static tables below, keyed by
target language, voice mode and detected emotion. ``validate_tables`` runs
when the app loads so a missing row fails at startup rather than mid-job.
"""
import logging
from pathlib import Path
from typing import NamedTuple

import httpx
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from . import media
from .emotions import EMOTIONS
from .exceptions import TransientProviderError
from .fallback import first_success
from .models import SUPPORTED_LANGUAGES, Job

logger = logging.getLogger(__name__)

ELEVENLABS_TTS_URL = "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"

# Rough speaking rate used to size placeholder audio.
CHARS_PER_SECOND = 15


class VoiceSettings(NamedTuple):
    stability: float
    similarity_boost: float
    style: float
    use_speaker_boost: bool


# One identity may serve several languages (the multilingual "Adam" voice).
VOICE_IDS = {
    "en": "21m00Tcm4TlvDq8ikWAM",  # Rachel
    "hi": "pNInz6obpgDQGcFmaJgB",  # Adam
    "es": "EXAVITQu4vr4xnSDxMaL",  # Bella
    "fr": "ErXwobaYiN019PkySvjV",  # Antoni
    "de": "VR6AewLTigWG4xSOukaG",  # Arnold
    "pt": "pqHfZKP75CvOlQylNhV4",  # Bill
    "zh": "yoZ06aMxZJJ28mfd3POQ",  # Charlotte
    "ja": "bVMeCyTHy58xNoL34h3p",  # Clyde
    "ko": "iP95p4xoKVk53GoZ742B",  # Dave
    "ar": "pNInz6obpgDQGcFmaJgB",
    "bn": "pNInz6obpgDQGcFmaJgB",
    "ta": "pNInz6obpgDQGcFmaJgB",
    "te": "pNInz6obpgDQGcFmaJgB",
}

VOICE_MODE_SETTINGS = {
    Job.VoiceMode.NATURAL: VoiceSettings(0.5, 0.75, 0.0, True),
    Job.VoiceMode.EXPRESSIVE: VoiceSettings(0.3, 0.85, 0.5, True),
    Job.VoiceMode.CALM: VoiceSettings(0.7, 0.6, 0.0, False),
    Job.VoiceMode.ENERGETIC: VoiceSettings(0.4, 0.8, 0.6, True),
}

EMOTION_VOICE_SETTINGS = {
    "happy": VoiceSettings(0.4, 0.8, 0.6, True),
    "sad": VoiceSettings(0.7, 0.6, 0.3, False),
    "angry": VoiceSettings(0.3, 0.9, 0.8, True),
    "fearful": VoiceSettings(0.5, 0.7, 0.4, True),
    "surprised": VoiceSettings(0.35, 0.85, 0.7, True),
    "calm": VoiceSettings(0.75, 0.65, 0.1, False),
    "curious": VoiceSettings(0.45, 0.75, 0.5, True),
    "neutral": VoiceSettings(0.5, 0.75, 0.0, True),
}


def validate_tables() -> None:
    problems = []
    problems += [f"voice id for language {lang!r}" for lang in SUPPORTED_LANGUAGES if lang not in VOICE_IDS]
    problems += [f"settings for voice mode {mode!r}" for mode in Job.VoiceMode.values if mode not in VOICE_MODE_SETTINGS]
    problems += [f"settings for emotion {emotion!r}" for emotion in EMOTIONS if emotion not in EMOTION_VOICE_SETTINGS]
    if problems:
        raise ImproperlyConfigured("Voice tables are missing: " + ", ".join(problems))


def resolve_voice_settings(voice_mode: str, dominant_emotion: str | None = None) -> VoiceSettings:
    """Expressive mode follows the content's dominant emotion; other modes are fixed presets."""
    if voice_mode == Job.VoiceMode.EXPRESSIVE and dominant_emotion and dominant_emotion != "neutral":
        return EMOTION_VOICE_SETTINGS[dominant_emotion]
    return VOICE_MODE_SETTINGS[voice_mode]


class Synthesis(NamedTuple):
    path: str
    provider: str
    placeholder: bool


class ElevenLabsStrategy:
    name = "elevenlabs"
    degraded = False

    def __init__(self, http: httpx.Client, api_key: str | None, model_id: str):
        self.http = http
        self.api_key = api_key
        self.model_id = model_id

    def attempt(self, text: str, voice_id: str, voice_settings: VoiceSettings, out_path: str) -> str:
        if not self.api_key:
            raise TransientProviderError("ELEVENLABS_API_KEY is not set")
        try:
            r = self.http.post(
                ELEVENLABS_TTS_URL.format(voice_id=voice_id),
                headers={
                    "xi-api-key": self.api_key,
                    "accept": "audio/mpeg",
                    "Content-Type": "application/json",
                },
                json={
                    "text": text,
                    "model_id": self.model_id,
                    "voice_settings": voice_settings._asdict(),
                },
            )
        except httpx.HTTPError as e:
            raise TransientProviderError(f"ElevenLabs request failed: {e}") from e
        ctype = r.headers.get("content-type", "")
        if r.status_code != 200 or not ctype.startswith(("audio/", "application/octet-stream")):
            raise TransientProviderError(f"ElevenLabs TTS failed: {r.status_code} {r.text[:300]}")

        mp3_path = str(Path(out_path).with_suffix(".mp3"))
        try:
            media.ensure_dir(Path(mp3_path).parent)
            with open(mp3_path, "wb") as f:
                f.write(r.content)
        except OSError as e:
            raise TransientProviderError(f"Could not save ElevenLabs audio: {e}") from e
        logger.info("Synthesized %.1f KB of speech", len(r.content) / 1024)
        try:
            return media.convert(mp3_path, "wav")
        except media.MediaToolError as e:
            logger.warning("WAV conversion failed (%s); using MP3", e)
            return mp3_path


class PlaceholderAudioStrategy:
    """Silent WAV roughly as long as the text would take to speak."""

    name = "placeholder-audio"
    degraded = True

    def attempt(self, text: str, voice_id: str, voice_settings: VoiceSettings, out_path: str) -> str:
        seconds = max(1.0, len(text) / CHARS_PER_SECOND)
        return media.write_silence(str(Path(out_path).with_suffix(".wav")), seconds)


class VoiceSynthesisClient:
    def __init__(self, http: httpx.Client | None = None, api_key: str | None = None, model_id: str | None = None):
        self.http = http or httpx.Client(timeout=settings.PROVIDER_TIMEOUT_SECONDS)
        self.strategies = [
            ElevenLabsStrategy(
                self.http,
                api_key if api_key is not None else settings.ELEVENLABS_API_KEY,
                model_id or settings.ELEVENLABS_MODEL_ID,
            ),
            PlaceholderAudioStrategy(),
        ]

    def synthesize(self, text: str, target_language: str, voice_mode: str, out_path: str,
                   dominant_emotion: str | None = None) -> Synthesis:
        voice_id = VOICE_IDS.get(target_language, VOICE_IDS["en"])
        voice_settings = resolve_voice_settings(voice_mode, dominant_emotion)
        logger.info("Synthesizing voice (language: %s, mode: %s, emotion: %s)",
                    target_language, voice_mode, dominant_emotion or "-")
        path, provider, degraded = first_success(self.strategies, text, voice_id, voice_settings, out_path)
        return Synthesis(path, provider, degraded)
