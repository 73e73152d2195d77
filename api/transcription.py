"""
Speech-to-text via the OpenAI Whisper API, with a sample-sentence fallback.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path

import httpx
from django.conf import settings

from . import media
from .exceptions import TransientProviderError
from .fallback import first_success

logger = logging.getLogger(__name__)

OPENAI_TRANSCRIPTIONS_URL = "https://api.openai.com/v1/audio/transcriptions"

# Stand-in speech used when nothing could be transcribed. Written in the
# target language so the translation stage passes it through untouched.
SAMPLE_TEXTS = {
    "hi": "नमस्ते! यह एक परीक्षण वीडियो है। हम इस वीडियो को हिंदी में डब कर रहे हैं। "
          "यह एक शानदार तकनीक है जो आपकी आवाज को किसी भी भाषा में बदल सकती है।",
    "es": "Hola! Este es un video de prueba. Estamos doblando este video al español. "
          "Esta es una tecnología increíble que puede convertir tu voz a cualquier idioma.",
    "fr": "Bonjour! Ceci est une vidéo de test. Nous doublons cette vidéo en français. "
          "C'est une technologie incroyable qui peut convertir votre voix dans n'importe quelle langue.",
    "de": "Hallo! Dies ist ein Testvideo. Wir synchronisieren dieses Video auf Deutsch. "
          "Dies ist eine erstaunliche Technologie, die Ihre Stimme in jede Sprache umwandeln kann.",
    "ja": "こんにちは！これはテストビデオです。このビデオを日本語に吹き替えています。"
          "これはあなたの声をどんな言語にも変換できる素晴らしい技術です。",
    "zh": "你好！这是一个测试视频。我们正在将此视频配音为中文。这是一项了不起的技术，可以将您的声音转换为任何语言。",
    "en": "Hello! This is a test video. We are dubbing this video in English. "
          "This is an amazing technology that can convert your voice to any language.",
}


@dataclass
class Transcription:
    text: str
    language: str
    segments: list[dict] = field(default_factory=list)  # [{start, end, text}]
    is_sample: bool = False


def sample_transcription(language: str) -> Transcription:
    lang = language if language in SAMPLE_TEXTS else "en"
    return Transcription(text=SAMPLE_TEXTS[lang], language=lang, is_sample=True)


class WhisperStrategy:
    name = "openai-whisper"
    degraded = False

    def __init__(self, http: httpx.Client, api_key: str | None, model: str):
        self.http = http
        self.api_key = api_key
        self.model = model

    def attempt(self, audio_path: str, source_language: str) -> Transcription:
        if not self.api_key:
            raise TransientProviderError("OPENAI_API_KEY is not set")

        # MP3 is a much smaller upload; send the WAV if conversion is unavailable.
        upload_path = audio_path
        try:
            upload_path = media.convert(audio_path, "mp3")
        except media.MediaToolError as e:
            logger.debug("MP3 conversion skipped: %s", e)
        content_type = "audio/mpeg" if upload_path.endswith(".mp3") else "audio/wav"

        try:
            with open(upload_path, "rb") as f:
                logger.info("Transcribing %s with %s (language: %s)", upload_path, self.model, source_language)
                r = self.http.post(
                    OPENAI_TRANSCRIPTIONS_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    data={"model": self.model, "language": source_language, "response_format": "verbose_json"},
                    files={"file": (Path(upload_path).name, f, content_type)},
                )
            r.raise_for_status()
            payload = r.json()
        except (httpx.HTTPError, OSError, ValueError) as e:
            raise TransientProviderError(f"Whisper request failed: {e}") from e

        text = str(payload.get("text") or "").strip()
        if not text:
            raise TransientProviderError("Empty transcription result")
        segments = [
            {"start": float(seg.get("start", 0.0)), "end": float(seg.get("end", 0.0)), "text": str(seg.get("text", "")).strip()}
            for seg in payload.get("segments") or []
        ]
        return Transcription(text=text, language=source_language, segments=segments)


class SampleTextStrategy:
    name = "sample-text"
    degraded = True

    def __init__(self, target_language: str):
        self.target_language = target_language

    def attempt(self, audio_path: str, source_language: str) -> Transcription:
        return sample_transcription(self.target_language)


class TranscriptionClient:
    def __init__(self, http: httpx.Client | None = None, api_key: str | None = None, model: str | None = None):
        self.http = http or httpx.Client(timeout=settings.PROVIDER_TIMEOUT_SECONDS)
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_TRANSCRIBE_MODEL

    def transcribe(self, audio_path: str, source_language: str, target_language: str) -> Transcription:
        """
        Transcribe ``audio_path``. Never raises: silent or near-empty audio and
        any provider failure yield the target-language sample sentence.
        """
        fallback = SampleTextStrategy(target_language)
        size = Path(audio_path).stat().st_size if Path(audio_path).exists() else 0
        if size <= media.MIN_AUDIO_BYTES:
            logger.info("No real audio in %s (%d bytes); skipping transcription", audio_path, size)
            strategies = [fallback]
        else:
            strategies = [WhisperStrategy(self.http, self.api_key, self.model), fallback]
        result, _, _ = first_success(strategies, audio_path, source_language)
        return result
