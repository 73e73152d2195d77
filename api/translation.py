"""
Text translation with an ordered provider chain:
Google Translate -> MyMemory free tier -> untranslated source text.
"""
import logging
from typing import NamedTuple

import httpx
from django.conf import settings

from .exceptions import TransientProviderError
from .fallback import first_success

logger = logging.getLogger(__name__)

GOOGLE_TRANSLATE_URL = "https://translation.googleapis.com/language/translate/v2"
MYMEMORY_URL = "https://api.mymemory.translated.net/get"


class Translation(NamedTuple):
    text: str
    provider: str
    degraded: bool = False


class GoogleTranslateStrategy:
    name = "google-translate"
    degraded = False

    def __init__(self, http: httpx.Client, api_key: str | None):
        self.http = http
        self.api_key = api_key

    def attempt(self, text: str, source_language: str, target_language: str) -> str:
        if not self.api_key:
            raise TransientProviderError("GOOGLE_TRANSLATE_API_KEY is not set")
        try:
            r = self.http.post(
                GOOGLE_TRANSLATE_URL,
                params={"key": self.api_key},
                json={"q": text, "source": source_language, "target": target_language, "format": "text"},
            )
            r.raise_for_status()
            return r.json()["data"]["translations"][0]["translatedText"]
        except (httpx.HTTPError, ValueError, KeyError, IndexError) as e:
            raise TransientProviderError(f"Google Translate failed: {e}") from e


class MyMemoryStrategy:
    name = "mymemory"
    degraded = False

    def __init__(self, http: httpx.Client, enabled: bool):
        self.http = http
        self.enabled = enabled

    def attempt(self, text: str, source_language: str, target_language: str) -> str:
        if not self.enabled:
            raise TransientProviderError("MyMemory is disabled")
        try:
            r = self.http.get(MYMEMORY_URL, params={"q": text, "langpair": f"{source_language}|{target_language}"})
            r.raise_for_status()
            translated = (r.json().get("responseData") or {}).get("translatedText")
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            raise TransientProviderError(f"MyMemory failed: {e}") from e
        if not translated:
            raise TransientProviderError("MyMemory returned no translation")
        return translated


class UntranslatedStrategy:
    name = "untranslated"
    degraded = True

    def attempt(self, text: str, source_language: str, target_language: str) -> str:
        return text


class TranslationClient:
    def __init__(self, http: httpx.Client | None = None, google_api_key: str | None = None,
                 mymemory_enabled: bool | None = None):
        self.http = http or httpx.Client(timeout=settings.PROVIDER_TIMEOUT_SECONDS)
        self.strategies = [
            GoogleTranslateStrategy(
                self.http, google_api_key if google_api_key is not None else settings.GOOGLE_TRANSLATE_API_KEY
            ),
            MyMemoryStrategy(
                self.http, mymemory_enabled if mymemory_enabled is not None else settings.MYMEMORY_ENABLED
            ),
            UntranslatedStrategy(),
        ]

    def translate(self, text: str, source_language: str, target_language: str) -> Translation:
        """Never raises; the worst case returns the source text unchanged."""
        if not text.strip() or source_language == target_language:
            return Translation(text, "passthrough")
        logger.info("Translating %d characters from %s to %s", len(text), source_language, target_language)
        translated, provider, degraded = first_success(self.strategies, text, source_language, target_language)
        return Translation(translated, provider, degraded)
