import pytest
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from api import media


@pytest.fixture(autouse=True)
def isolated_settings(settings, tmp_path):
    """Every test gets its own MEDIA_ROOT and no provider credentials."""
    settings.MEDIA_ROOT = tmp_path / "media"
    settings.OPENAI_API_KEY = None
    settings.GOOGLE_TRANSLATE_API_KEY = None
    settings.MYMEMORY_ENABLED = False
    settings.ELEVENLABS_API_KEY = None
    settings.LIPSYNC_API_URL = None
    settings.LIPSYNC_API_KEY = None
    settings.S3_ENABLED = False
    return settings


@pytest.fixture
def no_media_tools(monkeypatch):
    """Every ffmpeg/ffprobe/spleeter/rhubarb call fails as if the tool were missing."""
    def fail(cmd, *, timeout=None):
        raise media.MediaToolError(f"{cmd[0]} is not installed")

    monkeypatch.setattr(media, "run", fail)


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(username="alice", password="pw-alice-123")


@pytest.fixture
def other_user(db):
    return get_user_model().objects.create_user(username="bob", password="pw-bob-123")


def _client_for(u):
    client = APIClient()
    token, _ = Token.objects.get_or_create(user=u)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.key}")
    return client


@pytest.fixture
def api_client(user):
    return _client_for(user)


@pytest.fixture
def other_client(other_user):
    return _client_for(other_user)


@pytest.fixture
def video_file():
    def make(name="clip.mp4", content=b"\x00\x00\x00\x18ftypmp42fake-video-bytes", content_type="video/mp4"):
        return SimpleUploadedFile(name, content, content_type=content_type)
    return make
