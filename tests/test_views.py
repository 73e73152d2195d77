from datetime import timedelta
from unittest import mock

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from api import orchestrator
from api.models import Job
from api.utils import media_path

pytestmark = pytest.mark.django_db


@pytest.fixture
def enqueue():
    with mock.patch("api.views.process_dubbing_job.delay") as delay:
        yield delay


def _upload(client, video, **fields):
    data = {"video": video, "sourceLanguage": "en", "targetLanguage": "hi", **fields}
    return client.post("/api/videos/upload/", data, format="multipart")


@pytest.fixture
def completed_job(user, video_file, no_media_tools):
    job = orchestrator.submit(user, video_file(), source_language="en", target_language="hi")
    orchestrator.run(job.id)
    return Job.objects.get(pk=job.pk)


def test_token_endpoint(user):
    resp = APIClient().post("/api/auth/token/", {"username": "alice", "password": "pw-alice-123"}, format="json")
    assert resp.status_code == 200
    assert resp.json()["token"]


def test_requires_authentication(video_file):
    client = APIClient()
    assert client.get("/api/videos/").status_code == 401
    assert _upload(client, video_file()).status_code == 401
    client.credentials(HTTP_AUTHORIZATION="Bearer not-a-token")
    assert client.get("/api/videos/").status_code == 401


def test_upload_accepts_and_enqueues(api_client, video_file, enqueue):
    resp = _upload(api_client, video_file(), duration="2", voiceMode="expressive")
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "processing"
    assert body["progress"] == 10
    enqueue.assert_called_once_with(body["jobId"])

    job = Job.objects.get(pk=body["jobId"])
    assert job.duration == 120
    assert job.voice_mode == Job.VoiceMode.EXPRESSIVE


def test_upload_rejects_equal_languages(api_client, video_file, enqueue, settings):
    resp = _upload(api_client, video_file(), targetLanguage="en")
    assert resp.status_code == 400
    assert "different" in resp.json()["detail"]
    assert Job.objects.count() == 0
    enqueue.assert_not_called()


@pytest.mark.parametrize("fields", [
    {"sourceLanguage": "xx"},
    {"voiceMode": "whisper"},
    {"videoType": "series"},
])
def test_upload_rejects_unknown_choices(api_client, video_file, enqueue, fields):
    assert _upload(api_client, video_file(), **fields).status_code == 400
    enqueue.assert_not_called()


def test_upload_rejects_non_video(api_client, video_file, enqueue):
    resp = _upload(api_client, video_file(name="notes.txt", content=b"hello", content_type="text/plain"))
    assert resp.status_code == 400
    assert "video" in resp.json()


def test_upload_requires_a_file(api_client, enqueue):
    resp = api_client.post("/api/videos/upload/", {"sourceLanguage": "en", "targetLanguage": "hi"}, format="multipart")
    assert resp.status_code == 400


def test_oversized_body_is_rejected(api_client, video_file, settings, enqueue):
    settings.MAX_UPLOAD_SIZE = 10
    resp = _upload(api_client, video_file())
    assert resp.status_code == 413
    enqueue.assert_not_called()


def test_list_is_owner_scoped_newest_first(api_client, user, other_user, video_file):
    first = orchestrator.submit(user, video_file(name="a.mp4"), source_language="en", target_language="hi")
    second = orchestrator.submit(user, video_file(name="b.mp4"), source_language="en", target_language="es")
    orchestrator.submit(other_user, video_file(name="c.mp4"), source_language="en", target_language="fr")
    Job.objects.filter(pk=first.pk).update(created_at=second.created_at - timedelta(minutes=1))

    body = api_client.get("/api/videos/").json()
    assert [item["id"] for item in body] == [str(second.id), str(first.id)]
    assert all("originalFilePath" not in item and "processedFilePath" not in item for item in body)


def test_status_view(api_client, completed_job):
    resp = api_client.get(f"/api/videos/{completed_job.id}/")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "completed"
    assert body["progress"] == 100
    assert body["processingSteps"]["rendering"] is True
    assert body["subtitleFormats"] == ["srt", "vtt", "json"]
    assert "lipSync" in body["degradedSteps"]
    assert "processed_file_path" not in body and "downloadUrl" not in body


def test_other_users_get_403(other_client, completed_job):
    base = f"/api/videos/{completed_job.id}/"
    assert other_client.get(base).status_code == 403
    assert other_client.get(base + "download/").status_code == 403
    assert other_client.get(base + "subtitles/srt/").status_code == 403
    assert other_client.delete(base).status_code == 403
    assert Job.objects.filter(pk=completed_job.pk).exists()


def test_unknown_job_is_404(api_client):
    assert api_client.get("/api/videos/00000000-0000-0000-0000-000000000000/").status_code == 404


def test_download_rejects_unfinished_jobs(api_client, user, video_file):
    job = orchestrator.submit(user, video_file(), source_language="en", target_language="hi")
    resp = api_client.get(f"/api/videos/{job.id}/download/")
    assert resp.status_code == 400
    assert api_client.get(f"/api/videos/{job.id}/subtitles/srt/").status_code == 400


def test_download_processed(api_client, completed_job):
    resp = api_client.get(f"/api/videos/{completed_job.id}/download/")
    assert resp.status_code == 200
    assert 'filename="dubbed_clip.mp4"' in resp["Content-Disposition"]
    assert b"".join(resp.streaming_content) == media_path(completed_job.processed_file_path).read_bytes()


def test_download_falls_back_to_original(api_client, completed_job):
    media_path(completed_job.processed_file_path).unlink()
    resp = api_client.get(f"/api/videos/{completed_job.id}/download/")
    assert resp.status_code == 200
    assert 'filename="original_clip.mp4"' in resp["Content-Disposition"]


def test_download_without_any_blob_is_404(api_client, completed_job):
    media_path(completed_job.processed_file_path).unlink()
    media_path(completed_job.original_file_path).unlink()
    assert api_client.get(f"/api/videos/{completed_job.id}/download/").status_code == 404


def test_subtitle_download(api_client, completed_job):
    resp = api_client.get(f"/api/videos/{completed_job.id}/subtitles/vtt/")
    assert resp.status_code == 200
    assert resp["Content-Type"] == "text/vtt"
    assert b"".join(resp.streaming_content).startswith(b"WEBVTT")
    assert api_client.get(f"/api/videos/{completed_job.id}/subtitles/ass/").status_code == 400


def test_delete(api_client, completed_job):
    resp = api_client.delete(f"/api/videos/{completed_job.id}/")
    assert resp.status_code == 200
    assert resp.json()["message"]
    assert not Job.objects.filter(pk=completed_job.pk).exists()
    assert api_client.get(f"/api/videos/{completed_job.id}/").status_code == 404


def test_deleting_a_user_cascades(completed_job, user):
    get_user_model().objects.filter(pk=user.pk).delete()
    assert not Job.objects.exists()
