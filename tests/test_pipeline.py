from pathlib import Path

import httpx
import pytest

from api import media, orchestrator
from api.exceptions import FatalStageError, ValidationError
from api.models import STEP_NAMES, Job, default_processing_steps
from api.synthesis import VoiceSynthesisClient
from api.transcription import SAMPLE_TEXTS, TranscriptionClient
from api.utils import job_artifacts, media_path

pytestmark = pytest.mark.django_db


@pytest.fixture
def submitted(user, video_file):
    return orchestrator.submit(user, video_file(), source_language="en", target_language="hi", duration=1.5)


@pytest.fixture
def progress_log(monkeypatch):
    """Snapshots of (progress, steps) after every state write."""
    log = []
    real_update = orchestrator._update

    def spy(job, **kwargs):
        updated = real_update(job, **kwargs)
        log.append((updated.progress, dict(updated.processing_steps)))
        return updated

    monkeypatch.setattr(orchestrator, "_update", spy)
    return log


def _reload(job):
    return Job.objects.get(pk=job.pk)


def test_submit_creates_processing_job(submitted, user):
    assert submitted.owner == user
    assert submitted.status == Job.Status.PROCESSING
    assert submitted.progress == 10
    assert submitted.processing_steps == {**default_processing_steps(), "upload": True}
    assert submitted.duration == 90
    assert submitted.original_file_name == "clip.mp4"
    assert media_path(submitted.original_file_path).exists()


def test_submit_rejects_equal_languages_and_drops_the_upload(user, video_file, settings):
    with pytest.raises(ValidationError):
        orchestrator.submit(user, video_file(), source_language="en", target_language="en")
    assert Job.objects.count() == 0
    assert list((Path(settings.MEDIA_ROOT) / "uploads").iterdir()) == []


def test_silent_video_completes_with_fallbacks(submitted, no_media_tools):
    orchestrator.run(submitted.id)
    job = _reload(submitted)

    assert job.status == Job.Status.COMPLETED
    assert job.progress == 100
    assert job.error_message == ""
    assert all(job.processing_steps[name] for name in STEP_NAMES)
    assert set(job.degraded_steps) == {"emotionDetection", "translation", "voiceSynthesis", "lipSync", "rendering"}

    assert job.emotions and job.emotions[0]["text"] in SAMPLE_TEXTS["hi"]
    assert set(job.subtitles) == {"srt", "vtt", "json"}
    assert all(media_path(p).exists() for p in job.subtitles.values())
    assert job.background_music == {"extracted": False, "path": ""}
    assert job.lip_sync_data["method"] == "passthrough"

    processed = media_path(job.processed_file_path)
    assert processed.name == f"{job.id}_dubbed.mp4"
    assert processed.read_bytes() == media_path(job.original_file_path).read_bytes()


def test_progress_is_monotonic_and_steps_are_ordered(submitted, no_media_tools, progress_log):
    orchestrator.run(submitted.id)

    progress = [p for p, _ in progress_log]
    assert progress == [20, 30, 40, 60, 70, 80, 85, 90, 100]
    for _, steps in progress_log:
        flags = [steps[name] for name in STEP_NAMES]
        # a prefix of true flags followed only by false ones
        assert flags == sorted(flags, reverse=True)


def test_providers_down_still_completes(submitted, no_media_tools, settings, monkeypatch):
    settings.OPENAI_API_KEY = "sk-test"
    settings.GOOGLE_TRANSLATE_API_KEY = "g-key"
    settings.ELEVENLABS_API_KEY = "el-key"
    settings.LIPSYNC_API_URL = "http://lipsync.local/sync"
    real_client = httpx.Client
    down = httpx.MockTransport(lambda request: httpx.Response(503, text="unavailable"))
    monkeypatch.setattr(orchestrator.httpx, "Client", lambda **kwargs: real_client(transport=down))

    orchestrator.run(submitted.id)
    job = _reload(submitted)
    assert job.status == Job.Status.COMPLETED
    assert {"voiceSynthesis", "lipSync"} <= set(job.degraded_steps)


def test_render_without_output_fails_the_job(submitted, no_media_tools, monkeypatch):
    def no_output(video, audio, out):
        raise FatalStageError("Failed to create output file: disk full")

    monkeypatch.setattr(media, "mux", no_output)
    orchestrator.run(submitted.id)
    job = _reload(submitted)

    assert job.status == Job.Status.FAILED
    assert "disk full" in job.error_message
    assert job.progress == 85
    assert job.processing_steps["subtitleGeneration"]
    assert not job.processing_steps["rendering"]
    assert job.processed_file_path == ""


def test_missing_source_video_fails_at_lip_sync(submitted, no_media_tools):
    media_path(submitted.original_file_path).unlink()
    orchestrator.run(submitted.id)
    job = _reload(submitted)
    assert job.status == Job.Status.FAILED
    assert job.progress == 70
    assert not job.processing_steps["lipSync"]


def test_unexpected_error_is_recorded(submitted, no_media_tools, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("lexicon exploded")

    monkeypatch.setattr(orchestrator, "analyze_text", boom)
    orchestrator.run(submitted.id)  # must not raise
    job = _reload(submitted)
    assert job.status == Job.Status.FAILED
    assert job.error_message == "lexicon exploded"
    assert job.progress == 20


def test_terminal_jobs_are_immutable(submitted, no_media_tools):
    orchestrator.run(submitted.id)
    done = _reload(submitted)

    again = orchestrator._update(done, status=Job.Status.FAILED, progress=10, error="late write")
    assert again.status == Job.Status.COMPLETED
    assert again.progress == 100
    assert again.error_message == ""

    orchestrator.run(submitted.id)
    assert _reload(submitted).updated_at == done.updated_at


def test_step_cannot_skip_ahead(submitted):
    with pytest.raises(ValueError, match="audioExtraction"):
        orchestrator._update(submitted, step="translation")
    assert not _reload(submitted).processing_steps["translation"]


def test_progress_never_decreases(submitted):
    job = orchestrator._update(submitted, progress=50)
    job = orchestrator._update(job, progress=30)
    assert job.progress == 50
    assert _reload(submitted).progress == 50


def test_job_deleted_mid_run_stops_quietly(submitted, no_media_tools, monkeypatch):
    real_transcribe = TranscriptionClient.transcribe

    def transcribe_then_delete(self, *args):
        result = real_transcribe(self, *args)
        Job.objects.filter(pk=submitted.pk).delete()
        return result

    monkeypatch.setattr(TranscriptionClient, "transcribe", transcribe_then_delete)
    orchestrator.run(submitted.id)
    assert not Job.objects.filter(pk=submitted.pk).exists()
    assert job_artifacts(submitted.id) == []


def test_files_written_after_deletion_are_removed(submitted, no_media_tools, monkeypatch):
    real_synthesize = VoiceSynthesisClient.synthesize

    def delete_then_synthesize(self, *args, **kwargs):
        orchestrator.delete_job(Job.objects.get(pk=submitted.pk))
        return real_synthesize(self, *args, **kwargs)

    monkeypatch.setattr(VoiceSynthesisClient, "synthesize", delete_then_synthesize)
    orchestrator.run(submitted.id)

    assert not Job.objects.filter(pk=submitted.pk).exists()
    assert not media_path(submitted.original_file_path).exists()
    assert job_artifacts(submitted.id) == []


def test_run_unknown_job_is_a_no_op():
    orchestrator.run("00000000-0000-0000-0000-000000000000")


def test_delete_job_removes_every_artifact(submitted, no_media_tools):
    orchestrator.run(submitted.id)
    job = _reload(submitted)
    original = media_path(job.original_file_path)
    assert job_artifacts(job.id)

    orchestrator.delete_job(job)
    assert not Job.objects.filter(pk=job.pk).exists()
    assert not original.exists()
    assert job_artifacts(job.id) == []


def test_get_job_scoping(submitted, user, other_user):
    assert orchestrator.get_job(submitted.id, user) == submitted
    with pytest.raises(orchestrator.ForbiddenError):
        orchestrator.get_job(submitted.id, other_user)
    with pytest.raises(orchestrator.NotFoundError):
        orchestrator.get_job("00000000-0000-0000-0000-000000000000", user)
