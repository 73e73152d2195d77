"""
Dubbing job lifecycle: submission, the background stage sequence, and the
owner-scoped reads and deletes the API is built on.

Each stage writes its progress checkpoint and step flag together when it
finishes (see ``models.STEPS``). Every stage except lip sync and render has a
fallback, so a job only fails when no output video can be produced.
"""
import logging
import os
from pathlib import Path

import httpx
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings
from django.db import transaction

from . import media, s3, separation
from .emotions import analyze_text, dominant_emotion
from .exceptions import ForbiddenError, NotFoundError, ValidationError
from .lipsync import LipSyncEngine
from .models import STEP_NAMES, STEP_PROGRESS, SUPPORTED_LANGUAGES, Job, default_processing_steps
from .subtitles import build_segments, write_subtitles
from .synthesis import VoiceSynthesisClient
from .transcription import TranscriptionClient
from .translation import TranslationClient
from .utils import (
    PROCESSED_DIR,
    artifact_dir,
    artifact_path,
    job_artifacts,
    media_path,
    relative_to_media,
    remove_path,
    save_uploaded_file,
)

logger = logging.getLogger(__name__)

# Separation works best on the full-quality stereo track, not the 16 kHz mono one.
SEPARATION_SAMPLE_RATE = 44100


class JobDeleted(Exception):
    """The job row disappeared while its pipeline was running."""


def _update(job: Job, *, status=None, progress=None, step=None, degraded_step=None, error=None, **fields) -> Job:
    """
    Apply a state change to the stored job and return the fresh copy.

    Terminal jobs are left untouched, progress never goes backwards, and a
    step flag is only set once every earlier flag is set.
    """
    with transaction.atomic():
        current = Job.objects.select_for_update().filter(pk=job.pk).first()
        if current is None:
            raise JobDeleted(str(job.pk))
        if current.is_terminal:
            logger.warning("Ignoring update to %s job %s", current.status, current.pk)
            return current

        if step is not None:
            idx = STEP_NAMES.index(step)
            missing = [name for name in STEP_NAMES[:idx] if not current.processing_steps.get(name)]
            if missing:
                raise ValueError(f"Cannot mark {step} before {', '.join(missing)}")
            current.processing_steps = {**current.processing_steps, step: True}
            progress = max(progress or 0, STEP_PROGRESS[step])
        if degraded_step and degraded_step not in current.degraded_steps:
            current.degraded_steps = [*current.degraded_steps, degraded_step]
        if status:
            current.status = status
        if progress is not None:
            current.progress = max(current.progress, max(0, min(100, int(progress))))
        if error is not None:
            current.error_message = error
        for name, value in fields.items():
            setattr(current, name, value)

        current.save(update_fields=[
            "status", "progress", "processing_steps", "degraded_steps", "error_message",
            *fields, "updated_at",
        ])
    return current


def submit(owner, video_file, *, source_language: str, target_language: str, duration=None,
           video_type: str = Job.VideoType.MOVIE, voice_mode: str = Job.VoiceMode.NATURAL) -> Job:
    """
    Store the upload and create its job. ``duration`` is in minutes.

    The caller enqueues ``tasks.process_dubbing_job`` for the returned job.
    """
    rel_path = save_uploaded_file(video_file)
    problem = None
    if source_language not in SUPPORTED_LANGUAGES or target_language not in SUPPORTED_LANGUAGES:
        problem = "Unsupported language"
    elif source_language == target_language:
        problem = "Source and target languages must be different"
    if problem:
        remove_path(media_path(rel_path))
        raise ValidationError(problem)

    job = Job.objects.create(
        owner=owner,
        original_file_name=os.path.basename(video_file.name),
        original_file_path=rel_path,
        source_language=source_language,
        target_language=target_language,
        status=Job.Status.PROCESSING,
        progress=STEP_PROGRESS["upload"],
        processing_steps={**default_processing_steps(), "upload": True},
        duration=round(float(duration) * 60) if duration is not None else None,
        file_size=video_file.size,
        video_type=video_type,
        voice_mode=voice_mode,
    )
    logger.info("Created job %s for %s (%s -> %s)", job.id, job.original_file_name, source_language, target_language)
    return job


def get_job(job_id, owner) -> Job:
    job = Job.objects.filter(pk=job_id).first()
    if job is None:
        raise NotFoundError("Video not found")
    if job.owner_id != owner.pk:
        raise ForbiddenError("Access denied")
    return job


def list_jobs(owner):
    return Job.objects.filter(owner=owner).order_by("-created_at")


def delete_job(job: Job) -> None:
    """Remove the job's files and mirrored objects best-effort, then the record."""
    paths = [media_path(p) for p in (job.original_file_path, job.processed_file_path) if p]
    paths += job_artifacts(job.pk)
    for path in paths:
        remove_path(path)

    cloud = job.cloud_storage or {}
    for key in filter(None, (cloud.get("processed_key"), cloud.get("thumbnail_key"))):
        try:
            s3.delete_object(key)
        except (BotoCoreError, ClientError) as e:
            logger.warning("Could not delete s3 object %s: %s", key, e)

    job_id = job.pk
    job.delete()
    logger.info("Deleted job %s", job_id)


class DubbingPipeline:
    """The stage sequence for one job. Not reusable across jobs."""

    def __init__(self, job: Job, http: httpx.Client):
        self.job = job
        self.transcriber = TranscriptionClient(http)
        self.translator = TranslationClient(http)
        self.voice = VoiceSynthesisClient(http)
        self.lipsync = LipSyncEngine(http)

    def _done(self, step: str, degraded: bool = False, **fields):
        self.job = _update(self.job, step=step, degraded_step=step if degraded else None, **fields)

    def execute(self):
        job = self.job
        video = str(media_path(job.original_file_path))
        ext = Path(job.original_file_name).suffix.lower() or ".mp4"

        # audio extraction
        audio = media.extract_audio(video, str(artifact_path(job.pk, "audio", "wav")))
        has_audio = Path(audio).stat().st_size > media.MIN_AUDIO_BYTES
        self._done("audioExtraction")

        # transcription + emotion tagging
        transcript = self.transcriber.transcribe(audio, job.source_language, job.target_language)
        timestamps = [seg["start"] for seg in transcript.segments] or None
        emotions = analyze_text(transcript.text, timestamps)
        self._done("emotionDetection", degraded=transcript.is_sample, emotions=emotions)

        # translation; sample text is already in its own language
        source_language = transcript.language if transcript.is_sample else job.source_language
        translation = self.translator.translate(transcript.text, source_language, job.target_language)
        self._done("translation", degraded=translation.degraded or transcript.is_sample)

        # voice synthesis
        voice = self.voice.synthesize(
            translation.text,
            job.target_language,
            job.voice_mode,
            str(artifact_path(job.pk, "voice", "wav")),
            dominant_emotion=dominant_emotion(emotions),
        )
        self._done("voiceSynthesis", degraded=voice.placeholder)

        # background music
        dubbed_audio, background = self._background(video, voice.path, has_audio)
        self._done(
            "backgroundMusicExtraction",
            degraded=has_audio and not background.get("extracted"),
            background_music=background,
        )

        # lip sync; raises FatalStageError when there is no video at all
        synced = self.lipsync.sync(
            video,
            dubbed_audio,
            str(artifact_path(job.pk, "lipsynced", ext)),
            str(artifact_path(job.pk, "lipsync", "json")),
        )
        self._done(
            "lipSync",
            degraded=synced.degraded,
            lip_sync_data={
                "method": synced.method,
                "data_path": relative_to_media(synced.data_path) if synced.data_path else "",
            },
        )

        # subtitles
        segments = build_segments(transcript.segments, transcript.text, translation.text)
        try:
            subtitles = write_subtitles(job.pk, segments)
        except OSError as e:
            logger.warning("Subtitle generation failed for job %s: %s", job.pk, e)
            subtitles = {}
        self._done("subtitleGeneration", degraded=not subtitles, subtitles=subtitles)

        # render; raises FatalStageError when even copying the video fails
        rendered = media.mux(synced.path, dubbed_audio, str(artifact_path(job.pk, "dubbed", ext, area=PROCESSED_DIR)))
        self._done("rendering", degraded=rendered.copied)

        thumbnail = self._thumbnail(rendered.path)
        cloud = self._mirror(rendered.path, thumbnail)

        self.job = _update(
            self.job,
            status=Job.Status.COMPLETED,
            progress=100,
            processed_file_path=relative_to_media(rendered.path),
            thumbnail_path=relative_to_media(thumbnail) if thumbnail else "",
            cloud_storage=cloud,
        )
        logger.info("Job %s completed (degraded steps: %s)", job.pk, ", ".join(self.job.degraded_steps) or "none")

    def _background(self, video: str, voice_path: str, has_audio: bool) -> tuple[str, dict]:
        """Mix the dubbed voice over the original score; the bare voice when that fails."""
        if not has_audio:
            return voice_path, {"extracted": False, "path": ""}
        job = self.job
        source = media.extract_audio(
            video, str(artifact_path(job.pk, "source", "wav")), sample_rate=SEPARATION_SAMPLE_RATE, channels=2
        )
        stems = separation.separate(source, str(artifact_dir(job.pk, "stems")))
        if stems is None:
            return voice_path, {"extracted": False, "path": ""}
        background = {"extracted": True, "path": relative_to_media(stems.background), "method": stems.method}
        try:
            mixed = separation.mix(voice_path, stems.background, str(artifact_path(job.pk, "mix", "wav")))
        except media.MediaToolError as e:
            logger.warning("Mixing background music failed for job %s: %s", job.pk, e)
            return voice_path, background
        return separation.normalize(mixed, str(artifact_path(job.pk, "final", "wav"))), background

    def _thumbnail(self, video: str) -> str:
        try:
            return media.make_thumbnail(video, str(artifact_path(self.job.pk, "thumb", "jpg", area=PROCESSED_DIR)))
        except media.MediaToolError as e:
            logger.warning("No thumbnail for job %s: %s", self.job.pk, e)
            return ""

    def _mirror(self, video: str, thumbnail: str) -> dict:
        if not settings.S3_ENABLED:
            return {}
        try:
            cloud = {"provider": "s3", "processed_key": s3.upload_job_file(video)}
            if thumbnail:
                cloud["thumbnail_key"] = s3.upload_job_file(thumbnail, content_type="image/jpeg")
        except (BotoCoreError, ClientError, OSError) as e:
            logger.warning("Cloud mirror failed for job %s: %s", self.job.pk, e)
            return {}
        return cloud


def _discard_leftovers(job_id) -> None:
    """Remove artifacts a stage wrote after the job was deleted."""
    logger.info("Job %s was deleted while processing", job_id)
    for path in job_artifacts(job_id):
        remove_path(path)


def run(job_id) -> None:
    """Process one job to a terminal state. Never raises."""
    job = Job.objects.filter(pk=job_id).first()
    if job is None:
        logger.warning("Job %s no longer exists", job_id)
        return
    if job.is_terminal:
        logger.info("Job %s is already %s", job_id, job.status)
        return

    try:
        with httpx.Client(timeout=settings.PROVIDER_TIMEOUT_SECONDS) as http:
            DubbingPipeline(job, http).execute()
    except JobDeleted:
        _discard_leftovers(job_id)
    except Exception as e:
        logger.exception("Job %s failed", job_id)
        try:
            _update(job, status=Job.Status.FAILED, error=str(e)[:4000] or e.__class__.__name__)
        except JobDeleted:
            _discard_leftovers(job_id)
