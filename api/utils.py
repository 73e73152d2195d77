import logging
import os
import shutil
from pathlib import Path
from uuid import uuid4
from django.conf import settings

logger = logging.getLogger(__name__)

ALLOWED_VIDEO_EXTENSIONS = {".mp4", ".mov", ".avi", ".mkv", ".flv", ".wmv", ".webm"}
ALLOWED_VIDEO_MIME_TYPES = {
    "video/mp4",
    "video/quicktime",
    "video/x-msvideo",
    "video/avi",
    "video/x-matroska",
    "video/x-flv",
    "video/x-ms-wmv",
    "video/webm",
}

# Job artifacts live in one of these MEDIA_ROOT subdirectories, named {job_id}_{kind}.{ext}.
DERIVED_DIR = "derived"
PROCESSED_DIR = "processed"


def is_allowed_video(filename: str, content_type: str | None) -> bool:
    ext = Path(filename).suffix.lower()
    return ext in ALLOWED_VIDEO_EXTENSIONS and (content_type or "").lower() in ALLOWED_VIDEO_MIME_TYPES


def save_uploaded_file(djangofile) -> str:
    """Save to MEDIA_ROOT/uploads/<uuid>_<name> and return relative path."""
    uploads_dir = Path(settings.MEDIA_ROOT) / "uploads"
    uploads_dir.mkdir(parents=True, exist_ok=True)
    safe_name = f"{uuid4().hex}_{os.path.basename(djangofile.name)}"
    dest = uploads_dir / safe_name
    with open(dest, "wb") as f:
        for chunk in djangofile.chunks():
            f.write(chunk)
    # return path relative to MEDIA_ROOT
    return str(dest.relative_to(settings.MEDIA_ROOT))


def media_path(rel: str) -> Path:
    return Path(settings.MEDIA_ROOT) / rel


def relative_to_media(path: str | Path) -> str:
    return str(Path(path).relative_to(settings.MEDIA_ROOT))


def artifact_path(job_id, kind: str, ext: str, area: str = DERIVED_DIR) -> Path:
    """Absolute path of a job artifact; ``ext`` may be given with or without the dot."""
    ext = ext.lstrip(".")
    directory = Path(settings.MEDIA_ROOT) / area
    directory.mkdir(parents=True, exist_ok=True)
    return directory / f"{job_id}_{kind}.{ext}"


def artifact_dir(job_id, kind: str, area: str = DERIVED_DIR) -> Path:
    directory = Path(settings.MEDIA_ROOT) / area / f"{job_id}_{kind}"
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def job_artifacts(job_id) -> list[Path]:
    """Every derived/processed file or directory that belongs to ``job_id``."""
    found = []
    for area in (DERIVED_DIR, PROCESSED_DIR):
        directory = Path(settings.MEDIA_ROOT) / area
        if directory.exists():
            found.extend(sorted(directory.glob(f"{job_id}_*")))
    return found


def remove_path(path: str | Path) -> bool:
    """Best-effort removal; failures are logged and reported as False."""
    target = Path(path)
    try:
        if target.is_dir():
            shutil.rmtree(target)
        else:
            target.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not delete %s: %s", target, e)
        return False
    return True
