from pathlib import Path
import boto3
from botocore.config import Config as BotoConfig
from django.conf import settings

# Mirrored artifacts keep their local name under this prefix.
KEY_PREFIX = "processed"


def _client(endpoint_url: str):
    session = boto3.session.Session(
        aws_access_key_id=settings.S3_ACCESS_KEY,
        aws_secret_access_key=settings.S3_SECRET_KEY,
        region_name=settings.S3_REGION,
    )
    return session.client(
        "s3",
        endpoint_url=endpoint_url,  # e.g. http://127.0.0.1:9000
        config=BotoConfig(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        ),
    )


def get_s3_client():
    """
    SDK client for server-side upload/delete.
    """
    return _client(settings.S3_ENDPOINT_URL)


def get_presign_client():
    """
    Separate client for presigned URLs the API client will call.
    Uses S3_PUBLIC_ENDPOINT so the URL host matches what the client reaches.
    """
    return _client(settings.S3_PUBLIC_ENDPOINT)


def create_presigned_get(key: str, expires: int | None = None) -> str:
    """
    Create a presigned GET URL to download an object.
    """
    s3 = get_presign_client()
    return s3.generate_presigned_url(
        ClientMethod="get_object",
        Params={"Bucket": settings.S3_BUCKET, "Key": key},
        ExpiresIn=expires or settings.S3_PRESIGN_EXPIRE_SECONDS,
        HttpMethod="GET",
    )


def upload_file(local_path: str, key: str, content_type: str | None = None):
    """
    Upload a single file to S3/MinIO with an optional Content-Type.
    """
    s3 = get_s3_client()
    extra = {}
    if content_type:
        extra["ContentType"] = content_type
    s3.upload_file(str(local_path), settings.S3_BUCKET, key, ExtraArgs=extra or None)


def upload_job_file(local_path: str, content_type: str | None = None) -> str:
    """Mirror a job artifact and return its key."""
    key = f"{KEY_PREFIX}/{Path(local_path).name}"
    upload_file(local_path, key, content_type=content_type)
    return key


def delete_object(key: str):
    get_s3_client().delete_object(Bucket=settings.S3_BUCKET, Key=key)
