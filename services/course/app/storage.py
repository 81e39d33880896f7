"""S3 blob store used for course thumbnails.

Thin wrapper around boto3 exposing put / delete / url. Upload errors
propagate; deletes are best effort because the DB row is the source of
truth and an orphaned object is harmless.
"""

from __future__ import annotations

import logging

import boto3

from app.config import Settings

logger = logging.getLogger(__name__)


def _client(settings: Settings):
    return boto3.client("s3", region_name=settings.s3_region)


def object_url(key: str, settings: Settings) -> str:
    # Use CloudFront domain if configured, otherwise direct S3 URL
    if settings.cloudfront_domain:
        return f"https://{settings.cloudfront_domain}/{key}"
    return f"https://{settings.s3_bucket}.s3.{settings.s3_region}.amazonaws.com/{key}"


def put_object(key: str, body: bytes, content_type: str, settings: Settings) -> str:
    """Upload ``body`` under ``key`` and return its public URL."""
    _client(settings).put_object(
        Bucket=settings.s3_bucket,
        Key=key,
        Body=body,
        ContentType=content_type,
    )
    logger.info("Uploaded s3://%s/%s (%d bytes)", settings.s3_bucket, key, len(body))
    return object_url(key, settings)


def delete_object(key: str, settings: Settings) -> None:
    try:
        _client(settings).delete_object(Bucket=settings.s3_bucket, Key=key)
    except Exception:
        logger.warning("S3 delete failed for key=%s", key, exc_info=True)
