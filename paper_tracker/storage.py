"""Blob storage for uploaded review files."""

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional
from urllib.parse import quote

import boto3
from botocore.exceptions import ClientError

from .config import Settings, get_settings
from .errors import BlobError

logger = logging.getLogger(__name__)

REVIEWS_PREFIX = "reviews"


def paper_prefix(paper_id: str) -> str:
    """Key prefix under which every file of a paper lives."""
    return f"{REVIEWS_PREFIX}/{paper_id}/"


def review_file_key(paper_id: str, filename: str, now: Optional[datetime] = None) -> str:
    """
    Build a collision-resistant key for a review file.

    Format: reviews/{paper_id}/{epoch_millis}_{filename}
    """
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    safe_filename = filename.replace("/", "_").replace(" ", "_")
    return f"{paper_prefix(paper_id)}{millis}_{safe_filename}"


class BlobStore:
    """Thin wrapper around an S3-compatible bucket."""

    def __init__(self, settings: Settings, s3_client=None):
        self.bucket_name = settings.s3_bucket_name
        self.endpoint_url = settings.s3_endpoint_url
        self.region = settings.s3_region
        self.public_url = settings.s3_public_url

        if s3_client is None:
            s3_client = boto3.client(
                "s3",
                endpoint_url=self.endpoint_url,
                aws_access_key_id=settings.s3_access_key_id,
                aws_secret_access_key=settings.s3_secret_access_key,
                region_name=self.region,
            )
        self.s3_client = s3_client
        logger.info(f"Blob store initialized with bucket: {self.bucket_name}")

    def url_for(self, key: str) -> str:
        key = quote(key)
        if self.public_url:
            return f"{self.public_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{key}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"

    def put(self, key: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``key`` and return its URL."""
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except ClientError as e:
            logger.error(f"Failed to upload {key}: {e}")
            raise BlobError(f"Failed to upload {key}") from e
        logger.info(f"Uploaded review file: {key}")
        return self.url_for(key)

    def delete(self, key: str) -> None:
        # S3 reports success for keys that do not exist
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            logger.error(f"Failed to delete {key}: {e}")
            raise BlobError(f"Failed to delete {key}") from e
        logger.info(f"Deleted review file: {key}")


@lru_cache
def get_blob_store() -> BlobStore:
    return BlobStore(get_settings())
