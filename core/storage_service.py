# Object Storage Service (S3 compatible, MinIO in development)
# Buckets: task-uploads, portfolios, payment-proofs

import logging
import uuid
from datetime import datetime
from typing import Optional

import boto3
from botocore.client import Config
from botocore.exceptions import ClientError

from config.app_config import (
    STORAGE_ENDPOINT,
    STORAGE_ACCESS_KEY,
    STORAGE_SECRET_KEY,
    STORAGE_REGION,
)

logger = logging.getLogger(__name__)


class StoredObject:
    """Bytes and metadata of an object read back from storage."""

    def __init__(self, body: bytes, content_type: Optional[str]):
        self.body = body
        self.content_type = content_type or "application/octet-stream"


class StorageService:
    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=STORAGE_ENDPOINT,
                aws_access_key_id=STORAGE_ACCESS_KEY,
                aws_secret_access_key=STORAGE_SECRET_KEY,
                config=Config(signature_version="s3v4"),
                region_name=STORAGE_REGION,
            )
        return self._client

    def ensure_bucket_exists(self, bucket: str):
        """Create the bucket if it doesn't already exist."""
        try:
            self.client.head_bucket(Bucket=bucket)
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            if error_code in ("404", "NoSuchBucket"):
                self.client.create_bucket(Bucket=bucket)
                logger.info(f"Storage bucket '{bucket}' created")
            else:
                raise

    def upload(self, bucket: str, key: str, file_bytes: bytes, content_type: str) -> str:
        self.ensure_bucket_exists(bucket)
        self.client.put_object(
            Bucket=bucket,
            Key=key,
            Body=file_bytes,
            ContentType=content_type,
        )
        return key

    def download(self, bucket: str, key: str) -> Optional[StoredObject]:
        """Return the object, or None if it does not exist."""
        try:
            resp = self.client.get_object(Bucket=bucket, Key=key)
        except ClientError as e:
            if e.response["Error"]["Code"] in ("404", "NoSuchKey"):
                return None
            raise
        return StoredObject(resp["Body"].read(), resp.get("ContentType"))


class UploadTooLarge(Exception):
    pass


async def read_upload(file, max_bytes: int) -> bytes:
    """Read an UploadFile, never holding more than `max_bytes + 1` bytes."""
    size = getattr(file, "size", None)
    if size is not None and size > max_bytes:
        raise UploadTooLarge(f"{size} bytes exceeds {max_bytes}")
    data = await file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise UploadTooLarge(f"more than {max_bytes} bytes")
    return data


def build_object_key(prefix: str, original_filename: str) -> str:
    """`<prefix>/<timestamp>-<short id>-<safe name>`"""
    safe_name = original_filename.replace(" ", "_").replace("/", "_")
    unique_id = str(uuid.uuid4())[:8]
    timestamp = datetime.utcnow().strftime("%Y%m%d%H%M%S")
    return f"{prefix}/{timestamp}-{unique_id}-{safe_name}"


_storage = StorageService()


def get_storage() -> StorageService:
    """FastAPI dependency returning the shared storage client."""
    return _storage
