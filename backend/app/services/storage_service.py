"""
Object storage for uploaded design files.

Two backends share the ObjectStore contract: put(path, bytes) returns a
retrievable URL or raises StorageFailure.

- LocalObjectStore writes under settings.UPLOAD_DIR (served by main.py)
- S3ObjectStore writes to settings.AWS_S3_BUCKET_NAME through boto3
"""
import logging
import re
import uuid
from pathlib import Path
from typing import Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.config import settings
from app.services.design_errors import StorageFailure

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _safe_segment(value: str) -> str:
    return _UNSAFE_CHARS.sub("_", value.strip()).strip("_") or "file"


def build_object_path(project_id: int, category: str, filename: str) -> str:
    """
    Generate a unique object key for a design upload.

    Format: projects/{project_id}/designs/{category}/{uuid}_{filename}
    """
    unique_id = uuid.uuid4().hex[:12]
    return f"projects/{project_id}/designs/{_safe_segment(category)}/{unique_id}_{_safe_segment(filename)}"


class ObjectStore:
    """Contract for design file storage backends."""

    def put(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store data at path and return its public URL."""
        raise NotImplementedError

    def get_bucket_limits(self) -> Dict[str, int]:
        """Informational upload limits."""
        return {"max_bytes": settings.MAX_FILE_SIZE}


class LocalObjectStore(ObjectStore):
    """Filesystem-backed store for development and single-host deployments."""

    def __init__(self, root: Optional[str] = None, public_url: Optional[str] = None):
        self.root = Path(root or settings.UPLOAD_DIR)
        self.public_url = (public_url or settings.PUBLIC_FILES_URL).rstrip("/")

    def put(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        target = self.root / path
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            logger.error(f"[Storage] Failed to write {path}: {e}")
            raise StorageFailure(f"Failed to store {path}: {e}")
        logger.info(f"[Storage] Stored {path} ({len(data)} bytes)")
        return f"{self.public_url}/{path}"


class S3ObjectStore(ObjectStore):
    """Service for interacting with AWS S3 for design files."""

    def __init__(self):
        self.bucket_name = settings.AWS_S3_BUCKET_NAME
        self.region = settings.AWS_REGION

        if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
            self.s3_client = boto3.client(
                "s3",
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                region_name=self.region,
            )
        else:
            # Fall back to the default credential chain (instance role, env)
            self.s3_client = boto3.client("s3", region_name=self.region)
        logger.info(f"[Storage] S3 store initialized with bucket: {self.bucket_name}")

    def put(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=path,
                Body=data,
                ContentType=content_type or "application/octet-stream",
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"[Storage] Failed to upload {path} to S3: {e}")
            raise StorageFailure(f"Failed to upload {path}: {e}")
        logger.info(f"[Storage] Uploaded {path} to S3")
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{path}"


_object_store: Optional[ObjectStore] = None


def get_object_store() -> ObjectStore:
    """Get or create the configured object store (FastAPI dependency)."""
    global _object_store
    if _object_store is None:
        if settings.STORAGE_BACKEND == "s3":
            _object_store = S3ObjectStore()
        else:
            _object_store = LocalObjectStore()
    return _object_store
