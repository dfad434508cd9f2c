"""
Object storage for report photo evidence.

The database only ever holds opaque storage paths; browsers upload and
download the bytes directly through presigned URLs. Two S3-compatible
backends are supported and one is chosen at startup from
``settings.STORAGE_BACKEND``:

    minio  - self-hosted MinIO (``minio`` SDK)
    r2     - Cloudflare R2 through its S3 API (``boto3``)

Usage:
    from ..infrastructure.storage import create_storage_service, StorageError

    storage = create_storage_service(settings)
    url = storage.presigned_get_url("evidence/12345678901", 3600)
"""
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import List
import logging
import secrets
import string

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from minio import Minio
from minio.deleteobjects import DeleteObject
from minio.error import S3Error

from ..core.config import Settings

logger = logging.getLogger(__name__)

EVIDENCE_PREFIX = "evidence/"


class StorageError(Exception):
    """Raised when storage operation fails."""
    pass


def generate_evidence_path() -> str:
    """Random object key for one evidence photo, e.g. ``evidence/48213907716``."""
    return EVIDENCE_PREFIX + "".join(secrets.choice(string.digits) for _ in range(11))


class StorageService(ABC):
    """Presigned-URL access to a single evidence bucket."""

    def __init__(self, bucket: str):
        self.bucket = bucket

    @abstractmethod
    def presigned_put_url(self, key: str, expiry_seconds: int) -> str:
        pass

    @abstractmethod
    def presigned_get_url(self, key: str, expiry_seconds: int) -> str:
        pass

    @abstractmethod
    def remove_objects(self, keys: List[str]) -> None:
        pass

    @abstractmethod
    def ensure_bucket(self) -> bool:
        """Create the bucket if missing. Returns True when it was created."""
        pass


class MinioStorageService(StorageService):
    """Evidence storage on a MinIO server."""

    def __init__(self, client: Minio, bucket: str):
        super().__init__(bucket)
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "MinioStorageService":
        if not (settings.MINIO_ENDPOINT and settings.MINIO_ACCESS_KEY and settings.MINIO_SECRET_KEY):
            raise StorageError(
                "MinIO configuration missing. Set MINIO_ENDPOINT, MINIO_ACCESS_KEY and MINIO_SECRET_KEY."
            )
        try:
            client = Minio(
                f"{settings.MINIO_ENDPOINT}:{settings.MINIO_PORT}",
                access_key=settings.MINIO_ACCESS_KEY,
                secret_key=settings.MINIO_SECRET_KEY,
                secure=settings.MINIO_USE_SSL,
                region=settings.MINIO_REGION,
            )
        except ValueError as e:
            # Endpoint must be a bare host name, without scheme or path
            raise StorageError(f"Invalid MinIO endpoint '{settings.MINIO_ENDPOINT}': {e}")
        return cls(client, settings.STORAGE_BUCKET)

    def presigned_put_url(self, key: str, expiry_seconds: int) -> str:
        try:
            return self.client.presigned_put_object(
                bucket_name=self.bucket,
                object_name=key,
                expires=timedelta(seconds=expiry_seconds),
            )
        except S3Error as e:
            logger.error(f"MinIO presign (PUT) failed for {key}: {e}")
            raise StorageError(f"Failed to presign upload URL: {e}")

    def presigned_get_url(self, key: str, expiry_seconds: int) -> str:
        try:
            return self.client.presigned_get_object(
                bucket_name=self.bucket,
                object_name=key,
                expires=timedelta(seconds=expiry_seconds),
            )
        except S3Error as e:
            logger.error(f"MinIO presign (GET) failed for {key}: {e}")
            raise StorageError(f"Failed to presign download URL: {e}")

    def remove_objects(self, keys: List[str]) -> None:
        if not keys:
            return
        # remove_objects is lazy; the deletion only happens while iterating the errors
        errors = list(self.client.remove_objects(
            bucket_name=self.bucket,
            delete_object_list=[DeleteObject(key) for key in keys],
        ))
        if errors:
            for error in errors:
                logger.error(f"MinIO delete failed: {error}")
            raise StorageError(f"Failed to delete {len(errors)} of {len(keys)} object(s)")
        logger.info(f"Deleted {len(keys)} evidence object(s) from MinIO")

    def ensure_bucket(self) -> bool:
        try:
            if self.client.bucket_exists(bucket_name=self.bucket):
                return False
            self.client.make_bucket(bucket_name=self.bucket)
            logger.info(f"Created MinIO bucket: {self.bucket}")
            return True
        except S3Error as e:
            logger.error(f"Error ensuring bucket {self.bucket} exists: {e}")
            raise StorageError(f"Bucket check failed: {e}")


class R2StorageService(StorageService):
    """Evidence storage on Cloudflare R2, addressed through the S3 API."""

    def __init__(self, client, bucket: str):
        super().__init__(bucket)
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "R2StorageService":
        if not (settings.R2_ACCOUNT_ID and settings.R2_ACCESS_KEY_ID and settings.R2_SECRET_ACCESS_KEY):
            raise StorageError(
                "R2 configuration missing. Set R2_ACCOUNT_ID, R2_ACCESS_KEY_ID and R2_SECRET_ACCESS_KEY."
            )
        client = boto3.client(
            "s3",
            endpoint_url=f"https://{settings.R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
            aws_access_key_id=settings.R2_ACCESS_KEY_ID,
            aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
            region_name="auto",
            config=BotoConfig(signature_version="s3v4"),
        )
        return cls(client, settings.STORAGE_BUCKET)

    def _presign(self, method: str, key: str, expiry_seconds: int) -> str:
        try:
            return self.client.generate_presigned_url(
                method,
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expiry_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"R2 presign ({method}) failed for {key}: {e}")
            raise StorageError(f"Failed to presign URL: {e}")

    def presigned_put_url(self, key: str, expiry_seconds: int) -> str:
        return self._presign("put_object", key, expiry_seconds)

    def presigned_get_url(self, key: str, expiry_seconds: int) -> str:
        return self._presign("get_object", key, expiry_seconds)

    def remove_objects(self, keys: List[str]) -> None:
        if not keys:
            return
        try:
            response = self.client.delete_objects(
                Bucket=self.bucket,
                Delete={"Objects": [{"Key": key} for key in keys], "Quiet": True},
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"R2 delete request failed: {e}")
            raise StorageError(f"Delete failed: {e}")
        errors = response.get("Errors", [])
        if errors:
            for error in errors:
                logger.error(f"R2 delete failed for {error.get('Key')}: {error.get('Message')}")
            raise StorageError(f"Failed to delete {len(errors)} of {len(keys)} object(s)")
        logger.info(f"Deleted {len(keys)} evidence object(s) from R2")

    def ensure_bucket(self) -> bool:
        try:
            self.client.head_bucket(Bucket=self.bucket)
            return False
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code not in ("404", "NoSuchBucket", "NotFound"):
                logger.error(f"Error checking bucket {self.bucket}: {e}")
                raise StorageError(f"Bucket check failed: {e}")
        try:
            self.client.create_bucket(Bucket=self.bucket)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error creating bucket {self.bucket}: {e}")
            raise StorageError(f"Bucket creation failed: {e}")
        logger.info(f"Created R2 bucket: {self.bucket}")
        return True


_BACKENDS = {
    "minio": MinioStorageService,
    "r2": R2StorageService,
}


def create_storage_service(settings: Settings) -> StorageService:
    """
    Build the storage backend named by STORAGE_BACKEND.

    Raises:
        StorageError: Unknown backend name or missing credentials
    """
    backend = settings.STORAGE_BACKEND.lower()
    if backend not in _BACKENDS:
        raise StorageError(f"Unknown STORAGE_BACKEND '{settings.STORAGE_BACKEND}' (expected one of {sorted(_BACKENDS)})")
    service = _BACKENDS[backend].from_settings(settings)
    logger.info(f"Storage backend '{backend}' initialized (bucket: {service.bucket})")
    return service
