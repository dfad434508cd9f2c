"""Tests for the storage backends with mocked SDK clients."""
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from cleancheck.core.config import Settings
from cleancheck.infrastructure.storage import (
    MinioStorageService,
    R2StorageService,
    StorageError,
    create_storage_service,
    generate_evidence_path,
)


def test_generate_evidence_path():
    path = generate_evidence_path()
    assert path.startswith("evidence/")
    digits = path[len("evidence/"):]
    assert len(digits) == 11
    assert digits.isdigit()


class TestMinioStorage:

    def test_presigned_put(self):
        client = MagicMock()
        client.presigned_put_object.return_value = "https://minio.test/put"
        storage = MinioStorageService(client, "bucket")

        assert storage.presigned_put_url("evidence/1", 3600) == "https://minio.test/put"
        client.presigned_put_object.assert_called_once_with(
            bucket_name="bucket", object_name="evidence/1", expires=timedelta(seconds=3600)
        )

    def test_remove_objects_consumes_errors(self):
        client = MagicMock()
        client.remove_objects.return_value = iter([])
        storage = MinioStorageService(client, "bucket")

        storage.remove_objects(["evidence/1", "evidence/2"])

        kwargs = client.remove_objects.call_args.kwargs
        assert kwargs["bucket_name"] == "bucket"
        assert len(kwargs["delete_object_list"]) == 2

    def test_remove_objects_reports_failures(self):
        client = MagicMock()
        client.remove_objects.return_value = iter(["error"])
        storage = MinioStorageService(client, "bucket")

        with pytest.raises(StorageError):
            storage.remove_objects(["evidence/1"])

    def test_remove_nothing_skips_call(self):
        client = MagicMock()
        MinioStorageService(client, "bucket").remove_objects([])
        client.remove_objects.assert_not_called()

    def test_ensure_bucket_creates_missing(self):
        client = MagicMock()
        client.bucket_exists.return_value = False
        assert MinioStorageService(client, "bucket").ensure_bucket() is True
        client.make_bucket.assert_called_once_with(bucket_name="bucket")


class TestR2Storage:

    def test_presigned_get(self):
        client = MagicMock()
        client.generate_presigned_url.return_value = "https://r2.test/get"
        storage = R2StorageService(client, "bucket")

        assert storage.presigned_get_url("evidence/1", 60) == "https://r2.test/get"
        client.generate_presigned_url.assert_called_once_with(
            "get_object", Params={"Bucket": "bucket", "Key": "evidence/1"}, ExpiresIn=60
        )

    def test_remove_objects(self):
        client = MagicMock()
        client.delete_objects.return_value = {}
        R2StorageService(client, "bucket").remove_objects(["evidence/1"])

        client.delete_objects.assert_called_once_with(
            Bucket="bucket", Delete={"Objects": [{"Key": "evidence/1"}], "Quiet": True}
        )

    def test_remove_objects_partial_failure(self):
        client = MagicMock()
        client.delete_objects.return_value = {"Errors": [{"Key": "evidence/1", "Message": "denied"}]}

        with pytest.raises(StorageError):
            R2StorageService(client, "bucket").remove_objects(["evidence/1"])

    def test_ensure_bucket_existing(self):
        client = MagicMock()
        assert R2StorageService(client, "bucket").ensure_bucket() is False
        client.create_bucket.assert_not_called()

    def test_ensure_bucket_missing(self):
        client = MagicMock()
        client.head_bucket.side_effect = ClientError({"Error": {"Code": "404"}}, "HeadBucket")
        assert R2StorageService(client, "bucket").ensure_bucket() is True
        client.create_bucket.assert_called_once_with(Bucket="bucket")


class TestFactory:

    def test_unknown_backend(self):
        with pytest.raises(StorageError):
            create_storage_service(Settings(STORAGE_BACKEND="gcs"))

    def test_missing_minio_credentials(self):
        with pytest.raises(StorageError):
            create_storage_service(Settings(STORAGE_BACKEND="minio", MINIO_ENDPOINT=""))

    def test_minio_selected(self):
        settings = Settings(
            STORAGE_BACKEND="minio",
            MINIO_ENDPOINT="localhost",
            MINIO_ACCESS_KEY="key",
            MINIO_SECRET_KEY="secret",
        )
        assert isinstance(create_storage_service(settings), MinioStorageService)

    def test_r2_selected(self):
        settings = Settings(
            STORAGE_BACKEND="R2",
            R2_ACCOUNT_ID="acct",
            R2_ACCESS_KEY_ID="key",
            R2_SECRET_ACCESS_KEY="secret",
        )
        storage = create_storage_service(settings)
        assert isinstance(storage, R2StorageService)
        assert storage.bucket == settings.STORAGE_BUCKET
