"""Tests for the storage backends.

S3StorageBackend is exercised against a botocore Stubber for HEAD probes
and a recording client for bulk deletes.
"""

import boto3
import pytest
from botocore.exceptions import EndpointConnectionError
from botocore.stub import Stubber

from photoshare.storage.client import (
    MAX_KEYS_PER_DELETE,
    FakeStorageBackend,
    Filesizes,
    InvalidLengthError,
    ObjectNotFoundError,
    S3StorageBackend,
    StorageError,
)

ORIGINAL = "https://s3.test/photos/user/abc_original"


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


class RecordingS3Client:
    """Minimal stand-in recording head_object and delete_objects calls."""

    def __init__(self, errors_for: dict[str, list[dict]] | None = None):
        self.calls: list[dict] = []
        self.heads: list[tuple[str, str]] = []
        self.errors_for = errors_for or {}

    def head_object(self, Bucket, Key):
        self.heads.append((Bucket, Key))
        return {"ContentLength": len(Key)}

    def delete_objects(self, **kwargs):
        self.calls.append(kwargs)
        return {"Errors": self.errors_for.get(kwargs["Bucket"], [])}


class TestS3Filesizes:
    def test_probes_original_then_low(self, s3_client):
        with Stubber(s3_client) as stubber:
            stubber.add_response("head_object", {"ContentLength": 500000})
            stubber.add_response("head_object", {"ContentLength": 20000})

            sizes = S3StorageBackend(s3_client).filesizes(ORIGINAL)

            stubber.assert_no_pending_responses()
        assert sizes == Filesizes(original_bytes=500000, low_bytes=20000)

    def test_low_key_derived_from_original_key(self):
        client = RecordingS3Client()

        S3StorageBackend(client).filesizes("https://s3.test/photos_original/u/abc_original")

        assert client.heads == [
            ("photos_original", "u/abc_original"),
            ("photos_original", "u/abc_low"),
        ]

    def test_missing_object(self, s3_client):
        with Stubber(s3_client) as stubber:
            stubber.add_client_error(
                "head_object", service_error_code="404", http_status_code=404
            )
            with pytest.raises(ObjectNotFoundError):
                S3StorageBackend(s3_client).filesizes(ORIGINAL)

    def test_missing_low_representation(self, s3_client):
        with Stubber(s3_client) as stubber:
            stubber.add_response("head_object", {"ContentLength": 10})
            stubber.add_client_error(
                "head_object", service_error_code="NoSuchKey", http_status_code=404
            )
            with pytest.raises(ObjectNotFoundError):
                S3StorageBackend(s3_client).filesizes(ORIGINAL)

    def test_access_denied_is_a_storage_error(self, s3_client):
        with Stubber(s3_client) as stubber:
            stubber.add_client_error(
                "head_object", service_error_code="403", http_status_code=403
            )
            with pytest.raises(StorageError) as exc_info:
                S3StorageBackend(s3_client).filesizes(ORIGINAL)
        assert not isinstance(exc_info.value, ObjectNotFoundError)

    def test_transport_failure_is_a_storage_error(self):
        class Unreachable:
            def head_object(self, **kwargs):
                raise EndpointConnectionError(endpoint_url="https://s3.test")

        with pytest.raises(StorageError):
            S3StorageBackend(Unreachable()).filesizes(ORIGINAL)

    def test_negative_length_rejected(self):
        class Negative:
            def head_object(self, **kwargs):
                return {"ContentLength": -1}

        with pytest.raises(InvalidLengthError):
            S3StorageBackend(Negative()).filesizes(ORIGINAL)

    def test_malformed_locator_is_a_storage_error(self, s3_client):
        with pytest.raises(StorageError):
            S3StorageBackend(s3_client).filesizes("https://s3.test/")


class TestS3Delete:
    def test_one_quiet_request_per_container(self):
        client = RecordingS3Client()

        S3StorageBackend(client).delete(
            [
                "https://s3.test/b1/k1",
                "https://s3.test/b2/k2",
                "https://s3.test/b1/k3",
            ]
        )

        assert client.calls == [
            {
                "Bucket": "b1",
                "Delete": {"Objects": [{"Key": "k1"}, {"Key": "k3"}], "Quiet": True},
            },
            {"Bucket": "b2", "Delete": {"Objects": [{"Key": "k2"}], "Quiet": True}},
        ]

    def test_stops_at_first_failing_container(self):
        client = RecordingS3Client(
            errors_for={"b1": [{"Key": "k1", "Code": "AccessDenied", "Message": "denied"}]}
        )

        with pytest.raises(StorageError):
            S3StorageBackend(client).delete(["https://s3.test/b1/k1", "https://s3.test/b2/k2"])

        assert [call["Bucket"] for call in client.calls] == ["b1"]

    def test_large_container_split_into_capped_requests(self):
        client = RecordingS3Client()
        locators = [f"https://s3.test/b1/k{i}" for i in range(MAX_KEYS_PER_DELETE + 5)]

        S3StorageBackend(client).delete(locators)

        batches = [call["Delete"]["Objects"] for call in client.calls]
        assert [len(batch) for batch in batches] == [MAX_KEYS_PER_DELETE, 5]
        assert batches[1][0] == {"Key": f"k{MAX_KEYS_PER_DELETE}"}

    def test_failing_batch_stops_the_rest(self):
        class FailingFirstBatch(RecordingS3Client):
            def delete_objects(self, **kwargs):
                self.calls.append(kwargs)
                return {"Errors": [{"Key": "k0", "Code": "AccessDenied"}]}

        client = FailingFirstBatch()
        locators = [f"https://s3.test/b1/k{i}" for i in range(MAX_KEYS_PER_DELETE + 1)]
        locators.append("https://s3.test/b2/other")

        with pytest.raises(StorageError):
            S3StorageBackend(client).delete(locators)

        assert len(client.calls) == 1

    def test_malformed_locator_sends_nothing(self):
        client = RecordingS3Client()

        with pytest.raises(StorageError):
            S3StorageBackend(client).delete(["https://s3.test/b1/k1", "not a locator"])

        assert client.calls == []


class TestFakeStorageBackend:
    def test_filesizes_and_delete(self):
        storage = FakeStorageBackend()
        storage.put_object("photos", "user/abc_original", 7)
        storage.put_object("photos", "user/abc_low", 3)

        assert storage.filesizes(ORIGINAL) == Filesizes(7, 3)

        storage.delete(["https://s3.test/photos/user/abc_original"])
        assert not storage.has_object("photos", "user/abc_original")
        assert storage.has_object("photos", "user/abc_low")
        assert storage.delete_calls == [("photos", ["user/abc_original"])]

    def test_failing_container(self):
        storage = FakeStorageBackend()
        storage.failing_containers.add("b1")

        with pytest.raises(StorageError):
            storage.delete(["https://s3.test/b1/k1", "https://s3.test/b2/k2"])

        assert storage.delete_calls == [("b1", ["k1"])]
