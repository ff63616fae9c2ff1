"""Object storage backend abstraction.

Provides a narrow interface over the object store:
- Byte footprint of an asset's two representations (HEAD probes only)
- Bulk deletion of stored objects, container by container

Backends are either one shared, caller-agnostic instance configured from
process settings, or a short-lived instance scoped to one caller's
federated credentials (see photoshare.storage.broker).
"""

from abc import ABC, abstractmethod
from typing import NamedTuple

from botocore.exceptions import BotoCoreError, ClientError

from photoshare.logging import get_logger
from photoshare.storage.locators import (
    InvalidLocatorError,
    group_by_container,
    representation_keys,
)

logger = get_logger(__name__)

NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}

# S3 DeleteObjects limit.
MAX_KEYS_PER_DELETE = 1000


class StorageError(Exception):
    """Storage operation error."""

    def __init__(self, message: str, code: str = "E_STORAGE_ERROR"):
        super().__init__(message)
        self.message = message
        self.code = code


class ObjectNotFoundError(StorageError):
    """A probed object does not exist."""

    def __init__(self, message: str):
        super().__init__(message, code="E_STORAGE_MISSING")


class InvalidLengthError(StorageError):
    """The backend reported a negative object length."""

    def __init__(self, message: str):
        super().__init__(message, code="E_STORAGE_INVALID_LENGTH")


class Filesizes(NamedTuple):
    """Byte lengths of an asset's two representations."""

    original_bytes: int
    low_bytes: int


class StorageBackend(ABC):
    """Abstract base class for storage backends."""

    @abstractmethod
    def filesizes(self, locator: str) -> Filesizes:
        """Probe the sizes of both representations of an asset.

        Args:
            locator: Original-representation locator. The low-representation
                key is derived from it.

        Returns:
            Filesizes with original and low byte lengths.

        Raises:
            ObjectNotFoundError: If either object is absent.
            InvalidLengthError: If a probe reports a negative length.
            StorageError: On any other backend failure or a malformed locator.
        """
        ...

    @abstractmethod
    def delete(self, locators: list[str]) -> None:
        """Irrevocably delete objects, one bulk request per container.

        Backends whose bulk request is capped (S3 takes MAX_KEYS_PER_DELETE
        keys) split a container into consecutive requests. Containers and
        their requests are processed sequentially. The first failing container
        raises and the remaining containers are not attempted. Containers
        already deleted are not restored.

        Raises:
            StorageError: On the first container failure or a malformed locator.
        """
        ...


def _representation_keys(locator: str) -> tuple[str, str, str]:
    try:
        return representation_keys(locator)
    except InvalidLocatorError as e:
        raise StorageError(str(e), code="E_INVALID_LOCATOR") from e


def _group_by_container(locators: list[str]) -> dict[str, list[str]]:
    try:
        return group_by_container(locators)
    except InvalidLocatorError as e:
        raise StorageError(str(e), code="E_INVALID_LOCATOR") from e


def _checked_length(length: int | None, container: str, key: str) -> int:
    if length is None or length < 0:
        raise InvalidLengthError(f"Content length {length} < 0 for {container}/{key}")
    return length


class S3StorageBackend(StorageBackend):
    """S3-compatible storage backend.

    Wraps a boto3 S3 client. The client's credentials determine the
    effective permissions of this backend.
    """

    def __init__(self, s3_client):
        """Initialize the backend.

        Args:
            s3_client: A boto3 S3 client (botocore BaseClient).
        """
        self._s3 = s3_client

    def _content_length(self, container: str, key: str) -> int:
        try:
            result = self._s3.head_object(Bucket=container, Key=key)
        except ClientError as e:
            error_code = str(e.response.get("Error", {}).get("Code", ""))
            if error_code in NOT_FOUND_CODES:
                raise ObjectNotFoundError(f"Object not found: {container}/{key}") from e
            raise StorageError(f"HEAD {container}/{key} failed: {error_code}") from e
        except BotoCoreError as e:
            raise StorageError(f"HEAD {container}/{key} failed: {e}") from e
        return _checked_length(result.get("ContentLength"), container, key)

    def filesizes(self, locator: str) -> Filesizes:
        container, original_key, low_key = _representation_keys(locator)
        original_bytes = self._content_length(container, original_key)
        low_bytes = self._content_length(container, low_key)
        return Filesizes(original_bytes=original_bytes, low_bytes=low_bytes)

    def delete(self, locators: list[str]) -> None:
        for container, keys in _group_by_container(locators).items():
            for start in range(0, len(keys), MAX_KEYS_PER_DELETE):
                self._delete_batch(container, keys[start : start + MAX_KEYS_PER_DELETE])
            logger.info("storage_objects_deleted", container=container, count=len(keys))

    def _delete_batch(self, container: str, keys: list[str]) -> None:
        try:
            response = self._s3.delete_objects(
                Bucket=container,
                Delete={"Objects": [{"Key": key} for key in keys], "Quiet": True},
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Bulk delete failed for container {container}: {e}") from e

        errors = response.get("Errors") or []
        if errors:
            first = errors[0]
            raise StorageError(
                f"Bulk delete failed for {len(errors)} object(s) in {container}: "
                f"{first.get('Key')} {first.get('Code')}"
            )


class FakeStorageBackend(StorageBackend):
    """Fake storage backend for testing without a real object store.

    Stores object sizes in memory and records every bulk delete request.
    """

    def __init__(self):
        self._objects: dict[tuple[str, str], int] = {}  # (container, key) -> size
        self.delete_calls: list[tuple[str, list[str]]] = []  # (container, keys)
        self.probe_calls: list[str] = []  # locators passed to filesizes
        self.failing_containers: set[str] = set()

    def filesizes(self, locator: str) -> Filesizes:
        self.probe_calls.append(locator)
        container, original_key, low_key = _representation_keys(locator)
        sizes = []
        for key in (original_key, low_key):
            if (container, key) not in self._objects:
                raise ObjectNotFoundError(f"Object not found: {container}/{key}")
            sizes.append(_checked_length(self._objects[(container, key)], container, key))
        return Filesizes(original_bytes=sizes[0], low_bytes=sizes[1])

    def delete(self, locators: list[str]) -> None:
        for container, keys in _group_by_container(locators).items():
            self.delete_calls.append((container, list(keys)))
            if container in self.failing_containers:
                raise StorageError(f"Bulk delete failed for container {container}")
            for key in keys:
                self._objects.pop((container, key), None)

    # Test helper methods

    def put_object(self, container: str, key: str, size: int) -> None:
        """Store an object's size directly (test helper)."""
        self._objects[(container, key)] = size

    def has_object(self, container: str, key: str) -> bool:
        """Check whether an object exists (test helper)."""
        return (container, key) in self._objects

    def clear(self) -> None:
        """Clear all stored objects and recorded calls (test helper)."""
        self._objects.clear()
        self.delete_calls.clear()
        self.probe_calls.clear()
        self.failing_containers.clear()
