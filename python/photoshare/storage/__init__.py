"""Storage module for object store operations.

Provides:
- StorageBackend abstraction with S3 and in-memory implementations
- CredentialBroker for per-caller federated storage credentials
- Locator parsing and representation key derivation
"""

from photoshare.storage.broker import (
    AuthExchangeError,
    CredentialBroker,
    MissingCredentialError,
    create_shared_backend,
)
from photoshare.storage.client import (
    FakeStorageBackend,
    Filesizes,
    InvalidLengthError,
    ObjectNotFoundError,
    S3StorageBackend,
    StorageBackend,
    StorageError,
)
from photoshare.storage.locators import low_key_for, low_locator_for, parse_locator

__all__ = [
    "AuthExchangeError",
    "CredentialBroker",
    "FakeStorageBackend",
    "Filesizes",
    "InvalidLengthError",
    "MissingCredentialError",
    "ObjectNotFoundError",
    "S3StorageBackend",
    "StorageBackend",
    "StorageError",
    "create_shared_backend",
    "low_key_for",
    "low_locator_for",
    "parse_locator",
]
