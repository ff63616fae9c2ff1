"""Test helpers for authentication and common test operations.

Provides:
- Token minting for test authentication
- Header generation for test requests
- Viewer and user registration helpers
- Asset request builders and storage seeding
- A notifier that records instead of sending
"""

import time
from dataclasses import dataclass, field
from uuid import uuid4

import jwt

from photoshare.auth.identity import contact_identifiers_from_claims
from photoshare.auth.middleware import Viewer
from photoshare.db.store import MetadataStore
from photoshare.schemas.assets import CreateAssetRequest
from photoshare.services import users as users_service
from photoshare.services.notifications import NotificationKind
from photoshare.storage.client import FakeStorageBackend
from tests.support.test_verifier import (
    TEST_AUDIENCE,
    TEST_ISSUER,
    MockJwtVerifier,
    generate_rsa_keypair,
)

DEFAULT_EXPIRES_IN = 3600  # 1 hour

BUCKET = "photos"
STORAGE_HOST = "https://storage.test"


# =============================================================================
# Tokens
# =============================================================================


def identity_claims(phone: str | None = None, email: str | None = None) -> dict:
    """Build a `firebase.identities` claim carrying the given contacts."""
    identities: dict[str, list[str]] = {}
    if phone is not None:
        identities["phone"] = [phone]
    if email is not None:
        identities["email"] = [email]
    return {"firebase": {"identities": identities}}


def mint_test_token(
    subject: str,
    expires_in: int = DEFAULT_EXPIRES_IN,
    issuer: str = TEST_ISSUER,
    audience: str = TEST_AUDIENCE,
    **extra_claims,
) -> str:
    """Mint a valid test JWT token.

    Args:
        subject: The `sub` claim.
        expires_in: Token validity in seconds from now.
        issuer: The `iss` claim value.
        audience: The `aud` claim value.
        **extra_claims: Additional claims to include in the token.

    Returns:
        A signed JWT token string.
    """
    now = int(time.time())
    payload = {
        "sub": subject,
        "iss": issuer,
        "aud": audience,
        "iat": now,
        "exp": now + expires_in,
        **extra_claims,
    }
    return jwt.encode(payload, MockJwtVerifier.get_private_key(), algorithm="RS256")


def mint_expired_token(subject: str) -> str:
    """Mint a token that expired 1 hour ago."""
    return mint_test_token(subject, expires_in=-3600)


def mint_token_with_bad_signature(subject: str) -> str:
    """Mint a token signed with a different key (bad signature)."""
    private_key, _ = generate_rsa_keypair()
    now = int(time.time())
    payload = {
        "sub": subject,
        "iss": TEST_ISSUER,
        "aud": TEST_AUDIENCE,
        "iat": now,
        "exp": now + DEFAULT_EXPIRES_IN,
    }
    return jwt.encode(payload, private_key, algorithm="RS256")


def auth_headers(subject: str, phone: str | None = None, email: str | None = None) -> dict:
    """Return headers dict with valid Authorization for the given subject."""
    token = mint_test_token(subject, **identity_claims(phone, email))
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# Viewers and users
# =============================================================================


def make_viewer(subject: str | None = None, phone: str | None = None, email: str | None = None):
    """Build a Viewer the way AuthMiddleware would from verified claims."""
    subject = subject or f"subject-{uuid4().hex[:12]}"
    claims = identity_claims(phone, email)
    return Viewer(
        subject=subject,
        token=f"token-for-{subject}",
        contacts=contact_identifiers_from_claims(claims),
    )


@dataclass
class RegisteredUser:
    viewer: Viewer
    user_id: str
    public_key: str


def register(
    store: MetadataStore,
    subject: str | None = None,
    phone: str | None = None,
    email: str | None = None,
) -> RegisteredUser:
    """Register a user through the service layer."""
    viewer = make_viewer(subject, phone, email)
    public_key = f"pk-{viewer.subject}"
    user_id = users_service.register_user(store, viewer, public_key, f"sk-{viewer.subject}")
    return RegisteredUser(viewer=viewer, user_id=user_id, public_key=public_key)


# =============================================================================
# Assets and storage
# =============================================================================


def original_locator(base: str, container: str = BUCKET) -> str:
    return f"{STORAGE_HOST}/{container}/{base}_original"


def low_locator(base: str, container: str = BUCKET) -> str:
    return f"{STORAGE_HOST}/{container}/{base}_low"


def asset_request(
    asset_id: str | None = None,
    base: str | None = None,
    with_original: bool = True,
    **overrides,
) -> CreateAssetRequest:
    """Build a valid CreateAssetRequest whose locators derive from `base`."""
    asset_id = str(uuid4()) if asset_id is None else asset_id
    base = base or f"user/{asset_id}"
    fields = {
        "asset_id": asset_id,
        "type": "photo",
        "remote_path": low_locator(base),
        "remote_path_original": original_locator(base) if with_original else None,
        "pixel_width": 4032,
        "pixel_height": 3024,
        "md5": "d41d8cd98f00b204e9800998ecf8427e",
        "key": f"key-{asset_id}",
    }
    fields.update(overrides)
    return CreateAssetRequest(**fields)


def seed_objects(
    storage: FakeStorageBackend,
    base: str,
    original_bytes: int,
    low_bytes: int,
    container: str = BUCKET,
) -> None:
    """Put both representations of an asset in fake storage."""
    storage.put_object(container, f"{base}_original", original_bytes)
    storage.put_object(container, f"{base}_low", low_bytes)


# =============================================================================
# Notifications
# =============================================================================


@dataclass
class RecordingNotifier:
    """NotificationSink that records every call. Optionally fails."""

    sent: list[tuple[list[str], NotificationKind, dict | None]] = field(default_factory=list)
    error: Exception | None = None

    def notify(self, user_ids, kind, data=None) -> None:
        self.sent.append((list(user_ids), kind, data))
        if self.error is not None:
            raise self.error

    def kinds(self) -> list[NotificationKind]:
        return [kind for _, kind, _ in self.sent]

    def clear(self) -> None:
        self.sent.clear()


class SpyStore:
    """Wraps a MetadataStore and records the name of every operation called."""

    def __init__(self, inner: MetadataStore):
        self._inner = inner
        self.calls: list[str] = []

    def __getattr__(self, name):
        attr = getattr(self._inner, name)
        if not callable(attr):
            return attr

        def recorded(*args, **kwargs):
            self.calls.append(name)
            return attr(*args, **kwargs)

        return recorded
