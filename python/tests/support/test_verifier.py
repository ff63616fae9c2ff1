"""Test-only token verifier using locally generated RSA keypair.

This module provides MockJwtVerifier for use in tests only.
It is NOT part of the runtime code and should not be imported in production.

The verifier validates the same claim structure as OidcJwksVerifier
to catch config mistakes early during testing.
"""

import threading
from typing import Any

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.exceptions import InvalidTokenError

from photoshare.auth.verifier import (
    CLOCK_SKEW_SECONDS,
    REQUIRED_CLAIMS,
    require_subject,
    token_error,
)

TEST_ISSUER = "test-issuer"
TEST_AUDIENCE = "test-audience"


def generate_rsa_keypair() -> tuple[bytes, bytes]:
    """Generate a PEM-encoded (private, public) RSA keypair."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem, public_pem


class MockJwtVerifier:
    """Test token verifier using locally generated RSA keypair.

    Usage:
        from tests.support.test_verifier import MockJwtVerifier

        verifier = MockJwtVerifier()
        claims = verifier.verify(token)

        # To mint tokens, use the private key:
        private_key = MockJwtVerifier.get_private_key()
    """

    # Class-level RSA keypair (generated once)
    _private_key: bytes | None = None
    _public_key: bytes | None = None
    _lock = threading.Lock()

    def __init__(self, issuer: str = TEST_ISSUER, audience: str = TEST_AUDIENCE):
        self.issuer = issuer
        self.audience = audience
        self._ensure_keypair()

    @classmethod
    def _ensure_keypair(cls) -> None:
        with cls._lock:
            if cls._private_key is None:
                cls._private_key, cls._public_key = generate_rsa_keypair()

    @classmethod
    def get_private_key(cls) -> bytes:
        cls._ensure_keypair()
        assert cls._private_key is not None
        return cls._private_key

    @classmethod
    def get_public_key(cls) -> bytes:
        cls._ensure_keypair()
        assert cls._public_key is not None
        return cls._public_key

    def verify(self, token: str) -> dict[str, Any]:
        try:
            payload = jwt.decode(
                token,
                self.get_public_key(),
                algorithms=["RS256"],
                audience=self.audience,
                issuer=self.issuer,
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": REQUIRED_CLAIMS},
            )
        except InvalidTokenError as e:
            raise token_error(e) from e

        return require_subject(payload)
