"""Authentication and authorization module.

This module provides:
- Token verification (OIDC JWKS verifier)
- Auth middleware for FastAPI
- Request state with viewer identity
- Contact identifier hashing

Note: Test-only verifiers are in tests/support/test_verifier.py
"""

from photoshare.auth.identity import ContactIdentifiers, hash_identity
from photoshare.auth.middleware import AuthMiddleware, Viewer, get_viewer
from photoshare.auth.verifier import OidcJwksVerifier, TokenVerifier

__all__ = [
    "AuthMiddleware",
    "ContactIdentifiers",
    "OidcJwksVerifier",
    "TokenVerifier",
    "Viewer",
    "get_viewer",
    "hash_identity",
]
