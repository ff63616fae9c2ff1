"""Contact identifier hashing.

Contact identifiers supplied by the identity provider (phone number, email,
Apple ID) are only ever persisted and compared as one-way digests.
"""

import hashlib
from dataclasses import dataclass
from typing import Any

# Keys under the `firebase.identities` claim
PHONE_IDENTITY = "phone"
EMAIL_IDENTITY = "email"
APPLE_IDENTITY = "apple.com"


def hash_identity(value: str | None) -> str | None:
    """Return the hex SHA-256 digest of a contact identifier.

    Absence propagates: None in, None out.
    """
    if value is None:
        return None
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ContactIdentifiers:
    """Hashed contact identifiers for one user. Never plaintext."""

    phone_number: str | None = None
    email: str | None = None
    apple_id: str | None = None


def _first_identity(claims: dict[str, Any], identifier: str) -> str | None:
    identities = (claims.get("firebase") or {}).get("identities") or {}
    values = identities.get(identifier)
    if not isinstance(values, list) or not values:
        return None
    value = values[0]
    if not isinstance(value, str) or not value:
        return None
    return value


def contact_identifiers_from_claims(claims: dict[str, Any]) -> ContactIdentifiers:
    """Build hashed contact identifiers from verified token claims."""
    return ContactIdentifiers(
        phone_number=hash_identity(_first_identity(claims, PHONE_IDENTITY)),
        email=hash_identity(_first_identity(claims, EMAIL_IDENTITY)),
        apple_id=hash_identity(_first_identity(claims, APPLE_IDENTITY)),
    )
