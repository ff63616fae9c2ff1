"""Custom identity claims.

A ClaimIssuer can grant a user direct federated credentials to the object
store by stamping a custom claim on their identity-provider account. The
issuer is optional; deployments without one answer claim requests with 501.
"""

from typing import Protocol

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin.exceptions import FirebaseError

from photoshare.logging import get_logger

logger = get_logger(__name__)

SELF_HOSTED_STORAGE_CLAIM = "self_hosted_storage"


class ClaimIssuerError(Exception):
    """The identity provider rejected or failed a claim update."""


class ClaimIssuer(Protocol):
    """Grants custom claims to identity-provider accounts."""

    def grant_self_hosted_storage(self, subject: str) -> None:
        """Allow `subject` to obtain storage credentials directly.

        Raises:
            ClaimIssuerError: If the claim could not be set.
        """
        ...


class FirebaseClaimIssuer:
    """ClaimIssuer backed by the Firebase Admin SDK."""

    APP_NAME = "photoshare-claims"

    def __init__(self, credentials_file: str | None = None):
        """Initialize the Firebase app used for claim updates.

        Args:
            credentials_file: Service account JSON path. Application default
                credentials are used when None.
        """
        credential = credentials.Certificate(credentials_file) if credentials_file else None
        self._app = firebase_admin.initialize_app(credential=credential, name=self.APP_NAME)

    def grant_self_hosted_storage(self, subject: str) -> None:
        try:
            firebase_auth.set_custom_user_claims(
                subject, {SELF_HOSTED_STORAGE_CLAIM: True}, app=self._app
            )
        except (FirebaseError, ValueError) as e:
            raise ClaimIssuerError(str(e)) from e
        logger.info("claims_granted", claim=SELF_HOSTED_STORAGE_CLAIM)

    def close(self) -> None:
        firebase_admin.delete_app(self._app)
