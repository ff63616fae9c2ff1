"""Storage credential federation.

The CredentialBroker turns a caller's verified bearer token into a storage
backend whose permissions are limited to what the federated role grants
that caller. When a shared, service-wide backend is configured (self-hosted
deployments), the broker returns it for every request and never federates.
"""

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from photoshare.config import Settings
from photoshare.logging import get_logger
from photoshare.storage.client import S3StorageBackend, StorageBackend

logger = get_logger(__name__)


class MissingCredentialError(Exception):
    """No bearer token was available to exchange."""


class AuthExchangeError(Exception):
    """The federation service rejected or failed the credential exchange."""


def _s3_config(endpoint_url: str | None) -> Config:
    # Custom endpoints (MinIO and similar) only support path-style buckets.
    if endpoint_url:
        return Config(s3={"addressing_style": "path"})
    return Config()


def create_s3_client(
    *,
    access_key_id: str,
    secret_access_key: str,
    session_token: str | None = None,
    endpoint_url: str | None = None,
    region: str | None = None,
):
    """Create a boto3 S3 client for the given credentials."""
    return boto3.client(
        "s3",
        aws_access_key_id=access_key_id,
        aws_secret_access_key=secret_access_key,
        aws_session_token=session_token,
        endpoint_url=endpoint_url,
        region_name=region,
        config=_s3_config(endpoint_url),
    )


def create_shared_backend(settings: Settings) -> StorageBackend | None:
    """Build the service-wide backend from static credentials, if configured.

    Returns:
        S3StorageBackend when STORAGE_ACCESS_KEY_ID/SECRET are set, None otherwise.
    """
    if not settings.uses_shared_storage:
        return None
    s3_client = create_s3_client(
        access_key_id=settings.storage_access_key_id,  # type: ignore[arg-type]
        secret_access_key=settings.storage_secret_access_key,  # type: ignore[arg-type]
        endpoint_url=settings.aws_endpoint,
        region=settings.aws_region,
    )
    return S3StorageBackend(s3_client)


class CredentialBroker:
    """Resolves the storage backend for one request.

    Safe for concurrent use once constructed: it holds only read-only
    configuration and a thread-safe STS client.
    """

    def __init__(
        self,
        shared_backend: StorageBackend | None = None,
        *,
        role_arn: str,
        role_session_name: str,
        endpoint_url: str | None = None,
        region: str | None = None,
        duration_seconds: int = 3600,
        sts_client=None,
    ):
        """Initialize the broker.

        Args:
            shared_backend: Service-wide backend. When set, federation is disabled.
            role_arn: Role assumed with the caller's web identity token.
            role_session_name: Session name recorded for the assumed role.
            endpoint_url: Custom S3/STS endpoint.
            region: Region for STS and S3 clients.
            duration_seconds: Lifetime of the temporary credentials.
            sts_client: Injected boto3 STS client (created lazily if None).
        """
        self.shared_backend = shared_backend
        self.role_arn = role_arn
        self.role_session_name = role_session_name
        self.endpoint_url = endpoint_url
        self.region = region
        self.duration_seconds = duration_seconds
        self._sts = sts_client

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialBroker":
        return cls(
            create_shared_backend(settings),
            role_arn=settings.storage_role_arn,
            role_session_name=settings.storage_role_session_name,
            endpoint_url=settings.aws_endpoint,
            region=settings.aws_region,
            duration_seconds=settings.storage_credentials_ttl_s,
        )

    def _sts_client(self):
        if self._sts is None:
            self._sts = boto3.client(
                "sts", endpoint_url=self.endpoint_url, region_name=self.region
            )
        return self._sts

    def resolve(self, token: str | None) -> StorageBackend:
        """Return the storage backend for a caller.

        Args:
            token: The caller's raw bearer token.

        Returns:
            The shared backend if configured, else a backend scoped to the
            caller's temporary credentials.

        Raises:
            MissingCredentialError: No token to exchange.
            AuthExchangeError: The federation call failed.
        """
        if self.shared_backend is not None:
            return self.shared_backend

        if not token:
            raise MissingCredentialError("unable to extract token from request")

        try:
            result = self._sts_client().assume_role_with_web_identity(
                RoleArn=self.role_arn,
                RoleSessionName=self.role_session_name,
                WebIdentityToken=token,
                DurationSeconds=self.duration_seconds,
            )
            creds = result["Credentials"]
        except (ClientError, BotoCoreError, KeyError) as e:
            raise AuthExchangeError(f"AssumeRoleWithWebIdentity failed: {e}") from e

        s3_client = create_s3_client(
            access_key_id=creds["AccessKeyId"],
            secret_access_key=creds["SecretAccessKey"],
            session_token=creds["SessionToken"],
            endpoint_url=self.endpoint_url,
            region=self.region,
        )
        return S3StorageBackend(s3_client)
