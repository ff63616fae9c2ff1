"""FastAPI application creation and configuration.

This module creates and configures the FastAPI application instance.
It registers exception handlers, middleware, and routes.

Process-wide collaborators live on app.state for the life of the process:
- store: MetadataStore (SQL)
- credential_broker: CredentialBroker (federated or shared storage)
- notifier: NotificationSink (OneSignal, or a no-op when unconfigured)
- claim_issuer: ClaimIssuer or None

Any of them can be injected through create_app (tests do); the lifespan
builds the ones that were not.

Middleware Ordering (Critical):
- Middleware runs in reverse order of registration
- RequestIDMiddleware is added LAST (add_request_id_middleware) so it runs FIRST

Actual execution order per request:
1. RequestIDMiddleware (sets request_id, starts timer)
2. DeadlineMiddleware (bounds everything below)
3. AuthMiddleware (verifies auth, sets viewer)
4. ThrottleMiddleware (caps concurrent data requests)
5. Route handler
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from photoshare.api.routes import create_api_router
from photoshare.auth.claims import ClaimIssuer, FirebaseClaimIssuer
from photoshare.auth.middleware import AuthMiddleware
from photoshare.auth.verifier import OidcJwksVerifier, TokenVerifier
from photoshare.config import Settings, get_settings
from photoshare.db.engine import create_db_engine
from photoshare.db.session import create_session_factory
from photoshare.db.store import MetadataStore, SqlMetadataStore
from photoshare.errors import ApiError, ApiErrorCode
from photoshare.logging import configure_logging, get_logger
from photoshare.middleware.deadline import DeadlineMiddleware
from photoshare.middleware.request_id import RequestIDMiddleware
from photoshare.middleware.throttle import ThrottleMiddleware
from photoshare.responses import (
    api_error_handler,
    error_response,
    http_exception_handler,
    unhandled_exception_handler,
)
from photoshare.services.notifications import NotificationSink, NullNotifier, OneSignalNotifier
from photoshare.storage.broker import CredentialBroker

# Configure structured logging at import time
configure_logging()

logger = get_logger(__name__)


def create_token_verifier(settings: Settings) -> OidcJwksVerifier:
    """Create the production token verifier from settings."""
    return OidcJwksVerifier(
        issuer=settings.normalized_issuer,  # type: ignore[arg-type]
        client_id=settings.oidc_client_id,  # type: ignore[arg-type]
        jwks_url=settings.oidc_jwks_url,
    )


def create_notifier(settings: Settings) -> NotificationSink:
    """OneSignal when configured, otherwise a notifier that drops everything."""
    if not settings.notifications_enabled:
        logger.warning("notifications_disabled", env=settings.photoshare_env.value)
        return NullNotifier()
    return OneSignalNotifier(
        app_id=settings.onesignal_app_id,  # type: ignore[arg-type]
        api_key=settings.onesignal_api_key,  # type: ignore[arg-type]
        url=settings.onesignal_url,
    )


def create_claim_issuer(settings: Settings) -> ClaimIssuer | None:
    if not settings.firebase_claims_enabled:
        return None
    return FirebaseClaimIssuer(settings.firebase_credentials_file)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build missing process-wide collaborators and release them at shutdown."""
    settings = get_settings()
    state = app.state
    created = []

    if getattr(state, "store", None) is None:
        engine = create_db_engine(settings.database_url)
        state.store = SqlMetadataStore(create_session_factory(engine))
        created.append(engine)

    if getattr(state, "credential_broker", None) is None:
        state.credential_broker = CredentialBroker.from_settings(settings)
        logger.info("credential_broker_initialized", shared=settings.uses_shared_storage)

    if getattr(state, "notifier", None) is None:
        state.notifier = create_notifier(settings)
        created.append(state.notifier)

    if not hasattr(state, "claim_issuer"):
        state.claim_issuer = create_claim_issuer(settings)
        created.append(state.claim_issuer)

    yield

    for resource in created:
        if hasattr(resource, "dispose"):
            resource.dispose()
        elif hasattr(resource, "close"):
            resource.close()
    logger.info("app_resources_released")


def create_app(
    skip_auth_middleware: bool = False,
    token_verifier: TokenVerifier | None = None,
    store: MetadataStore | None = None,
    credential_broker: CredentialBroker | None = None,
    notifier: NotificationSink | None = None,
    claim_issuer: ClaimIssuer | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        skip_auth_middleware: If True, skip adding auth middleware (for testing).
        token_verifier: Optional custom token verifier (for testing).
        store: Metadata store to use instead of one built from settings.
        credential_broker: Broker to use instead of one built from settings.
        notifier: Notification sink to use instead of one built from settings.
        claim_issuer: Claim issuer to use instead of one built from settings.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Photoshare API",
        description="Backend API for encrypted photo sharing between groups",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    if store is not None:
        app.state.store = store
    if credential_broker is not None:
        app.state.credential_broker = credential_broker
    if notifier is not None:
        app.state.notifier = notifier
    if claim_issuer is not None:
        app.state.claim_issuer = claim_issuer

    # Register exception handlers
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle request validation errors (including malformed JSON)."""
        return JSONResponse(
            status_code=400,
            content=error_response(ApiErrorCode.E_INVALID_REQUEST, "Invalid request body"),
        )

    # Use router factory to avoid import-time settings loading
    app.include_router(create_api_router())

    app.add_middleware(ThrottleMiddleware, max_concurrent=settings.max_concurrent_requests)

    # Add auth middleware (runs on all requests except public paths)
    if not skip_auth_middleware:
        verifier = token_verifier or create_token_verifier(settings)
        app.add_middleware(AuthMiddleware, verifier=verifier)
        logger.info("auth_middleware_enabled", env=settings.photoshare_env.value)

    app.add_middleware(DeadlineMiddleware, timeout_s=settings.request_timeout_s)

    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add request-id middleware to the app.

    This should be called AFTER all other middleware is added, so it runs FIRST.
    This ensures every response includes X-Request-ID, including auth failures.
    """
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
    logger.info("request_id_middleware_enabled")
