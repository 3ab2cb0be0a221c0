"""Application entry point - creates and configures the Starlette application."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from .config import Settings, settings as default_settings
from .identity.verifier import get_identity_verifier
from .oauth.routes import get_oauth_routes
from .oauth.token_client import TokenExchangeClient
from .store.base import CredentialStore
from .store.memory import InMemoryCredentialStore
from .store.redis_store import RedisCredentialStore

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_credential_store(settings: Settings) -> CredentialStore:
    """Redis store when a URL is configured, in-memory otherwise."""
    if settings.redis_url:
        logger.info("Using Redis credential store")
        return RedisCredentialStore.from_url(settings.redis_url)
    logger.warning("REDIS_URL not set; linked credentials are kept in memory only")
    return InMemoryCredentialStore()


async def healthz(request: Request) -> JSONResponse:
    """
    Health check endpoint.

    Returns 200 OK if the server is running.
    """
    return JSONResponse(
        content={
            "status": "healthy",
            "service": "oauth-link",
            "version": "0.1.0",
        }
    )


async def root(request: Request) -> JSONResponse:
    """Root endpoint with server information."""
    settings: Settings = request.app.state.settings
    return JSONResponse(
        content={
            "name": "OAuth Link",
            "version": "0.1.0",
            "description": "Links third-party accounts via OAuth 2.0 authorization code + PKCE",
            "provider": settings.provider_name,
            "endpoints": {
                "health": "/healthz",
                "auth_start": "/auth/start",
                "auth_callback": "/auth/callback",
            },
        }
    )


def create_app(
    settings: Optional[Settings] = None,
    token_client: Optional[TokenExchangeClient] = None,
    credential_store: Optional[CredentialStore] = None,
    identity_verifier=None,
) -> Starlette:
    """
    Create the Starlette application with all routes.

    Collaborators default to the ones described by the settings; passing
    them in replaces them (tests script the provider this way).

    Returns:
        Configured Starlette application
    """
    settings = settings or default_settings
    if token_client is None:
        token_client = TokenExchangeClient(
            settings.provider, timeout_seconds=settings.http_timeout_seconds
        )
    if credential_store is None:
        credential_store = create_credential_store(settings)
    if identity_verifier is None:
        identity_verifier = get_identity_verifier(settings)

    @asynccontextmanager
    async def lifespan(app):
        """Application lifespan handler for startup/shutdown."""
        # Startup
        logger.info("Starting OAuth Link server...")
        logger.info(f"Provider: {settings.provider_name}")
        logger.info(f"Redirect URI: {settings.oauth_redirect_uri}")
        missing = settings.missing_configuration()
        if missing:
            logger.warning(f"Missing configuration: {', '.join(missing)}")
        if identity_verifier is None:
            logger.warning(
                "No identity verifier configured; "
                f"unverified callbacks will {settings.on_unverified_identity}"
            )

        await token_client.start()
        logger.info("OAuth Link server ready")
        yield

        # Shutdown
        logger.info("Shutting down OAuth Link server...")
        await token_client.stop()
        if isinstance(credential_store, RedisCredentialStore):
            await credential_store.close()
        logger.info("Shutdown complete")

    routes = [
        Route("/", endpoint=root, methods=["GET"]),
        Route("/healthz", endpoint=healthz, methods=["GET"]),
        *get_oauth_routes(),
    ]

    app = Starlette(routes=routes, lifespan=lifespan)
    app.state.settings = settings
    app.state.token_client = token_client
    app.state.credential_store = credential_store
    app.state.identity_verifier = identity_verifier

    return app


def main():
    """Run the server using uvicorn."""
    import uvicorn

    configure_logging(default_settings.log_level)
    uvicorn.run(
        create_app(),
        host=default_settings.server_host,
        port=default_settings.server_port,
        log_level=default_settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
