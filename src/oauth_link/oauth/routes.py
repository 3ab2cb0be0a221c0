"""Account linking endpoints: the initiator and the provider callback."""

import hmac
import logging
from typing import List

from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, RedirectResponse, Response
from starlette.routing import Route

from ..config import Settings
from ..errors import CsrfRejectedError, LinkFlowError, NotConfiguredError, ProtocolError
from ..identity.linker import resolve_subject
from ..store.base import save_credential
from .authorize import build_authorization_url
from .cookies import clear_session_cookies, read_session_cookies, set_session_cookies
from .pkce import generate_pkce_pair
from .state import sign_state, verify_state

logger = logging.getLogger(__name__)

NO_STORE = {"Cache-Control": "no-store"}


def error_response(error: LinkFlowError) -> Response:
    """Render a flow error; upstream bodies are passed through as-is."""
    content = error.to_content()
    if content is None:
        # JSON null from upstream
        content = ""
    if isinstance(content, (dict, list)):
        return JSONResponse(status_code=error.status_code, content=content, headers=NO_STORE)
    return PlainTextResponse(str(content), status_code=error.status_code, headers=NO_STORE)


def _require_configuration(settings: Settings) -> None:
    missing = settings.missing_configuration()
    if missing:
        logger.error(f"OAuth flow not configured, missing: {', '.join(missing)}")
        raise NotConfiguredError("OAuth flow is not configured")


async def auth_start(request: Request) -> Response:
    """
    GET /auth/start - Initiates the OAuth 2.0 authorization code flow.

    Generates a PKCE pair and a signed state, stores both in short-lived
    cookies and redirects the browser to the provider's consent screen.
    """
    settings: Settings = request.app.state.settings

    try:
        _require_configuration(settings)
    except NotConfiguredError as e:
        return error_response(e)

    code_verifier, code_challenge = generate_pkce_pair()
    state = sign_state(settings.session_secret)
    auth_url = build_authorization_url(settings.provider, code_challenge, state)

    response = RedirectResponse(url=auth_url, status_code=302, headers=NO_STORE)
    set_session_cookies(response, code_verifier, state, settings)

    logger.info(f"Redirecting to '{settings.provider_name}' consent screen")
    return response


async def _complete_link(request: Request) -> Response:
    settings: Settings = request.app.state.settings
    _require_configuration(settings)

    error = request.query_params.get("error")
    if error:
        logger.info(f"Provider returned error on callback: {error}")
        return JSONResponse(
            status_code=400,
            content={
                "error": error,
                "error_description": request.query_params.get("error_description", ""),
            },
            headers=NO_STORE,
        )

    # RECEIVED
    code = request.query_params.get("code")
    state = request.query_params.get("state")
    if not code or not state:
        raise ProtocolError("Missing code or state parameter")

    # STATE_CHECKED
    if not verify_state(
        state, settings.session_secret, max_age_seconds=settings.state_max_age_seconds
    ):
        logger.warning("CSRF_REJECTED: state signature or age check failed")
        raise CsrfRejectedError("State signature or age check failed")

    # VERIFIER_RETRIEVED
    session = read_session_cookies(request, settings)
    if not hmac.compare_digest(session.state.encode("utf-8"), state.encode("utf-8")):
        logger.warning("CSRF_REJECTED: state does not match this browser session")
        raise CsrfRejectedError("State does not match session cookie")

    # CODE_EXCHANGED
    tokens = await request.app.state.token_client.exchange_code(
        code, session.code_verifier
    )

    # IDENTITY_RESOLVED
    subject_id = await resolve_subject(
        request,
        request.app.state.identity_verifier,
        policy=settings.on_unverified_identity,
    )

    # PERSISTED
    await save_credential(
        request.app.state.credential_store,
        subject_id,
        settings.provider_name,
        tokens,
    )

    # REDIRECTED_HOME
    response = RedirectResponse(url=settings.home_url, status_code=302, headers=NO_STORE)
    clear_session_cookies(response, settings)
    return response


async def auth_callback(request: Request) -> Response:
    """
    GET /auth/callback - Handles the provider redirect.

    Verifies the signed state against the session cookie, exchanges the code
    with the PKCE verifier, resolves the caller's identity and stores the
    resulting credential before sending the browser home.

    Query params:
        code: Authorization code from the provider
        state: State parameter for CSRF protection
        error: Error code if authorization failed
        error_description: Error description
    """
    try:
        return await _complete_link(request)
    except LinkFlowError as e:
        logger.info(f"Link attempt failed with {e.code} ({e.status_code})")
        return error_response(e)


def get_oauth_routes() -> List[Route]:
    """Return routes for the account linking endpoints."""
    return [
        Route("/auth/start", endpoint=auth_start, methods=["GET"]),
        Route("/auth/callback", endpoint=auth_callback, methods=["GET"]),
    ]
