"""Browser-held session secrets for the two legs of the redirect flow."""

from dataclasses import dataclass

from starlette.requests import Request
from starlette.responses import Response

from ..config import Settings
from ..errors import ProtocolError


@dataclass(frozen=True)
class SessionSecrets:
    """PKCE verifier and signed state read back from the callback request."""

    code_verifier: str
    state: str


def _cookie_options(settings: Settings) -> dict:
    return {
        "path": "/",
        "secure": settings.cookie_secure,
        "httponly": True,
        "samesite": "lax",
    }


def set_session_cookies(
    response: Response, code_verifier: str, state: str, settings: Settings
) -> None:
    """Attach the verifier and state cookies to the initiator's redirect."""
    options = _cookie_options(settings)
    max_age = settings.state_max_age_seconds
    response.set_cookie(
        settings.verifier_cookie_name, code_verifier, max_age=max_age, **options
    )
    response.set_cookie(settings.state_cookie_name, state, max_age=max_age, **options)


def read_session_cookies(request: Request, settings: Settings) -> SessionSecrets:
    """
    Read both session cookies from the callback request.

    Raises:
        ProtocolError: If either cookie is absent
    """
    code_verifier = request.cookies.get(settings.verifier_cookie_name)
    if not code_verifier:
        raise ProtocolError("Missing PKCE verifier cookie")

    state = request.cookies.get(settings.state_cookie_name)
    if not state:
        raise ProtocolError("Missing state cookie")

    return SessionSecrets(code_verifier=code_verifier, state=state)


def clear_session_cookies(response: Response, settings: Settings) -> None:
    """Expire both session cookies (Max-Age=0)."""
    options = _cookie_options(settings)
    response.delete_cookie(settings.verifier_cookie_name, **options)
    response.delete_cookie(settings.state_cookie_name, **options)
