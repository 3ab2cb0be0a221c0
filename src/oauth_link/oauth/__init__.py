"""OAuth 2.0 authorization code + PKCE account linking flow."""

from .pkce import generate_pkce_pair
from .routes import get_oauth_routes
from .state import sign_state, verify_state

__all__ = [
    "get_oauth_routes",
    "generate_pkce_pair",
    "sign_state",
    "verify_state",
]
