"""Build the provider's consent-screen URL."""

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..config import ProviderConfig


def build_authorization_url(
    provider: ProviderConfig, code_challenge: str, state: str
) -> str:
    """
    Construct the authorization request URL for the provider.

    Query parameters already present on the authorize endpoint are kept.

    Args:
        provider: Provider configuration
        code_challenge: S256 PKCE challenge
        state: Signed state token

    Returns:
        Fully-qualified redirect URL
    """
    parts = urlsplit(provider.authorize_url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend(
        [
            ("response_type", "code"),
            ("client_id", provider.client_id),
            ("redirect_uri", provider.redirect_uri),
            ("scope", provider.scope),
            ("state", state),
            ("code_challenge", code_challenge),
            ("code_challenge_method", "S256"),
        ]
    )
    return urlunsplit(parts._replace(query=urlencode(query)))
