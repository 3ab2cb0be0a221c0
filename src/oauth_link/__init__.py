"""Link third-party social accounts via OAuth 2.0 authorization code + PKCE."""

__version__ = "0.1.0"
