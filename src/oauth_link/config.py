"""Configuration management using Pydantic Settings."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class ProviderConfig(BaseModel):
    """Everything the flow needs to know about one OAuth2 provider."""

    name: str
    authorize_url: str
    token_url: str
    scopes: List[str]
    client_id: str
    client_secret: Optional[str] = None
    redirect_uri: str
    # "body" sends client_id (and secret) as form fields, "basic" uses HTTP Basic
    client_auth: Literal["body", "basic"] = "body"

    @property
    def scope(self) -> str:
        """Space-separated scope string as sent to the provider."""
        return " ".join(self.scopes)


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # Server Configuration
    server_host: str = "0.0.0.0"
    server_port: int = 8000
    log_level: str = "INFO"

    # Provider Configuration (defaults target X / Twitter OAuth 2.0)
    provider_name: str = "x"
    provider_authorize_url: str = "https://x.com/i/oauth2/authorize"
    provider_token_url: str = "https://api.twitter.com/2/oauth2/token"
    provider_scopes: List[str] = [
        "tweet.read",
        "tweet.write",
        "users.read",
        "offline.access",
    ]
    provider_client_auth: Literal["body", "basic"] = "body"

    # OAuth Client Configuration
    oauth_client_id: str = Field(
        default="",
        description="Client ID registered with the provider",
    )
    oauth_client_secret: str = Field(
        default="",
        description="Client secret, required when provider_client_auth is basic",
    )
    oauth_redirect_uri: str = Field(
        default="http://localhost:8000/auth/callback",
        description="Redirect URI, must exactly match the one registered with the provider",
    )

    # Session secrets
    session_secret: str = Field(
        default="",
        description="HMAC key used to sign the OAuth state parameter",
    )
    state_max_age_seconds: int = Field(default=600, ge=300, le=900)
    cookie_secure: bool = True

    # Where the browser lands after a successful link
    home_url: str = "/"

    # Identity verification (JWT bearer tokens checked against a JWKS)
    identity_jwks_url: str = ""
    identity_issuer: Optional[str] = None
    identity_audience: Optional[str] = None
    identity_algorithms: List[str] = ["RS256"]
    on_unverified_identity: Literal["anonymize", "reject"] = "anonymize"

    # Credential store; in-memory when unset
    redis_url: str = ""

    # Outbound HTTP deadline
    http_timeout_seconds: float = 20.0

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def provider(self) -> ProviderConfig:
        """Provider configuration assembled from the flat settings."""
        return ProviderConfig(
            name=self.provider_name,
            authorize_url=self.provider_authorize_url,
            token_url=self.provider_token_url,
            scopes=self.provider_scopes,
            client_id=self.oauth_client_id,
            client_secret=self.oauth_client_secret or None,
            redirect_uri=self.oauth_redirect_uri,
            client_auth=self.provider_client_auth,
        )

    @property
    def verifier_cookie_name(self) -> str:
        return f"{self.provider_name}_pkce_verifier"

    @property
    def state_cookie_name(self) -> str:
        return f"{self.provider_name}_oauth_state"

    def missing_configuration(self) -> List[str]:
        """Names of settings that must be set before the flow can run."""
        missing = []
        if not self.oauth_client_id:
            missing.append("oauth_client_id")
        if not self.session_secret:
            missing.append("session_secret")
        if self.provider_client_auth == "basic" and not self.oauth_client_secret:
            missing.append("oauth_client_secret")
        return missing


# Singleton instance
settings = Settings()
