"""Error taxonomy for the account linking flow."""

from typing import Any, Dict, Optional


class LinkFlowError(Exception):
    """
    Base exception for a failed authorization attempt.

    Every subclass is terminal for the current attempt. The only recovery
    path is starting over at /auth/start, which issues fresh PKCE and state.
    """

    code: str = "LINK_FLOW_ERROR"
    error: str = "server_error"
    status_code: int = 500

    def __init__(self, description: str, status_code: Optional[int] = None):
        self.description = description
        if status_code is not None:
            self.status_code = status_code
        super().__init__(f"{self.code}: {description}")

    def to_content(self) -> Dict[str, Any]:
        """JSON body returned to the client."""
        return {"error": self.error, "error_description": self.description}


class NotConfiguredError(LinkFlowError):
    """Required server configuration is missing."""

    code = "NOT_CONFIGURED"
    error = "not_configured"
    status_code = 500


class ProtocolError(LinkFlowError):
    """Missing or malformed code, state or session cookies."""

    code = "PROTOCOL_ERROR"
    error = "invalid_request"
    status_code = 400


class CsrfRejectedError(LinkFlowError):
    """State failed verification; treated as a potential forgery."""

    code = "CSRF_REJECTED"
    error = "invalid_state"
    status_code = 400

    def to_content(self) -> Dict[str, Any]:
        # Reason stays in the logs only
        return {
            "error": self.error,
            "error_description": "State verification failed",
        }


class UpstreamTokenError(LinkFlowError):
    """The provider rejected the code exchange or could not be reached."""

    code = "UPSTREAM_TOKEN_ERROR"
    error = "token_exchange_failed"

    def __init__(self, status_code: int, body: Any):
        self.body = body
        super().__init__(
            f"Token endpoint returned {status_code}", status_code=status_code
        )

    def to_content(self) -> Any:
        return self.body


class IdentityVerificationError(LinkFlowError):
    """The identity token could not be verified (INVALID_TOKEN)."""

    code = "UPSTREAM_IDENTITY_ERROR"
    error = "invalid_token"
    status_code = 401


class IdentityRejectedError(LinkFlowError):
    """No verified identity and the flow is configured to refuse anonymous links."""

    code = "IDENTITY_REJECTED"
    error = "unauthorized"
    status_code = 401


class PersistenceError(LinkFlowError):
    """The credential store write failed after a successful exchange."""

    code = "PERSISTENCE_ERROR"
    error = "server_error"
    status_code = 500
