"""Async HTTP client for the provider's token endpoint."""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, ValidationError

from ..config import ProviderConfig
from ..errors import UpstreamTokenError

logger = logging.getLogger(__name__)


class TokenExchangeResult(BaseModel):
    """Tokens returned by a successful authorization_code exchange."""

    access_token: str
    token_type: str = "bearer"
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None

    model_config = {"extra": "ignore"}


def _response_body(response: httpx.Response) -> Any:
    """Parsed JSON body if there is one, raw text otherwise."""
    if not response.content:
        return ""
    try:
        return response.json()
    except ValueError:
        return response.text


class TokenExchangeClient:
    """
    Exchanges an authorization code plus PKCE verifier for tokens.

    One attempt per call, no retries: a failed exchange ends that
    authorization attempt and the user has to start the flow again.
    """

    def __init__(
        self,
        provider: ProviderConfig,
        timeout_seconds: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.provider = provider
        self._timeout = timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        """Initialize the HTTP client."""
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout),
            follow_redirects=False,  # Don't follow redirects to prevent code leakage
            transport=self._transport,
        )
        logger.info(f"Token client initialized for provider '{self.provider.name}'")

    async def stop(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Token client closed")

    def _build_request(self, code: str, code_verifier: str) -> Dict[str, Any]:
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.provider.redirect_uri,
            "code_verifier": code_verifier,
        }
        request: Dict[str, Any] = {
            "data": data,
            "headers": {"Accept": "application/json"},
        }

        if self.provider.client_auth == "basic":
            request["auth"] = httpx.BasicAuth(
                self.provider.client_id, self.provider.client_secret or ""
            )
        else:
            data["client_id"] = self.provider.client_id
            if self.provider.client_secret:
                data["client_secret"] = self.provider.client_secret

        return request

    async def exchange_code(self, code: str, code_verifier: str) -> TokenExchangeResult:
        """
        POST the authorization code to the provider's token endpoint.

        Args:
            code: Authorization code from the callback query
            code_verifier: PKCE verifier from the session cookie

        Returns:
            TokenExchangeResult parsed from the provider response

        Raises:
            UpstreamTokenError: 4xx/5xx status (status and body passed through
                unchanged), 3xx redirect, network failure or unusable success
                body (502), timeout (504)
            RuntimeError: If client is not initialized
        """
        if not self._client:
            raise RuntimeError("TokenExchangeClient not initialized. Call start() first.")

        try:
            response = await self._client.post(
                self.provider.token_url,
                **self._build_request(code, code_verifier),
            )
        except httpx.TimeoutException as e:
            logger.error(f"Token endpoint timed out: {e}")
            raise UpstreamTokenError(
                504,
                {"error": "token_endpoint_timeout", "error_description": str(e)},
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Token request failed: {e}")
            raise UpstreamTokenError(
                502,
                {"error": "token_endpoint_unreachable", "error_description": str(e)},
            ) from e

        body = _response_body(response)

        # Redirects are not followed, and mirroring one would send the browser
        # a 3xx without a usable Location
        if 300 <= response.status_code < 400:
            logger.error(f"Token endpoint redirected: {response.status_code}")
            raise UpstreamTokenError(
                502,
                {
                    "error": "invalid_token_response",
                    "error_description": f"Token endpoint returned a {response.status_code} redirect",
                },
            )

        if not response.is_success:
            logger.error(f"Token endpoint error: {response.status_code} - {body}")
            raise UpstreamTokenError(response.status_code, body)

        if not isinstance(body, dict):
            logger.error("Token endpoint returned a non-JSON success body")
            raise UpstreamTokenError(
                502,
                {
                    "error": "invalid_token_response",
                    "error_description": "Token endpoint returned a non-JSON body",
                },
            )

        try:
            result = TokenExchangeResult.model_validate(body)
        except ValidationError as e:
            logger.error(f"Token endpoint response missing fields: {e.error_count()} errors")
            raise UpstreamTokenError(
                502,
                {
                    "error": "invalid_token_response",
                    "error_description": "Token endpoint response is missing access_token",
                },
            ) from e

        logger.info(f"Exchanged authorization code with '{self.provider.name}'")
        return result
