"""JWT identity verification using PyJWT with a JWKS endpoint."""

import logging
import threading
from typing import Any, List, Optional

import jwt
from jwt import PyJWKClient
from jwt.exceptions import InvalidTokenError, PyJWKClientError
from starlette.concurrency import run_in_threadpool

from ..config import Settings
from ..errors import IdentityVerificationError

logger = logging.getLogger(__name__)


class JWTIdentityVerifier:
    """Verifies identity tokens and returns the stable subject identifier."""

    def __init__(
        self,
        jwks_url: str,
        algorithms: List[str],
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
        jwks_client: Optional[Any] = None,
    ):
        self.algorithms = algorithms
        self.issuer = issuer
        self.audience = audience
        self._jwks_client = jwks_client or PyJWKClient(
            jwks_url,
            cache_keys=True,
            lifespan=300,  # Cache JWKS for 5 minutes
        )

    def verify_identity_sync(self, token: str) -> str:
        """
        Validate the token and return its subject.

        Raises:
            IdentityVerificationError: Bad signature, expired, wrong issuer
                or audience, or missing subject (INVALID_TOKEN)
        """
        try:
            # Get signing key from JWKS based on token's kid header
            signing_key = self._jwks_client.get_signing_key_from_jwt(token)

            required = ["exp", "sub"]
            if self.issuer:
                required.append("iss")
            if self.audience:
                required.append("aud")

            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=self.algorithms,
                issuer=self.issuer,
                audience=self.audience,
                options={
                    "verify_exp": True,
                    "verify_aud": bool(self.audience),
                    "require": required,
                },
            )
        except (InvalidTokenError, PyJWKClientError) as e:
            logger.warning(f"Identity token validation failed: {e}")
            raise IdentityVerificationError("INVALID_TOKEN") from e

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            raise IdentityVerificationError("INVALID_TOKEN")
        return subject

    async def verify_identity(self, token: str) -> str:
        """Async wrapper; JWKS fetches block, so they run in a worker thread."""
        return await run_in_threadpool(self.verify_identity_sync, token)


_verifier: Optional[JWTIdentityVerifier] = None
_verifier_lock = threading.Lock()


def init_identity_verifier(settings: Settings) -> Optional[JWTIdentityVerifier]:
    """
    Create the process-wide verifier on first use.

    Calling it again is a no-op that returns the existing instance. Returns
    None when no JWKS URL is configured.
    """
    global _verifier

    if _verifier is not None:
        return _verifier
    if not settings.identity_jwks_url:
        return None

    with _verifier_lock:
        if _verifier is None:
            _verifier = JWTIdentityVerifier(
                jwks_url=settings.identity_jwks_url,
                algorithms=settings.identity_algorithms,
                issuer=settings.identity_issuer,
                audience=settings.identity_audience,
            )
            logger.info("Identity verifier initialized")
    return _verifier


def get_identity_verifier(settings: Settings) -> Optional[JWTIdentityVerifier]:
    """Return the shared verifier, initializing it if needed."""
    return init_identity_verifier(settings)


def reset_identity_verifier() -> None:
    """Drop the shared verifier (used when settings change, e.g. in tests)."""
    global _verifier
    with _verifier_lock:
        _verifier = None
