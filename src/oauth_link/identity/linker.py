"""Resolve which application user a callback belongs to."""

import logging
from typing import Optional, Protocol

from starlette.requests import Request

from ..errors import IdentityRejectedError, IdentityVerificationError

logger = logging.getLogger(__name__)

ANONYMOUS_SUBJECT = "unknown"


class IdentityVerifier(Protocol):
    async def verify_identity(self, token: str) -> str: ...


def extract_bearer_token(auth_header: str) -> Optional[str]:
    """Extract token from 'Bearer <token>' header."""
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


async def resolve_subject(
    request: Request,
    verifier: Optional[IdentityVerifier],
    policy: str = "anonymize",
) -> str:
    """
    Determine the subject identifier for the credential being linked.

    With the "anonymize" policy a missing header, a missing verifier or a
    failed verification all fall back to the "unknown" subject so the token
    exchange still completes. With "reject" they raise instead.

    Raises:
        IdentityRejectedError: Under the "reject" policy when no verified
            identity is available
    """
    token = extract_bearer_token(request.headers.get("Authorization", ""))

    if not token:
        reason = "No bearer identity token on callback"
    elif verifier is None:
        reason = "Identity verifier not configured"
    else:
        try:
            return await verifier.verify_identity(token)
        except IdentityVerificationError as e:
            logger.warning(f"{e.code}: identity verification failed")
            reason = "Identity token could not be verified"

    if policy == "reject":
        raise IdentityRejectedError(reason)

    logger.info(f"{reason}; linking under '{ANONYMOUS_SUBJECT}' subject")
    return ANONYMOUS_SUBJECT
