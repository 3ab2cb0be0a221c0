"""
Signed, self-verifying OAuth state parameter.

The initiator and the callback may be served by different stateless
instances, so the state carries its own proof of origin instead of living
in a server-side store:

    <id>.<issued_at_ms>.<signature>

where signature is the unpadded base64url HMAC-SHA256 of "<id>.<issued_at_ms>"
under the server's session secret.
"""

import base64
import hashlib
import hmac
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

# Allowance for clocks of different instances drifting apart
CLOCK_SKEW_MS = 30_000


@dataclass(frozen=True)
class StateToken:
    """Parsed state token fields."""

    id: str
    issued_at_ms: int
    signature: str

    @property
    def signed_part(self) -> str:
        return f"{self.id}.{self.issued_at_ms}"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _signature(signed_part: str, secret_key: str) -> str:
    digest = hmac.new(
        secret_key.encode("utf-8"), signed_part.encode("utf-8"), hashlib.sha256
    ).digest()
    return _b64url(digest)


def sign_state(secret_key: str, now_ms: Optional[int] = None) -> str:
    """
    Issue a new signed state token.

    Args:
        secret_key: HMAC signing key
        now_ms: Issue time override in epoch milliseconds

    Returns:
        The serialized token "<id>.<issued_at_ms>.<signature>"
    """
    # token_urlsafe never produces "." so the id cannot break the framing
    state_id = secrets.token_urlsafe(24)
    issued_at_ms = _now_ms() if now_ms is None else now_ms
    signed_part = f"{state_id}.{issued_at_ms}"
    return f"{signed_part}.{_signature(signed_part, secret_key)}"


def parse_state(token: str) -> Optional[StateToken]:
    """Split a token into its fields, or None if it is malformed."""
    if not isinstance(token, str):
        return None
    parts = token.split(".")
    if len(parts) != 3 or not all(parts):
        return None
    state_id, issued_at, signature = parts
    if not (issued_at.isascii() and issued_at.isdigit()):
        return None
    # Only the canonical form is accepted, so "0123" cannot stand in for "123"
    if str(int(issued_at)) != issued_at:
        return None
    return StateToken(id=state_id, issued_at_ms=int(issued_at), signature=signature)


def verify_state(
    token: str,
    secret_key: str,
    max_age_seconds: Optional[int] = None,
    now_ms: Optional[int] = None,
) -> bool:
    """
    Check a state token's signature and, optionally, its age.

    Never raises: any parse failure, missing field, bad signature or
    out-of-window timestamp returns False.

    Args:
        token: The state token received from the provider redirect
        secret_key: HMAC signing key
        max_age_seconds: Reject tokens older than this, if given
        now_ms: Current time override in epoch milliseconds

    Returns:
        True iff the token is authentic (and fresh, when an age is given)
    """
    try:
        parsed = parse_state(token)
        if parsed is None:
            return False

        expected = _signature(parsed.signed_part, secret_key)
        if not hmac.compare_digest(
            expected.encode("ascii"), parsed.signature.encode("utf-8")
        ):
            return False

        if max_age_seconds is not None:
            now = _now_ms() if now_ms is None else now_ms
            age_ms = now - parsed.issued_at_ms
            if age_ms > max_age_seconds * 1000 or age_ms < -CLOCK_SKEW_MS:
                logger.info("State token outside its validity window")
                return False

        return True
    except (TypeError, ValueError, UnicodeError) as e:
        logger.debug(f"State token rejected: {e}")
        return False
