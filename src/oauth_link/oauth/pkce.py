"""PKCE (Proof Key for Code Exchange) utilities for OAuth 2.0."""

import base64
import hashlib
import secrets
from typing import Tuple


def compute_challenge(code_verifier: str) -> str:
    """Base64url-encoded (unpadded) SHA256 hash of a code_verifier."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_pkce_pair() -> Tuple[str, str]:
    """
    Generate PKCE code_verifier and code_challenge using S256.

    Per RFC 7636, the code_verifier is a cryptographically random string
    using unreserved characters [A-Z] / [a-z] / [0-9] / "-" / "." / "_" / "~",
    with a minimum length of 43 characters and maximum of 128 characters.

    The verifier stays in the browser cookie; only the challenge is sent
    to the provider.

    Returns:
        Tuple of (code_verifier, code_challenge)
    """
    # 64 random bytes encode to 86 characters
    code_verifier = secrets.token_urlsafe(64)[:128]
    return code_verifier, compute_challenge(code_verifier)
