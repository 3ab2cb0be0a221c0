"""Identity resolution for the callback leg."""

from .linker import ANONYMOUS_SUBJECT, extract_bearer_token, resolve_subject
from .verifier import (
    JWTIdentityVerifier,
    get_identity_verifier,
    init_identity_verifier,
    reset_identity_verifier,
)

__all__ = [
    "ANONYMOUS_SUBJECT",
    "extract_bearer_token",
    "resolve_subject",
    "JWTIdentityVerifier",
    "get_identity_verifier",
    "init_identity_verifier",
    "reset_identity_verifier",
]
