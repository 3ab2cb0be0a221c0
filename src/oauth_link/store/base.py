"""Credential store interface and the linked-credential writer."""

import logging
import time
from typing import Any, Dict, Optional, Protocol

from ..errors import PersistenceError
from ..oauth.token_client import TokenExchangeResult

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    """Document store with merge-upsert semantics."""

    async def upsert(self, key: str, fields: Dict[str, Any]) -> None:
        """Create the record or update only the given fields, atomically per key."""
        ...

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...


def credential_key(subject_id: str, provider: str) -> str:
    """Document key for a linked credential."""
    return f"{subject_id}_{provider}"


def build_credential_fields(
    subject_id: str, provider: str, result: TokenExchangeResult, now_ms: int
) -> Dict[str, Any]:
    """
    Record fields written for one successful exchange.

    refreshToken and scope are left out when the provider did not send them,
    so a merge keeps the values stored by an earlier link.
    """
    expires_at_ms = None
    if result.expires_in is not None:
        expires_at_ms = now_ms + result.expires_in * 1000

    fields = {
        "uid": subject_id,
        "provider": provider,
        "accessToken": result.access_token,
        "tokenType": result.token_type,
        "expiresAtMs": expires_at_ms,
        "updatedAtMs": now_ms,
    }
    if result.refresh_token is not None:
        fields["refreshToken"] = result.refresh_token
    if result.scope is not None:
        fields["scope"] = result.scope
    return fields


async def save_credential(
    store: CredentialStore,
    subject_id: str,
    provider: str,
    result: TokenExchangeResult,
    now_ms: Optional[int] = None,
) -> str:
    """
    Merge-upsert the linked credential for (subject_id, provider).

    Safe to repeat: a duplicate callback overwrites the record with equal or
    newer data rather than creating a second one.

    Returns:
        The document key written

    Raises:
        PersistenceError: If the store write fails
    """
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    key = credential_key(subject_id, provider)
    fields = build_credential_fields(subject_id, provider, result, now_ms)

    try:
        await store.upsert(key, fields)
    except Exception as e:
        logger.error(f"Failed to persist credential {key}: {type(e).__name__}")
        raise PersistenceError("Failed to store linked credential") from e

    logger.info(f"Stored credential {key}")
    return key
