"""Persistence of linked provider credentials."""

from .base import CredentialStore, build_credential_fields, credential_key, save_credential
from .memory import InMemoryCredentialStore
from .redis_store import RedisCredentialStore

__all__ = [
    "CredentialStore",
    "build_credential_fields",
    "credential_key",
    "save_credential",
    "InMemoryCredentialStore",
    "RedisCredentialStore",
]
