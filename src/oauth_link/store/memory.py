"""In-memory credential store for single-process deployments and tests."""

import copy
from typing import Any, Dict, Optional


class InMemoryCredentialStore:
    """
    Dict-backed store with per-key field merge.

    Upserts complete without awaiting, so each one is atomic on the event
    loop. Contents are lost on restart.
    """

    def __init__(self):
        self._records: Dict[str, Dict[str, Any]] = {}

    async def upsert(self, key: str, fields: Dict[str, Any]) -> None:
        record = self._records.setdefault(key, {})
        record.update(copy.deepcopy(fields))

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        record = self._records.get(key)
        return copy.deepcopy(record) if record is not None else None

    def __len__(self) -> int:
        return len(self._records)
