"""Key-value persistence port used for per-week inclusion state."""

import json
from typing import Any, Protocol


class KeyValueStore(Protocol):
    """Minimal async key-value store. Values are JSON-compatible."""

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def remove(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """
    Process-local store.

    Values are kept as JSON text, so callers get back fresh copies with the
    same shapes a browser or document store would hand out.
    """

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[key] = json.dumps(value)

    async def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)
