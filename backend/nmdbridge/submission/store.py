"""Session store collaborators used by the payload builder."""

from __future__ import annotations

from typing import Protocol


class KeyValueStore(Protocol):
    """String key/value store the caller keeps envelopes and payloads in."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class InMemoryStore:
    """Dict-backed KeyValueStore."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self._values
