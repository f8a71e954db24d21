"""In-memory key-value store."""

from collections.abc import Mapping

from solvault.interfaces.store import BaseStore


class MemoryStore(BaseStore):
    """Dict-backed store for tests and single-session dashboards."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def set_many(self, items: Mapping[str, str | None]) -> None:
        updated = dict(self._data)
        for key, value in items.items():
            if value is None:
                updated.pop(key, None)
            else:
                updated[key] = value
        self._data = updated

    def snapshot(self) -> dict[str, str]:
        """Return a copy of the stored keys."""
        return dict(self._data)
