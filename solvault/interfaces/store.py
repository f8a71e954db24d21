"""Abstract base class defining the key-value store interface."""

from abc import ABC, abstractmethod
from collections.abc import Mapping

from solvault.exceptions import StorageCorruptedError, StorageError

# Re-export exceptions for convenience
__all__ = [
    "BaseStore",
    "StorageCorruptedError",
    "StorageError",
]


class BaseStore(ABC):
    """Abstract key-value store holding serialized registry state.

    The registry uses two logical keys (wallet list and active index). Stores
    give no transactional guarantee beyond whole-value overwrite; set_many()
    lets backends that can write several keys in one step do so.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the serialized value for ``key``, or None if absent.

        Raises:
            StorageCorruptedError: If the backing medium cannot be parsed.
        """
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Overwrite the value stored under ``key``.

        Raises:
            StorageError: If the value cannot be written.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``. Removing a missing key is not an error."""
        raise NotImplementedError

    def set_many(self, items: Mapping[str, str | None]) -> None:
        """Write several keys; a None value deletes the key.

        The default implementation writes one key at a time. Backends that
        can persist all keys in one step should override this.
        """
        for key, value in items.items():
            if value is None:
                self.delete(key)
            else:
                self.set(key, value)

    def clear(self, keys: list[str]) -> None:
        """Remove all of the given keys."""
        self.set_many({key: None for key in keys})
