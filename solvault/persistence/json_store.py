"""Single-file JSON key-value store with atomic whole-file writes."""

import json
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from loguru import logger

from solvault.exceptions import StorageCorruptedError, StorageError
from solvault.interfaces.store import BaseStore

# Owner read/write only
SECURE_FILE_MODE = 0o600


class JsonFileStore(BaseStore):
    """Key-value store persisted as one JSON object on disk.

    Every write rewrites the whole document to a temporary file in the same
    directory and renames it over the original, so readers see either the
    old or the new document, never a partial one.

    Concurrent writers in different processes are not coordinated: the last
    rename wins and may discard the other process's change.

    Example:
        store = JsonFileStore(Path("data/wallets.json"))
        store.set_many({"wallets": "[]", "active_index": None})
    """

    def __init__(self, path: Path) -> None:
        """Initialize the store.

        Args:
            path: Location of the JSON document. Parent directories are
                created on first write.
        """
        self._path = Path(path)

    @property
    def path(self) -> Path:
        """Get the backing file path."""
        return self._path

    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            # Values written by hand may be raw JSON rather than strings
            return json.dumps(value)
        return value

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def delete(self, key: str) -> None:
        self.set_many({key: None})

    def set_many(self, items: Mapping[str, str | None]) -> None:
        try:
            document = self._read()
        except StorageCorruptedError:
            # Overwriting a corrupted file is how callers reset it
            logger.warning("Overwriting corrupted store file {}", self._path)
            document = {}

        for key, value in items.items():
            if value is None:
                document.pop(key, None)
            else:
                document[key] = value

        self._write(document)

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}

        try:
            with open(self._path, encoding="utf-8") as f:
                content = f.read()
        except OSError as e:
            raise StorageError(f"Failed to read store file {self._path}: {e}") from e

        if not content.strip():
            return {}

        try:
            document = json.loads(content)
        except json.JSONDecodeError as e:
            raise StorageCorruptedError(f"Store file {self._path} is not valid JSON") from e

        if not isinstance(document, dict):
            raise StorageCorruptedError(f"Store file {self._path} is not a JSON object")

        return document

    def _write(self, document: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=4)
                f.flush()
                os.fsync(f.fileno())
            if os.name == "posix":
                os.chmod(tmp_name, SECURE_FILE_MODE)
            os.replace(tmp_name, self._path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Failed to write store file {self._path}: {e}") from e

        logger.debug("Wrote store file {}", self._path)
