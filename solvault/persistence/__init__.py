"""Persistence layer for the solvault key-management core.

Provides:
- MemoryStore: dict-backed store for tests and in-browser style sessions
- JsonFileStore: single JSON file with atomic whole-file writes
"""

from solvault.persistence.json_store import JsonFileStore
from solvault.persistence.memory_store import MemoryStore

__all__ = ["JsonFileStore", "MemoryStore"]
