"""Load-time upgrade of persisted wallet records.

Runs on every registry load. Each stored record is classified:

    Unknown -> LegacyCiphertext  (old CLI or dashboard format, decrypted and re-encrypted)
    Unknown -> AlreadyEncrypted  (kept as-is)
    Unknown -> LegacyPlaintext   (secret re-encrypted and written back)

Legacy ciphertext that cannot be decrypted during a load is kept unchanged
so it is never encrypted a second time.

Records from older layouts (``privateKey`` / ``encryptedPrivateKey`` +
``iv`` / ``addressLink``) are rewritten into the current field names. If the
wallet blob cannot be parsed at all, both registry keys are cleared and the
registry starts empty.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from solvault.config import CipherConfig
from solvault.exceptions import (
    DecryptionError,
    InvalidKeyFormatError,
    StorageCorruptedError,
    StorageError,
)
from solvault.interfaces.store import BaseStore
from solvault.models import WalletRecord
from solvault.wallet.cipher import EnvelopeCipher
from solvault.wallet.codec import KeyCodec
from solvault.wallet.legacy import LegacyDecryptor, is_cli_ciphertext, is_crypto_js_ciphertext

WALLETS_KEY = "wallets"
ACTIVE_INDEX_KEY = "active_index"

# Field names for the secret, newest layout first
_SECRET_FIELDS = ("cipher_text", "encryptedPrivateKey", "privateKey", "private_key")


def dump_wallets(wallets: tuple[WalletRecord, ...] | list[WalletRecord]) -> str:
    """Serialize wallet records for the store."""
    return json.dumps([wallet.model_dump() for wallet in wallets])


def dump_active_index(index: int | None) -> str | None:
    """Serialize the active index; None removes the key."""
    return None if index is None else json.dumps(index)


@dataclass
class LoadResult:
    """Registry state produced by a load pass."""

    wallets: list[WalletRecord] = field(default_factory=list)
    active_index: int | None = None
    migrated: int = 0
    dropped: int = 0
    reset: bool = False


class MigrationAdapter:
    """Reads registry state from a store, upgrading legacy records on the way.

    Usage:
        adapter = MigrationAdapter(store, cipher, codec)
        result = adapter.load()
        if result.migrated:
            print(f"Encrypted {result.migrated} legacy wallet(s)")
    """

    def __init__(
        self,
        store: BaseStore,
        cipher: EnvelopeCipher,
        codec: KeyCodec,
        legacy: LegacyDecryptor | None = None,
    ) -> None:
        self._store = store
        self._cipher = cipher
        self._codec = codec
        self._legacy = legacy or LegacyDecryptor.from_config(CipherConfig())

    def load(self) -> LoadResult:
        """Load, migrate and normalize the persisted registry state.

        Any change made while loading is written back before returning.
        Corrupted storage is reset rather than raised.

        Returns:
            LoadResult with the records ready for the registry.
        """
        try:
            raw_records = self._read_wallets()
            stored_index = self._read_active_index()
        except StorageCorruptedError as e:
            logger.error("Wallet storage corrupted, resetting to empty registry: {}", e)
            self._store.clear([WALLETS_KEY, ACTIVE_INDEX_KEY])
            return LoadResult(reset=True)

        result = LoadResult()
        dirty = False
        seen: set[str] = set()

        for raw in raw_records:
            record, migrated = self._upgrade(raw)
            if record is None:
                result.dropped += 1
                dirty = True
                continue
            if record.address in seen:
                logger.warning("Dropping duplicate wallet record: {}", record.address)
                result.dropped += 1
                dirty = True
                continue

            seen.add(record.address)
            result.wallets.append(record)
            if migrated:
                result.migrated += 1
            if migrated or raw != record.model_dump():
                dirty = True

        result.active_index = self._normalize_index(stored_index, len(result.wallets))
        if dump_active_index(result.active_index) != self._store.get(ACTIVE_INDEX_KEY):
            dirty = True

        if result.migrated:
            logger.info("Migrated {} wallet private key(s) to encrypted format", result.migrated)

        if dirty:
            self._store.set_many(
                {
                    WALLETS_KEY: dump_wallets(result.wallets),
                    ACTIVE_INDEX_KEY: dump_active_index(result.active_index),
                }
            )

        return result

    def upgrade_record(self, raw: Any) -> WalletRecord | None:
        """Convert one raw record from any known layout into a WalletRecord.

        Plaintext secrets are encrypted and legacy ciphertext is re-encrypted.
        Returns None for records that lack an address or secret.

        Raises:
            DecryptionError: If legacy ciphertext cannot be decrypted to the
                secret key of the record's address.
        """
        record, _ = self._upgrade(raw, strict=True)
        return record

    def import_legacy_file(self, path: Path) -> list[dict[str, Any]]:
        """Read a legacy CLI wallet file into raw record dicts.

        Legacy files hold one wallet object (``brew-mev-wallet.json``) or a
        list of them.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            StorageCorruptedError: If the file is not a wallet object or list.
            StorageError: If the file cannot be read.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Wallet file not found: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                parsed = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise StorageCorruptedError(f"Wallet file '{path}' is corrupted or invalid") from e
        except OSError as e:
            raise StorageError(f"Failed to read wallet file '{path}': {e}") from e

        if isinstance(parsed, dict) and "address" in parsed:
            return [parsed]
        if isinstance(parsed, list):
            return [item for item in parsed if isinstance(item, dict)]

        raise StorageCorruptedError(f"Wallet file '{path}' is corrupted or invalid")

    def _read_wallets(self) -> list[Any]:
        blob = self._store.get(WALLETS_KEY)
        if blob is None:
            return []

        try:
            parsed = json.loads(blob)
        except json.JSONDecodeError as e:
            raise StorageCorruptedError("Wallet list is not valid JSON", key=WALLETS_KEY) from e

        if not isinstance(parsed, list):
            raise StorageCorruptedError("Wallet list is not a JSON array", key=WALLETS_KEY)

        return parsed

    def _read_active_index(self) -> int | None:
        blob = self._store.get(ACTIVE_INDEX_KEY)
        if blob is None:
            return None

        try:
            parsed = json.loads(blob)
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable active wallet index")
            return None

        # Older dashboards stored the index as a quoted string
        if isinstance(parsed, str) and parsed.strip().isdigit():
            parsed = int(parsed)

        if isinstance(parsed, bool) or not isinstance(parsed, int):
            logger.warning("Ignoring non-integer active wallet index")
            return None

        return parsed

    @staticmethod
    def _normalize_index(index: int | None, size: int) -> int | None:
        if size == 0:
            return None
        if index is None or not 0 <= index < size:
            if index is not None:
                logger.warning("Active wallet index {} out of range, selecting first wallet", index)
            return 0
        return index

    def _upgrade(self, raw: Any, strict: bool = False) -> tuple[WalletRecord | None, bool]:
        if not isinstance(raw, dict):
            logger.warning("Dropping malformed wallet record")
            return None, False

        address = raw.get("address")
        secret_field = next((name for name in _SECRET_FIELDS if name in raw), None)
        value = raw.get(secret_field) if secret_field else None
        iv = raw.get("iv") if secret_field in ("cipher_text", "encryptedPrivateKey") else None

        if not isinstance(address, str) or not address:
            logger.warning("Dropping wallet record without an address")
            return None, False
        if not isinstance(value, str) or not value:
            logger.warning("Dropping wallet record without a private key: {}", address)
            return None, False
        if iv is not None and not isinstance(iv, str):
            iv = None

        migrated = False
        if is_cli_ciphertext(value, iv) or is_crypto_js_ciphertext(value):
            try:
                plaintext = self._decrypt_legacy(address, value, iv)
            except DecryptionError:
                if strict:
                    raise
                logger.warning("Legacy private key for {} could not be decrypted, left unchanged", address)
            else:
                sealed = self._cipher.encrypt(plaintext)
                value, iv = sealed.data, sealed.iv
                migrated = True
        elif not self._cipher.looks_encrypted(value):
            self._check_legacy_secret(address, value)
            sealed = self._cipher.encrypt(value)
            value, iv = sealed.data, sealed.iv
            migrated = True

        record = WalletRecord(
            address=address,
            cipher_text=value,
            iv=iv,
            explorer_link=self._codec.to_explorer_link(address),
        )
        return record, migrated

    def _decrypt_legacy(self, address: str, value: str, iv: str | None) -> str:
        """Decrypt old CLI or dashboard ciphertext and check it matches ``address``."""
        try:
            if iv is not None and is_cli_ciphertext(value, iv):
                plaintext = self._legacy.decrypt_cli(value, iv)
            else:
                plaintext = self._legacy.decrypt_crypto_js(value)
            material = self._codec.from_secret_material(plaintext)
        except (DecryptionError, InvalidKeyFormatError) as e:
            raise DecryptionError(f"Could not decrypt legacy wallet {address}") from e
        if material.address != address:
            raise DecryptionError(f"Could not decrypt legacy wallet {address}")
        return plaintext

    def _check_legacy_secret(self, address: str, value: str) -> None:
        """Warn when a legacy plaintext value is not the key for its address.

        The value is encrypted either way so no plaintext stays at rest.
        """
        try:
            material = self._codec.from_secret_material(value)
        except InvalidKeyFormatError:
            logger.warning("Legacy private key for {} is not a valid secret key", address)
            return

        if material.address != address:
            logger.warning("Legacy private key for {} belongs to a different address", address)
