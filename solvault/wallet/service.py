"""Result-returning facade over WalletRegistry for API routes and the CLI."""

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from loguru import logger

from solvault.config import CipherConfig, WalletConfig
from solvault.exceptions import DecryptionError, StorageError, WalletError
from solvault.interfaces.store import BaseStore
from solvault.models import OperationResult, WalletRecord
from solvault.persistence.json_store import JsonFileStore
from solvault.wallet.cipher import EnvelopeCipher
from solvault.wallet.codec import KeyCodec
from solvault.wallet.legacy import LegacyDecryptor
from solvault.wallet.registry import WalletRegistry


def build_registry(
    wallet_config: WalletConfig,
    cipher_config: CipherConfig,
    store: BaseStore | None = None,
) -> WalletRegistry:
    """Assemble a registry from configuration.

    Args:
        wallet_config: Store location, encoding and explorer settings.
        cipher_config: Key derivation settings.
        store: Optional store override; defaults to a JsonFileStore at
            ``wallet_config.store_path``.
    """
    cipher = EnvelopeCipher.from_config(cipher_config, encoding=wallet_config.encoding)
    codec = KeyCodec(explorer_base_url=wallet_config.explorer_base_url)
    return WalletRegistry(
        store or JsonFileStore(wallet_config.store_path),
        cipher,
        codec,
        legacy=LegacyDecryptor.from_config(cipher_config),
    )


def describe(record: WalletRecord, index: int, active: bool = False) -> dict[str, Any]:
    """Public view of a wallet record (no ciphertext)."""
    return {
        "index": index,
        "address": record.address,
        "address_link": record.explorer_link,
        "active": active,
    }


class WalletService:
    """Wraps registry operations in OperationResult values.

    Wallet errors are caught, logged and returned as failed results; their
    messages are safe to show to users. Anything else propagates.

    Usage:
        service = WalletService(registry)
        result = service.import_wallet(secret)
        if not result.success:
            print(result.message)
    """

    def __init__(self, registry: WalletRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> WalletRegistry:
        """Get the underlying registry."""
        return self._registry

    def bootstrap(self, auto_create: bool = False) -> OperationResult:
        """Prepare the registry for use after load.

        Args:
            auto_create: Create a first wallet when none exist.
        """
        load = self._registry.last_load
        if load.reset:
            logger.warning("Wallet storage was reset after corruption")

        if len(self._registry) == 0:
            if not auto_create:
                return OperationResult.fail(
                    "No wallets available. Please create or import a wallet first."
                )
            logger.info("No wallets found, generating a new one")
            return self.create()

        active = self._registry.get_active()
        return OperationResult.ok(
            f"Loaded {len(self._registry)} wallet(s)",
            data=describe(active, self._registry.active_index, active=True) if active else None,
        )

    def create(self) -> OperationResult:
        """Create a new wallet."""
        try:
            record = self._registry.create()
        except WalletError as e:
            return self._failure("create", e)
        return OperationResult.ok(
            "New wallet created successfully",
            data=self._describe_address(record.address),
        )

    def import_wallet(self, base58_secret: str) -> OperationResult:
        """Import a wallet from a base58 secret key."""
        try:
            record = self._registry.import_wallet(base58_secret)
        except WalletError as e:
            return self._failure("import", e)
        return OperationResult.ok(
            "Wallet imported successfully",
            data=self._describe_address(record.address),
        )

    def list_wallets(self) -> OperationResult:
        """List wallets with their indexes and active flag."""
        active_index = self._registry.active_index
        wallets = [
            describe(record, index, active=index == active_index)
            for index, record in enumerate(self._registry.list())
        ]
        return OperationResult.ok(f"{len(wallets)} wallet(s)", data=wallets)

    def get_active(self) -> OperationResult:
        """Return the active wallet."""
        record = self._registry.get_active()
        if record is None:
            return OperationResult.fail(
                "No wallet loaded. Please create or import a wallet first."
            )
        return OperationResult.ok(
            f"Active wallet {record.address}",
            data=describe(record, self._registry.active_index, active=True),
        )

    def set_active(self, index: int) -> OperationResult:
        """Select the active wallet by index."""
        try:
            self._registry.set_active(index)
        except WalletError as e:
            return self._failure("select", e)
        record = self._registry.get_active()
        return OperationResult.ok(
            f"Wallet {record.address} selected",
            data=describe(record, index, active=True),
        )

    def remove(self, index: int) -> OperationResult:
        """Remove the wallet at ``index``."""
        try:
            removed = self._registry.remove(index)
        except WalletError as e:
            return self._failure("remove", e)
        return OperationResult.ok(
            f"Wallet {removed.address} removed",
            data={"address": removed.address, "active_index": self._registry.active_index},
        )

    def security_report(self) -> OperationResult:
        """Report whether each stored secret looks encrypted.

        A development diagnostic; it exposes lengths, never content.
        """
        cipher = self._registry.cipher
        active_index = self._registry.active_index
        wallets = self._registry.list()
        info = [
            {
                "address": record.address,
                "is_private_key_encrypted": cipher.looks_encrypted(record.cipher_text),
                "private_key_length": len(record.cipher_text),
                "is_active": index == active_index,
            }
            for index, record in enumerate(wallets)
        ]
        return OperationResult.ok(
            "Wallet security report",
            data={
                "wallet_count": len(wallets),
                "wallets_encrypted": all(item["is_private_key_encrypted"] for item in info),
                "security_info": info,
            },
        )

    def import_legacy_files(self, paths: Iterable[Path]) -> OperationResult:
        """Bring wallets from legacy single-wallet CLI files into the registry.

        Nothing is adopted unless every record in every file can be read and,
        for encrypted records, decrypted.
        """
        migration = self._registry.migration
        records: list[WalletRecord] = []
        for path in paths:
            try:
                raw_records = migration.import_legacy_file(Path(path))
            except FileNotFoundError as e:
                return OperationResult.fail(str(e))
            except StorageError as e:
                return self._failure("migrate", e)

            for raw in raw_records:
                try:
                    record = migration.upgrade_record(raw)
                except DecryptionError as e:
                    return self._failure("migrate", e)
                if record is not None:
                    records.append(record)

        try:
            added = self._registry.adopt(records)
        except WalletError as e:
            return self._failure("migrate", e)

        return OperationResult.ok(
            f"Imported {len(added)} legacy wallet(s)",
            data=[record.address for record in added],
        )

    def _describe_address(self, address: str) -> dict[str, Any]:
        return {
            "address": address,
            "address_link": self._registry.codec.to_explorer_link(address),
        }

    @staticmethod
    def _failure(action: str, error: WalletError) -> OperationResult:
        logger.warning("Wallet operation '{}' failed: {}", action, error)
        return OperationResult.fail(str(error))
