"""Ordered multi-wallet registry with an active-wallet pointer.

State is an ordered tuple of WalletRecord plus an optional active index. The
index is present exactly when the registry holds at least one wallet and
always points inside the list.

All mutations run under one in-process lock and persist the wallet list and
the active index together before the in-memory state changes, so a failed
write leaves both the store and the registry untouched.
"""

from __future__ import annotations

import threading

from loguru import logger

from solvault.exceptions import (
    DecryptionError,
    DuplicateWalletError,
    IndexOutOfRangeError,
    NoWalletAvailableError,
)
from solvault.interfaces.store import BaseStore
from solvault.models import KeyMaterial, WalletRecord
from solvault.wallet.cipher import EnvelopeCipher
from solvault.wallet.codec import KeyCodec
from solvault.wallet.legacy import LegacyDecryptor
from solvault.wallet.migration import (
    ACTIVE_INDEX_KEY,
    WALLETS_KEY,
    LoadResult,
    MigrationAdapter,
    dump_active_index,
    dump_wallets,
)


class WalletRegistry:
    """Manages wallet creation, import, selection and removal.

    The registry is an ordinary object: create one per process or session
    and pass it to whatever needs it.

    Usage:
        registry = WalletRegistry(JsonFileStore(path), cipher)

        # First wallet becomes active
        wallet = registry.create()
        print(f"Deposit address: {wallet.address}")

        # Switch and sign
        registry.set_active(0)
        secret = registry.get_signing_material()
    """

    def __init__(
        self,
        store: BaseStore,
        cipher: EnvelopeCipher,
        codec: KeyCodec | None = None,
        legacy: LegacyDecryptor | None = None,
    ) -> None:
        """Initialize the registry and run the load-time migration.

        Args:
            store: Key-value store holding the serialized state.
            cipher: Envelope cipher for secret keys at rest.
            codec: Key codec; a default one is created if omitted.
            legacy: Decryptor for old CLI and dashboard ciphertext; built
                from default settings if omitted.
        """
        self._store = store
        self._cipher = cipher
        self._codec = codec or KeyCodec()
        self._migration = MigrationAdapter(store, cipher, self._codec, legacy)
        self._lock = threading.RLock()
        self._wallets: tuple[WalletRecord, ...] = ()
        self._active_index: int | None = None
        self.last_load: LoadResult = self.reload()

    @property
    def codec(self) -> KeyCodec:
        """Get the key codec."""
        return self._codec

    @property
    def cipher(self) -> EnvelopeCipher:
        """Get the envelope cipher."""
        return self._cipher

    @property
    def migration(self) -> MigrationAdapter:
        """Get the migration adapter bound to this registry's store."""
        return self._migration

    @property
    def active_index(self) -> int | None:
        """Get the index of the active wallet, or None if empty."""
        with self._lock:
            return self._active_index

    def __len__(self) -> int:
        with self._lock:
            return len(self._wallets)

    def reload(self) -> LoadResult:
        """Re-read state from the store, running the migration pass.

        Returns:
            The LoadResult describing what the migration did.
        """
        with self._lock:
            result = self._migration.load()
            self._wallets = tuple(result.wallets)
            self._active_index = result.active_index
            self.last_load = result
            logger.debug(
                "Loaded {} wallet(s), active index {}", len(self._wallets), self._active_index
            )
            return result

    def list(self) -> tuple[WalletRecord, ...]:
        """Return all wallets in insertion order."""
        with self._lock:
            return self._wallets

    def get_active(self) -> WalletRecord | None:
        """Return the active wallet, or None if the registry is empty."""
        with self._lock:
            if self._active_index is None:
                return None
            return self._wallets[self._active_index]

    def find(self, address: str) -> int | None:
        """Return the index of the wallet with this address, if any."""
        with self._lock:
            for index, wallet in enumerate(self._wallets):
                if wallet.address == address:
                    return index
            return None

    def create(self) -> WalletRecord:
        """Generate, encrypt and store a new wallet.

        The first wallet in an empty registry becomes active.

        Returns:
            The stored WalletRecord.
        """
        with self._lock:
            record = self._seal(self._codec.generate())
            self._append(record)

        logger.info("Created new wallet: {}", record.address)
        return record

    def import_wallet(self, base58_secret: str) -> WalletRecord:
        """Import a wallet from its base58 secret key.

        Args:
            base58_secret: Base58-encoded 64-byte secret key.

        Returns:
            The stored WalletRecord.

        Raises:
            InvalidKeyFormatError: If the secret is malformed.
            DuplicateWalletError: If the address is already registered.
        """
        material = self._codec.from_secret_material(base58_secret)

        with self._lock:
            if self.find(material.address) is not None:
                raise DuplicateWalletError(material.address)
            record = self._seal(material)
            self._append(record)

        logger.info("Imported wallet from private key: {}", record.address)
        return record

    def adopt(self, records: list[WalletRecord]) -> list[WalletRecord]:
        """Append already-encrypted records, skipping known addresses.

        Used when bringing legacy wallet files into the registry.

        Returns:
            The records that were added.
        """
        with self._lock:
            known = {wallet.address for wallet in self._wallets}
            added: list[WalletRecord] = []
            for record in records:
                if record.address in known:
                    logger.info("Skipping wallet already in registry: {}", record.address)
                    continue
                known.add(record.address)
                added.append(record)

            if added:
                active = 0 if self._active_index is None else self._active_index
                self._commit((*self._wallets, *added), active)

        return added

    def set_active(self, index: int) -> None:
        """Select the active wallet.

        Raises:
            IndexOutOfRangeError: If ``index`` is outside the wallet list.
        """
        with self._lock:
            self._check_index(index)
            self._commit(self._wallets, index)
            address = self._wallets[index].address

        logger.info("Active wallet set to {} ({})", index, address)

    def remove(self, index: int) -> WalletRecord:
        """Remove the wallet at ``index`` and re-point the active index.

        If the active wallet is removed, the next wallet takes its place, or
        the previous one when it was last. Removing a wallet before the
        active one shifts the index down by one.

        Returns:
            The removed WalletRecord.

        Raises:
            IndexOutOfRangeError: If ``index`` is outside the wallet list.
        """
        with self._lock:
            self._check_index(index)
            wallets = self._wallets
            removed = wallets[index]
            remaining = wallets[:index] + wallets[index + 1 :]

            active = self._active_index
            if not remaining:
                active = None
            elif active == index:
                active = index if index < len(remaining) else index - 1
            elif active is not None and active > index:
                active -= 1

            self._commit(remaining, active)

        logger.info("Removed wallet: {}", removed.address)
        return removed

    def get_signing_material(self, index: int | None = None) -> bytes:
        """Decrypt and return the raw 64-byte secret key.

        Resolves to the active wallet when ``index`` is omitted. Nothing is
        cached; callers should drop the bytes once they have signed.

        Raises:
            NoWalletAvailableError: If there is no wallet to resolve.
            IndexOutOfRangeError: If an explicit index is out of range.
            DecryptionError: If the secret cannot be decrypted or does not
                match the wallet address.
            InvalidKeyFormatError: If the decrypted value is not a secret key.
        """
        with self._lock:
            if not self._wallets:
                raise NoWalletAvailableError()
            if index is None:
                if self._active_index is None:
                    raise NoWalletAvailableError("No active wallet selected")
                record = self._wallets[self._active_index]
            else:
                self._check_index(index)
                record = self._wallets[index]

        plaintext = self._cipher.decrypt(record.ciphertext)
        material = self._codec.from_secret_material(plaintext)
        if material.address != record.address:
            raise DecryptionError("Decrypted key does not match wallet address")
        return self._codec.decode_secret(plaintext)

    def _check_index(self, index: int) -> None:
        size = len(self._wallets)
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < size:
            raise IndexOutOfRangeError(index, size)

    def _seal(self, material: KeyMaterial) -> WalletRecord:
        sealed = self._cipher.encrypt(material.secret.get_secret_value())
        return WalletRecord(
            address=material.address,
            cipher_text=sealed.data,
            iv=sealed.iv,
            explorer_link=self._codec.to_explorer_link(material.address),
        )

    def _append(self, record: WalletRecord) -> None:
        # An empty registry has no active index; its first wallet becomes active
        active = 0 if self._active_index is None else self._active_index
        self._commit((*self._wallets, record), active)

    def _commit(self, wallets: tuple[WalletRecord, ...], active_index: int | None) -> None:
        """Persist both keys, then swap the in-memory state."""
        self._store.set_many(
            {
                WALLETS_KEY: dump_wallets(wallets),
                ACTIVE_INDEX_KEY: dump_active_index(active_index),
            }
        )
        self._wallets = wallets
        self._active_index = active_index
