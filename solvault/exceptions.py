"""Custom exceptions for the solvault key-management core.

Messages never carry secret key material or ciphertext.
"""


class WalletError(Exception):
    """Base exception for wallet-related errors."""

    pass


class InvalidKeyFormatError(WalletError):
    """Raised when a secret key string is malformed or not a valid keypair."""

    def __init__(self, message: str = "Invalid private key format") -> None:
        super().__init__(message)


class DuplicateWalletError(WalletError):
    """Raised when importing an address already present in the registry.

    Attributes:
        address: The public address that already exists.
    """

    def __init__(self, address: str) -> None:
        super().__init__(f"Wallet already exists: {address}")
        self.address = address


class IndexOutOfRangeError(WalletError):
    """Raised when a wallet index is outside the registry bounds.

    Attributes:
        index: The rejected index.
        size: Number of wallets in the registry at the time.
    """

    def __init__(self, index: int, size: int) -> None:
        if size == 0:
            message = f"Invalid wallet index {index}: no wallets available"
        else:
            message = f"Invalid wallet index {index}. Available wallets: 0-{size - 1}"
        super().__init__(message)
        self.index = index
        self.size = size


class NoWalletAvailableError(WalletError):
    """Raised when an operation needs a wallet and none is selected."""

    def __init__(
        self,
        message: str = "No wallets available. Please create or import a wallet first.",
    ) -> None:
        super().__init__(message)


# =============================================================================
# Cipher Layer Exceptions
# =============================================================================


class CipherError(WalletError):
    """Base exception for envelope encryption errors."""

    pass


class EncryptionError(CipherError):
    """Raised when secret material cannot be encrypted."""

    def __init__(self, message: str = "Failed to encrypt data") -> None:
        super().__init__(message)


class DecryptionError(CipherError):
    """Raised when ciphertext cannot be decrypted with the derived key.

    Typical causes: the store was copied from another host, the bytes were
    corrupted, or the input was truncated.
    """

    def __init__(self, message: str = "Failed to decrypt data") -> None:
        super().__init__(message)


# =============================================================================
# Storage Layer Exceptions
# =============================================================================


class StorageError(WalletError):
    """Base exception for persistence errors."""

    pass


class StorageCorruptedError(StorageError):
    """Raised when a persisted blob cannot be parsed.

    Attributes:
        key: The logical store key that failed to parse, if known.
    """

    def __init__(self, message: str = "Stored wallet data is corrupted", key: str | None = None) -> None:
        super().__init__(message)
        self.key = key
