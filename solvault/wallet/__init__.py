"""Wallet key management.

Provides key encoding, envelope encryption, the multi-wallet registry and
the load-time migration of legacy records.
"""

from solvault.wallet.cipher import EnvelopeCipher, looks_encrypted
from solvault.wallet.codec import KeyCodec
from solvault.wallet.legacy import LegacyDecryptor
from solvault.wallet.migration import LoadResult, MigrationAdapter
from solvault.wallet.registry import WalletRegistry
from solvault.wallet.service import WalletService, build_registry

__all__ = [
    "EnvelopeCipher",
    "KeyCodec",
    "LegacyDecryptor",
    "LoadResult",
    "MigrationAdapter",
    "WalletRegistry",
    "WalletService",
    "build_registry",
    "looks_encrypted",
]
