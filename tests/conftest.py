"""Shared fixtures for the wallet core tests."""

import base64
import os

import pytest
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from solvault.models import CipherEncoding
from solvault.persistence import MemoryStore
from solvault.wallet import EnvelopeCipher, KeyCodec, WalletRegistry
from solvault.wallet.cipher import derive_key
from solvault.wallet.legacy import LegacyDecryptor, evp_bytes_to_key

# Cheap scrypt cost so tests stay fast
TEST_SCRYPT_N = 2**4

LEGACY_CLI_PASSPHRASE = "Brew-MEV-SOLANA-AppSecurity-linuxx64-tester"
LEGACY_WEB_PASSPHRASE = "MeV-BoT-SOLANA-AppSecurity"


def _cbc_encrypt(key: bytes, iv: bytes, plaintext: str) -> bytes:
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def cli_encrypt(plaintext: str, passphrase: str = LEGACY_CLI_PASSPHRASE) -> tuple[str, str]:
    """Seal a value the way the old CLI did: (hex data, hex iv)."""
    key = derive_key(passphrase, b"salt", n=TEST_SCRYPT_N)
    iv = os.urandom(16)
    return _cbc_encrypt(key, iv, plaintext).hex(), iv.hex()


def crypto_js_encrypt(plaintext: str, passphrase: str = LEGACY_WEB_PASSPHRASE) -> str:
    """Seal a value the way crypto-js AES.encrypt(text, passphrase) did."""
    salt = os.urandom(8)
    key, iv = evp_bytes_to_key(passphrase.encode("utf-8"), salt)
    return base64.b64encode(b"Salted__" + salt + _cbc_encrypt(key, iv, plaintext)).decode("ascii")


@pytest.fixture
def cipher_key() -> bytes:
    """A deterministic envelope key."""
    return derive_key("test-app-secret-host", b"salt", n=TEST_SCRYPT_N)


@pytest.fixture
def cipher(cipher_key: bytes) -> EnvelopeCipher:
    """Cipher using the separate-IV layout."""
    return EnvelopeCipher(cipher_key, encoding=CipherEncoding.SEPARATE_IV)


@pytest.fixture
def embedded_cipher(cipher_key: bytes) -> EnvelopeCipher:
    """Cipher using the embedded-IV layout."""
    return EnvelopeCipher(cipher_key, encoding=CipherEncoding.EMBEDDED_IV)


@pytest.fixture
def legacy() -> LegacyDecryptor:
    """Decryptor for old CLI and dashboard ciphertext with cheap scrypt."""
    return LegacyDecryptor(LEGACY_CLI_PASSPHRASE, LEGACY_WEB_PASSPHRASE, n=TEST_SCRYPT_N)


@pytest.fixture
def codec() -> KeyCodec:
    """Key codec with the default explorer."""
    return KeyCodec()


@pytest.fixture
def store() -> MemoryStore:
    """Empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def registry(
    store: MemoryStore, cipher: EnvelopeCipher, codec: KeyCodec, legacy: LegacyDecryptor
) -> WalletRegistry:
    """Empty registry over the in-memory store."""
    return WalletRegistry(store, cipher, codec, legacy)


@pytest.fixture
def cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Isolate settings for CLI runs: cheap scrypt, temp cwd, fresh settings."""
    import solvault.config

    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CIPHER_SCRYPT_N", str(TEST_SCRYPT_N))
    monkeypatch.setattr(solvault.config, "_settings", None)
    yield tmp_path
    monkeypatch.setattr(solvault.config, "_settings", None)
