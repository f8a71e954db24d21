"""Decryption of secrets written by the earlier CLI and web dashboard.

Two legacy formats exist:

    CLI  - AES-256-CBC, key = scrypt(passphrase, "salt"), hex data + 16-byte hex iv
    Web  - crypto-js ``AES.encrypt(text, passphrase)``: base64 OpenSSL envelope
           ("Salted__" + 8-byte salt + data), key and iv from EVP_BytesToKey/MD5

Both are only read here; new ciphertext always goes through EnvelopeCipher.
"""

import base64
import binascii
import os
import platform
import sys

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from solvault.config import CipherConfig
from solvault.exceptions import DecryptionError
from solvault.wallet.cipher import derive_key

CBC_IV_LENGTH = 16
CBC_KEY_LENGTH = 32

# base64 of b"Salted__", the crypto-js / OpenSSL envelope header
CRYPTO_JS_PREFIX = "U2FsdGVkX1"
_OPENSSL_MAGIC = b"Salted__"

_NODE_ARCH = {
    "x86_64": "x64",
    "amd64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "ia32",
    "i686": "ia32",
    "x86": "ia32",
    "armv7l": "arm",
}


def node_host_tag() -> str:
    """Return ``process.platform + process.arch`` as Node would report it."""
    machine = platform.machine().lower()
    return f"{sys.platform}{_NODE_ARCH.get(machine, machine)}"


def cli_passphrase(app_secret: str) -> str:
    """Rebuild the passphrase the old CLI derived its key from."""
    user = os.environ.get("USER") or os.environ.get("USERNAME") or ""
    return f"{app_secret}-{node_host_tag()}-{user}"


def evp_bytes_to_key(passphrase: bytes, salt: bytes, key_len: int = 32, iv_len: int = 16) -> tuple[bytes, bytes]:
    """OpenSSL EVP_BytesToKey with MD5 and one iteration."""
    derived = b""
    block = b""
    while len(derived) < key_len + iv_len:
        digest = hashes.Hash(hashes.MD5())
        digest.update(block + passphrase + salt)
        block = digest.finalize()
        derived += block
    return derived[:key_len], derived[key_len : key_len + iv_len]


def is_cli_ciphertext(value: str, iv: str | None) -> bool:
    """Check for the CLI layout: hex data with a 16-byte hex iv."""
    if not iv or len(iv) != CBC_IV_LENGTH * 2:
        return False
    try:
        bytes.fromhex(iv)
        data = bytes.fromhex(value)
    except ValueError:
        return False
    return len(data) > 0 and len(data) % CBC_IV_LENGTH == 0


def is_crypto_js_ciphertext(value: str) -> bool:
    """Check for the crypto-js salted envelope."""
    return value.startswith(CRYPTO_JS_PREFIX)


def _cbc_decrypt(key: bytes, iv: bytes, data: bytes) -> str:
    if not data or len(data) % CBC_IV_LENGTH:
        raise DecryptionError("Legacy ciphertext has an invalid length")

    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(data) + decryptor.finalize()

    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    try:
        plaintext = unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise DecryptionError("Legacy ciphertext could not be decrypted") from e

    try:
        text = plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecryptionError("Legacy ciphertext could not be decrypted") from e
    if not text:
        raise DecryptionError("Legacy ciphertext decrypted to nothing")
    return text


class LegacyDecryptor:
    """Reads secrets sealed by the earlier CLI and web dashboard.

    The CLI key is derived on first use and then cached.

    Usage:
        legacy = LegacyDecryptor.from_config(get_settings().cipher)
        if is_cli_ciphertext(data, iv):
            secret = legacy.decrypt_cli(data, iv)
    """

    def __init__(
        self,
        cli_passphrase: str,
        web_passphrase: str,
        salt: bytes = b"salt",
        n: int = 2**14,
    ) -> None:
        self._cli_passphrase = cli_passphrase
        self._web_passphrase = web_passphrase
        self._salt = salt
        self._n = n
        self._cli_key: bytes | None = None

    @classmethod
    def from_config(cls, config: CipherConfig) -> "LegacyDecryptor":
        """Build a decryptor using the old CLI's host-derived passphrase."""
        return cls(
            cli_passphrase=cli_passphrase(config.legacy_cli_secret.get_secret_value()),
            web_passphrase=config.legacy_web_secret.get_secret_value(),
            salt=config.salt.encode("utf-8"),
        )

    def decrypt_cli(self, data: str, iv: str) -> str:
        """Decrypt an AES-256-CBC record written by the old CLI.

        Raises:
            DecryptionError: On bad hex, wrong key or bad padding.
        """
        try:
            raw_iv = bytes.fromhex(iv)
            raw = bytes.fromhex(data)
        except ValueError as e:
            raise DecryptionError("Legacy ciphertext is not valid hex") from e
        if len(raw_iv) != CBC_IV_LENGTH:
            raise DecryptionError("Invalid initialization vector")

        if self._cli_key is None:
            self._cli_key = derive_key(self._cli_passphrase, self._salt, n=self._n)
        return _cbc_decrypt(self._cli_key, raw_iv, raw)

    def decrypt_crypto_js(self, value: str) -> str:
        """Decrypt a crypto-js passphrase envelope from the old dashboard.

        Raises:
            DecryptionError: On malformed base64, wrong passphrase or bad padding.
        """
        try:
            raw = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecryptionError("Legacy ciphertext is not valid base64") from e
        if not raw.startswith(_OPENSSL_MAGIC) or len(raw) < 16:
            raise DecryptionError("Legacy ciphertext has no salt header")

        salt, data = raw[8:16], raw[16:]
        key, iv = evp_bytes_to_key(self._web_passphrase.encode("utf-8"), salt)
        return _cbc_decrypt(key, iv, data)
