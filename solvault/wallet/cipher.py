"""Envelope encryption for secret key material at rest.

The symmetric key is derived with scrypt from an application secret combined
with host fingerprint factors (platform, machine, user). It is re-derived on
every start and never persisted. Because none of the inputs are secret, the
envelope only protects against casual disclosure of the store file; it is not
a substitute for a user passphrase.

Ciphertext uses AES-256-GCM with a fresh 96-bit nonce per call.
"""

import getpass
import os
import platform
import re
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from loguru import logger

from solvault.config import CipherConfig
from solvault.exceptions import DecryptionError, EncryptionError
from solvault.models import CipherEncoding, Ciphertext

KEY_LENGTH = 32
NONCE_LENGTH = 12
TAG_LENGTH = 16

# looks_encrypted thresholds
MIN_CIPHERTEXT_LENGTH = 50
_CIPHERTEXT_ALPHABET = re.compile(r"^[0-9a-f]+$")


def host_fingerprint(extra: str = "") -> str:
    """Collect stable, locally observable host factors.

    Args:
        extra: Optional additional factor appended to the fingerprint.

    Returns:
        A dash-joined string of platform, architecture, machine name and user.
    """
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = os.environ.get("USER") or os.environ.get("USERNAME") or ""

    factors = [platform.system(), platform.machine(), platform.node(), user]
    if extra:
        factors.append(extra)
    return "-".join(factors)


def derive_key(
    passphrase: str,
    salt: bytes,
    n: int = 2**14,
    r: int = 8,
    p: int = 1,
) -> bytes:
    """Derive a 256-bit key from a passphrase with scrypt."""
    kdf = Scrypt(salt=salt, length=KEY_LENGTH, n=n, r=r, p=p)
    return kdf.derive(passphrase.encode("utf-8"))


def looks_encrypted(value: object) -> bool:
    """Best-effort guess whether a stored value is already ciphertext.

    Only used to avoid double-encrypting during migration; it is NOT a
    security boundary. Ciphertext produced here is lower-case hex and longer
    than MIN_CIPHERTEXT_LENGTH. A base58 secret key is classified as
    plaintext unless every character happens to be a lower-case hex digit,
    which for an 87-88 character key is vanishingly unlikely but possible.
    """
    if not value or not isinstance(value, str):
        return False
    return len(value) > MIN_CIPHERTEXT_LENGTH and _CIPHERTEXT_ALPHABET.match(value) is not None


class EnvelopeCipher:
    """Symmetric encryption of secret material with a host-derived key.

    Usage:
        cipher = EnvelopeCipher.from_config(get_settings().cipher)
        sealed = cipher.encrypt("5Kd3...")
        plaintext = cipher.decrypt(sealed)
    """

    def __init__(
        self,
        key: bytes,
        encoding: CipherEncoding = CipherEncoding.SEPARATE_IV,
    ) -> None:
        """Initialize with an already derived key.

        Args:
            key: 32-byte AES key.
            encoding: Where the nonce is stored relative to the ciphertext.

        Raises:
            ValueError: If the key has the wrong length.
        """
        if len(key) != KEY_LENGTH:
            raise ValueError(f"Cipher key must be {KEY_LENGTH} bytes")
        self._aead = AESGCM(key)
        self._encoding = CipherEncoding(encoding)

    @classmethod
    def from_passphrase(
        cls,
        passphrase: str,
        salt: bytes = b"salt",
        encoding: CipherEncoding = CipherEncoding.SEPARATE_IV,
        n: int = 2**14,
        r: int = 8,
        p: int = 1,
    ) -> "EnvelopeCipher":
        """Derive the key from a passphrase and build a cipher."""
        return cls(derive_key(passphrase, salt, n=n, r=r, p=p), encoding=encoding)

    @classmethod
    def from_config(
        cls,
        config: CipherConfig,
        encoding: CipherEncoding = CipherEncoding.SEPARATE_IV,
    ) -> "EnvelopeCipher":
        """Build a cipher keyed by the app secret plus the host fingerprint."""
        passphrase = f"{config.app_secret.get_secret_value()}-{host_fingerprint(config.fingerprint_extra)}"
        logger.debug("Deriving envelope key (scrypt n={})", config.scrypt_n)
        return cls.from_passphrase(
            passphrase,
            salt=config.salt.encode("utf-8"),
            encoding=encoding,
            n=config.scrypt_n,
            r=config.scrypt_r,
            p=config.scrypt_p,
        )

    @property
    def encoding(self) -> CipherEncoding:
        """Get the nonce encoding used for new ciphertext."""
        return self._encoding

    def encrypt(self, plaintext: str) -> Ciphertext:
        """Encrypt a string with a fresh nonce.

        Args:
            plaintext: Secret material to seal.

        Returns:
            Ciphertext in this cipher's encoding.

        Raises:
            EncryptionError: If the input is not a string or sealing fails.
        """
        if not isinstance(plaintext, str):
            raise EncryptionError("Only text can be encrypted")

        nonce = secrets.token_bytes(NONCE_LENGTH)
        try:
            sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        except (ValueError, OverflowError) as e:
            raise EncryptionError() from e

        if self._encoding is CipherEncoding.EMBEDDED_IV:
            return Ciphertext(data=nonce.hex() + sealed.hex())
        return Ciphertext(data=sealed.hex(), iv=nonce.hex())

    def decrypt(self, ciphertext: Ciphertext) -> str:
        """Decrypt a Ciphertext in either encoding.

        The encoding is read from the record itself (an ``iv`` present means
        SEPARATE_IV), so one cipher reads both layouts.

        Raises:
            DecryptionError: On wrong key, tampering, truncation or bad hex.
        """
        try:
            if ciphertext.iv is not None:
                nonce = bytes.fromhex(ciphertext.iv)
                sealed = bytes.fromhex(ciphertext.data)
            else:
                blob = bytes.fromhex(ciphertext.data)
                nonce, sealed = blob[:NONCE_LENGTH], blob[NONCE_LENGTH:]
        except ValueError as e:
            raise DecryptionError("Ciphertext is not valid hex") from e

        if len(nonce) != NONCE_LENGTH:
            raise DecryptionError("Invalid initialization vector")
        if len(sealed) < TAG_LENGTH:
            raise DecryptionError("Ciphertext is truncated")

        try:
            plaintext = self._aead.decrypt(nonce, sealed, None)
        except InvalidTag as e:
            raise DecryptionError() from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("Decrypted data is not valid text") from e

    def looks_encrypted(self, value: object) -> bool:
        """Heuristic ciphertext check; see module-level looks_encrypted."""
        return looks_encrypted(value)
