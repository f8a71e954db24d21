"""Solana keypair encoding: base58 addresses, base58 secrets, explorer links.

KeyCodec never touches persistence or encryption.
"""

import base58
from solders.keypair import Keypair

from solvault.exceptions import InvalidKeyFormatError
from solvault.models import KeyMaterial

SECRET_KEY_LENGTH = 64
SEED_LENGTH = 32
DEFAULT_EXPLORER_BASE_URL = "https://solscan.io/account/"


class KeyCodec:
    """Converts between ed25519 keypairs and their string representations.

    A secret key is the 64-byte ``seed || public_key`` layout used by Solana
    wallets, encoded as base58. The address is the base58 public key.

    Usage:
        codec = KeyCodec()
        material = codec.generate()
        print(material.address)

        restored = codec.from_secret_material(material.secret.get_secret_value())
        assert restored.address == material.address
    """

    def __init__(self, explorer_base_url: str = DEFAULT_EXPLORER_BASE_URL) -> None:
        """Initialize the codec.

        Args:
            explorer_base_url: Prefix used to build explorer links.
        """
        self._explorer_base_url = explorer_base_url

    @property
    def explorer_base_url(self) -> str:
        """Get the explorer URL prefix."""
        return self._explorer_base_url

    def generate(self) -> KeyMaterial:
        """Generate a fresh keypair from the OS random source.

        Returns:
            KeyMaterial with the base58 address and base58 secret key.
        """
        keypair = Keypair()
        return self._material(keypair)

    def from_secret_material(self, base58_secret: str) -> KeyMaterial:
        """Parse a base58 secret key.

        Args:
            base58_secret: Base58-encoded 64-byte secret key.

        Returns:
            KeyMaterial for the parsed keypair.

        Raises:
            InvalidKeyFormatError: If the string is not base58, has the wrong
                length, or its public half does not match its seed.
        """
        raw = self.decode_secret(base58_secret)
        return self._material(Keypair.from_seed(raw[:SEED_LENGTH]))

    def decode_secret(self, base58_secret: str) -> bytes:
        """Decode and validate a base58 secret key.

        Args:
            base58_secret: Base58-encoded 64-byte secret key.

        Returns:
            The raw 64 secret key bytes.

        Raises:
            InvalidKeyFormatError: If decoding or validation fails.
        """
        if not isinstance(base58_secret, str) or not base58_secret.strip():
            raise InvalidKeyFormatError("Private key must be a non-empty base58 string")

        try:
            raw = base58.b58decode(base58_secret.strip())
        except ValueError as e:
            raise InvalidKeyFormatError("Private key must be valid base58") from e

        if len(raw) != SECRET_KEY_LENGTH:
            raise InvalidKeyFormatError(
                f"Private key must decode to {SECRET_KEY_LENGTH} bytes, got {len(raw)}"
            )

        # The trailing 32 bytes must be the public key derived from the seed
        derived = Keypair.from_seed(raw[:SEED_LENGTH])
        if bytes(derived.pubkey()) != raw[SEED_LENGTH:]:
            raise InvalidKeyFormatError("Private key does not form a valid keypair")

        return raw

    def to_keypair(self, raw_secret: bytes) -> Keypair:
        """Build a signing keypair from raw secret bytes.

        Raises:
            InvalidKeyFormatError: If the bytes are not a valid secret key.
        """
        if len(raw_secret) != SECRET_KEY_LENGTH:
            raise InvalidKeyFormatError(
                f"Secret key must be {SECRET_KEY_LENGTH} bytes, got {len(raw_secret)}"
            )
        keypair = Keypair.from_seed(raw_secret[:SEED_LENGTH])
        if bytes(keypair.pubkey()) != raw_secret[SEED_LENGTH:]:
            raise InvalidKeyFormatError("Secret key does not form a valid keypair")
        return keypair

    def to_explorer_link(self, address: str) -> str:
        """Return the block explorer URL for an address."""
        return f"{self._explorer_base_url}{address}"

    @staticmethod
    def _material(keypair: Keypair) -> KeyMaterial:
        secret = base58.b58encode(bytes(keypair)).decode("ascii")
        return KeyMaterial(address=str(keypair.pubkey()), secret=secret)
