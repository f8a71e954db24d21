"""Domain models for the solvault key-management core."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, SecretStr


class CipherEncoding(str, Enum):
    """How the encryption nonce is stored alongside the ciphertext.

    EMBEDDED_IV packs the nonce into the single ciphertext string (the
    dashboard layout); SEPARATE_IV keeps it in its own field (the CLI layout).
    """

    EMBEDDED_IV = "embedded"
    SEPARATE_IV = "separate"


class Ciphertext(BaseModel):
    """Encrypted secret material as stored at rest.

    Immutable. ``iv`` is None when the nonce is embedded in ``data``.
    """

    model_config = {"frozen": True}

    data: str = Field(..., description="Hex-encoded ciphertext (nonce-prefixed when embedded)")
    iv: str | None = Field(default=None, description="Hex-encoded nonce for SEPARATE_IV")


class KeyMaterial(BaseModel):
    """A public address paired with its base58 secret key.

    The secret is wrapped in SecretStr so it never shows up in reprs or logs.
    """

    model_config = {"frozen": True}

    address: str = Field(..., description="Base58 public key")
    secret: SecretStr = Field(..., description="Base58-encoded 64-byte secret key")


class WalletRecord(BaseModel):
    """A persisted wallet: public address plus its encrypted signing secret.

    Immutable once created. ``explorer_link`` is derived from ``address`` and
    is recomputed on load; it is never the source of truth.
    """

    model_config = {"frozen": True}

    address: str = Field(..., min_length=1, description="Base58 public key")
    cipher_text: str = Field(..., min_length=1, description="Encrypted base58 secret key")
    iv: str | None = Field(default=None, description="Nonce for SEPARATE_IV records")
    explorer_link: str = Field(default="", description="Block explorer URL for the address")

    @property
    def ciphertext(self) -> Ciphertext:
        """Return the encrypted payload in cipher form."""
        return Ciphertext(data=self.cipher_text, iv=self.iv)

    @property
    def short_address(self) -> str:
        """Return shortened address for display (AbCd...WxYz)."""
        return f"{self.address[:4]}...{self.address[-4:]}"


class OperationResult(BaseModel):
    """Tagged result returned to API and CLI callers.

    ``data`` only ever carries public information (addresses, links, indexes).
    """

    model_config = {"frozen": True}

    success: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Human-readable outcome")
    data: Any = Field(default=None, description="Operation payload (no secrets)")

    @classmethod
    def ok(cls, message: str, data: Any = None) -> "OperationResult":
        """Build a successful result."""
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str) -> "OperationResult":
        """Build a failed result."""
        return cls(success=False, message=message)
