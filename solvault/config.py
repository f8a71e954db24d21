"""Configuration architecture using pydantic-settings for typed environment loading."""

from pathlib import Path

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from solvault.models import CipherEncoding


class WalletConfig(BaseSettings):
    """Wallet registry configuration."""

    model_config = SettingsConfigDict(
        env_prefix="WALLET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    store_path: Path = Path("data/wallets.json")
    encoding: CipherEncoding = CipherEncoding.SEPARATE_IV
    explorer_base_url: str = "https://solscan.io/account/"
    # Create a first wallet automatically when the registry is empty
    auto_create: bool = False


class CipherConfig(BaseSettings):
    """Envelope cipher configuration.

    The derived key combines ``app_secret`` with host fingerprint factors.
    This is not a user passphrase; anyone on the same host and account can
    re-derive it.
    """

    model_config = SettingsConfigDict(
        env_prefix="CIPHER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_secret: SecretStr = SecretStr("Brew-MEV-SOLANA-AppSecurity")
    salt: str = "salt"
    scrypt_n: int = 2**14
    scrypt_r: int = 8
    scrypt_p: int = 1
    fingerprint_extra: str = ""
    # Passphrases of the earlier CLI and web dashboard, read during migration only
    legacy_cli_secret: SecretStr = SecretStr("Brew-MEV-SOLANA-AppSecurity")
    legacy_web_secret: SecretStr = SecretStr("MeV-BoT-SOLANA-AppSecurity")


class Settings:
    """Root settings aggregating all configuration sections."""

    def __init__(self) -> None:
        self.wallet = WalletConfig()
        self.cipher = CipherConfig()


# Global settings instance - lazily loaded
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
