"""Tests for the command-line entry point."""

import json
from pathlib import Path

import pytest

import main
from solvault.config import get_settings
from solvault.models import CipherEncoding
from solvault.wallet import KeyCodec


def run_cli(store: Path, *args: str) -> int:
    return main.main(["--store", str(store), "--no-log-file", *args])


class TestCli:
    """End-to-end CLI runs against a temporary store."""

    def test_create_and_list(self, cli_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test create then list shows the active wallet."""
        store = cli_env / "wallets.json"

        assert run_cli(store, "create") == 0
        created = capsys.readouterr().out
        assert "New wallet created successfully" in created

        assert run_cli(store, "list") == 0
        listed = capsys.readouterr().out
        address = json.loads(json.loads(store.read_text())["wallets"])[0]["address"]
        assert f"* [0] {address}" in listed

    def test_import_use_remove(self, cli_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test import, select and remove through the CLI."""
        store = cli_env / "wallets.json"
        material = KeyCodec().generate()

        assert run_cli(store, "create") == 0
        assert run_cli(store, "import", material.secret.get_secret_value()) == 0
        assert run_cli(store, "use", "1") == 0
        capsys.readouterr()

        assert run_cli(store, "show") == 0
        assert material.address in capsys.readouterr().out

        assert run_cli(store, "remove", "1") == 0
        assert run_cli(store, "show") == 0
        assert material.address not in capsys.readouterr().out

    def test_failures_exit_nonzero(self, cli_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test failed operations exit with 1 and print to stderr."""
        store = cli_env / "wallets.json"

        assert run_cli(store, "show") == 1
        assert run_cli(store, "use", "3") == 1
        assert run_cli(store, "import", "garbage!") == 1

        err = capsys.readouterr().err
        assert "No wallet loaded" in err
        assert "garbage!" not in err

    def test_import_prompts_for_secret(
        self, cli_env: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test the secret is prompted for when omitted."""
        store = cli_env / "wallets.json"
        material = KeyCodec().generate()
        monkeypatch.setattr(main.getpass, "getpass", lambda prompt: material.secret.get_secret_value())

        assert run_cli(store, "import") == 0
        assert material.address in store.read_text()

    def test_auto_create(self, cli_env: Path) -> None:
        """Test --auto-create bootstraps an empty store."""
        store = cli_env / "wallets.json"
        assert main.main(["--store", str(store), "--no-log-file", "--auto-create", "show"]) == 0
        assert len(json.loads(json.loads(store.read_text())["wallets"])) == 1

    def test_security_report(self, cli_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test the security command prints per-wallet status."""
        store = cli_env / "wallets.json"
        run_cli(store, "create")
        capsys.readouterr()

        assert run_cli(store, "security") == 0
        assert "All keys encrypted: True" in capsys.readouterr().out

    def test_migrate_legacy(self, cli_env: Path) -> None:
        """Test legacy wallet files are pulled into the store."""
        store = cli_env / "wallets.json"
        material = KeyCodec().generate()
        legacy = cli_env / "brew-mev-wallet.json"
        legacy.write_text(
            json.dumps(
                {"address": material.address, "privateKey": material.secret.get_secret_value()}
            )
        )

        assert run_cli(store, "migrate-legacy", str(legacy)) == 0
        content = store.read_text()
        assert material.address in content
        assert material.secret.get_secret_value() not in content

    def test_migrate_legacy_undecodable_file(
        self, cli_env: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test a non-UTF-8 legacy file fails cleanly."""
        store = cli_env / "wallets.json"
        legacy = cli_env / "brew-mev-wallet.json"
        legacy.write_bytes(b"\xff\xfe\x00garbage")

        assert run_cli(store, "migrate-legacy", str(legacy)) == 1
        assert "corrupted" in capsys.readouterr().err

    def test_unreadable_store_fails(self, cli_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test a store path that cannot be read exits with 1."""
        store = cli_env / "wallets.json"
        store.mkdir()

        assert run_cli(store, "list") == 1
        assert "Failed to read store file" in capsys.readouterr().err

    def test_info_logs_on_stderr(self, cli_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test INFO messages reach stderr by default."""
        store = cli_env / "wallets.json"

        assert run_cli(store, "create") == 0
        assert "Created new wallet" in capsys.readouterr().err

    def test_embedded_encoding_flag(self, cli_env: Path) -> None:
        """Test --encoding embedded stores no separate IV."""
        store = cli_env / "wallets.json"
        assert main.main(
            ["--store", str(store), "--no-log-file", "--encoding", "embedded", "create"]
        ) == 0

        record = json.loads(json.loads(store.read_text())["wallets"])[0]
        assert record["iv"] is None


class TestSettings:
    """Tests for environment-driven configuration."""

    def test_defaults(self, cli_env: Path) -> None:
        """Test default settings."""
        settings = get_settings()
        assert settings.wallet.store_path == Path("data/wallets.json")
        assert settings.wallet.encoding is CipherEncoding.SEPARATE_IV
        assert settings.wallet.explorer_base_url == "https://solscan.io/account/"
        assert settings.cipher.scrypt_n == 16

    def test_env_overrides(self, cli_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test WALLET_ variables override defaults."""
        monkeypatch.setenv("WALLET_ENCODING", "embedded")
        monkeypatch.setenv("WALLET_AUTO_CREATE", "true")

        settings = get_settings()
        assert settings.wallet.encoding is CipherEncoding.EMBEDDED_IV
        assert settings.wallet.auto_create is True

    def test_settings_cached(self, cli_env: Path) -> None:
        """Test get_settings returns one instance."""
        assert get_settings() is get_settings()
