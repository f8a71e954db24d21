"""Command-line entry point for the solvault wallet manager."""

import argparse
import getpass
import sys
from pathlib import Path

from loguru import logger

from solvault.config import get_settings
from solvault.exceptions import WalletError
from solvault.models import CipherEncoding, OperationResult
from solvault.wallet import WalletService, build_registry


def setup_logging(verbose: bool = False, log_dir: Path | None = Path("logs")) -> None:
    """Configure loguru logging."""
    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level="DEBUG" if verbose else "INFO",
    )
    if log_dir is not None:
        log_dir.mkdir(exist_ok=True)
        logger.add(
            log_dir / "solvault_{time}.log",
            rotation="10 MB",
            retention="7 days",
            level="DEBUG",
        )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="solvault - encrypted Solana wallet manager",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--store",
        type=Path,
        default=None,
        help="Wallet store file (default: WALLET_STORE_PATH or data/wallets.json)",
    )
    parser.add_argument(
        "--encoding",
        choices=[encoding.value for encoding in CipherEncoding],
        default=None,
        help="Nonce encoding for newly encrypted keys",
    )
    parser.add_argument(
        "--auto-create",
        action="store_true",
        help="Create a wallet if the store is empty",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug logs on stderr",
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Do not write logs under logs/",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("create", help="Create a new wallet")
    import_cmd = commands.add_parser("import", help="Import a wallet from a base58 private key")
    import_cmd.add_argument(
        "secret",
        nargs="?",
        default=None,
        help="Base58 private key (prompted for when omitted)",
    )
    commands.add_parser("list", help="List wallets")
    use_cmd = commands.add_parser("use", help="Select the active wallet")
    use_cmd.add_argument("index", type=int)
    remove_cmd = commands.add_parser("remove", help="Remove a wallet")
    remove_cmd.add_argument("index", type=int)
    commands.add_parser("show", help="Show the active wallet")
    commands.add_parser("security", help="Report encryption status of stored keys")
    migrate_cmd = commands.add_parser(
        "migrate-legacy", help="Import wallets from legacy single-wallet files"
    )
    migrate_cmd.add_argument("files", nargs="+", type=Path)

    return parser.parse_args(argv)


def print_result(result: OperationResult) -> None:
    """Print an operation result for humans."""
    stream = sys.stdout if result.success else sys.stderr
    print(result.message, file=stream)

    data = result.data
    if isinstance(data, dict) and "address" in data:
        print(f"  Address:  {data['address']}")
        if data.get("address_link"):
            print(f"  Explorer: {data['address_link']}")
    elif isinstance(data, dict) and "security_info" in data:
        print(f"  All keys encrypted: {data['wallets_encrypted']}")
        for item in data["security_info"]:
            marker = "*" if item["is_active"] else " "
            print(
                f" {marker} {item['address']}  encrypted={item['is_private_key_encrypted']}"
                f"  length={item['private_key_length']}"
            )
    elif isinstance(data, list):
        for item in data:
            if isinstance(item, dict):
                marker = "*" if item.get("active") else " "
                print(f" {marker} [{item['index']}] {item['address']}")
            else:
                print(f"   {item}")


def run(args: argparse.Namespace) -> OperationResult:
    """Execute a parsed command and return its result."""
    settings = get_settings()
    wallet_config = settings.wallet
    updates = {}
    if args.store is not None:
        updates["store_path"] = args.store
    if args.encoding is not None:
        updates["encoding"] = CipherEncoding(args.encoding)
    if updates:
        wallet_config = wallet_config.model_copy(update=updates)

    try:
        registry = build_registry(wallet_config, settings.cipher)
    except WalletError as e:
        logger.error("Failed to open wallet store {}: {}", wallet_config.store_path, e)
        return OperationResult.fail(str(e))
    service = WalletService(registry)

    if (args.auto_create or wallet_config.auto_create) and args.command != "create":
        boot = service.bootstrap(auto_create=True)
        if not boot.success:
            return boot

    if args.command == "create":
        return service.create()
    if args.command == "import":
        secret = args.secret
        if secret is None:
            secret = getpass.getpass("Enter your wallet PRIVATE KEY (Base58): ")
        return service.import_wallet(secret)
    if args.command == "list":
        return service.list_wallets()
    if args.command == "use":
        return service.set_active(args.index)
    if args.command == "remove":
        return service.remove(args.index)
    if args.command == "show":
        return service.get_active()
    if args.command == "security":
        return service.security_report()
    if args.command == "migrate-legacy":
        return service.import_legacy_files(args.files)

    return OperationResult.fail(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return the process exit code."""
    args = parse_args(argv)
    setup_logging(verbose=args.verbose, log_dir=None if args.no_log_file else Path("logs"))

    result = run(args)
    print_result(result)
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
