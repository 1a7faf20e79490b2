"""
Command-line interface for RateAnybody.

Provides CLI commands for working with ratings on the ledger:
- address: Print the address of a key file
- balance: Print the ledger balance of a key file
- cost: Compare direct and relayed fees for a rating file
- upload: Submit a rating file
- sample: Submit a sample rating through the relay
- ratings: List ratings recorded for a target address
- search: Search ratings by name, location, associations or score
- view: Print the raw payload of one transaction
- serve: Run the HTTP service

Usage:
    rate-anybody address wallet.json
    rate-anybody upload wallet.json rating.json [--strategy relay] [--yes]
    rate-anybody search --location "Austin, TX" --limit 20

Every command exits 0 on success and 1 on any validation, configuration or
network failure, with the reason printed to stderr.

Environment Variables:
    RATER_GATEWAY_URL: Ledger gateway base URL (default: https://arweave.net)
    RATER_RELAY_URL: Relay node base URL (default: https://node2.irys.xyz)
    RATER_STRATEGY: auto, direct or relay
    RATER_LOG_LEVEL: Logging level (default: WARNING)
"""

import argparse
import asyncio
import configparser
import dataclasses
import json
import sys
from pathlib import Path

from rate_anybody.config import RaterConfig, configure_logging, load_config
from rate_anybody.errors import (
    InsufficientFundsError,
    NetworkError,
    RateAnybodyError,
    SubmissionCancelled,
    ValidationError,
)
from rate_anybody.formatting import (
    format_ar,
    format_usd,
    render_view,
    results_heading,
)
from rate_anybody.ledger.client import LedgerClient, RelayClient, winston_to_ar
from rate_anybody.links import explorer_url, gateway_url
from rate_anybody.query import RatingFilter
from rate_anybody.rating import Rating, parse_rating_payload
from rate_anybody.retrieval import collect_ratings
from rate_anybody.submission import (
    SignerSession,
    SubmissionQuote,
    SubmissionReceipt,
    compare_costs,
    submit_rating,
)
from rate_anybody.wallet import Wallet

SAMPLE_RATING = {
    "firstName": "Elon",
    "middleName": "",
    "lastName": "Musk",
    "location": "Austin, TX",
    "associations": "Tesla, SpaceX, X Corp",
    "score": 8,
    "comments": "Innovative leader in electric vehicles and space technology",
}


# ============================================================================
# HELPERS
# ============================================================================


def _positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def _load_config(args: argparse.Namespace) -> RaterConfig | None:
    """Load configuration and set up logging; print and return None on error."""
    try:
        cfg = load_config(getattr(args, "config", None))
    except (ValueError, configparser.Error) as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        return None
    if getattr(args, "log_level", None):
        cfg.logging.level = args.log_level.upper()
    configure_logging(cfg.logging)
    return cfg


def _report_error(e: RateAnybodyError) -> int:
    """Print a failure to stderr and return the failure exit code."""
    if isinstance(e, InsufficientFundsError):
        print(
            f"Error: Insufficient balance ({format_ar(winston_to_ar(e.balance))} AR) "
            f"for transaction fee ({format_ar(winston_to_ar(e.fee))} AR)",
            file=sys.stderr,
        )
    elif isinstance(e, SubmissionCancelled):
        print("Upload cancelled.", file=sys.stderr)
    else:
        print(f"Error: {e}", file=sys.stderr)
    return 1


def _read_file(path: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise ValidationError(f"Cannot read {path}: {e.strerror or e}") from e


def prompt_confirmation(quote: SubmissionQuote) -> bool:
    """Show the quote and ask the operator to confirm the upload."""
    print("\n" + "=" * 60)
    print("CONFIRM UPLOAD")
    print("=" * 60)
    print(f"Rating:    {quote.summary}")
    print(f"Address:   {quote.address}")
    print(f"Strategy:  {quote.strategy}")
    print(f"Size:      {quote.size / 1024:.2f} KB")
    print(f"Fee:       {format_ar(quote.fee_ar)} AR")
    print(f"Balance:   {format_ar(quote.balance_ar)} AR")
    try:
        answer = input("Proceed with upload? (yes/no): ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def _print_receipt(receipt: SubmissionReceipt, cfg: RaterConfig) -> None:
    transaction_id = receipt.transaction_id
    print("\nUpload accepted.")
    print(f"Transaction ID: {transaction_id}")
    print(f"Strategy:       {receipt.strategy}")
    print(f"Fee:            {format_ar(winston_to_ar(receipt.fee))} AR")
    if receipt.strategy == "relay":
        print(f"Data:           {gateway_url(transaction_id, cfg.relay.gateway_url)}")
    else:
        print(f"Data:           {gateway_url(transaction_id, cfg.ledger.gateway_url)}")
    print(f"Explorer:       {explorer_url(transaction_id, cfg.ledger.explorer_url)}")
    print("Confirmation on the ledger may take several minutes.")


async def _submit(
    wallet: Wallet,
    rating: Rating,
    cfg: RaterConfig,
    *,
    interactive: bool,
) -> SubmissionReceipt:
    cfg = dataclasses.replace(
        cfg,
        submission=dataclasses.replace(cfg.submission, interactive_confirmation=interactive),
    )
    confirm = prompt_confirmation if interactive else None
    return await submit_rating(SignerSession(wallet=wallet), rating, cfg, confirm)


def _wants_confirmation(args: argparse.Namespace, cfg: RaterConfig) -> bool:
    """Confirmation is skipped with --yes or when stdin is not a terminal."""
    if getattr(args, "yes", False):
        return False
    return cfg.submission.interactive_confirmation and sys.stdin.isatty()


# ============================================================================
# WALLET COMMANDS
# ============================================================================


def cmd_address(args: argparse.Namespace) -> int:
    """
    Print the ledger address of a key file.

    Returns:
        0 on success, 1 on error
    """
    if _load_config(args) is None:
        return 1
    try:
        wallet = Wallet.from_file(args.wallet)
    except RateAnybodyError as e:
        return _report_error(e)
    print(wallet.address)
    return 0


def cmd_balance(args: argparse.Namespace) -> int:
    """
    Print the address and ledger balance of a key file.

    Returns:
        0 on success, 1 on error
    """
    cfg = _load_config(args)
    if cfg is None:
        return 1

    async def run() -> int:
        wallet = Wallet.from_file(args.wallet)
        async with LedgerClient.from_settings(cfg.ledger) as ledger:
            balance = await ledger.get_balance(wallet.address)
        print(f"Address: {wallet.address}")
        print(f"Balance: {format_ar(winston_to_ar(balance))} AR")
        return 0

    try:
        return asyncio.run(run())
    except RateAnybodyError as e:
        return _report_error(e)


# ============================================================================
# SUBMISSION COMMANDS
# ============================================================================


def cmd_cost(args: argparse.Namespace) -> int:
    """
    Compare the direct and relayed fee for uploading a file.

    Returns:
        0 on success, 1 on error
    """
    cfg = _load_config(args)
    if cfg is None:
        return 1

    async def run() -> int:
        size = len(_read_file(args.data_file))
        async with (
            LedgerClient.from_settings(cfg.ledger) as ledger,
            RelayClient.from_settings(cfg.relay, cfg.ledger.timeout) as relay,
        ):
            comparison = await compare_costs(ledger, relay, size)

        rate = cfg.submission.usd_per_ar
        direct = winston_to_ar(comparison.direct_fee)
        relayed = winston_to_ar(comparison.relay_fee)
        print(f"File size: {size / 1024:.2f} KB")
        print(f"Direct:    {format_ar(direct)} AR (~{format_usd(direct, rate)})")
        print(f"Relay:     {format_ar(relayed)} AR (~{format_usd(relayed, rate)})")
        if comparison.savings > 0:
            saved = winston_to_ar(comparison.savings)
            print(f"Relay saves {format_ar(saved)} AR (~{format_usd(saved, rate)})")
        return 0

    try:
        return asyncio.run(run())
    except RateAnybodyError as e:
        return _report_error(e)


def cmd_upload(args: argparse.Namespace) -> int:
    """
    Submit a rating file.

    Asks for confirmation before signing unless --yes is given or stdin is
    not a terminal.

    Returns:
        0 on success, 1 on error or cancellation
    """
    cfg = _load_config(args)
    if cfg is None:
        return 1
    if getattr(args, "strategy", None):
        cfg.submission.strategy = args.strategy

    try:
        wallet = Wallet.from_file(args.wallet)
        rating = parse_rating_payload(_read_file(args.data_file))
        receipt = asyncio.run(
            _submit(wallet, rating, cfg, interactive=_wants_confirmation(args, cfg))
        )
    except RateAnybodyError as e:
        return _report_error(e)

    _print_receipt(receipt, cfg)
    return 0


def cmd_sample(args: argparse.Namespace) -> int:
    """
    Submit a fixed sample rating through the relay.

    Returns:
        0 on success, 1 on error or cancellation
    """
    cfg = _load_config(args)
    if cfg is None:
        return 1
    cfg.submission.strategy = "relay"

    try:
        wallet = Wallet.from_file(args.wallet)
        rating = Rating.from_payload(SAMPLE_RATING)
        receipt = asyncio.run(
            _submit(wallet, rating, cfg, interactive=_wants_confirmation(args, cfg))
        )
    except RateAnybodyError as e:
        return _report_error(e)

    print("\nSample Rating Upload:")
    print(json.dumps(receipt.rating.to_payload(), indent=2, ensure_ascii=False))
    _print_receipt(receipt, cfg)
    return 0


# ============================================================================
# RETRIEVAL COMMANDS
# ============================================================================


def _list_ratings(cfg: RaterConfig, rating_filter: RatingFilter, limit: int | None) -> int:
    async def run():
        async with LedgerClient.from_settings(cfg.ledger) as ledger:
            return await collect_ratings(ledger, rating_filter, cfg.query, limit=limit)

    try:
        views = asyncio.run(run())
    except RateAnybodyError as e:
        return _report_error(e)

    print(results_heading(len(views)))
    if not views:
        print("No ratings found matching your filters.")
    for view in views:
        print()
        print(render_view(view, cfg.ledger.gateway_url, cfg.ledger.explorer_url))
    return 0


def cmd_ratings(args: argparse.Namespace) -> int:
    """
    List ratings recorded for a target address.

    Returns:
        0 on success, 1 on error
    """
    cfg = _load_config(args)
    if cfg is None:
        return 1
    rating_filter = RatingFilter(target_address=args.address, app_name=cfg.submission.app_name)
    return _list_ratings(cfg, rating_filter, getattr(args, "limit", None))


def cmd_search(args: argparse.Namespace) -> int:
    """
    Search ratings by tag filters; omitted filters do not narrow the search.

    Returns:
        0 on success, 1 on error
    """
    cfg = _load_config(args)
    if cfg is None:
        return 1
    rating_filter = RatingFilter(
        name=args.name,
        location=args.location,
        associations=args.associations,
        score=args.score,
        app_name=cfg.submission.app_name,
    )
    return _list_ratings(cfg, rating_filter, args.limit)


def cmd_view(args: argparse.Namespace) -> int:
    """
    Fetch and pretty-print one transaction's payload.

    Returns:
        0 on success, 1 on error (including not found)
    """
    cfg = _load_config(args)
    if cfg is None:
        return 1

    async def run() -> bytes:
        if args.relay:
            async with RelayClient.from_settings(cfg.relay, cfg.ledger.timeout) as relay:
                return await relay.get_data(args.transaction_id)
        async with LedgerClient.from_settings(cfg.ledger) as ledger:
            return await ledger.get_data(args.transaction_id)

    try:
        data = asyncio.run(run())
    except NetworkError as e:
        if e.status_code == 404:
            print("Data not found yet. It might still be processing...", file=sys.stderr)
            return 1
        return _report_error(e)

    print("Data retrieved successfully:")
    try:
        print(json.dumps(json.loads(data), indent=2, ensure_ascii=False))
    except (UnicodeDecodeError, json.JSONDecodeError):
        print(data.decode("utf-8", errors="replace"))
    return 0


# ============================================================================
# SERVICE COMMAND
# ============================================================================


def cmd_serve(args: argparse.Namespace) -> int:
    """
    Run the HTTP service.

    Returns:
        0 on clean shutdown, 1 on error
    """
    from rate_anybody.api.server import start_server

    cfg = _load_config(args)
    if cfg is None:
        return 1
    try:
        start_server(cfg, host=args.host, port=args.port)
    except KeyboardInterrupt:
        print("\nServer stopped.")
    return 0


# ============================================================================
# ENTRY POINT
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="rate-anybody",
        description="RateAnybody - permanent public ratings on the Arweave ledger",
    )
    parser.add_argument("--config", type=Path, help="INI file (default: config/rater.ini)")
    parser.add_argument("--log-level", help="Logging level (default: WARNING)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    address_parser = subparsers.add_parser("address", help="Print the address of a key file")
    address_parser.add_argument("wallet", help="Path to the JWK key file")
    address_parser.set_defaults(func=cmd_address)

    balance_parser = subparsers.add_parser("balance", help="Print the balance of a key file")
    balance_parser.add_argument("wallet", help="Path to the JWK key file")
    balance_parser.set_defaults(func=cmd_balance)

    cost_parser = subparsers.add_parser(
        "cost",
        help="Compare direct and relayed upload fees",
        description="Quote both upload paths for a file and show the difference in AR and USD.",
    )
    cost_parser.add_argument("data_file", help="File to price")
    cost_parser.set_defaults(func=cmd_cost)

    upload_parser = subparsers.add_parser(
        "upload",
        help="Submit a rating file",
        description=(
            "Submit a JSON rating file. Asks for confirmation unless --yes is "
            "given or stdin is not a terminal."
        ),
    )
    upload_parser.add_argument("wallet", help="Path to the JWK key file")
    upload_parser.add_argument("data_file", help="Path to the JSON rating file")
    upload_parser.add_argument(
        "--strategy",
        choices=("auto", "direct", "relay"),
        help="Upload path (default: auto, or RATER_STRATEGY env var)",
    )
    upload_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")
    upload_parser.set_defaults(func=cmd_upload)

    sample_parser = subparsers.add_parser("sample", help="Submit a sample rating via the relay")
    sample_parser.add_argument("wallet", help="Path to the JWK key file")
    sample_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")
    sample_parser.set_defaults(func=cmd_sample)

    ratings_parser = subparsers.add_parser("ratings", help="List ratings for a target address")
    ratings_parser.add_argument("address", help="Target address")
    ratings_parser.add_argument("--limit", type=_positive_int, help="Maximum number of ratings")
    ratings_parser.set_defaults(func=cmd_ratings)

    search_parser = subparsers.add_parser("search", help="Search ratings")
    search_parser.add_argument("--name", help="Person's name (first word is matched)")
    search_parser.add_argument("--location", help="Exact location")
    search_parser.add_argument("--associations", help="Exact associations")
    search_parser.add_argument("--score", help="Exact score")
    search_parser.add_argument("--limit", type=_positive_int, help="Maximum number of ratings")
    search_parser.set_defaults(func=cmd_search)

    view_parser = subparsers.add_parser("view", help="Print a transaction's payload")
    view_parser.add_argument("transaction_id", help="Transaction id")
    view_parser.add_argument(
        "--relay", action="store_true", help="Fetch from the relay gateway instead of the ledger"
    )
    view_parser.set_defaults(func=cmd_view)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service")
    serve_parser.add_argument("--host", type=str, help="Host to bind (default: 127.0.0.1)")
    serve_parser.add_argument("--port", "-p", type=int, help="Port to bind (default: 8000)")
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse has already printed usage to stderr
        return 0 if e.code in (0, None) else 1

    if args.command is None:
        parser.print_usage(sys.stderr)
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
