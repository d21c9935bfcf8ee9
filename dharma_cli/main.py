"""
dharma command line entry point.

    dharma borrow <amount> [--unit <unit>]
    dharma authenticate <token>
    dharma invest
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from decimal import Decimal
from typing import Optional, Sequence

from rich.console import Console

from dharma_cli import __version__
from dharma_cli.cli.dashboard import InvestorDashboard
from dharma_cli.cli.prompts import BrowserReauthenticator, RichWalletPrompter
from dharma_cli.config import settings
from dharma_cli.core.logging import setup_logging
from dharma_cli.domain.errors import AuthenticationError, DharmaError
from dharma_cli.domain.models.units import DEFAULT_UNIT, SUPPORTED_UNITS, parse_amount
from dharma_cli.domain.services.borrow_workflow import (
    ATTESTATION_LABEL,
    BorrowOutcome,
    BorrowState,
    BorrowWorkflow,
)
from dharma_cli.domain.services.confirmation_poller import ConfirmationPoller
from dharma_cli.domain.services.credential_session import CredentialSessionFlow
from dharma_cli.infrastructure.auth.token_store import AuthTokenStore
from dharma_cli.infrastructure.chain.client import Web3ChainClient
from dharma_cli.infrastructure.lending.client import LendingServiceClient
from dharma_cli.infrastructure.wallet.keystore import WalletKeystore
from dharma_cli.realtime.daemon import LoanFeedDaemon
from dharma_cli.realtime.store import LoanStore

logger = logging.getLogger(__name__)

console = Console()


def _amount(value: str) -> Decimal:
    try:
        return parse_amount(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dharma",
        description="Borrow from and invest in the Dharma Loan Network.",
    )
    parser.add_argument("--version", action="version", version=__version__)
    subparsers = parser.add_subparsers(dest="command")

    borrow = subparsers.add_parser("borrow", help="request an instant loan in Ether.")
    borrow.add_argument("amount", type=_amount)
    borrow.add_argument(
        "-u",
        "--unit",
        type=str.lower,
        choices=SUPPORTED_UNITS,
        default=DEFAULT_UNIT,
        metavar="UNIT",
        help="Specifies the unit of ether (e.g. wei, finney, szabo)",
    )

    authenticate = subparsers.add_parser(
        "authenticate", help="authenticate yourself in order to borrow."
    )
    authenticate.add_argument("token")

    subparsers.add_parser("invest", help="watch outstanding loans on a live dashboard.")
    return parser


def _lending_client(token_store: Optional[AuthTokenStore] = None) -> LendingServiceClient:
    return LendingServiceClient(
        settings.LENDING_API_URL,
        token_store=token_store or AuthTokenStore(settings.AUTH_TOKEN_PATH),
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )


async def authenticate(token: str) -> int:
    token_store = AuthTokenStore(settings.AUTH_TOKEN_PATH)
    try:
        await token_store.set_token(token)
    except (OSError, ValueError) as exc:
        logger.error("Failed to store auth token: %s", exc)
        console.print(repr(exc))
        console.print("[red]Failed to write to local authentication token store.[/red]")
        return 1
    console.print(
        "[green]Your account is now authenticated!  You may broadcast requests "
        "to the Dharma Loan Network[/green]"
    )
    return 0


def _report(outcome: BorrowOutcome) -> None:
    if outcome.state == BorrowState.AUTH_FAILED:
        return
    if outcome.stipend_failed or (outcome.stipend is None and outcome.error is not None):
        console.print(
            f"[yellow]Loan request attested, but the deployment stipend did not confirm: "
            f"{outcome.error}[/yellow]"
        )
        return
    if outcome.receipt is not None:
        console.print(
            f"Deployment stipend mined in block {outcome.receipt.block_number} "
            f"({outcome.receipt.tx_hash})"
        )
    console.print(
        f"[green]Loan request for {outcome.request.amount} {outcome.request.unit} "
        f"attested for {outcome.request.borrower_address}.[/green]"
    )


async def borrow(amount: Decimal, unit: str) -> int:
    keystore = WalletKeystore(settings.WALLET_PATH)
    session = CredentialSessionFlow(
        keystore,
        RichWalletPrompter(console),
        max_attempts=settings.SECRET_MAX_ATTEMPTS,
    )
    identity = await session.acquire_identity()

    chain = Web3ChainClient(settings.CHAIN_RPC_URL, timeout=settings.HTTP_TIMEOUT_SECONDS)
    poller = ConfirmationPoller(
        chain,
        poll_interval=settings.CONFIRMATION_POLL_INTERVAL_SECONDS,
        timeout=settings.CONFIRMATION_TIMEOUT_SECONDS,
    )
    reauthenticate = BrowserReauthenticator(settings.AUTH_URL, console)

    with console.status(ATTESTATION_LABEL, spinner="dots") as status:

        async def on_auth_failure(error: AuthenticationError) -> None:
            status.stop()
            await reauthenticate(error)

        workflow = BorrowWorkflow(
            _lending_client(),
            chain,
            poller,
            min_balance_wei=settings.MIN_BALANCE_WEI,
            on_auth_failure=on_auth_failure,
            progress=status.update,
        )
        outcome = await workflow.run(identity, amount, unit)

    _report(outcome)
    return 0


async def invest() -> int:
    store = LoanStore(max_logs=settings.MAX_LOG_ENTRIES)
    daemon = LoanFeedDaemon(
        _lending_client(),
        poll_interval=settings.DAEMON_POLL_INTERVAL_SECONDS,
        reconnect_delay=settings.DAEMON_RECONNECT_DELAY_SECONDS,
        max_failures=settings.DAEMON_MAX_FAILURES,
    )
    dashboard = InvestorDashboard(
        store,
        daemon,
        console=console,
        grace_seconds=settings.EXIT_GRACE_SECONDS,
    )
    return await dashboard.run()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help(sys.stderr)
        return 2

    setup_logging(
        settings.LOG_LEVEL,
        settings.LOG_FILE,
        max_bytes=settings.LOG_MAX_BYTES,
        backup_count=settings.LOG_BACKUP_COUNT,
    )

    try:
        if args.command == "borrow":
            return asyncio.run(borrow(args.amount, args.unit))
        if args.command == "authenticate":
            return asyncio.run(authenticate(args.token))
        return asyncio.run(invest())
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")
        return 130
    except DharmaError as exc:
        logger.exception("%s failed", args.command)
        console.print(f"[red]Error:[/red] {exc}")
        return 1
    except Exception:
        logger.exception("%s crashed", args.command)
        console.print_exception()
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
