"""
Interactive terminal prompts for the borrower CLI.
"""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from typing import Optional, Tuple

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt

from dharma_cli.domain.errors import AuthenticationError
from dharma_cli.domain.services.credential_session import UnlockMethod

logger = logging.getLogger(__name__)


class RichWalletPrompter:
    """Wallet prompts rendered with rich; blocking reads run off the event loop"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    async def announce_generation(self) -> None:
        self.console.print(Panel.fit(
            "No local wallet found.\n"
            "A new wallet will be generated and encrypted with a passphrase of your choice.",
            title="Dharma Wallet",
        ))
        await asyncio.to_thread(
            Prompt.ask, "Press Enter to generate a wallet", default="", show_default=False,
            console=self.console,
        )

    async def choose_unlock_method(self) -> UnlockMethod:
        choice = await asyncio.to_thread(
            Prompt.ask,
            "Unlock your wallet: [cyan]1[/cyan] passphrase, [cyan]2[/cyan] recovery phrase",
            choices=["1", "2"],
            default="1",
            console=self.console,
        )
        return UnlockMethod.RECOVERY_PHRASE if choice == "2" else UnlockMethod.PASSPHRASE

    async def ask_secret(self) -> str:
        return await asyncio.to_thread(
            Prompt.ask, "Passphrase", password=True, console=self.console
        )

    async def ask_new_secret(self) -> Tuple[str, str]:
        secret = await asyncio.to_thread(
            Prompt.ask, "Choose a passphrase", password=True, console=self.console
        )
        confirmation = await asyncio.to_thread(
            Prompt.ask, "Confirm passphrase", password=True, console=self.console
        )
        return secret, confirmation

    async def ask_recovery_phrase(self) -> str:
        return await asyncio.to_thread(
            Prompt.ask, "Recovery phrase", console=self.console
        )

    async def show_new_wallet(self, address: str, recovery_phrase: str) -> None:
        self.console.print(
            f"You've generated a local wallet with the following address: [bold]{address}[/bold]"
        )
        self.console.print(
            "Please write down the following recovery phrase and store it in a safe "
            "place -- if you forget your passphrase, you will not be able to recover "
            "your funds without the recovery phrase"
        )
        self.console.print(Panel(recovery_phrase, title="Recovery phrase", style="yellow"))

    def info(self, message: str) -> None:
        self.console.print(f"[green]{message}[/green]")

    def error(self, message: str) -> None:
        self.console.print(f"[red]{message}[/red]")


class BrowserReauthenticator:
    """Offers to open the authentication page after the attestor refuses us"""

    def __init__(self, auth_url: str, console: Optional[Console] = None):
        self.auth_url = auth_url
        self.console = console or Console()

    async def __call__(self, error: AuthenticationError) -> None:
        self.console.print(
            "[yellow]You need to authenticate before you can borrow from the "
            "Dharma Loan Network.[/yellow]"
        )
        confirmed = await asyncio.to_thread(
            Confirm.ask,
            "Open the authentication page in your browser?",
            default=True,
            console=self.console,
        )
        if not confirmed:
            self.console.print(
                f"[dim]Authenticate later at {self.auth_url}, then run "
                "`dharma authenticate <token>`.[/dim]"
            )
            return
        # Fire and forget; the browser handles the rest out of band
        opened = webbrowser.open(self.auth_url, new=2)
        if not opened:
            logger.warning("No browser available to open %s", self.auth_url)
            self.console.print(f"Open {self.auth_url} to authenticate.")
