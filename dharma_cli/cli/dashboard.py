"""
Investor dashboard.
Three panels (outstanding loans, selected loan terms, logs) rendered from
the store's current snapshot.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

from rich import box
from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from dharma_cli.domain.models import AppState, LogAppended, LogEntry, LogLevel, SelectLoan
from dharma_cli.realtime.daemon import InvestorDaemon
from dharma_cli.realtime.store import LoanStore

logger = logging.getLogger(__name__)

QUIT_COMMANDS = frozenset({"q", "quit", "exit", "escape"})
VISIBLE_LOG_LINES = 12

_LOG_STYLES = {
    LogLevel.INFO: "white",
    LogLevel.WARNING: "yellow",
    LogLevel.ERROR: "bold red",
}

DashboardEvent = Tuple[str, object]


def render_loans(state: AppState) -> Panel:
    table = Table(box=box.SIMPLE_HEAD, expand=True)
    table.add_column("#", justify="right", style="cyan", no_wrap=True)
    table.add_column("Loan")
    table.add_column("Status")

    selected_id = state.visible_terms.id if state.visible_terms else None
    for row, loan in enumerate(state.loans, start=1):
        style = "reverse" if loan.id == selected_id else None
        table.add_row(str(row), loan.id, loan.status, style=style)

    if not state.loans:
        return Panel(Text("No outstanding loans yet.", style="dim"), title="Loans Outstanding")
    return Panel(table, title="Loans Outstanding")


def render_terms(state: AppState) -> Panel:
    loan = state.visible_terms
    if loan is None:
        return Panel(Text("Type a loan number and press Enter to view its terms.", style="dim"), title="Terms")

    table = Table(box=None, show_header=False, expand=True)
    table.add_column("Term", style="bold")
    table.add_column("Value")
    table.add_row("Loan", loan.id)
    table.add_row("Status", loan.status)
    for key, value in loan.terms:
        table.add_row(key, value)
    return Panel(table, title=f"Terms: {loan.id}")


def render_logs(state: AppState, lines: int = VISIBLE_LOG_LINES) -> Panel:
    text = Text()
    for entry in state.logs[-lines:]:
        stamp = entry.timestamp.strftime("%H:%M:%S")
        text.append(f"{stamp} ", style="dim")
        text.append(entry.message + "\n", style=_LOG_STYLES.get(entry.level, "white"))
    return Panel(text, title="Logs", subtitle="number + Enter: view terms | q: quit")


def render(state: AppState) -> Layout:
    """Build the full screen for `state`. Pure: same state, same layout."""
    layout = Layout(name="root")
    layout.split_column(
        Layout(name="top", ratio=2),
        Layout(render_logs(state), name="logs", ratio=1),
    )
    layout["top"].split_row(
        Layout(render_loans(state), name="loans"),
        Layout(render_terms(state), name="terms"),
    )
    return layout


class InvestorDashboard:
    def __init__(
        self,
        store: LoanStore,
        daemon: InvestorDaemon,
        console: Optional[Console] = None,
        grace_seconds: float = 0.2,
        read_stdin: bool = True,
        screen: bool = True,
        catch_interrupt: bool = True,
    ):
        self.store = store
        self.daemon = daemon
        self.console = console or Console()
        self.grace_seconds = grace_seconds
        self.read_stdin = read_stdin
        self.screen = screen
        self.catch_interrupt = catch_interrupt
        self._live: Optional[Live] = None
        self._events: Optional[asyncio.Queue[DashboardEvent]] = None

    # ------------------------------------------------------------------
    # Store wiring
    # ------------------------------------------------------------------

    def on_state_change(self, state: AppState) -> None:
        if self._live is not None:
            self._live.update(render(state), refresh=True)

    def on_loan_select(self, index: int) -> None:
        self.store.dispatch(SelectLoan(index=index))

    def error_callback(self, error: BaseException) -> None:
        """Daemon errors are handed to the dashboard loop, never handled inline."""
        self._post(("error", error))

    def submit(self, command: str) -> None:
        self._post(("command", command))

    def on_interrupt(self) -> None:
        logger.info("Interrupted, leaving the dashboard")
        self.submit("q")

    def _post(self, event: DashboardEvent) -> None:
        if self._events is None:
            self._events = asyncio.Queue()
        self._events.put_nowait(event)

    def handle_command(self, command: str) -> bool:
        """Apply one line of user input. Returns False when the user quits."""
        text = (command or "").strip().lower()
        if text in QUIT_COMMANDS:
            return False
        if not text:
            return True
        if text.isdigit():
            self.on_loan_select(int(text) - 1)
            return True
        self.store.dispatch(
            LogAppended(entry=LogEntry(message=f"Unknown command: {text}", level=LogLevel.WARNING))
        )
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self) -> int:
        if self._events is None:
            self._events = asyncio.Queue()
        unsubscribe = self.store.subscribe(self.on_state_change)
        error: Optional[BaseException] = None

        try:
            with Live(
                render(self.store.get_state()),
                console=self.console,
                screen=self.screen,
                auto_refresh=False,
                redirect_stdout=False,
                redirect_stderr=False,
            ) as live:
                self._live = live
                try:
                    with self._stdin_reader(), self._interrupt_handler():
                        try:
                            await self.daemon.start(self.store, self.error_callback)
                        except Exception as exc:
                            logger.exception("Investor daemon failed to start")
                            error = exc
                        else:
                            error = await self._event_loop()
                finally:
                    # Daemon goes first; the screen is released when Live exits
                    await self.daemon.stop()
                    self._live = None
        finally:
            unsubscribe()

        if error is not None:
            self.console.print(f"[red]Investor daemon failed:[/red] {error!r}")
            exit_code = 1
        else:
            exit_code = 0
        await asyncio.sleep(self.grace_seconds)
        return exit_code

    async def _event_loop(self) -> Optional[BaseException]:
        while True:
            kind, payload = await self._events.get()
            if kind == "error":
                return payload  # type: ignore[return-value]
            if not self.handle_command(str(payload)):
                return None

    @contextmanager
    def _stdin_reader(self) -> Iterator[None]:
        if not self.read_stdin:
            yield
            return

        loop = asyncio.get_running_loop()
        try:
            fd = sys.stdin.fileno()
            loop.add_reader(fd, self._on_stdin)
        except (NotImplementedError, ValueError, OSError) as exc:
            logger.warning("Keyboard input unavailable, use Ctrl-C to exit: %s", exc)
            yield
            return
        try:
            yield
        finally:
            loop.remove_reader(fd)

    def _on_stdin(self) -> None:
        line = sys.stdin.readline()
        # End of input behaves like quitting
        self.submit(line if line else "q")

    @contextmanager
    def _interrupt_handler(self) -> Iterator[None]:
        """Ctrl-C leaves through the same teardown as `q`."""
        if not self.catch_interrupt:
            yield
            return

        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, self.on_interrupt)
        except (NotImplementedError, RuntimeError, ValueError) as exc:
            logger.warning("Cannot trap Ctrl-C: %s", exc)
            yield
            return
        try:
            yield
        finally:
            loop.remove_signal_handler(signal.SIGINT)
