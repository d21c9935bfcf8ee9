import io
import os
import signal
import sys

import pytest
from rich.console import Console

from dharma_cli.cli.dashboard import InvestorDashboard, render
from dharma_cli.domain.errors import LendingServiceError
from dharma_cli.domain.models import AppState, LoanRecord, LogEntry
from dharma_cli.realtime.store import LoanStore


def make_console():
    return Console(file=io.StringIO(), width=100, height=30, force_terminal=False, record=True)


class RecordingDaemon:
    def __init__(self, events, fail_with=None, start_error=None):
        self.events = events
        self.fail_with = fail_with
        self.start_error = start_error

    async def start(self, store, error_callback):
        self.events.append("start")
        if self.start_error:
            raise self.start_error
        if self.fail_with:
            error_callback(self.fail_with)

    async def stop(self):
        self.events.append("stop")


def state_with_loans():
    return AppState(
        loans=(
            LoanRecord(id="loan-1", terms=(("principal", "1 ether"), ("interest", "5%"))),
            LoanRecord(id="loan-2"),
        ),
        logs=(LogEntry(message="watching"),),
    )


def test_render_is_idempotent():
    state = state_with_loans()
    console = make_console()

    console.print(render(state))
    once = console.export_text()
    console.print(render(state))
    twice = console.export_text()

    assert once == twice
    assert "loan-1" in once
    assert "watching" in once


def test_render_shows_selected_terms():
    state = state_with_loans()
    state = AppState(loans=state.loans, visible_terms=state.loans[0], logs=state.logs)
    console = make_console()

    console.print(render(state))

    assert "interest" in console.export_text()


def test_row_number_selects_loan():
    store = LoanStore(initial=state_with_loans())
    dashboard = InvestorDashboard(store, RecordingDaemon([]), console=make_console())

    assert dashboard.handle_command("2\n") is True
    assert store.get_state().visible_terms.id == "loan-2"

    assert dashboard.handle_command("7") is True
    assert store.get_state().visible_terms.id == "loan-2"

    assert dashboard.handle_command("q") is False


def test_unknown_command_is_logged():
    store = LoanStore()
    dashboard = InvestorDashboard(store, RecordingDaemon([]), console=make_console())

    dashboard.handle_command("hello")

    assert store.get_state().logs[-1].message == "Unknown command: hello"


@pytest.mark.asyncio
async def test_user_exit_stops_daemon_and_returns_zero():
    events = []
    store = LoanStore(initial=state_with_loans())
    dashboard = InvestorDashboard(
        store, RecordingDaemon(events), console=make_console(),
        grace_seconds=0, read_stdin=False, screen=False, catch_interrupt=False,
    )
    dashboard.submit("1")
    dashboard.submit("q")

    code = await dashboard.run()

    assert code == 0
    assert events == ["start", "stop"]
    assert store.get_state().visible_terms.id == "loan-1"


@pytest.mark.asyncio
async def test_daemon_error_tears_down_and_returns_one():
    events = []
    console = make_console()
    dashboard = InvestorDashboard(
        LoanStore(), RecordingDaemon(events, fail_with=LendingServiceError("feed died")),
        console=console, grace_seconds=0, read_stdin=False, screen=False, catch_interrupt=False,
    )

    code = await dashboard.run()

    assert code == 1
    assert events == ["start", "stop"]
    assert "feed died" in console.export_text()


@pytest.mark.asyncio
async def test_daemon_start_failure_is_fatal():
    events = []
    dashboard = InvestorDashboard(
        LoanStore(), RecordingDaemon(events, start_error=LendingServiceError("refused")),
        console=make_console(), grace_seconds=0, read_stdin=False, screen=False, catch_interrupt=False,
    )

    assert await dashboard.run() == 1
    assert events == ["start", "stop"]


@pytest.mark.asyncio
@pytest.mark.skipif(sys.platform == "win32", reason="needs loop signal handlers")
async def test_ctrl_c_leaves_through_normal_teardown():
    events = []

    class InterruptingDaemon(RecordingDaemon):
        async def start(self, store, error_callback):
            await super().start(store, error_callback)
            os.kill(os.getpid(), signal.SIGINT)

    dashboard = InvestorDashboard(
        LoanStore(), InterruptingDaemon(events),
        console=make_console(), grace_seconds=0, read_stdin=False, screen=False,
    )

    assert await dashboard.run() == 0
    assert events == ["start", "stop"]
