"""
Reactive loan state store.

The store holds one immutable AppState. It only changes by applying an
action through `reduce`, and every change is pushed to subscribers as a
whole snapshot.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import replace
from typing import Callable, Deque, List, Optional, Union

from dharma_cli.domain.models import AppState, LoansUpdated, LogAppended, SelectLoan

logger = logging.getLogger(__name__)

Action = Union[SelectLoan, LoansUpdated, LogAppended]
_ACTION_TYPES = (SelectLoan, LoansUpdated, LogAppended)
Subscriber = Callable[[AppState], None]

DEFAULT_MAX_LOGS = 100


def reduce(state: AppState, action: Action, max_logs: int = DEFAULT_MAX_LOGS) -> AppState:
    """Return the state that results from applying `action` to `state`."""
    if isinstance(action, SelectLoan):
        if not 0 <= action.index < len(state.loans):
            return state
        return replace(state, visible_terms=state.loans[action.index])

    if isinstance(action, LoansUpdated):
        loans = tuple(action.loans)
        visible = None
        if state.visible_terms is not None:
            selected_id = state.visible_terms.id
            visible = next((loan for loan in loans if loan.id == selected_id), None)
        return replace(state, loans=loans, visible_terms=visible)

    if isinstance(action, LogAppended):
        logs = state.logs + (action.entry,)
        if len(logs) > max_logs:
            logs = logs[-max_logs:]
        return replace(state, logs=logs)

    raise TypeError(f"Unknown action: {action!r}")


class LoanStore:
    def __init__(self, initial: Optional[AppState] = None, max_logs: int = DEFAULT_MAX_LOGS):
        if max_logs < 1:
            raise ValueError("max_logs must be at least 1")
        self._state = initial or AppState()
        self._max_logs = max_logs
        self._subscribers: List[Subscriber] = []
        self._pending: Deque[Action] = deque()
        self._dispatching = False

    @property
    def state(self) -> AppState:
        return self._state

    def get_state(self) -> AppState:
        return self._state

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def dispatch(self, action: Action) -> None:
        """
        Apply `action`. Actions dispatched while subscribers are being
        notified are queued and applied afterwards, in arrival order.
        """
        if not isinstance(action, _ACTION_TYPES):
            raise TypeError(f"Unknown action: {action!r}")
        self._pending.append(action)
        if self._dispatching:
            return

        self._dispatching = True
        try:
            while self._pending:
                self._apply(self._pending.popleft())
        finally:
            self._dispatching = False

    def _apply(self, action: Action) -> None:
        new_state = reduce(self._state, action, self._max_logs)
        if new_state is self._state:
            logger.debug("Action %s left state unchanged", type(action).__name__)
            return
        self._state = new_state
        for subscriber in list(self._subscribers):
            try:
                subscriber(new_state)
            except Exception:
                logger.exception("Store subscriber %r failed", subscriber)
