"""
BORROW WORKFLOW
Drives a single borrow request end to end.

    INIT -> REQUESTING_ATTESTATION -> AUTH_FAILED
                                   -> BALANCE_CHECK -> DONE
                                                    -> STIPEND_REQUESTED
                                                       -> AWAITING_CONFIRMATION -> DONE

RULES:
- Steps run strictly one after another
- Authentication failures end the run quietly; the user re-authenticates
  out of band
- Any other attestation failure is re-raised unchanged
- A failed stipend confirmation is logged and the run still ends DONE
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Union

from dharma_cli.domain.errors import AuthenticationError, DharmaError, LendingServiceError
from dharma_cli.domain.models import (
    AttestationResult,
    LoanRequest,
    MinedReceipt,
    SigningIdentity,
    StipendTransaction,
    TxStatus,
)
from dharma_cli.domain.models.units import DEFAULT_UNIT, normalize_unit, parse_amount
from dharma_cli.domain.services.confirmation_poller import ConfirmationPoller
from dharma_cli.infrastructure.chain.client import ChainClient
from dharma_cli.infrastructure.lending.client import LendingService

logger = logging.getLogger(__name__)

ATTESTATION_LABEL = "Requesting attestation from Dharma Labs Inc."
STIPEND_LABEL = "Requesting deployment stipend from Dharma Labs Inc."

ProgressSink = Callable[[str], None]
AuthFailureHandler = Callable[[AuthenticationError], Awaitable[None]]


class BorrowState(str, Enum):
    INIT = "INIT"
    REQUESTING_ATTESTATION = "REQUESTING_ATTESTATION"
    AUTH_FAILED = "AUTH_FAILED"
    BALANCE_CHECK = "BALANCE_CHECK"
    STIPEND_REQUESTED = "STIPEND_REQUESTED"
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"
    DONE = "DONE"
    ABORTED = "ABORTED"


TERMINAL_STATES = frozenset({BorrowState.DONE, BorrowState.ABORTED, BorrowState.AUTH_FAILED})


@dataclass
class BorrowOutcome:
    """Record of one workflow run"""
    request: LoanRequest
    state: BorrowState = BorrowState.INIT
    attestation: Optional[AttestationResult] = None
    stipend: Optional[StipendTransaction] = None
    receipt: Optional[MinedReceipt] = None
    error: Optional[BaseException] = None
    history: List[BorrowState] = field(default_factory=list)

    @property
    def stipend_failed(self) -> bool:
        return self.stipend is not None and self.stipend.status == TxStatus.FAILED


def _noop_progress(_label: str) -> None:
    return None


class BorrowWorkflow:
    def __init__(
        self,
        lending: LendingService,
        chain: ChainClient,
        poller: ConfirmationPoller,
        min_balance_wei: int,
        on_auth_failure: Optional[AuthFailureHandler] = None,
        progress: Optional[ProgressSink] = None,
    ):
        self._lending = lending
        self._chain = chain
        self._poller = poller
        self._min_balance_wei = min_balance_wei
        self._on_auth_failure = on_auth_failure
        self._progress = progress or _noop_progress

    @staticmethod
    def build_request(
        identity: SigningIdentity,
        amount: Union[str, Decimal],
        unit: str = DEFAULT_UNIT,
    ) -> LoanRequest:
        return LoanRequest(
            borrower_address=identity.address,
            amount=parse_amount(amount),
            unit=normalize_unit(unit),
        )

    async def run(
        self,
        identity: SigningIdentity,
        amount: Union[str, Decimal],
        unit: str = DEFAULT_UNIT,
    ) -> BorrowOutcome:
        outcome = BorrowOutcome(request=self.build_request(identity, amount, unit))
        outcome.history.append(outcome.state)

        try:
            await self._request_attestation(outcome)
            if outcome.state == BorrowState.AUTH_FAILED:
                return outcome

            has_min_balance = await self._has_min_balance(outcome)
            if has_min_balance:
                self._transition(outcome, BorrowState.DONE)
                return outcome
        except Exception as exc:
            outcome.error = exc
            self._transition(outcome, BorrowState.ABORTED)
            raise

        await self._fund_stipend(outcome)
        self._transition(outcome, BorrowState.DONE)
        return outcome

    def _transition(self, outcome: BorrowOutcome, state: BorrowState) -> None:
        logger.debug("Borrow workflow %s -> %s", outcome.state.value, state.value)
        outcome.state = state
        outcome.history.append(state)

    async def _request_attestation(self, outcome: BorrowOutcome) -> None:
        self._transition(outcome, BorrowState.REQUESTING_ATTESTATION)
        self._progress(ATTESTATION_LABEL)
        request = outcome.request
        try:
            outcome.attestation = await self._lending.request_attestation(
                request.borrower_address, request.amount_wei
            )
        except AuthenticationError as exc:
            logger.info("Attestation refused, borrower must authenticate: %s", exc)
            outcome.error = exc
            self._transition(outcome, BorrowState.AUTH_FAILED)
            if self._on_auth_failure is not None:
                await self._on_auth_failure(exc)
            return

        if not outcome.attestation.approved:
            raise LendingServiceError("Loan request was declined by the attestor")

    async def _has_min_balance(self, outcome: BorrowOutcome) -> bool:
        self._transition(outcome, BorrowState.BALANCE_CHECK)
        balance = await self._chain.get_balance(outcome.request.borrower_address)
        logger.info(
            "Borrower balance %s wei, minimum %s wei", balance, self._min_balance_wei
        )
        return balance >= self._min_balance_wei

    async def _fund_stipend(self, outcome: BorrowOutcome) -> None:
        self._progress(STIPEND_LABEL)
        address = outcome.request.borrower_address
        try:
            tx_hash = await self._lending.request_deployment_stipend(address)
            outcome.stipend = StipendTransaction(tx_hash=tx_hash)
            self._transition(outcome, BorrowState.STIPEND_REQUESTED)

            self._transition(outcome, BorrowState.AWAITING_CONFIRMATION)
            outcome.receipt = await self._poller.await_confirmation(tx_hash)
            outcome.stipend = outcome.stipend.with_status(TxStatus.MINED)
        except DharmaError as exc:
            logger.exception("Deployment stipend for %s did not confirm", address)
            outcome.error = exc
            if outcome.stipend is not None:
                outcome.stipend = outcome.stipend.with_status(TxStatus.FAILED)
