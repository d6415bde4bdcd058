"""
PIN-authorized transaction flow.

Drives one payment attempt sequence for a beneficiary and amount:
- PIN buffer of exactly 4 digits, submitted once complete
- Bounded PIN attempts; the session locks when they run out
- Backend responses classified into TransactionOutcome variants
- Outcomes that need their own screen are delivered once via take_outcome()
"""

import logging
import re
import time
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional, Set, Tuple

from merchant_pos.config import settings
from merchant_pos.domain.exceptions import (
    FlowCompletedError,
    GatewayProtocolError,
    GatewayRejectedError,
    GatewayTransportError,
    IllegalTransitionError,
    InvalidAmountError,
    InvalidPinError,
    LocalValidationError,
    LockoutReached,
    SubmissionInProgressError,
)
from merchant_pos.domain.gateways import TransactionGateway
from merchant_pos.domain.observable import OneShot, StateCell, Subscription
from merchant_pos.domain.outcomes import (
    Declined,
    InsufficientFunds,
    Locked,
    NetworkError,
    PinIncorrect,
    RejectionKind,
    Success,
    TransactionOutcome,
    UnknownError,
    classify_rejection,
    is_notified,
)
from merchant_pos.infrastructure.observability.logging import log_outcome
from merchant_pos.infrastructure.observability.metrics import record_outcome
from merchant_pos.utils.amount_utils import format_amount, parse_payment_amount

logger = logging.getLogger(__name__)

DEFAULT_DECLINE_MESSAGE = "Transaction declined."


class FlowState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    AWAITING_INPUT = "awaiting_input"
    LOCKED = "locked"
    SUCCEEDED = "succeeded"


VALID_TRANSITIONS: Set[Tuple[FlowState, FlowState]] = {
    (FlowState.IDLE, FlowState.SUBMITTING),
    (FlowState.AWAITING_INPUT, FlowState.SUBMITTING),
    (FlowState.SUBMITTING, FlowState.SUCCEEDED),
    (FlowState.SUBMITTING, FlowState.AWAITING_INPUT),
    (FlowState.SUBMITTING, FlowState.LOCKED),
}

TERMINAL_STATES = {FlowState.LOCKED, FlowState.SUCCEEDED}


@dataclass(frozen=True)
class SessionParams:
    """Validated navigation parameters for one authorization session"""

    amount: Optional[Decimal]
    beneficiary_id: str
    beneficiary_name: str
    category: str
    input_error: Optional[str] = None

    @classmethod
    def from_navigation(
        cls,
        amount: Optional[str],
        beneficiary_id: Optional[str],
        beneficiary_name: Optional[str] = None,
        category: Optional[str] = None,
    ) -> "SessionParams":
        """Parse the opaque strings handed over by the navigation layer"""
        input_error = None
        try:
            parsed_amount: Optional[Decimal] = parse_payment_amount(amount)
        except ValueError as e:
            parsed_amount = None
            input_error = str(e)

        beneficiary_id = (beneficiary_id or "").strip()
        if not beneficiary_id and input_error is None:
            input_error = "Beneficiary is missing"

        return cls(
            amount=parsed_amount,
            beneficiary_id=beneficiary_id,
            beneficiary_name=(beneficiary_name or "").strip() or "Unknown",
            category=(category or "").strip() or "Default",
            input_error=input_error,
        )


@dataclass(frozen=True)
class AuthorizationSession:
    """Snapshot of one authorization session; replaced whole on every change"""

    amount: Optional[Decimal]
    beneficiary_id: str
    beneficiary_name: str
    category: str
    attempts_remaining: int
    pin: str = ""
    locked: bool = False
    state: FlowState = FlowState.IDLE
    last_outcome: Optional[TransactionOutcome] = None
    input_error: Optional[str] = None

    @property
    def can_submit(self) -> bool:
        return self.input_error is None and not self.locked and self.state not in TERMINAL_STATES | {FlowState.SUBMITTING}


class AuthorizationFlow:
    """State machine for one PIN-authorized payment attempt sequence"""

    def __init__(
        self,
        gateway: TransactionGateway,
        params: SessionParams,
        max_attempts: Optional[int] = None,
        pin_length: Optional[int] = None,
    ):
        self._gateway = gateway
        self.max_attempts = max_attempts if max_attempts is not None else settings.max_pin_attempts
        self.pin_length = pin_length if pin_length is not None else settings.pin_length
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self._pin_pattern = re.compile(rf"[0-9]{{{self.pin_length}}}")
        self._cell: StateCell[AuthorizationSession] = StateCell(
            AuthorizationSession(
                amount=params.amount,
                beneficiary_id=params.beneficiary_id,
                beneficiary_name=params.beneficiary_name,
                category=params.category,
                attempts_remaining=self.max_attempts,
                input_error=params.input_error,
            )
        )
        self._outcomes: OneShot[TransactionOutcome] = OneShot()
        self._closed = False

        if params.input_error:
            logger.warning("Authorization session created with invalid input: %s", params.input_error)

    @property
    def session(self) -> AuthorizationSession:
        return self._cell.current()

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, callback: Callable[[AuthorizationSession], None]) -> Subscription:
        return self._cell.subscribe(callback)

    def take_outcome(self) -> Optional[TransactionOutcome]:
        """Return the pending outcome notification once, then None"""
        return self._outcomes.take()

    def update_pin(self, value: str) -> bool:
        """
        Replace the PIN buffer with what the merchant has typed so far.

        Values that are too long or contain non-digits are ignored, as is
        any input while the session cannot accept a submission.

        Returns:
            True when the buffer holds a complete PIN and should be submitted
        """
        session = self.session
        if self._closed or not session.can_submit:
            return False
        if len(value) > self.pin_length or not all(ch in "0123456789" for ch in value):
            return False

        self._cell.set(replace(session, pin=value))
        return len(value) == self.pin_length

    async def submit(self, pin: Optional[str] = None) -> Optional[TransactionOutcome]:
        """
        Submit the payment with the given PIN (or the current buffer).

        Raises:
            LockoutReached: Attempts are exhausted
            LocalValidationError: Session busy, finished, or input invalid;
                nothing is sent to the backend and the state is unchanged

        Returns:
            The classified outcome, or None if the session was closed while
            the request was in flight
        """
        session = self.session
        pin = session.pin if pin is None else pin
        self._check_submittable(session, pin)

        self._transition(FlowState.SUBMITTING, pin=pin)
        start_time = time.time()

        try:
            receipt = await self._gateway.process(
                session.beneficiary_id,
                pin,
                format_amount(session.amount),
                session.category,
            )
            outcome: TransactionOutcome = Success(transaction_id=receipt.transaction_id)
        except GatewayRejectedError as e:
            outcome = self._classify(e.reason, session.attempts_remaining)
        except GatewayTransportError as e:
            logger.warning(f"Transaction gateway unreachable: {e}")
            outcome = NetworkError()
        except GatewayProtocolError as e:
            logger.error(f"Unexpected transaction gateway response: {e}")
            outcome = UnknownError(message=str(e))
        except Exception:
            if not self._closed:
                self._transition(FlowState.AWAITING_INPUT, pin="")
            raise

        if self._closed:
            logger.info("Discarding late authorization response for closed session", extra={"outcome": outcome.kind})
            return None

        self._apply(outcome)

        duration_ms = (time.time() - start_time) * 1000
        record_outcome(outcome.kind)
        log_outcome(session.beneficiary_id, outcome.kind, self.session.attempts_remaining, duration_ms)
        return outcome

    def close(self) -> None:
        """Tear down the session; responses arriving afterwards are dropped"""
        self._closed = True
        self._outcomes.take()
        self._cell.close()

    def _check_submittable(self, session: AuthorizationSession, pin: str) -> None:
        if self._closed:
            raise FlowCompletedError("Authorization session is closed")
        if session.locked:
            raise LockoutReached("PIN entry is locked due to too many attempts.")
        if session.state == FlowState.SUBMITTING:
            raise SubmissionInProgressError("A transaction is already being processed")
        if session.state == FlowState.SUCCEEDED:
            raise FlowCompletedError("Transaction already completed")
        if not self._pin_pattern.fullmatch(pin or ""):
            raise InvalidPinError(f"PIN must be {self.pin_length} digits.")
        if session.amount is None or session.amount <= 0:
            raise InvalidAmountError(session.input_error or "Amount must be greater than zero")
        if session.input_error:
            raise LocalValidationError(session.input_error)

    def _classify(self, reason: str, attempts_remaining: int) -> TransactionOutcome:
        kind = classify_rejection(reason)
        if kind == RejectionKind.INCORRECT_PIN:
            attempts_left = max(attempts_remaining - 1, 0)
            if attempts_left == 0:
                return Locked()
            return PinIncorrect(attempts_left=attempts_left)
        message = reason or DEFAULT_DECLINE_MESSAGE
        if kind == RejectionKind.INSUFFICIENT_FUNDS:
            return InsufficientFunds(message=message)
        return Declined(message=message)

    def _apply(self, outcome: TransactionOutcome) -> None:
        if isinstance(outcome, Success):
            self._transition(FlowState.SUCCEEDED, last_outcome=outcome)
        elif isinstance(outcome, Locked):
            self._transition(FlowState.LOCKED, attempts_remaining=0, locked=True, pin="", last_outcome=outcome)
        elif isinstance(outcome, PinIncorrect):
            self._transition(
                FlowState.AWAITING_INPUT,
                attempts_remaining=outcome.attempts_left,
                pin="",
                last_outcome=outcome,
            )
        else:
            self._transition(FlowState.AWAITING_INPUT, pin="", last_outcome=outcome)

        if is_notified(outcome):
            self._outcomes.offer(outcome)

    def _transition(self, to_state: FlowState, **changes) -> None:
        current = self.session
        if (current.state, to_state) not in VALID_TRANSITIONS:
            raise IllegalTransitionError(f"Invalid transition {current.state.value} -> {to_state.value}")
        self._cell.set(replace(current, state=to_state, **changes))
