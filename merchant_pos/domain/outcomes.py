"""Transaction outcome taxonomy and free-text reason classification"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from merchant_pos.domain.models import DeclineKind, DeclineReason


class RejectionKind(str, Enum):
    """How a backend rejection of a payment is handled"""

    INCORRECT_PIN = "incorrect_pin"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    DECLINED = "declined"


# Checked in order, first match wins
INCORRECT_PIN_PHRASES = ("incorrect pin",)
INSUFFICIENT_FUNDS_PHRASES = ("insufficient funds", "insufficient balance")


@dataclass(frozen=True)
class TransactionOutcome:
    """Base class for the result of one authorization attempt"""

    @property
    def kind(self) -> str:
        raise NotImplementedError

    @property
    def is_recoverable(self) -> bool:
        """True when the merchant may re-enter the PIN in the same session"""
        return True


@dataclass(frozen=True)
class Success(TransactionOutcome):
    transaction_id: str

    @property
    def kind(self) -> str:
        return "success"

    @property
    def is_recoverable(self) -> bool:
        return False


@dataclass(frozen=True)
class PinIncorrect(TransactionOutcome):
    attempts_left: int

    @property
    def kind(self) -> str:
        return "pin_incorrect"


@dataclass(frozen=True)
class Locked(TransactionOutcome):
    @property
    def kind(self) -> str:
        return "locked"

    @property
    def is_recoverable(self) -> bool:
        return False


@dataclass(frozen=True)
class InsufficientFunds(TransactionOutcome):
    message: str

    @property
    def kind(self) -> str:
        return "insufficient_funds"


@dataclass(frozen=True)
class Declined(TransactionOutcome):
    message: str

    @property
    def kind(self) -> str:
        return "declined"


@dataclass(frozen=True)
class NetworkError(TransactionOutcome):
    @property
    def kind(self) -> str:
        return "network_error"


@dataclass(frozen=True)
class UnknownError(TransactionOutcome):
    message: str

    @property
    def kind(self) -> str:
        return "unknown_error"


def is_notified(outcome: TransactionOutcome) -> bool:
    """Whether the outcome goes to the one-shot channel for a dedicated presentation.

    A wrong PIN is handled in place on the PIN screen; everything else
    (including success) navigates away exactly once.
    """
    return not isinstance(outcome, PinIncorrect)


def _contains_any(text: str, phrases: tuple) -> bool:
    return any(phrase in text for phrase in phrases)


def classify_rejection(reason: Optional[str]) -> RejectionKind:
    """
    Map a backend rejection reason to how the authorization flow reacts.

    Case-insensitive substring match against known phrases:
    1. "incorrect pin" -> consumes a PIN attempt
    2. "insufficient funds" / "insufficient balance"
    3. anything else is a generic decline
    """
    text = (reason or "").lower()
    if _contains_any(text, INCORRECT_PIN_PHRASES):
        return RejectionKind.INCORRECT_PIN
    if _contains_any(text, INSUFFICIENT_FUNDS_PHRASES):
        return RejectionKind.INSUFFICIENT_FUNDS
    return RejectionKind.DECLINED


def classify_decline_reason(reason: Optional[str]) -> Optional[DeclineReason]:
    """Classify the free-text decline reason of a history record; blank means none"""
    if reason is None or not reason.strip():
        return None

    text = reason.strip().lower()
    if _contains_any(text, INSUFFICIENT_FUNDS_PHRASES):
        kind = DeclineKind.INSUFFICIENT_BALANCE
    elif "account suspended" in text:
        kind = DeclineKind.ACCOUNT_SUSPENDED
    elif "not active" in text or "inactive" in text:
        kind = DeclineKind.ACCOUNT_NOT_ACTIVE
    elif _contains_any(text, INCORRECT_PIN_PHRASES):
        kind = DeclineKind.INCORRECT_PIN
    elif "account not found" in text:
        kind = DeclineKind.ACCOUNT_NOT_FOUND
    else:
        kind = DeclineKind.OTHER

    return DeclineReason(kind=kind, message=reason.strip())
