"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class TransactionStatus(str, Enum):
    """Status of a transaction as shown to the merchant"""

    APPROVED = "Approved"
    PENDING = "Pending"
    DECLINED = "Declined"
    FAILED = "Failed"


class StatusFilter(str, Enum):
    """Status choices offered by the history screen"""

    ALL = "All"
    APPROVED = "Approved"
    PENDING = "Pending"
    DECLINED = "Declined"
    FAILED = "Failed"


class DeclineKind(str, Enum):
    INSUFFICIENT_BALANCE = "insufficient_balance"
    ACCOUNT_SUSPENDED = "account_suspended"
    ACCOUNT_NOT_ACTIVE = "account_not_active"
    INCORRECT_PIN = "incorrect_pin"
    ACCOUNT_NOT_FOUND = "account_not_found"
    OTHER = "other"


@dataclass(frozen=True)
class DeclineReason:
    """Classified decline reason attached to a history record"""

    kind: DeclineKind
    message: str


@dataclass(frozen=True)
class RawRecord:
    """History record as delivered by the backend, before validation"""

    id: Optional[str] = None
    payment_id: Optional[str] = None
    event_timestamp: Optional[str] = None
    record_created_at: Optional[str] = None
    amount: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None
    original_description: Optional[str] = None
    decline_reason: Optional[str] = None
    related_account_id: Optional[str] = None
    related_account_display_id: Optional[str] = None
    related_account_child_name: Optional[str] = None
    related_account_type: Optional[str] = None
    display_description: Optional[str] = None


@dataclass(frozen=True)
class TransactionRecord:
    """Validated transaction shown in the history list"""

    id: str
    amount: Decimal
    timestamp: datetime
    counterparty_id: str
    counterparty_name: str
    status: TransactionStatus
    category: str
    decline_reason: Optional[DeclineReason] = None
    payment_id: Optional[str] = None

    @property
    def short_id(self) -> str:
        """Last 8 characters of the id's final dash-separated segment"""
        tail = self.id.rsplit("-", 1)[-1][-8:]
        return tail or self.id[-8:]

    @property
    def day(self) -> date:
        return self.timestamp.date()


@dataclass(frozen=True)
class Pagination:
    page: int
    total_pages: int
    total_items: int
    has_next: bool
    limit: Optional[int] = None


@dataclass(frozen=True)
class HistoryPage:
    """One page of history as returned by the backend"""

    records: List[RawRecord]
    pagination: Pagination
    skipped: int = 0  # malformed wire records the client could not read


@dataclass(frozen=True)
class DateRange:
    """Inclusive date window; either bound may be open"""

    start: Optional[date] = None
    end: Optional[date] = None

    def contains(self, day: date) -> bool:
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True


@dataclass(frozen=True)
class PaymentReceipt:
    """Successful transaction submission"""

    transaction_id: str
    status: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class Beneficiary:
    """Beneficiary resolved from a scanned QR code"""

    account_id: str
    display_id: str
    name: str


@dataclass(frozen=True)
class QrPayload:
    """Decoded QR code content identifying a beneficiary account"""

    type: str
    account: str
    version: str
    signature: str
