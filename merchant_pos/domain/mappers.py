"""Mapping of raw backend history records to validated domain records"""

import logging
from typing import Iterable, List, Optional

from merchant_pos.domain.models import RawRecord, TransactionRecord, TransactionStatus
from merchant_pos.domain.outcomes import classify_decline_reason
from merchant_pos.utils.amount_utils import parse_decimal
from merchant_pos.utils.date_utils import first_timestamp

logger = logging.getLogger(__name__)

RAW_STATUS_MAP = {
    "COMPLETED": TransactionStatus.APPROVED,
    "APPROVED": TransactionStatus.APPROVED,
    "PENDING": TransactionStatus.PENDING,
    "DECLINED": TransactionStatus.DECLINED,
    "FAILED": TransactionStatus.FAILED,
}

UNKNOWN_COUNTERPARTY_ID = "N/A"
UNKNOWN_COUNTERPARTY_NAME = "Unknown Customer"
UNCATEGORIZED = "Uncategorized"


def parse_status(value: Optional[str]) -> Optional[TransactionStatus]:
    if not value:
        return None
    return RAW_STATUS_MAP.get(value.strip().upper())


def to_transaction_record(raw: RawRecord) -> Optional[TransactionRecord]:
    """
    Validate and convert one raw record.

    Returns None (record dropped) when the id is missing, neither the event
    timestamp nor the record-creation timestamp parses, the amount does not
    parse or the status is not recognized.
    """
    if not raw.id or not raw.id.strip():
        logger.warning("Dropping history record without id")
        return None

    timestamp = first_timestamp(raw.event_timestamp, raw.record_created_at)
    if timestamp is None:
        logger.warning(
            "Dropping history record with no usable timestamp",
            extra={"record_id": raw.id, "event_timestamp": raw.event_timestamp},
        )
        return None

    amount = parse_decimal(raw.amount)
    if amount is None:
        logger.warning("Dropping history record with bad amount", extra={"record_id": raw.id, "amount": raw.amount})
        return None

    status = parse_status(raw.status)
    if status is None:
        logger.warning("Dropping history record with unknown status", extra={"record_id": raw.id, "status": raw.status})
        return None

    return TransactionRecord(
        id=raw.id,
        amount=amount,
        timestamp=timestamp,
        counterparty_id=raw.related_account_display_id or raw.related_account_id or UNKNOWN_COUNTERPARTY_ID,
        counterparty_name=raw.related_account_child_name or UNKNOWN_COUNTERPARTY_NAME,
        status=status,
        category=raw.original_description or UNCATEGORIZED,
        decline_reason=classify_decline_reason(raw.decline_reason),
        payment_id=raw.payment_id,
    )


def map_records(raws: Iterable[RawRecord]) -> List[TransactionRecord]:
    """Map a page of raw records, skipping the invalid ones"""
    records = []
    for raw in raws:
        record = to_transaction_record(raw)
        if record is not None:
            records.append(record)
    return records
