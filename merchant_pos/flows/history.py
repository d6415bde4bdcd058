"""
Transaction history reconciliation.

Fetches the merchant's history page by page, merges pages into a
deduplicated local set and projects the displayed list through local
status and date filters. Only the status goes to the backend; the date
range is always applied locally.
"""

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, Dict, FrozenSet, Iterable, Optional, Tuple, Union

from merchant_pos.config import settings
from merchant_pos.domain.exceptions import (
    FetchInProgressError,
    GatewayProtocolError,
    GatewayRejectedError,
    GatewayTransportError,
    InvalidDateRangeError,
    LocalValidationError,
)
from merchant_pos.domain.gateways import TransactionHistoryGateway
from merchant_pos.domain.mappers import map_records
from merchant_pos.domain.models import DateRange, StatusFilter, TransactionRecord, TransactionStatus
from merchant_pos.domain.observable import StateCell, Subscription
from merchant_pos.infrastructure.observability.logging import log_history_fetch
from merchant_pos.infrastructure.observability.metrics import history_records_dropped_counter, record_history_failure

logger = logging.getLogger(__name__)

# UI status -> backend status vocabulary
GATEWAY_STATUS: Dict[StatusFilter, Optional[str]] = {
    StatusFilter.ALL: None,
    StatusFilter.APPROVED: "COMPLETED",
    StatusFilter.PENDING: "PENDING",
    StatusFilter.DECLINED: "FAILED",
    StatusFilter.FAILED: "FAILED",
}

# Record statuses each filter matches locally
STATUS_GROUPS: Dict[StatusFilter, FrozenSet[TransactionStatus]] = {
    StatusFilter.APPROVED: frozenset({TransactionStatus.APPROVED}),
    StatusFilter.PENDING: frozenset({TransactionStatus.PENDING}),
    StatusFilter.DECLINED: frozenset({TransactionStatus.DECLINED, TransactionStatus.FAILED}),
    StatusFilter.FAILED: frozenset({TransactionStatus.FAILED}),
}

SERVER_ERROR_MESSAGE = "Error fetching transactions (Code: {status})"
CONNECTIVITY_ERROR_MESSAGE = "Unable to reach the server. Check your connection and try again."
UNEXPECTED_RESPONSE_MESSAGE = "Unexpected response from the server. Please try again."


@dataclass(frozen=True)
class HistoryState:
    """Snapshot of the history screen; displayed_items is always derived"""

    all_items: Tuple[TransactionRecord, ...] = ()
    page: int = 0
    total_pages: int = 0
    total_items: int = 0
    status_filter: StatusFilter = StatusFilter.ALL
    applied_status: StatusFilter = StatusFilter.ALL
    date_range: Optional[DateRange] = None
    displayed_items: Tuple[TransactionRecord, ...] = ()
    loading: bool = False
    error: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages


def to_status_filter(value: Union[StatusFilter, str]) -> StatusFilter:
    """Accept a StatusFilter or its label in any case"""
    if isinstance(value, StatusFilter):
        return value
    for status in StatusFilter:
        if status.value.lower() == str(value).strip().lower():
            return status
    raise LocalValidationError(f"Unknown status filter '{value}'")


def validate_date_range(date_range: Optional[DateRange]) -> Optional[DateRange]:
    if date_range is None:
        return None
    if date_range.start and date_range.end and date_range.start > date_range.end:
        raise InvalidDateRangeError(f"Start date {date_range.start} is after end date {date_range.end}")
    return date_range


def matches(record: TransactionRecord, status_filter: StatusFilter, date_range: Optional[DateRange]) -> bool:
    if status_filter != StatusFilter.ALL and record.status not in STATUS_GROUPS[status_filter]:
        return False
    if date_range is not None and not date_range.contains(record.day):
        return False
    return True


def project(
    items: Iterable[TransactionRecord],
    status_filter: StatusFilter,
    date_range: Optional[DateRange],
) -> Tuple[TransactionRecord, ...]:
    """Filter and sort newest first; records with equal timestamps keep their merge order"""
    selected = [record for record in items if matches(record, status_filter, date_range)]
    return tuple(sorted(selected, key=lambda record: record.timestamp, reverse=True))


def merge(
    existing: Tuple[TransactionRecord, ...],
    incoming: Iterable[TransactionRecord],
) -> Tuple[TransactionRecord, ...]:
    """Union by id; an id already present keeps its first-seen record and position"""
    seen = {record.id for record in existing}
    merged = list(existing)
    for record in incoming:
        if record.id not in seen:
            seen.add(record.id)
            merged.append(record)
    return tuple(merged)


class HistoryReconciler:
    """Paged history fetcher with an additive local cache and local filters"""

    def __init__(
        self,
        gateway: TransactionHistoryGateway,
        page_size: Optional[int] = None,
        status_filter: Union[StatusFilter, str] = StatusFilter.ALL,
        date_range: Optional[DateRange] = None,
    ):
        self._gateway = gateway
        self.page_size = page_size or settings.history_page_size
        status = to_status_filter(status_filter)
        self._cell: StateCell[HistoryState] = StateCell(
            HistoryState(
                status_filter=status,
                applied_status=status,
                date_range=validate_date_range(date_range),
            )
        )
        self._closed = False

    @property
    def state(self) -> HistoryState:
        return self._cell.current()

    def subscribe(self, callback: Callable[[HistoryState], None]) -> Subscription:
        return self._cell.subscribe(callback)

    async def apply_filters(
        self,
        status: Union[StatusFilter, str],
        date_range: Optional[DateRange] = None,
    ) -> HistoryState:
        """
        Apply new filters and reload from page 1.

        Pagination resets to page 1 of 1 immediately, so load_more stays a
        no-op until page 1 of the new query arrives. The accumulated list is
        replaced only then; if the fetch fails the previous list stays
        visible under the new filters.

        Raises:
            FetchInProgressError: A fetch is already in flight
            LocalValidationError: Unknown status or inverted date range
        """
        status = to_status_filter(status)
        date_range = validate_date_range(date_range)
        if self.state.loading:
            raise FetchInProgressError("Transactions are already loading")

        logger.debug("Applying history filters", extra={"status_filter": status.value})
        self._publish(
            status_filter=status,
            applied_status=status,
            date_range=date_range,
            page=1,
            total_pages=1,
            loading=True,
            error=None,
        )
        return await self._fetch(page=1, status=status, replace_items=True)

    async def refresh(self) -> HistoryState:
        """Reload from page 1 with the current filters"""
        return await self.apply_filters(self.state.status_filter, self.state.date_range)

    async def load_more(self) -> HistoryState:
        """Fetch and merge the next page; no-op on the last page or while loading"""
        current = self.state
        if self._closed or current.loading or current.page >= current.total_pages:
            logger.debug(
                "Load more skipped",
                extra={"page": current.page, "total_pages": current.total_pages, "loading": current.loading},
            )
            return current

        self._publish(loading=True)
        return await self._fetch(page=current.page + 1, status=current.applied_status, replace_items=False)

    def select_status(self, status: Union[StatusFilter, str]) -> HistoryState:
        """Change the local status filter without contacting the backend"""
        return self._publish(status_filter=to_status_filter(status))

    def select_date_range(self, date_range: Optional[DateRange]) -> HistoryState:
        """Change the local date filter; the backend never sees it"""
        return self._publish(date_range=validate_date_range(date_range))

    def close(self) -> None:
        """Tear down the screen session; responses arriving afterwards are dropped"""
        self._closed = True
        self._cell.close()

    async def _fetch(self, page: int, status: StatusFilter, replace_items: bool) -> HistoryState:
        gateway_status = GATEWAY_STATUS[status]
        start_time = time.time()

        try:
            result = await self._gateway.fetch_page(page, self.page_size, gateway_status)
        except GatewayRejectedError as e:
            return self._fail("server", SERVER_ERROR_MESSAGE.format(status=e.http_status), e)
        except GatewayTransportError as e:
            return self._fail("transport", CONNECTIVITY_ERROR_MESSAGE, e)
        except GatewayProtocolError as e:
            return self._fail("protocol", UNEXPECTED_RESPONSE_MESSAGE, e)
        except Exception:
            if not self._closed:
                self._publish(loading=False)
            raise

        if self._closed:
            logger.info("Discarding late history page for closed session", extra={"page": page})
            return self.state

        records = map_records(result.records)
        dropped = len(result.records) - len(records) + result.skipped
        if dropped:
            history_records_dropped_counter.inc(dropped)

        base = () if replace_items else self.state.all_items
        pagination = result.pagination
        state = self._publish(
            all_items=merge(base, records),
            page=pagination.page,
            total_pages=pagination.total_pages,
            total_items=pagination.total_items,
            loading=False,
            error=None,
        )

        duration_ms = (time.time() - start_time) * 1000
        log_history_fetch(page, gateway_status, len(result.records) + result.skipped, dropped, duration_ms)
        return state

    def _fail(self, kind: str, message: str, error: Exception) -> HistoryState:
        if self._closed:
            return self.state
        record_history_failure(kind)
        logger.error(f"History fetch failed ({kind}): {error}")
        return self._publish(loading=False, error=message)

    def _publish(self, **changes) -> HistoryState:
        """Replace the snapshot, re-deriving displayed_items from the new fields"""
        state = replace(self.state, **changes)
        state = replace(state, displayed_items=project(state.all_items, state.status_filter, state.date_range))
        self._cell.set(state)
        return state
