"""Pytest fixtures for testing"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import httpx
import pytest

from merchant_pos.domain.auth_events import AuthEventChannel
from merchant_pos.domain.exceptions import GatewayTransportError
from merchant_pos.domain.models import HistoryPage, Pagination, PaymentReceipt, RawRecord
from merchant_pos.flows.authorization import SessionParams
from mock_backend.main import TEST_TOKEN, create_app, default_store


class FakeTransactionGateway:
    """Scripted TransactionGateway: each call pops the next response (receipt or exception)"""

    def __init__(self, responses: Optional[list] = None):
        self.responses = list(responses or [])
        self.calls: List[tuple] = []
        self.release: Optional[asyncio.Event] = None

    def queue(self, *responses) -> "FakeTransactionGateway":
        self.responses.extend(responses)
        return self

    async def process(self, beneficiary_id: str, pin: str, amount: str, description: str) -> PaymentReceipt:
        self.calls.append((beneficiary_id, pin, amount, description))
        if self.release is not None:
            await self.release.wait()
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeHistoryGateway:
    """Scripted TransactionHistoryGateway keyed by call order"""

    def __init__(self, responses: Optional[list] = None):
        self.responses = list(responses or [])
        self.calls: List[tuple] = []
        self.release: Optional[asyncio.Event] = None

    def queue(self, *responses) -> "FakeHistoryGateway":
        self.responses.extend(responses)
        return self

    async def fetch_page(self, page: int, limit: int, status: Optional[str]) -> HistoryPage:
        self.calls.append((page, limit, status))
        if self.release is not None:
            await self.release.wait()
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


BASE_TIME = datetime(2024, 5, 15, 10, 30, tzinfo=timezone.utc)


def make_raw(
    record_id: str,
    status: str = "COMPLETED",
    hours_ago: int = 0,
    amount: str = "25.00",
    **overrides,
) -> RawRecord:
    """Raw history record with sensible defaults"""
    fields = dict(
        id=record_id,
        payment_id=f"pay-{record_id}",
        event_timestamp=(BASE_TIME - timedelta(hours=hours_ago)).isoformat(),
        record_created_at=(BASE_TIME - timedelta(hours=hours_ago)).isoformat(),
        amount=amount,
        type="CREDIT",
        status=status,
        original_description="Groceries",
        related_account_display_id="BEN-1",
        related_account_child_name="Alice Tan",
    )
    fields.update(overrides)
    return RawRecord(**fields)


def make_page(records: List[RawRecord], page: int = 1, total_pages: int = 1, total_items: Optional[int] = None) -> HistoryPage:
    return HistoryPage(
        records=records,
        pagination=Pagination(
            page=page,
            total_pages=total_pages,
            total_items=total_items if total_items is not None else len(records),
            has_next=page < total_pages,
        ),
    )


@pytest.fixture
def transaction_gateway() -> FakeTransactionGateway:
    return FakeTransactionGateway()


@pytest.fixture
def history_gateway() -> FakeHistoryGateway:
    return FakeHistoryGateway()


@pytest.fixture
def session_params() -> SessionParams:
    """Navigation parameters for a 150.00 payment to BEN-1"""
    return SessionParams.from_navigation(
        amount="150.00",
        beneficiary_id="BEN-1",
        beneficiary_name="Alice Tan",
        category="Groceries",
    )


@pytest.fixture
def transport_error() -> GatewayTransportError:
    return GatewayTransportError("Merchant backend unreachable: connection refused")


@pytest.fixture
def mock_store():
    return default_store()


@pytest.fixture
def backend_transport(mock_store) -> httpx.ASGITransport:
    """ASGI transport routing httpx calls to the in-process mock backend"""
    return httpx.ASGITransport(app=create_app(mock_store))


@pytest.fixture
def auth_events() -> AuthEventChannel:
    return AuthEventChannel()


@pytest.fixture
def client_kwargs(backend_transport, auth_events) -> dict:
    """Constructor arguments wiring a client to the mock backend with a valid token"""
    return {
        "base_url": "http://merchant.test",
        "token_provider": lambda: TEST_TOKEN,
        "auth_events": auth_events,
        "transport": backend_transport,
    }


@pytest.fixture
def raw_record():
    """Factory for raw history records"""
    return make_raw


@pytest.fixture
def history_page():
    """Factory for history pages"""
    return make_page


@pytest.fixture
def payment_receipt() -> PaymentReceipt:
    return PaymentReceipt(transaction_id="PAY-000001", status="COMPLETED", message="Payment processed")
