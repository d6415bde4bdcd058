"""In-memory merchant backend used by integration and e2e tests"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from fastapi import FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse

TEST_TOKEN = "test-token"
VALID_SIGNATURE = "valid-sig"


@dataclass
class MockAccount:
    account_id: str
    display_id: str
    name: str
    pin: str
    balance: Decimal
    active: bool = True


@dataclass
class MockStore:
    accounts: Dict[str, MockAccount] = field(default_factory=dict)
    history: List[dict] = field(default_factory=list)
    payments: int = 0


def default_store() -> MockStore:
    store = MockStore()
    store.accounts["BEN-1"] = MockAccount("acc-0001", "BEN-1", "Alice Tan", "1234", Decimal("500.00"))
    store.accounts["BEN-2"] = MockAccount("acc-0002", "BEN-2", "Bob Lim", "4321", Decimal("20.00"))
    store.accounts["BEN-3"] = MockAccount("acc-0003", "BEN-3", "Carol Ng", "1111", Decimal("100.00"), active=False)

    base = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
    statuses = ["COMPLETED", "COMPLETED", "PENDING", "FAILED", "DECLINED"]
    for i in range(45):
        status = statuses[i % len(statuses)]
        store.history.append(
            {
                "legId": f"leg-{i:04d}",
                "paymentId": f"pay-{i:04d}",
                "eventTimestamp": (base + timedelta(hours=i * 7)).isoformat(),
                "recordCreatedAt": (base + timedelta(hours=i * 7)).isoformat(),
                "amount": f"{10 + i}.50",
                "type": "CREDIT",
                "status": status,
                "originalDescription": "Groceries" if i % 2 else "Snacks",
                "declineReason": "Insufficient balance" if status in ("FAILED", "DECLINED") else None,
                "relatedAccountId": "acc-0001",
                "relatedAccountDisplayId": "BEN-1",
                "relatedAccountChildName": "Alice Tan",
                "relatedAccountType": "CHILD",
            }
        )
    return store


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _authorized(authorization: Optional[str]) -> bool:
    return authorization == f"Bearer {TEST_TOKEN}"


def create_app(store: MockStore | None = None) -> FastAPI:
    app = FastAPI(title="Mock Merchant Backend", version="1.0.0")
    app.state.store = store or default_store()

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/api/merchant-app/transactions")
    async def process_transaction(request: Request, authorization: Optional[str] = Header(None)):
        if not _authorized(authorization):
            return _error(401, "Unauthorized")
        body = await request.json()
        store: MockStore = app.state.store

        account = store.accounts.get(body.get("beneficiaryDisplayId", ""))
        if account is None:
            return _error(404, "Beneficiary account not found")
        if not account.active:
            return _error(403, "Beneficiary account is not active")
        if body.get("enteredPin") != account.pin:
            return _error(400, "Incorrect PIN")
        try:
            amount = Decimal(str(body.get("amount")))
        except InvalidOperation:
            return _error(400, "Invalid amount")
        if amount > account.balance:
            return _error(400, "Insufficient Funds for account")

        account.balance -= amount
        store.payments += 1
        payment_id = f"PAY-{store.payments:06d}"
        now = datetime.now(timezone.utc).isoformat()
        store.history.append(
            {
                "legId": f"leg-{payment_id}",
                "paymentId": payment_id,
                "eventTimestamp": now,
                "recordCreatedAt": now,
                "amount": str(amount),
                "type": "CREDIT",
                "status": "COMPLETED",
                "originalDescription": body.get("description"),
                "relatedAccountId": account.account_id,
                "relatedAccountDisplayId": account.display_id,
                "relatedAccountChildName": account.name,
            }
        )
        return JSONResponse(
            status_code=201,
            content={"paymentDisplayId": payment_id, "transactionStatus": "COMPLETED", "message": "Payment processed"},
        )

    @app.get("/api/merchant-app/transactions")
    def transaction_history(
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        status: Optional[str] = None,
        authorization: Optional[str] = Header(None),
    ):
        if not _authorized(authorization):
            return _error(401, "Unauthorized")
        store: MockStore = app.state.store

        items = [r for r in store.history if status is None or r["status"] == status.upper()]
        items.sort(key=lambda r: r["eventTimestamp"], reverse=True)
        total_pages = max(1, math.ceil(len(items) / limit))
        start = (page - 1) * limit
        return {
            "data": items[start:start + limit],
            "pagination": {
                "page": page,
                "limit": limit,
                "totalItems": len(items),
                "totalPages": total_pages,
                "hasNextPage": page < total_pages,
                "hasPreviousPage": page > 1,
                "statusFilter": status,
            },
        }

    @app.post("/api/merchant-app/beneficiaries/validate-qr")
    async def validate_qr(request: Request, authorization: Optional[str] = Header(None)):
        if not _authorized(authorization):
            return _error(401, "Unauthorized")
        body = await request.json()
        account = app.state.store.accounts.get(body.get("account", ""))
        if account is None or body.get("sig") != VALID_SIGNATURE:
            return _error(404, "QR Code not recognized or invalid")
        return {"accountId": account.account_id, "accountDisplayId": account.display_id, "name": account.name}

    return app


app = create_app()
