"""Pydantic schemas for merchant backend request/response validation"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from merchant_pos.domain.models import Beneficiary, Pagination, PaymentReceipt, RawRecord


class WireModel(BaseModel):
    """Backend JSON uses camelCase; unknown keys are ignored, numeric strings may arrive as numbers"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)


class ProcessTransactionRequest(WireModel):
    """Body for POST api/merchant-app/transactions"""

    beneficiary_display_id: str = Field(..., min_length=1, alias="beneficiaryDisplayId")
    entered_pin: str = Field(..., alias="enteredPin")
    amount: str
    description: str


class ProcessTransactionResponse(WireModel):
    """Success body for POST api/merchant-app/transactions"""

    transaction_id: str = Field(..., min_length=1, alias="paymentDisplayId")
    status: Optional[str] = Field(None, alias="transactionStatus")
    message: Optional[str] = None

    def to_receipt(self) -> PaymentReceipt:
        return PaymentReceipt(transaction_id=self.transaction_id, status=self.status, message=self.message)


class ApiTransactionItem(WireModel):
    """Single history record as sent by the backend"""

    leg_id: Optional[str] = Field(None, alias="legId")
    payment_id: Optional[str] = Field(None, alias="paymentId")
    event_timestamp: Optional[str] = Field(None, alias="eventTimestamp")
    record_created_at: Optional[str] = Field(None, alias="recordCreatedAt")
    amount: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None
    original_description: Optional[str] = Field(None, alias="originalDescription")
    decline_reason: Optional[str] = Field(None, alias="declineReason")
    related_account_id: Optional[str] = Field(None, alias="relatedAccountId")
    related_account_display_id: Optional[str] = Field(None, alias="relatedAccountDisplayId")
    related_account_child_name: Optional[str] = Field(None, alias="relatedAccountChildName")
    related_account_type: Optional[str] = Field(None, alias="relatedAccountType")
    display_description: Optional[str] = Field(None, alias="displayDescription")

    def to_raw_record(self) -> RawRecord:
        return RawRecord(
            id=self.leg_id,
            payment_id=self.payment_id,
            event_timestamp=self.event_timestamp,
            record_created_at=self.record_created_at,
            amount=self.amount,
            type=self.type,
            status=self.status,
            original_description=self.original_description,
            decline_reason=self.decline_reason,
            related_account_id=self.related_account_id,
            related_account_display_id=self.related_account_display_id,
            related_account_child_name=self.related_account_child_name,
            related_account_type=self.related_account_type,
            display_description=self.display_description,
        )


class PaginationDetails(WireModel):
    """The "pagination" object of the history response"""

    page: int = Field(..., ge=1)
    limit: Optional[int] = None
    total_items: int = Field(0, ge=0, alias="totalItems")
    total_pages: int = Field(..., ge=0, alias="totalPages")
    has_next_page: bool = Field(False, alias="hasNextPage")
    has_previous_page: bool = Field(False, alias="hasPreviousPage")
    status_filter: Optional[str] = Field(None, alias="statusFilter")

    def to_pagination(self) -> Pagination:
        return Pagination(
            page=self.page,
            total_pages=self.total_pages,
            total_items=self.total_items,
            has_next=self.has_next_page,
            limit=self.limit,
        )


class TransactionHistoryResponse(WireModel):
    """Envelope of GET api/merchant-app/transactions; records are validated one by one"""

    data: List[Any] = Field(default_factory=list)
    pagination: PaginationDetails


class QrValidationRequest(WireModel):
    """Body for POST api/merchant-app/beneficiaries/validate-qr"""

    type: str
    account: str
    ver: str
    sig: str


class ValidatedBeneficiary(WireModel):
    account_id: str = Field(..., min_length=1, alias="accountId")
    account_display_id: str = Field(..., min_length=1, alias="accountDisplayId")
    name: str

    def to_beneficiary(self) -> Beneficiary:
        return Beneficiary(account_id=self.account_id, display_id=self.account_display_id, name=self.name)
