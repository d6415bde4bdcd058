"""Contracts of the backend collaborators consumed by the flows"""

from typing import Optional, Protocol

from merchant_pos.domain.models import HistoryPage, PaymentReceipt


class TransactionGateway(Protocol):
    async def process(self, beneficiary_id: str, pin: str, amount: str, description: str) -> PaymentReceipt:
        """
        Submit a PIN-authorized payment.

        Raises:
            GatewayRejectedError: Backend answered with an error status
            GatewayTransportError: No response received
            GatewayProtocolError: Response shape not understood
        """
        ...


class TransactionHistoryGateway(Protocol):
    async def fetch_page(self, page: int, limit: int, status: Optional[str]) -> HistoryPage:
        """Fetch one page of the merchant's history; raises the same errors as process()"""
        ...
