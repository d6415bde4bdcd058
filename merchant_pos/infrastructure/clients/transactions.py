"""Merchant backend client for PIN-authorized payments"""

from pydantic import ValidationError

from merchant_pos.domain.exceptions import GatewayProtocolError
from merchant_pos.domain.models import PaymentReceipt
from merchant_pos.infrastructure.clients.base import MerchantApiClient
from merchant_pos.infrastructure.clients.schemas import ProcessTransactionRequest, ProcessTransactionResponse

TRANSACTIONS_PATH = "api/merchant-app/transactions"


class TransactionClient(MerchantApiClient):
    """Submits payments; implements TransactionGateway"""

    async def process(self, beneficiary_id: str, pin: str, amount: str, description: str) -> PaymentReceipt:
        """
        Submit a payment to the beneficiary's account.

        Raises:
            GatewayRejectedError: Backend declined (wrong PIN, funds, account state...)
            GatewayTransportError: On timeout or connection failure
            GatewayProtocolError: Success response without a transaction id
        """
        request = ProcessTransactionRequest(
            beneficiary_display_id=beneficiary_id,
            entered_pin=pin,
            amount=amount,
            description=description,
        )
        response = await self._request(
            "POST",
            TRANSACTIONS_PATH,
            endpoint="process_transaction",
            json=request.model_dump(by_alias=True),
        )

        try:
            return ProcessTransactionResponse.model_validate(self._json(response)).to_receipt()
        except ValidationError as e:
            raise GatewayProtocolError(f"Invalid transaction response: {e}", response.status_code) from e
