"""Merchant backend client for paginated transaction history"""

import logging
from typing import Optional

from pydantic import ValidationError

from merchant_pos.domain.exceptions import GatewayProtocolError
from merchant_pos.domain.models import HistoryPage
from merchant_pos.infrastructure.clients.base import MerchantApiClient
from merchant_pos.infrastructure.clients.schemas import ApiTransactionItem, TransactionHistoryResponse

HISTORY_PATH = "api/merchant-app/transactions"

logger = logging.getLogger(__name__)


class HistoryClient(MerchantApiClient):
    """Fetches history pages; implements TransactionHistoryGateway"""

    async def fetch_page(self, page: int, limit: int, status: Optional[str] = None) -> HistoryPage:
        """
        Fetch one page of the merchant's transaction history.

        Records whose shape does not validate are skipped; a malformed
        envelope or pagination block fails the whole page.

        Raises:
            GatewayRejectedError: On non-2xx status
            GatewayTransportError: On timeout or connection failure
            GatewayProtocolError: On an unusable response body
        """
        params = {"page": page, "limit": limit}
        if status:
            params["status"] = status

        response = await self._request("GET", HISTORY_PATH, endpoint="transaction_history", params=params)

        try:
            envelope = TransactionHistoryResponse.model_validate(self._json(response))
        except ValidationError as e:
            raise GatewayProtocolError(f"Invalid history response: {e}", response.status_code) from e

        records = []
        skipped = 0
        for item in envelope.data:
            try:
                records.append(ApiTransactionItem.model_validate(item).to_raw_record())
            except ValidationError as e:
                skipped += 1
                logger.warning(f"Skipping malformed history record: {e}")

        return HistoryPage(records=records, pagination=envelope.pagination.to_pagination(), skipped=skipped)
