"""Beneficiary lookup from scanned QR text"""

import logging
from typing import Optional, Protocol

from merchant_pos.domain.beneficiary import parse_qr_payload
from merchant_pos.domain.models import Beneficiary, QrPayload

logger = logging.getLogger(__name__)


class BeneficiaryGateway(Protocol):
    async def validate_qr(self, payload: QrPayload) -> Beneficiary:
        ...


async def resolve_beneficiary(gateway: BeneficiaryGateway, scanned: Optional[str]) -> Beneficiary:
    """
    Validate scanned QR text locally, then have the backend resolve it.

    Raises:
        InvalidQrPayloadError: Text is not a beneficiary payload (no backend call)
        GatewayError: Backend rejected the payload or could not be reached
    """
    payload = parse_qr_payload(scanned)
    beneficiary = await gateway.validate_qr(payload)
    logger.info("Beneficiary resolved", extra={"beneficiary_id": beneficiary.display_id})
    return beneficiary
