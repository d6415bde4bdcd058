"""Merchant backend client for QR beneficiary validation"""

from pydantic import ValidationError

from merchant_pos.domain.exceptions import GatewayProtocolError
from merchant_pos.domain.models import Beneficiary, QrPayload
from merchant_pos.infrastructure.clients.base import MerchantApiClient
from merchant_pos.infrastructure.clients.schemas import QrValidationRequest, ValidatedBeneficiary

VALIDATE_QR_PATH = "api/merchant-app/beneficiaries/validate-qr"


class BeneficiaryClient(MerchantApiClient):
    """Resolves a scanned QR payload to a beneficiary account"""

    async def validate_qr(self, payload: QrPayload) -> Beneficiary:
        """
        Ask the backend to verify the QR signature and look up the account.

        Raises:
            GatewayRejectedError: QR not recognized, bad signature or account problem
            GatewayTransportError: On timeout or connection failure
            GatewayProtocolError: Success response missing beneficiary fields
        """
        request = QrValidationRequest(
            type=payload.type,
            account=payload.account,
            ver=payload.version,
            sig=payload.signature,
        )
        response = await self._request("POST", VALIDATE_QR_PATH, endpoint="validate_qr", json=request.model_dump())

        try:
            return ValidatedBeneficiary.model_validate(self._json(response)).to_beneficiary()
        except ValidationError as e:
            raise GatewayProtocolError(f"Invalid beneficiary response: {e}", response.status_code) from e
