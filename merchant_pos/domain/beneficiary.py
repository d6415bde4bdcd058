"""Validation of scanned beneficiary QR payloads"""

import json
from typing import Optional

from merchant_pos.domain.exceptions import InvalidQrPayloadError
from merchant_pos.domain.models import QrPayload

REQUIRED_FIELDS = ("type", "account", "ver", "sig")


def parse_qr_payload(raw: Optional[str]) -> QrPayload:
    """
    Parse the text decoded from a beneficiary QR code.

    Expected shape: {"type": ..., "account": ..., "ver": ..., "sig": ...}

    Raises:
        InvalidQrPayloadError: If the text is blank, not a JSON object or
            misses a required field
    """
    if raw is None or not raw.strip():
        raise InvalidQrPayloadError("Invalid QR Code scanned.")

    try:
        data = json.loads(raw)
    except ValueError as e:
        raise InvalidQrPayloadError("Invalid QR Code data format.") from e

    if not isinstance(data, dict):
        raise InvalidQrPayloadError("Invalid QR Code data format.")

    values = {}
    for name in REQUIRED_FIELDS:
        value = data.get(name)
        if value is None or not str(value).strip():
            raise InvalidQrPayloadError("Invalid QR Code format.")
        values[name] = str(value).strip()

    return QrPayload(
        type=values["type"],
        account=values["account"],
        version=values["ver"],
        signature=values["sig"],
    )
