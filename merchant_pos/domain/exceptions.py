"""Domain-specific exceptions"""

from typing import Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class LocalValidationError(DomainException):
    """Input rejected locally, never sent to the backend"""

    pass


class InvalidAmountError(LocalValidationError):
    """Amount is missing, unparseable or not positive"""

    pass


class InvalidPinError(LocalValidationError):
    """PIN is not exactly the required number of digits"""

    pass


class SubmissionInProgressError(LocalValidationError):
    """A transaction submission is already in flight for this session"""

    pass


class FlowCompletedError(LocalValidationError):
    """The authorization flow already succeeded"""

    pass


class FetchInProgressError(LocalValidationError):
    """A history page fetch is already in flight"""

    pass


class InvalidDateRangeError(LocalValidationError):
    """Date range start is after its end"""

    pass


class InvalidQrPayloadError(LocalValidationError):
    """Scanned QR text is not a valid beneficiary payload"""

    pass


class LockoutReached(DomainException):
    """PIN attempts exhausted; no further submissions for this session"""

    pass


class GatewayError(DomainException):
    """Merchant backend call failed"""

    pass


class GatewayRejectedError(GatewayError):
    """Backend answered with a non-2xx status"""

    def __init__(self, http_status: int, reason: str):
        super().__init__(f"Backend rejected request ({http_status}): {reason}")
        self.http_status = http_status
        self.reason = reason


class GatewayTransportError(GatewayError):
    """No response received (connectivity loss or timeout)"""

    pass


class GatewayProtocolError(GatewayError):
    """Response received but its shape was not understood"""

    def __init__(self, message: str, http_status: Optional[int] = None):
        super().__init__(message)
        self.http_status = http_status


class IllegalTransitionError(DomainException):
    """State machine asked to make a transition that is not declared"""

    pass
