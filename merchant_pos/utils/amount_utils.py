"""Amount parsing utilities"""

from decimal import Decimal, InvalidOperation
from typing import Optional

CENTS = Decimal("0.01")


def parse_decimal(value: Optional[str]) -> Optional[Decimal]:
    """Parse a decimal string; None for missing, unparseable or non-finite input"""
    if value is None:
        return None
    text = str(value).strip().replace(",", "")
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount


def parse_payment_amount(value: Optional[str]) -> Decimal:
    """
    Parse a payment amount entered by the merchant.

    Raises:
        ValueError: If the amount is missing, unparseable, not positive
            or has more than two decimal places
    """
    amount = parse_decimal(value)
    if amount is None:
        raise ValueError(f"Amount '{value}' is not a number")
    if amount <= 0:
        raise ValueError(f"Amount must be greater than zero, got {amount}")
    try:
        if amount != amount.quantize(CENTS):
            raise ValueError(f"Amount {amount} has more than two decimal places")
    except InvalidOperation as e:
        raise ValueError(f"Amount {amount} is out of range") from e
    return amount


def format_amount(amount: Decimal) -> str:
    """Format an amount the way the backend expects it ("150.00")"""
    return f"{amount.quantize(CENTS)}"
