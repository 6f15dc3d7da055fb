"""
Amount, destination and claim-code helpers shared by the relay services.

All currency arithmetic goes through ``Decimal``; floats from JSON
bodies are converted through their string form first.
"""

import re
import secrets
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from lnsms.app.core.exceptions import InvalidRequestError

DESTINATION_PATTERN = re.compile(r"\[(.*?)\]")


def to_decimal(amount: Union[str, int, float, Decimal]) -> Decimal:
    """
    Parse an amount into an exact Decimal.

    Raises:
        InvalidRequestError: If the value is not a finite number
    """
    if isinstance(amount, bool):
        raise InvalidRequestError("Amount must be a number")
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise InvalidRequestError("Amount must be a number")
    if not value.is_finite():
        raise InvalidRequestError("Amount must be a number")
    return value


def payable_amount(amount: Union[str, int, float, Decimal], fee: Decimal) -> Decimal:
    """Face value minus the fixed network fee."""
    return to_decimal(amount) - fee


def format_amount(amount: Decimal) -> str:
    """Plain decimal notation with trailing zeros trimmed, e.g. ``0.00109``."""
    if amount == 0:
        return "0"
    return format(amount.normalize(), "f")


def extract_destination(description: Optional[str]) -> Optional[str]:
    """Return the phone number in the first ``[...]`` token, if any."""
    if not description:
        return None
    match = DESTINATION_PATTERN.search(description)
    if not match:
        return None
    number = match.group(1).strip()
    return number or None


def generate_claim_code(nbytes: int = 16) -> str:
    """URL-safe claim code from the OS CSPRNG."""
    return secrets.token_urlsafe(nbytes)
