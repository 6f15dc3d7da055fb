"""
Payment enumerations.

Provider statuses form an open set; only the values the relay acts on
are listed here. Unknown values are stored verbatim.
"""

import enum


class PaymentType(str, enum.Enum):
    """Direction of value flow as reported by the provider."""
    CREDIT = "CREDIT"  # Money entering the wallet
    DEBIT = "DEBIT"  # Money leaving the wallet


class PaymentStatus(str, enum.Enum):
    """Provider-reported payment lifecycle state."""
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    UNPAID = "UNPAID"


class PayoutStatus(str, enum.Enum):
    """Last known outcome of a claim payout."""
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    INDETERMINATE = "INDETERMINATE"  # Provider unreachable mid-payout, needs an operator


LIGHTNING_CURRENCY = "LIGHTNING"
