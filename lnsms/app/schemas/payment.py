"""
Payment Schemas.

Request bodies for the public endpoints, the provider payment shape the
relay consumes, and the operator report view.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, field_validator


class ProviderPayment(BaseModel):
    """
    A payment as listed by the provider.

    Only the consumed fields are declared; every other provider field is
    kept as an extra and passed through to the ledger untouched.
    """
    id: str
    type: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[str] = None
    description: Optional[str] = None

    class Config:
        extra = "allow"

    @field_validator("id", "amount", mode="before")
    @classmethod
    def _stringify(cls, value):
        if value is None or isinstance(value, str):
            return value
        return str(value)

    def provider_fields(self) -> Dict[str, Any]:
        """Every provider-supplied field, declared and extra."""
        return self.model_dump(mode="json")


class InvoiceRequest(BaseModel):
    """Body of POST /requestinvoicetonumber. Presence is checked by the service."""
    number: Optional[str] = None
    amount: Optional[Union[str, int, float]] = None


class ClaimRequest(BaseModel):
    """Body of POST /claim. Presence is checked by the service."""
    code: Optional[str] = None
    invoice: Optional[str] = None


class CancelInvoiceRequest(BaseModel):
    """Body of POST /ops/invoices/cancel."""
    invoice: Optional[str] = None


class PaymentRecordResponse(BaseModel):
    """Operator view of a ledger record. Claim codes are never exposed."""
    id: str
    type: Optional[str]
    status: Optional[str]
    amount: Optional[str]
    description: Optional[str]
    sent_sms: bool
    claimed: bool
    payout_status: Optional[str]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True
