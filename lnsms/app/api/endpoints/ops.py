"""
Operator API Endpoints.

Views and tools for whoever reconciles frozen payouts and stale invoices by hand.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query

from lnsms.app.clients.wallet_of_satoshi import ProviderError
from lnsms.app.core.dependencies import get_ledger, get_payment_provider, require_ops_token
from lnsms.app.core.exceptions import InvalidRequestError, ProviderUnavailableError
from lnsms.app.domain.ledger.payment_ledger import PaymentLedger
from lnsms.app.models.payment_enums import PayoutStatus
from lnsms.app.schemas.payment import CancelInvoiceRequest, PaymentRecordResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ops", tags=["Ops"], dependencies=[Depends(require_ops_token)])


@router.get("/claims/indeterminate", response_model=List[PaymentRecordResponse])
async def list_indeterminate_claims(
    limit: int = Query(100, ge=1, le=1000),
    ledger: PaymentLedger = Depends(get_ledger)
):
    """Claims whose payout outcome is unknown. They stay claimed until resolved."""
    return await ledger.list_by_payout_status(PayoutStatus.INDETERMINATE.value, limit=limit)


@router.get("/balance")
async def wallet_balance(provider=Depends(get_payment_provider)):
    """Current provider wallet balance."""
    try:
        return await provider.get_balance()
    except ProviderError as e:
        logger.error("Balance lookup failed: %s", e)
        raise ProviderUnavailableError() from e


@router.get("/payments/{payment_id}")
async def find_payment(payment_id: str, provider=Depends(get_payment_provider)):
    """Provider view of one payment, used to settle INDETERMINATE payouts by hand."""
    try:
        return await provider.find_payment(payment_id)
    except ProviderError as e:
        logger.error("Payment lookup for %s failed: %s", payment_id, e)
        raise ProviderUnavailableError() from e


@router.get("/fee-estimate")
async def fee_estimate(provider=Depends(get_payment_provider)):
    try:
        return await provider.get_fee_estimate()
    except ProviderError as e:
        logger.error("Fee estimate lookup failed: %s", e)
        raise ProviderUnavailableError() from e


@router.post("/invoices/cancel")
async def cancel_invoice(req: CancelInvoiceRequest, provider=Depends(get_payment_provider)):
    """Cancel an unpaid relay invoice."""
    if not req.invoice:
        raise InvalidRequestError("Missing invoice")
    try:
        return await provider.cancel_invoice(req.invoice)
    except ProviderError as e:
        logger.error("Invoice cancel failed: %s", e)
        raise ProviderUnavailableError() from e
