"""
Relay API Endpoints.

Public endpoints used by payers (invoice request) and recipients (claim).
"""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from lnsms.app.core.dependencies import get_claim_service, get_invoice_service
from lnsms.app.core.rate_limit import enforce_rate_limit
from lnsms.app.domain.relay.claim_service import ClaimService
from lnsms.app.domain.relay.invoice_service import InvoiceRequestService
from lnsms.app.schemas.payment import ClaimRequest, InvoiceRequest

router = APIRouter(tags=["Relay"], dependencies=[Depends(enforce_rate_limit)])


@router.post("/requestinvoicetonumber")
async def request_invoice_to_number(
    req: InvoiceRequest,
    service: InvoiceRequestService = Depends(get_invoice_service)
):
    """
    Create an invoice whose payment will be relayed to ``number`` by SMS.

    Returns 400 if number or amount is missing, or the amount does not
    exceed the network fee.
    """
    return await service.request_invoice(req.number, req.amount)


@router.post("/claim", response_class=PlainTextResponse)
async def claim_payment(
    req: ClaimRequest,
    service: ClaimService = Depends(get_claim_service)
):
    """
    Redeem a claim code by paying the credit out to ``invoice``.

    Returns 400 for missing input or an unknown/used code, 500 when the
    payout failed or its outcome is unknown.
    """
    await service.claim(req.code, req.invoice)
    return "ok"
