"""
Service dependencies for FastAPI.

Services are built once in the application lifespan and stored on
``app.state``; these dependencies hand them to the endpoints and are
the seam tests override.
"""

import hmac
from typing import Optional

from fastapi import Header, Request

from lnsms.app.core.config import settings
from lnsms.app.core.exceptions import OpsAccessDeniedError
from lnsms.app.domain.ledger.payment_ledger import PaymentLedger
from lnsms.app.domain.relay.claim_service import ClaimService
from lnsms.app.domain.relay.invoice_service import InvoiceRequestService
from lnsms.app.domain.relay.reconciler import Reconciler


def get_ledger(request: Request) -> PaymentLedger:
    return request.app.state.ledger


def get_payment_provider(request: Request):
    return request.app.state.payment_provider


def get_reconciler(request: Request) -> Optional[Reconciler]:
    return getattr(request.app.state, "reconciler", None)


def get_claim_service(request: Request) -> ClaimService:
    return request.app.state.claim_service


def get_invoice_service(request: Request) -> InvoiceRequestService:
    return request.app.state.invoice_service


async def require_ops_token(x_ops_token: Optional[str] = Header(None)) -> None:
    """
    Guard for operator endpoints.

    Raises:
        OpsAccessDeniedError: 403 if no token is configured or it does not match
    """
    expected = settings.ops_api_token
    if not expected or not x_ops_token or not hmac.compare_digest(x_ops_token, expected):
        raise OpsAccessDeniedError()
