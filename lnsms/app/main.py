"""
FastAPI Application Entry Point.

This is the main application file for the Lightning SMS Relay.
"""

from contextlib import asynccontextmanager
from functools import partial
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from lnsms.app.core.config import settings
from lnsms.app.core.dependencies import get_reconciler
from lnsms.app.api.router import router as api_router
from lnsms.app.clients.twilio_sms import TwilioSmsNotifier
from lnsms.app.clients.wallet_of_satoshi import WalletOfSatoshiClient
from lnsms.app.core.observability import ObservabilityMiddleware, configure_logging
from lnsms.app.core.redis_client import get_redis, ping_redis, redis_client
from lnsms.app.db.session import AsyncSessionLocal, create_tables, engine
from lnsms.app.domain.ledger.payment_ledger import PaymentLedger
from lnsms.app.domain.payments.amounts import generate_claim_code
from lnsms.app.domain.relay.claim_service import ClaimService
from lnsms.app.domain.relay.invoice_service import InvoiceRequestService
from lnsms.app.domain.relay.reconciler import Reconciler
from lnsms.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from lnsms.app.models.payment_record import PaymentRecord  # noqa: F401


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Creates ledger tables on startup.
    2. Builds provider, notifier and relay services.
    3. Starts the reconciler and stops it on shutdown.
    """
    configure_logging(settings.log_level)
    await create_tables()

    wallet_http = httpx.AsyncClient(base_url=settings.wos_base_url, timeout=settings.wos_timeout_seconds)
    twilio_http = httpx.AsyncClient(base_url=settings.twilio_base_url, timeout=settings.wos_timeout_seconds)

    provider = WalletOfSatoshiClient(wallet_http, settings.wos_api_token, settings.wos_api_secret)
    notifier = TwilioSmsNotifier(
        twilio_http,
        settings.twilio_account_sid,
        settings.twilio_auth_token,
        settings.twilio_messaging_service_sid,
    )
    ledger = PaymentLedger(AsyncSessionLocal)

    app.state.ledger = ledger
    app.state.payment_provider = provider
    app.state.claim_service = ClaimService(
        ledger, provider, fee=settings.network_fee, timeout_seconds=settings.request_timeout_seconds
    )
    app.state.invoice_service = InvoiceRequestService(
        provider,
        fee=settings.network_fee,
        description_template=settings.invoice_description_template,
        expiry_seconds=settings.invoice_expiry_seconds,
        timeout_seconds=settings.request_timeout_seconds,
    )
    app.state.reconciler = Reconciler(
        ledger,
        provider,
        notifier,
        fee=settings.network_fee,
        sms_template=settings.sms_template,
        claim_url_template=settings.claim_url_template,
        page_size=settings.poll_page_size,
        interval_seconds=settings.poll_interval_seconds,
        code_generator=partial(generate_claim_code, settings.claim_code_bytes),
    )
    if settings.reconciler_enabled:
        app.state.reconciler.start()

    yield

    await app.state.reconciler.stop()
    await wallet_http.aclose()
    await twilio_http.aclose()
    await redis_client.aclose()
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Relays lightning payments to phone numbers by SMS claim codes",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check(
    reconciler: Optional[Reconciler] = Depends(get_reconciler),
    redis=Depends(get_redis)
):
    """
    Health check endpoint.

    Returns:
        dict: Status, application information, reconciler and redis state
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "reconciler": reconciler.stats() if reconciler else {"running": False},
        "redis": "ok" if await ping_redis(redis) else "unavailable",
    }


app.include_router(api_router)
