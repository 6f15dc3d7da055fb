"""
Centralized Test Configuration.
"""

import asyncio
from decimal import Decimal

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from lnsms.app.main import app
from lnsms.app.clients.twilio_sms import NotifierError
from lnsms.app.clients.wallet_of_satoshi import ProviderError
from lnsms.app.core.dependencies import (
    get_claim_service,
    get_invoice_service,
    get_ledger,
    get_payment_provider,
)
from lnsms.app.core.redis_client import get_redis
from lnsms.app.db.session import create_tables
from lnsms.app.domain.ledger.payment_ledger import PaymentLedger
from lnsms.app.domain.relay.claim_service import ClaimService
from lnsms.app.domain.relay.invoice_service import InvoiceRequestService
from lnsms.app.domain.relay.reconciler import Reconciler
from lnsms.app.schemas.payment import ProviderPayment

FEE = Decimal("0.00001")
SMS_TEMPLATE = "Recibiste a pagamento de {amount} BTC. Retira en {claim_url}"
CLAIM_URL_TEMPLATE = "lnsms.ga/#/claim/{code}"
DESCRIPTION_TEMPLATE = "Enviando pagamento a [{number}]"

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def credit(payment_id="p1", amount="0.0011", description="pay [+15551234567]", status="PAID", **extra):
    """Provider payment dict as listed by the wallet."""
    payment = {
        "id": payment_id,
        "time": "2022-06-01T12:00:00.000Z",
        "type": "CREDIT",
        "status": status,
        "amount": amount,
        "fees": "0",
        "currency": "LIGHTNING",
        "description": description,
    }
    payment.update(extra)
    return payment


class FakeWallet:
    """In-memory payment provider."""

    def __init__(self):
        self.payments = []
        self.invoices = []
        self.payouts = []
        self.payout_status = "PAID"
        self.payout_error = None
        self.payout_delay = 0.0
        self.list_error = None
        self.list_calls = 0
        self.cancelled = []

    async def list_payments(self, limit, skip=None):
        self.list_calls += 1
        if self.list_error:
            raise self.list_error
        return [dict(p) for p in self.payments[:limit]]

    async def create_invoice(self, amount, description, expiry=None):
        self.invoices.append({"amount": amount, "description": description, "expiry": expiry})
        return {"id": f"inv-{len(self.invoices)}", "invoice": "lnbc11u1pfake", "btcAmount": amount}

    async def make_payment(self, address, currency, amount=None, description=None, send_max_lightning=None):
        self.payouts.append({"address": address, "currency": currency, "amount": amount})
        if self.payout_delay:
            await asyncio.sleep(self.payout_delay)
        if self.payout_error:
            raise self.payout_error
        return {"id": f"out-{len(self.payouts)}", "status": self.payout_status, "amount": amount}

    async def find_payment(self, payment_id):
        for payment in self.payments:
            if payment["id"] == payment_id:
                return dict(payment)
        raise ProviderError(f"GET /api/v1/wallet/payment/{payment_id} returned 404", 404)

    async def get_fee_estimate(self):
        return {"btcFixedFee": "0.0001", "lightningFee": "0", "wosInvoice": False}

    async def cancel_invoice(self, invoice):
        self.cancelled.append(invoice)
        return {"invoice": invoice, "status": "CANCELLED"}

    async def get_balance(self):
        return {"btc": "0", "btcUnconfirmed": "0", "lightning": "0.0123", "aud": "0", "audEstimate": "512.1"}


class FakeNotifier:
    """In-memory SMS gateway."""

    def __init__(self):
        self.messages = []
        self.fail = False

    async def send_message(self, destination, body):
        if self.fail:
            raise NotifierError("Twilio returned 503")
        self.messages.append((destination, body))
        return {"sid": f"SM{len(self.messages)}", "status": "queued"}


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self.ttls = {}

    async def incr(self, key):
        self.store[key] = int(self.store.get(key, 0)) + 1
        return self.store[key]

    async def expire(self, key, seconds):
        self.ttls[key] = seconds
        return True

    async def ttl(self, key):
        return self.ttls.get(key, -1)

    async def ping(self):
        return True

    async def flushdb(self):
        self.store = {}
        self.ttls = {}


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def ledger(session_factory):
    return PaymentLedger(session_factory)


@pytest.fixture
def wallet():
    return FakeWallet()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def mock_redis():
    return MockRedis()


@pytest.fixture
def reconciler(ledger, wallet, notifier):
    codes = (f"code-{i}" for i in range(1, 1000))
    return Reconciler(
        ledger,
        wallet,
        notifier,
        fee=FEE,
        sms_template=SMS_TEMPLATE,
        claim_url_template=CLAIM_URL_TEMPLATE,
        page_size=100,
        interval_seconds=0.01,
        code_generator=lambda: next(codes),
    )


@pytest.fixture
def claim_service(ledger, wallet):
    return ClaimService(ledger, wallet, fee=FEE, timeout_seconds=0.5)


@pytest.fixture
def invoice_service(wallet):
    return InvoiceRequestService(
        wallet,
        fee=FEE,
        description_template=DESCRIPTION_TEMPLATE,
        expiry_seconds=3600,
        timeout_seconds=0.5,
    )


@pytest.fixture
def seed_notified(ledger):
    """Store a notified credit holding ``code``, as the reconciler would."""
    async def _seed(code="code-1", payment_id="p1", amount="0.0011"):
        payment = ProviderPayment.model_validate(credit(payment_id=payment_id, amount=amount))
        assert await ledger.record_notification(payment, code)
        return payment_id
    return _seed


@pytest.fixture
async def client(ledger, wallet, mock_redis, claim_service, invoice_service):
    """Async client for testing, with services overridden."""
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_payment_provider] = lambda: wallet
    app.dependency_overrides[get_claim_service] = lambda: claim_service
    app.dependency_overrides[get_invoice_service] = lambda: invoice_service
    app.dependency_overrides[get_redis] = lambda: mock_redis

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}
