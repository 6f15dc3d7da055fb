"""
Ledger tests.

Validates merge semantics, notification marks and the conditional claim.
"""

import pytest

from lnsms.app.core.exceptions import PersistenceFailureError
from lnsms.app.domain.ledger.payment_ledger import PaymentLedger
from lnsms.app.schemas.payment import ProviderPayment
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine, AsyncSession
from sqlalchemy.pool import StaticPool

from conftest import credit


def payment(**kwargs):
    return ProviderPayment.model_validate(credit(**kwargs))


@pytest.mark.asyncio
async def test_merge_creates_records_with_provider_fields(ledger):
    merged = await ledger.merge_payments([payment(payment_id="a"), payment(payment_id="b", status="PENDING")])
    assert merged == 2

    records = await ledger.read_all()
    assert set(records) == {"a", "b"}
    assert records["b"].status == "PENDING"
    assert records["a"].provider_fields["currency"] == "LIGHTNING"
    assert records["a"].sent_sms is False
    assert records["a"].claim_code is None
    assert records["a"].claimed is False


@pytest.mark.asyncio
async def test_merge_preserves_internal_flags(ledger):
    await ledger.record_notification(payment(payment_id="a"), "code-a")
    await ledger.mark_claimed("code-a")

    await ledger.merge_payments([payment(payment_id="a", status="PAID", fees="0.000001")])

    record = await ledger.get("a")
    assert record.sent_sms is True
    assert record.claim_code == "code-a"
    assert record.claimed is True
    assert record.provider_fields["fees"] == "0.000001"


@pytest.mark.asyncio
async def test_duplicate_ids_in_one_page_merge_once(ledger):
    await ledger.merge_payments([payment(payment_id="a", status="PENDING"), payment(payment_id="a")])
    records = await ledger.read_all()
    assert len(records) == 1
    assert records["a"].status == "PAID"


@pytest.mark.asyncio
async def test_record_notification_only_applies_once(ledger):
    assert await ledger.record_notification(payment(payment_id="a"), "first") is True
    assert await ledger.record_notification(payment(payment_id="a"), "second") is False

    record = await ledger.get("a")
    assert record.claim_code == "first"
    assert await ledger.claim_code_exists("first")
    assert not await ledger.claim_code_exists("second")


@pytest.mark.asyncio
async def test_mark_claimed_is_conditional(ledger):
    await ledger.record_notification(payment(payment_id="a"), "code-a")

    claimed = await ledger.mark_claimed("code-a")
    assert claimed is not None
    assert claimed.id == "a"
    assert claimed.claimed is True

    assert await ledger.mark_claimed("code-a") is None
    assert await ledger.mark_claimed("unknown") is None


@pytest.mark.asyncio
async def test_release_claim_makes_code_claimable_again(ledger):
    await ledger.record_notification(payment(payment_id="a"), "code-a")
    await ledger.mark_claimed("code-a")

    assert await ledger.release_claim("a") is True
    assert (await ledger.get("a")).claimed is False
    assert await ledger.mark_claimed("code-a") is not None


@pytest.mark.asyncio
async def test_payout_status_report(ledger):
    await ledger.record_notification(payment(payment_id="a"), "code-a")
    await ledger.record_notification(payment(payment_id="b"), "code-b")
    await ledger.record_payout_status("a", "INDETERMINATE")
    await ledger.record_payout_status("b", "PAID")

    frozen = await ledger.list_by_payout_status("INDETERMINATE")
    assert [r.id for r in frozen] == ["a"]


@pytest.mark.asyncio
async def test_database_errors_surface_as_persistence_failure():
    # No tables created
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    broken = PaymentLedger(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))

    with pytest.raises(PersistenceFailureError):
        await broken.read_all()
    with pytest.raises(PersistenceFailureError):
        await broken.merge_payments([payment()])

    await engine.dispose()


@pytest.mark.asyncio
async def test_read_many_returns_only_requested_ids(ledger):
    await ledger.merge_payments([payment(payment_id="a"), payment(payment_id="b"), payment(payment_id="c")])

    records = await ledger.read_many(["a", "c", "missing"])

    assert set(records) == {"a", "c"}
    assert await ledger.read_many([]) == {}
