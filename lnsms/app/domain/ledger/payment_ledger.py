"""
Payment Ledger (Domain Logic).

Durable mapping from provider payment id to PaymentRecord.
All writes in the process go through one asyncio.Lock and one database
transaction each, so the poller's page merge and a concurrent claim
never interleave inside a read-modify-write cycle. The claim itself is a
single conditional UPDATE and stays correct across processes.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lnsms.app.core.exceptions import PersistenceFailureError
from lnsms.app.models.payment_record import PaymentRecord
from lnsms.app.schemas.payment import ProviderPayment

logger = logging.getLogger(__name__)


class PaymentLedger:

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory
        self._write_lock = asyncio.Lock()

    @asynccontextmanager
    async def _transaction(self):
        """Serialized write transaction; commits on success, rolls back on error."""
        async with self._write_lock:
            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        yield session
            except SQLAlchemyError as e:
                logger.error("Ledger write failed: %s", e)
                raise PersistenceFailureError() from e

    @asynccontextmanager
    async def _read_session(self):
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error("Ledger read failed: %s", e)
            raise PersistenceFailureError() from e

    @staticmethod
    def _apply_provider_fields(record: PaymentRecord, payment: ProviderPayment) -> None:
        # Provider wins for its own fields; internal flags are left alone
        record.type = payment.type
        record.status = payment.status
        record.amount = payment.amount
        record.description = payment.description
        record.provider_fields = payment.provider_fields()

    @staticmethod
    def _new_record(session: AsyncSession, payment_id: str) -> PaymentRecord:
        record = PaymentRecord(id=payment_id, sent_sms=False, claimed=False, provider_fields={})
        session.add(record)
        return record

    # Reads

    async def read_all(self) -> Dict[str, PaymentRecord]:
        """Fresh snapshot of every record, keyed by payment id."""
        async with self._read_session() as session:
            result = await session.execute(select(PaymentRecord))
            return {record.id: record for record in result.scalars().all()}

    async def read_many(self, payment_ids: Iterable[str]) -> Dict[str, PaymentRecord]:
        """Records for the given payment ids; unknown ids are absent from the result."""
        ids = set(payment_ids)
        if not ids:
            return {}
        async with self._read_session() as session:
            result = await session.execute(select(PaymentRecord).where(PaymentRecord.id.in_(ids)))
            return {record.id: record for record in result.scalars().all()}

    async def get(self, payment_id: str) -> Optional[PaymentRecord]:
        async with self._read_session() as session:
            return await session.get(PaymentRecord, payment_id)

    async def claim_code_exists(self, code: str) -> bool:
        async with self._read_session() as session:
            result = await session.execute(
                select(PaymentRecord.id).where(PaymentRecord.claim_code == code).limit(1)
            )
            return result.scalar_one_or_none() is not None

    async def list_by_payout_status(self, payout_status: str, limit: int = 100) -> List[PaymentRecord]:
        async with self._read_session() as session:
            result = await session.execute(
                select(PaymentRecord)
                .where(PaymentRecord.payout_status == payout_status)
                .order_by(PaymentRecord.updated_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    # Writes

    async def record_notification(self, payment: ProviderPayment, claim_code: str) -> bool:
        """
        Persist that a notification carrying ``claim_code`` went out.

        Creates the record if this is the first sighting of the payment.

        Returns:
            False if the record was already notified (its code is kept)
        """
        async with self._transaction() as session:
            record = await session.get(PaymentRecord, payment.id, with_for_update=True)
            if record is None:
                record = self._new_record(session, payment.id)
            elif record.sent_sms:
                return False
            self._apply_provider_fields(record, payment)
            record.sent_sms = True
            record.claim_code = claim_code
            return True

    async def merge_payments(self, payments: Iterable[ProviderPayment]) -> int:
        """
        Upsert a page of provider payments in one transaction.

        Returns:
            Number of payments merged
        """
        payments = list(payments)
        if not payments:
            return 0

        async with self._transaction() as session:
            result = await session.execute(
                select(PaymentRecord).where(PaymentRecord.id.in_({p.id for p in payments}))
            )
            loaded = {record.id: record for record in result.scalars().all()}
            for payment in payments:
                record = loaded.get(payment.id)
                if record is None:
                    record = loaded[payment.id] = self._new_record(session, payment.id)
                self._apply_provider_fields(record, payment)
        return len(payments)

    async def mark_claimed(self, code: str) -> Optional[PaymentRecord]:
        """
        Atomically claim the unclaimed, notified record holding ``code``.

        Returns:
            The claimed record, or None if no such record exists
        """
        async with self._transaction() as session:
            result = await session.execute(
                update(PaymentRecord)
                .where(
                    PaymentRecord.claim_code == code,
                    PaymentRecord.claimed == False,
                    PaymentRecord.sent_sms == True
                )
                .values(claimed=True)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return None

            claimed = await session.execute(
                select(PaymentRecord).where(PaymentRecord.claim_code == code)
            )
            return claimed.scalar_one()

    async def release_claim(self, payment_id: str) -> bool:
        """Revert a claim after the provider rejected its payout."""
        async with self._transaction() as session:
            result = await session.execute(
                update(PaymentRecord)
                .where(PaymentRecord.id == payment_id, PaymentRecord.claimed == True)
                .values(claimed=False)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0

    async def record_payout_status(self, payment_id: str, payout_status: str) -> None:
        async with self._transaction() as session:
            await session.execute(
                update(PaymentRecord)
                .where(PaymentRecord.id == payment_id)
                .values(payout_status=payout_status)
                .execution_options(synchronize_session=False)
            )
