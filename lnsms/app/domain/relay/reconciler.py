"""
Reconciler (Domain Logic).

Background task keeping the ledger in step with the provider's recent
payments and texting a claim code for every newly paid credit.
Replaying the same page any number of times is a no-op once its
credits are notified.
"""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from lnsms.app.clients.twilio_sms import NotifierError
from lnsms.app.clients.wallet_of_satoshi import ProviderError
from lnsms.app.core.exceptions import (
    InvalidRequestError,
    PersistenceFailureError,
    ProviderUnavailableError,
)
from lnsms.app.core.reliability import CircuitBreaker, CircuitOpenError
from lnsms.app.domain.ledger.payment_ledger import PaymentLedger
from lnsms.app.domain.payments.amounts import (
    extract_destination,
    format_amount,
    generate_claim_code,
    payable_amount,
)
from lnsms.app.models.payment_enums import PaymentStatus, PaymentType
from lnsms.app.models.payment_record import PaymentRecord
from lnsms.app.schemas.payment import ProviderPayment

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 5


@dataclass
class CycleReport:
    """Counters for one poll cycle."""
    seen: int = 0
    notified: int = 0
    skipped: int = 0
    failed: int = 0


def mask_number(number: str) -> str:
    return f"***{number[-4:]}" if len(number) > 4 else "***"


class Reconciler:

    def __init__(
        self,
        ledger: PaymentLedger,
        provider,
        notifier,
        *,
        fee: Decimal,
        sms_template: str,
        claim_url_template: str,
        page_size: int = 100,
        interval_seconds: float = 2.0,
        code_generator: Callable[[], str] = generate_claim_code,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self._ledger = ledger
        self._provider = provider
        self._notifier = notifier
        self._fee = fee
        self._sms_template = sms_template
        self._claim_url_template = claim_url_template
        self._page_size = page_size
        self._interval = interval_seconds
        self._generate_code = code_generator
        self._breaker = circuit_breaker or CircuitBreaker("wallet-payments", failure_threshold=5, reset_timeout=30)
        self._task: Optional[asyncio.Task] = None

    # Lifecycle

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Spawn the polling task on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run_forever(), name="reconciler")
        logger.info("Reconciler started (every %ss, page of %d)", self._interval, self._page_size)

    async def stop(self) -> None:
        """Cancel the polling task and wait for it to unwind."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Reconciler stopped")

    async def _run_forever(self) -> None:
        while True:
            try:
                report = await self.run_once()
            except ProviderUnavailableError as e:
                logger.warning("Poll skipped: %s", e.message)
            except PersistenceFailureError:
                logger.error("Ledger write failed, poll cycle abandoned")
            except Exception:
                logger.exception("Poll cycle failed")
            else:
                if report.notified or report.failed:
                    logger.info("Poll cycle: %s", report)
            await asyncio.sleep(self._interval)

    # Poll cycle

    async def run_once(self) -> CycleReport:
        """
        Run one poll cycle.

        Flow:
        1. Fetch the latest page of provider payments
        2. Read the ledger records of that page
        3. Notify every paid credit not yet notified (mark persisted per send)
        4. Merge the whole page into the ledger in one transaction

        Raises:
            ProviderUnavailableError: Listing failed or circuit open
            PersistenceFailureError: Ledger read/write failed; nothing of the page merged
        """
        report = CycleReport()
        page = await self._fetch_page()
        report.seen = len(page)

        known = await self._ledger.read_many([p.id for p in page])
        handled = set()

        for payment in page:
            if payment.id in handled or not self._needs_notification(payment, known.get(payment.id)):
                continue
            handled.add(payment.id)
            await self._notify(payment, report)

        await self._ledger.merge_payments(page)
        return report

    async def _fetch_page(self) -> List[ProviderPayment]:
        try:
            raw = await self._breaker.call(self._provider.list_payments, self._page_size)
        except CircuitOpenError as e:
            raise ProviderUnavailableError(str(e)) from e
        except ProviderError as e:
            raise ProviderUnavailableError(f"Listing payments failed: {e}") from e

        page = []
        for item in raw:
            try:
                page.append(ProviderPayment.model_validate(item))
            except ValidationError:
                logger.warning("Ignoring malformed provider payment: %r", item)
        return page

    @staticmethod
    def _needs_notification(payment: ProviderPayment, existing: Optional[PaymentRecord]) -> bool:
        return (
            payment.type == PaymentType.CREDIT.value
            and payment.status == PaymentStatus.PAID.value
            and not (existing is not None and existing.sent_sms)
        )

    async def _notify(self, payment: ProviderPayment, report: CycleReport) -> None:
        number = extract_destination(payment.description)
        if not number:
            report.skipped += 1
            logger.info("Payment %s has no destination number, not notifying", payment.id)
            return

        try:
            amount = payable_amount(payment.amount, self._fee)
        except InvalidRequestError:
            report.skipped += 1
            logger.warning("Payment %s has unusable amount %r, not notifying", payment.id, payment.amount)
            return
        if amount <= 0:
            report.skipped += 1
            logger.info("Payment %s amount %s does not cover the fee, not notifying", payment.id, payment.amount)
            return

        code = await self._new_claim_code()
        message = self._sms_template.format(
            amount=format_amount(amount),
            claim_url=self._claim_url_template.format(code=code),
        )

        try:
            await self._notifier.send_message(number, message)
        except NotifierError as e:
            # Left unmarked so the next cycle retries
            report.failed += 1
            logger.warning("SMS for payment %s to %s failed: %s", payment.id, mask_number(number), e)
            return

        if await self._ledger.record_notification(payment, code):
            report.notified += 1
            logger.info("Notified %s of payment %s (%s BTC)", mask_number(number), payment.id, format_amount(amount))

    async def _new_claim_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = self._generate_code()
            if not await self._ledger.claim_code_exists(code):
                return code
        raise RuntimeError("Could not generate an unused claim code")

    def stats(self) -> Dict[str, object]:
        return {"running": self.running, "circuit": self._breaker.state}
