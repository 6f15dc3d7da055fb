"""
Claim Service (Domain Logic).

Redeems a claim code for one lightning payout.
The record is marked claimed and committed before the provider is
called; only an explicit FAILED from the provider reverts the mark.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict

from lnsms.app.clients.wallet_of_satoshi import ProviderConfigurationError
from lnsms.app.core.exceptions import (
    InvalidCodeError,
    InvalidRequestError,
    PayoutFailedError,
    PayoutIndeterminateError,
    PersistenceFailureError,
)
from lnsms.app.domain.ledger.payment_ledger import PaymentLedger
from lnsms.app.domain.payments.amounts import format_amount, payable_amount
from lnsms.app.models.payment_enums import LIGHTNING_CURRENCY, PaymentStatus, PayoutStatus

logger = logging.getLogger(__name__)


class ClaimService:

    def __init__(self, ledger: PaymentLedger, provider, *, fee: Decimal, timeout_seconds: float = 30.0):
        self._ledger = ledger
        self._provider = provider
        self._fee = fee
        self._timeout = timeout_seconds

    async def claim(self, code: str, invoice: str) -> Dict[str, Any]:
        """
        Pay out the credit behind ``code`` to ``invoice``.

        Flow:
        1. Validate input
        2. Atomically mark the matching unclaimed record as claimed
        3. Pay ``amount - fee`` to the invoice
        4. Revert the mark only if the provider reports FAILED

        Returns:
            Provider payment object

        Raises:
            InvalidRequestError: Missing code or invoice
            InvalidCodeError: No unclaimed record holds the code
            PayoutFailedError: Provider rejected the payout; code can be retried
            PayoutIndeterminateError: Outcome unknown; record stays claimed
            PersistenceFailureError: Claim could not be released; record stays claimed
        """
        if not code or not invoice:
            raise InvalidRequestError("Missing code or invoice")

        record = await self._ledger.mark_claimed(code)
        if record is None:
            raise InvalidCodeError()

        logger.info("Payment %s claimed, paying out", record.id)

        try:
            payout = payable_amount(record.amount, self._fee)
        except InvalidRequestError:
            payout = None
        if payout is None or payout <= 0:
            logger.error("Payment %s amount %r does not cover the fee", record.id, record.amount)
            await self._revert(record.id)
            raise PayoutFailedError("Payment amount does not cover the network fee.")

        try:
            result = await asyncio.wait_for(
                self._provider.make_payment(invoice, LIGHTNING_CURRENCY, format_amount(payout)),
                timeout=self._timeout,
            )
            status = str(result.get("status") or "").upper()
        except ProviderConfigurationError as e:
            # Provider never contacted
            logger.error("Payout for payment %s not attempted: %s", record.id, e)
            await self._revert(record.id)
            raise PayoutFailedError() from e
        except Exception as e:
            # ProviderError, timeout or malformed reply
            logger.error(
                "Payout for payment %s indeterminate, claim frozen for review: %s",
                record.id, str(e) or e.__class__.__name__,
            )
            await self._record_outcome(record.id, PayoutStatus.INDETERMINATE)
            raise PayoutIndeterminateError() from e
        except BaseException:
            # Cancelled mid-payout
            logger.error("Payout for payment %s interrupted, claim frozen for review", record.id)
            await asyncio.shield(self._record_outcome(record.id, PayoutStatus.INDETERMINATE))
            raise

        if status == PaymentStatus.FAILED.value:
            logger.warning("Payout for payment %s FAILED at provider, reverting claim", record.id)
            await self._revert(record.id)
            raise PayoutFailedError()

        outcome = PayoutStatus.PAID if status == PaymentStatus.PAID.value else PayoutStatus.PENDING
        await self._record_outcome(record.id, outcome)
        logger.info("Payout for payment %s accepted (status %s)", record.id, status or "unknown")
        return result

    async def _revert(self, payment_id: str) -> None:
        try:
            await self._ledger.release_claim(payment_id)
        except PersistenceFailureError:
            logger.error("Could not release claim on payment %s, claim frozen for review", payment_id)
            await self._record_outcome(payment_id, PayoutStatus.INDETERMINATE)
            raise
        await self._record_outcome(payment_id, PayoutStatus.FAILED)

    async def _record_outcome(self, payment_id: str, outcome: PayoutStatus) -> None:
        # The claim flag already reflects the outcome; this column only feeds the operator report
        try:
            await self._ledger.record_payout_status(payment_id, outcome.value)
        except PersistenceFailureError:
            logger.error("Could not record payout status %s for payment %s", outcome.value, payment_id)
