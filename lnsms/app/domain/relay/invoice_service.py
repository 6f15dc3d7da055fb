"""
Invoice Request Service.

Creates a provider invoice whose description carries the destination
number as a ``[number]`` token for the reconciler to pick up.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from lnsms.app.clients.wallet_of_satoshi import ProviderError
from lnsms.app.core.exceptions import InvalidRequestError, ProviderUnavailableError
from lnsms.app.domain.payments.amounts import format_amount, payable_amount, to_decimal

logger = logging.getLogger(__name__)


class InvoiceRequestService:

    def __init__(self, provider, *, fee: Decimal, description_template: str,
                 expiry_seconds: int = 3600, timeout_seconds: float = 30.0):
        self._provider = provider
        self._fee = fee
        self._description_template = description_template
        self._expiry = expiry_seconds
        self._timeout = timeout_seconds

    async def request_invoice(self, number: Optional[str],
                              amount: Optional[Union[str, int, float]]) -> Dict[str, Any]:
        """Create an invoice that relays ``amount`` (minus fee) to ``number`` by SMS."""
        if not number or amount is None or amount == "":
            raise InvalidRequestError("Missing number or amount")
        if "[" in number or "]" in number:
            raise InvalidRequestError("Number must not contain brackets")

        if payable_amount(amount, self._fee) <= 0:
            raise InvalidRequestError("Amount (with 1000 sats fee debited) must be greater than 0")

        description = self._description_template.format(number=number)
        try:
            invoice = await asyncio.wait_for(
                self._provider.create_invoice(format_amount(to_decimal(amount)), description, self._expiry),
                timeout=self._timeout,
            )
        except (ProviderError, asyncio.TimeoutError) as e:
            logger.error("Invoice creation failed: %s", str(e) or e.__class__.__name__)
            raise ProviderUnavailableError() from e

        logger.info("Invoice %s created for %s", invoice.get("id"), amount)
        return invoice
