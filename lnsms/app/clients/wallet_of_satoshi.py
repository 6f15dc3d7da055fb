"""
Wallet of Satoshi API client.

Creates invoices, lists wallet payments and sends lightning payouts.
Mutating calls are signed with an HMAC over path, nonce, token and body.
"""

import hashlib
import hmac
import json
import logging
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from lnsms.app.domain.payments.amounts import format_amount

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Transport failure, error status or malformed body from the provider."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ProviderConfigurationError(ProviderError):
    pass


def sign_request(path: str, nonce: str, body: str, token: str, secret: str) -> str:
    """Hex HMAC-SHA256 of ``path + nonce + token + body`` keyed with the API secret."""
    message = f"{path}{nonce}{token}{body}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


class WalletOfSatoshiClient:
    """
    Thin async wrapper over the wallet REST API.

    The ``http_client`` carries base URL and timeout; it is owned by the
    caller and closed in the application lifespan.
    """

    def __init__(self, http_client: httpx.AsyncClient, api_token: str, api_secret: str):
        self._http = http_client
        self._token = api_token
        self._secret = api_secret

    def _check_credentials(self) -> None:
        if not self._token or not self._secret:
            raise ProviderConfigurationError("Wallet of Satoshi credentials was not provided.")

    async def _send(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ProviderError(f"{method} {path} failed: {e.__class__.__name__}") from e

        if response.is_error:
            raise ProviderError(f"{method} {path} returned {response.status_code}", response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"{method} {path} returned a non-JSON body", response.status_code) from e

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        self._check_credentials()
        return await self._send("GET", path, headers={"api-token": self._token}, params=params)

    async def _signed_post(self, path: str, request: Dict[str, Any]) -> Any:
        self._check_credentials()
        nonce = str(time.time_ns() // 1000)
        body = json.dumps({k: v for k, v in request.items() if v is not None}, separators=(",", ":"))
        headers = {
            "api-token": self._token,
            "nonce": nonce,
            "signature": sign_request(path, nonce, body, self._token, self._secret),
            "content-type": "application/json",
        }
        return await self._send("POST", path, content=body.encode(), headers=headers)

    async def create_invoice(self, amount: str, description: str, expiry: Optional[int] = None) -> Dict[str, Any]:
        """
        Create a lightning invoice.

        Returns:
            Provider invoice object with at least ``id``, ``invoice`` and ``btcAmount``
        """
        return await self._signed_post("/api/v1/wallet/createInvoice", {
            "amount": amount,
            "description": description,
            "expiry": expiry,
        })

    async def list_payments(self, limit: int, skip: Optional[int] = None) -> List[Dict[str, Any]]:
        """Most recent wallet payments, newest first."""
        params = {"limit": limit}
        if skip is not None:
            params["skip"] = skip
        data = await self._get("/api/v1/wallet/payments", params=params)
        if not isinstance(data, list):
            raise ProviderError("Payment listing is not a list")
        return data

    async def cancel_invoice(self, invoice: str) -> Dict[str, Any]:
        """Cancel an unpaid invoice."""
        return await self._signed_post("/api/v1/wallet/cancelInvoice", {"invoice": invoice})

    async def find_payment(self, payment_id: str) -> Dict[str, Any]:
        """Look up one wallet payment, e.g. to settle a payout whose outcome was unknown."""
        data = await self._get(f"/api/v1/wallet/payment/{quote(str(payment_id), safe='')}")
        if not isinstance(data, dict):
            raise ProviderError("Payment lookup is not an object")
        return data

    async def get_fee_estimate(self) -> Dict[str, Any]:
        """Current on-chain and lightning fee estimates."""
        return await self._get("/api/v1/wallet/feeEstimate")

    async def make_payment(
        self,
        address: str,
        currency: str,
        amount: Optional[str] = None,
        description: Optional[str] = None,
        send_max_lightning: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """Pay an invoice or address. The returned ``status`` is PAID, PENDING or FAILED."""
        data = await self._signed_post("/api/v1/wallet/payment", {
            "address": address,
            "currency": currency,
            "amount": amount,
            "description": description,
            "sendMaxLightning": send_max_lightning,
        })
        if not isinstance(data, dict):
            raise ProviderError("Payment response is not an object")
        return data

    async def get_balance(self) -> Dict[str, str]:
        """Wallet balances as plain decimal strings."""
        data = await self._get("/api/v1/wallet/balance")
        try:
            return {
                key: format_amount(Decimal(str(data[key])))
                for key in ("btc", "btcUnconfirmed", "lightning", "aud", "audEstimate")
            }
        except (KeyError, TypeError, ArithmeticError, ValueError) as e:
            raise ProviderError("Malformed balance response") from e
