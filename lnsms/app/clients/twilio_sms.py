"""
Twilio SMS provider.

Sends notification texts through the Twilio Messages REST API.
"""

import logging
from typing import Any, Dict

import httpx

logger = logging.getLogger(__name__)


class NotifierError(Exception):
    """The SMS could not be handed to Twilio."""


class TwilioSmsNotifier:
    """Twilio provider sending through a messaging service."""

    def __init__(self, http_client: httpx.AsyncClient, account_sid: str, auth_token: str,
                 messaging_service_sid: str):
        """
        Initialize Twilio provider.

        Args:
            http_client: Client whose base URL points at the Twilio API
            account_sid: Twilio account SID
            auth_token: Twilio auth token
            messaging_service_sid: Messaging service used as sender
        """
        self._http = http_client
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.messaging_service_sid = messaging_service_sid

    async def send_message(self, destination: str, body: str) -> Dict[str, Any]:
        """
        Send an SMS.

        Args:
            destination: E.164 phone number
            body: Message text

        Returns:
            Twilio message resource (delivery receipt)

        Raises:
            NotifierError: If the message was not accepted
        """
        if not self.account_sid or not self.auth_token or not self.messaging_service_sid:
            raise NotifierError("Twilio credentials were not provided")

        try:
            response = await self._http.post(
                f"/2010-04-01/Accounts/{self.account_sid}/Messages.json",
                data={
                    "Body": body,
                    "To": destination,
                    "MessagingServiceSid": self.messaging_service_sid,
                },
                auth=(self.account_sid, self.auth_token),
            )
        except httpx.HTTPError as e:
            raise NotifierError(f"HTTP error while sending SMS: {e.__class__.__name__}") from e

        if response.is_error:
            logger.error("Twilio API error: %s - %s", response.status_code, response.text)
            raise NotifierError(f"Twilio returned {response.status_code}")

        try:
            receipt = response.json()
        except ValueError:
            receipt = {}
        logger.info("SMS accepted by Twilio: sid=%s status=%s", receipt.get("sid"), receipt.get("status"))
        return receipt
