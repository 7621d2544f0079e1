# stockpile/services/payments.py
import hashlib
import hmac
import re
from typing import Any, Dict, Optional, Union

import httpx

from stockpile.core.config import settings
from stockpile.core.logging import logger

# Peach Payments result codes
SUCCESS_PATTERN = re.compile(r"^(000\.000\.|000\.100\.1|000\.[36])")
DECLINED_PATTERN = re.compile(r"^(800\.[17]00|800\.800\.[123])")


class PaymentError(Exception):
    def __init__(self, message: str, result_code: Optional[str] = None):
        self.message = message
        self.result_code = result_code
        super().__init__(message)


class CardDeclinedError(PaymentError):
    """The card was rejected by the bank or the provider's risk checks."""


class PaymentProviderError(PaymentError):
    """Any other provider failure, including transport errors."""


class PeachPaymentsService:
    """Service for Peach Payments integration"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.entity_id = settings.PEACH_ENTITY_ID
        self.access_token = settings.PEACH_ACCESS_TOKEN
        self.webhook_secret = settings.PEACH_WEBHOOK_SECRET
        self.base_url = settings.PEACH_BASE_URL or "https://eu-prod.oppwa.com"
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.access_token}"},
            timeout=30.0,
            transport=self.transport,
        )

    async def get_registration(self, checkout_id: str) -> Dict[str, Any]:
        """
        Resolve a completed card registration checkout

        Args:
            checkout_id: Checkout id returned to the browser by the payment widget

        Returns:
            Dict with registration_id (the stored card reference), result_code
            and description

        Raises:
            CardDeclinedError: the card was rejected
            PaymentProviderError: any other failure
        """
        try:
            async with self._client() as client:
                response = await client.get(
                    f"/v1/checkouts/{checkout_id}/registration",
                    params={"entityId": self.entity_id},
                )
            result = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Peach Payments request failed: {str(e)}")
            raise PaymentProviderError("payment provider unavailable") from e
        except ValueError as e:
            raise PaymentProviderError("invalid response from payment provider") from e

        result_code = result.get("result", {}).get("code", "")
        description = result.get("result", {}).get("description") or "payment failed"

        if DECLINED_PATTERN.match(result_code):
            logger.info(f"Card registration declined: {result_code}")
            raise CardDeclinedError(description, result_code)

        if not SUCCESS_PATTERN.match(result_code) or not result.get("id"):
            logger.error(f"Peach Payments error: {result}")
            raise PaymentProviderError(description, result_code)

        logger.info(f"Registered card for checkout {checkout_id}")
        return {
            "registration_id": result["id"],
            "result_code": result_code,
            "description": description,
        }

    def verify_webhook_signature(self, payload: Union[bytes, str], signature: str) -> bool:
        """
        Verify webhook signature from Peach Payments

        Args:
            payload: Raw request body
            signature: X-Signature header value

        Returns:
            True if signature is valid
        """
        if not self.webhook_secret:
            logger.warning("Webhook secret not configured")
            # Skip verification in development only
            return settings.ENVIRONMENT == "development"

        if isinstance(payload, str):
            payload = payload.encode()

        # Peach Payments uses HMAC SHA-256
        expected_signature = hmac.new(
            self.webhook_secret.encode(),
            payload,
            hashlib.sha256,
        ).hexdigest()

        return hmac.compare_digest(signature or "", expected_signature)


def get_payments_service() -> PeachPaymentsService:
    return PeachPaymentsService()
