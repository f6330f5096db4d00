"""
Tavara.care Coordination Service - PayPal Client

Checkout orders (create, capture, status) against the PayPal REST API.
"""

from typing import Dict, Optional

import httpx

from tavara.core.errors import IntegrationError
from tavara.core.logging import logger, log_integration_call
from tavara.core.settings import get_settings

settings = get_settings()


class PayPalClient:
    """OAuth client-credentials flow followed by v2 checkout calls."""

    def __init__(self, http_client: Optional[httpx.Client] = None):
        self.http_client = http_client or httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS)
        logger.info("PayPalClient initialized")

    def _access_token(self) -> str:
        if not (settings.PAYPAL_CLIENT_ID and settings.PAYPAL_CLIENT_SECRET):
            raise IntegrationError("paypal", "PayPal credentials are not configured")

        try:
            response = self.http_client.post(
                f"{settings.PAYPAL_API_URL}/v1/oauth2/token",
                auth=(settings.PAYPAL_CLIENT_ID, settings.PAYPAL_CLIENT_SECRET),
                data={"grant_type": "client_credentials"}
            )
        except httpx.HTTPError as e:
            raise IntegrationError("paypal", str(e)) from e

        if response.status_code >= 400:
            raise IntegrationError("paypal", "Could not obtain access token", response.status_code)
        return response.json()["access_token"]

    def _call(self, operation: str, method: str, path: str, json: Dict = None) -> Dict:
        token = self._access_token()
        try:
            response = self.http_client.request(
                method,
                f"{settings.PAYPAL_API_URL}{path}",
                json=json,
                headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.HTTPError as e:
            log_integration_call("paypal", operation, False, error=str(e))
            raise IntegrationError("paypal", str(e)) from e

        data = response.json() if response.content else {}
        if response.status_code >= 400:
            log_integration_call("paypal", operation, False, status_code=response.status_code)
            raise IntegrationError("paypal", data.get("message", "Unknown error"), response.status_code)

        log_integration_call("paypal", operation, True)
        return data

    def create_order(
        self,
        amount: str,
        currency: str,
        description: str,
        custom_id: str,
        return_url: str,
        cancel_url: str
    ) -> Dict:
        """
        Create a CAPTURE-intent order.

        Returns:
            Dict: order_id and approval_url
        """
        order = self._call("create_order", "POST", "/v2/checkout/orders", json={
            "intent": "CAPTURE",
            "purchase_units": [{
                "amount": {"currency_code": currency, "value": amount},
                "description": description,
                "custom_id": custom_id
            }],
            "application_context": {
                "return_url": return_url,
                "cancel_url": cancel_url,
                "brand_name": "Tavara Care",
                "locale": "en-US",
                "landing_page": "BILLING",
                "user_action": "PAY_NOW"
            }
        })
        approval_url = next(
            (link["href"] for link in order.get("links", []) if link.get("rel") == "approve"),
            None
        )
        return {"order_id": order["id"], "approval_url": approval_url}

    def capture_order(self, order_id: str) -> Dict:
        return self._call("capture_order", "POST", f"/v2/checkout/orders/{order_id}/capture")

    def get_order(self, order_id: str) -> Dict:
        return self._call("get_order", "GET", f"/v2/checkout/orders/{order_id}")
