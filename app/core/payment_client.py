"""
Stripe Checkout wrapper.

Only two calls are needed by the order workflow:

  - create_session(...)  -> hosted payment page URL
  - verify_webhook(...)  -> verified event payload (plain dict)

Routers get the gateway through the `get_payment_gateway` dependency so
tests can swap in a fake.
"""

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import stripe

from app.core.config import get_settings
from app.core.errors import BadRequestError, InternalError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: str


class PaymentGateway:
    def __init__(self, api_key: str | None, webhook_secret: str | None):
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def create_session(
        self,
        *,
        amount: float,
        currency: str,
        success_url: str,
        cancel_url: str,
        customer_email: str,
        client_reference_id: str,
        metadata: dict[str, str],
        product_name: str = "Order",
    ) -> CheckoutSession:
        """
        Create a one-line hosted checkout session for `amount`.

        Raises:
            InternalError: if Stripe is not configured or rejects the call.
        """
        if not self.api_key:
            raise InternalError("Payment provider is not configured")
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                mode="payment",
                line_items=[
                    {
                        "price_data": {
                            "currency": currency,
                            "unit_amount": int(round(amount * 100)),
                            "product_data": {"name": product_name},
                        },
                        "quantity": 1,
                    }
                ],
                success_url=success_url,
                cancel_url=cancel_url,
                customer_email=customer_email,
                client_reference_id=client_reference_id,
                metadata=metadata,
            )
        except stripe.StripeError as exc:
            logger.error("Stripe session creation failed: %s", exc)
            raise InternalError("Payment provider error. Try again later.")
        return CheckoutSession(id=session.id, url=session.url)

    def verify_webhook(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """
        Verify a webhook payload against the shared endpoint secret.

        Raises:
            BadRequestError: on missing/invalid signature or malformed payload.
        """
        if not self.webhook_secret:
            raise InternalError("Payment webhook secret is not configured")
        if not signature:
            raise BadRequestError("Missing webhook signature")
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            logger.warning("Rejected payment webhook: %s", exc)
            raise BadRequestError("Webhook signature verification failed")
        return json.loads(payload)


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    settings = get_settings()
    return PaymentGateway(settings.STRIPE_SECRET_KEY, settings.STRIPE_WEBHOOK_SECRET)
