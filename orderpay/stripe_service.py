from dataclasses import dataclass

import stripe
import structlog

from orderpay.errors import BridgeError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    client_secret: str


class StripeGateway:
    """Thin adapter over the Stripe PaymentIntent API.

    Timeout and retry settings live on this gateway's own ``StripeClient``.
    Every Stripe failure (network, timeout, card/amount rejection) comes
    out as ``BridgeError``.
    """

    def __init__(self, api_key: str, timeout: float = 10.0, max_network_retries: int = 2, client=None):
        self.client = client or stripe.StripeClient(
            api_key,
            http_client=stripe.RequestsClient(timeout=timeout),
            max_network_retries=max_network_retries,
        )

    def create_payment(self, amount: int, currency: str, order_id: str) -> PaymentIntent:
        try:
            intent = self.client.v1.payment_intents.create(
                params={
                    "amount": amount,
                    "currency": currency,
                    "automatic_payment_methods": {"enabled": True},
                    "metadata": {"order_id": order_id},
                },
                options={"idempotency_key": f"order-{order_id}"},
            )
        except stripe.StripeError as exc:
            logger.error("stripe_intent_create_failed", order_id=order_id, error=str(exc))
            raise BridgeError(f"Payment processor rejected the request: {exc}") from exc

        return PaymentIntent(id=intent.id, client_secret=intent.client_secret)

    def retrieve_payment(self, intent_id: str) -> PaymentIntent:
        try:
            intent = self.client.v1.payment_intents.retrieve(intent_id)
        except stripe.StripeError as exc:
            logger.error("stripe_intent_retrieve_failed", intent_id=intent_id, error=str(exc))
            raise BridgeError(f"Payment processor unavailable: {exc}") from exc

        return PaymentIntent(id=intent.id, client_secret=intent.client_secret)
