"""Payment intent bridge: turns a pending order into a payable one.

An order is payable only once its Stripe PaymentIntent id is attached in
the ledger. If Stripe fails, the order stays ``pending`` with no reference
and ``open_intent`` can simply be called again later.
"""
from dataclasses import dataclass

import structlog

from orderpay import errors
from orderpay.ledger import OrderLedger
from orderpay.models import Order

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PaymentHandle:
    ref: str
    client_secret: str


class PaymentIntentBridge:
    def __init__(self, ledger: OrderLedger, gateway, currency: str = "usd"):
        self.ledger = ledger
        self.gateway = gateway
        self.currency = currency

    def open_intent(self, order: Order) -> PaymentHandle:
        if order.status.terminal:
            raise errors.AlreadyResolved(order)

        if order.external_payment_ref:
            # Already payable; hand back the existing continuation token
            intent = self.gateway.retrieve_payment(order.external_payment_ref)
            return PaymentHandle(ref=intent.id, client_secret=intent.client_secret)

        intent = self.gateway.create_payment(order.amount, self.currency, order.id)
        self.ledger.attach_external_ref(order.id, intent.id)

        logger.info("payment_intent_opened", order_id=order.id, ref=intent.id)
        return PaymentHandle(ref=intent.id, client_secret=intent.client_secret)
