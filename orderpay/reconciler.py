"""Stripe webhook reconciler.

Verifies inbound events against the raw request bytes, resolves the order
they refer to and applies the guarded ledger transition. Once the
signature is verified every event is acknowledged: replays, unknown
orders, unrelated event types and mismatched references all end in a 200
so Stripe does not keep retrying something a retry cannot fix.
"""
import enum
from dataclasses import dataclass

import stripe
import structlog

from orderpay import errors
from orderpay.ledger import OrderLedger
from orderpay.models import OrderStatus

logger = structlog.get_logger(__name__)


class EventKind(str, enum.Enum):
    PAYMENT_SUCCEEDED = "payment.succeeded"
    PAYMENT_FAILED = "payment.failed"


STRIPE_EVENT_KINDS = {
    "payment_intent.succeeded": EventKind.PAYMENT_SUCCEEDED,
    "payment_intent.payment_failed": EventKind.PAYMENT_FAILED,
}

TARGET_STATUS = {
    EventKind.PAYMENT_SUCCEEDED: OrderStatus.SUCCESS,
    EventKind.PAYMENT_FAILED: OrderStatus.FAILED,
}


class Outcome(str, enum.Enum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    CONFLICT_IGNORED = "conflict_ignored"
    REF_MISMATCH = "ref_mismatch"
    ORDER_NOT_FOUND = "order_not_found"
    IGNORED = "ignored"


@dataclass(frozen=True)
class WebhookResult:
    outcome: Outcome
    event_id: str | None = None
    order_id: str | None = None


def classify(event_type: str) -> EventKind | None:
    return STRIPE_EVENT_KINDS.get(event_type)


class WebhookReconciler:
    def __init__(self, ledger: OrderLedger, webhook_secret: str):
        self.ledger = ledger
        self.webhook_secret = webhook_secret

    def verify(self, raw_body: bytes, signature_header: str | None):
        if not signature_header:
            logger.warning("webhook_signature_missing")
            raise errors.SignatureError("Missing signature")
        try:
            return stripe.Webhook.construct_event(raw_body, signature_header, self.webhook_secret)
        except stripe.SignatureVerificationError as exc:
            logger.warning("webhook_signature_invalid", error=str(exc))
            raise errors.SignatureError("Invalid signature") from exc
        except ValueError as exc:
            logger.warning("webhook_payload_invalid", error=str(exc))
            raise errors.SignatureError("Invalid payload") from exc

    def handle_event(self, raw_body: bytes, signature_header: str | None) -> WebhookResult:
        event = self.verify(raw_body, signature_header)
        event_id = event["id"] if "id" in event else None
        log = logger.bind(event_id=event_id, event_type=event["type"])

        kind = classify(event["type"])
        if kind is None:
            log.info("webhook_event_ignored")
            return WebhookResult(Outcome.IGNORED, event_id)

        intent = event["data"]["object"]
        intent_ref = intent["id"]
        # StripeObject supports subscript and `in`, not the dict API
        metadata = intent["metadata"] if "metadata" in intent else None
        order_id = metadata["order_id"] if metadata is not None and "order_id" in metadata else None

        if order_id:
            order = self.ledger.get(order_id)
        else:
            order = self.ledger.find_by_external_ref(intent_ref)

        if order is None:
            log.info("webhook_order_not_found", order_id=order_id, ref=intent_ref)
            return WebhookResult(Outcome.ORDER_NOT_FOUND, event_id, order_id)

        log = log.bind(order_id=order.id, ref=intent_ref)
        target = TARGET_STATUS[kind]
        try:
            self.ledger.transition(order.id, intent_ref, target)
        except errors.AlreadyResolved as exc:
            if exc.order.status == target:
                log.info("webhook_duplicate", status=target.value)
                return WebhookResult(Outcome.DUPLICATE, event_id, order.id)
            log.warning(
                "webhook_conflicting_outcome",
                status=exc.order.status.value,
                rejected_status=target.value,
            )
            return WebhookResult(Outcome.CONFLICT_IGNORED, event_id, order.id)
        except errors.RefMismatch as exc:
            log.warning("webhook_ref_mismatch", error=str(exc))
            return WebhookResult(Outcome.REF_MISMATCH, event_id, order.id)
        except errors.OrderNotFound:
            log.info("webhook_order_not_found")
            return WebhookResult(Outcome.ORDER_NOT_FOUND, event_id, order.id)

        log.info("webhook_applied", status=target.value)
        return WebhookResult(Outcome.APPLIED, event_id, order.id)
