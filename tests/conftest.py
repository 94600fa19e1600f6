import hashlib
import hmac
import json
import time
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from orderpay.config import Settings
from orderpay.database import init_db, make_engine, make_session_factory
from orderpay.errors import BridgeError
from orderpay.ledger import OrderLedger
from orderpay.main import create_app
from orderpay.stripe_service import PaymentIntent

WEBHOOK_SECRET = "whsec_test"


class FakeGateway:
    """Stands in for Stripe; same order id always yields the same intent."""

    def __init__(self):
        self.refs = []
        self.by_order = {}
        self.calls = 0
        self.error = None

    def create_payment(self, amount, currency, order_id):
        self.calls += 1
        if self.error:
            raise BridgeError(self.error)
        if order_id not in self.by_order:
            self.by_order[order_id] = self.refs.pop(0) if self.refs else f"pi_{uuid4().hex[:12]}"
        ref = self.by_order[order_id]
        return PaymentIntent(id=ref, client_secret=f"{ref}_secret")

    def retrieve_payment(self, intent_id):
        return PaymentIntent(id=intent_id, client_secret=f"{intent_id}_secret")


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        jwt_secret="jwt-test-secret",
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret=WEBHOOK_SECRET,
    )


@pytest.fixture
def engine(settings):
    engine = make_engine(settings.database_url)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def ledger(engine):
    return OrderLedger(make_session_factory(engine))


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(settings, gateway):
    with TestClient(create_app(settings, gateway)) as c:
        yield c


@pytest.fixture
def auth_headers(client):
    client.post("/register", json={"name": "Ada", "email": "ada@example.com", "password": "s3cret"})
    token = client.post("/login", json={"email": "ada@example.com", "password": "s3cret"}).json()["token"]
    return {"Authorization": f"Bearer {token}"}


def _make_event(event_type, intent_id, order_id=None, event_id="evt_test"):
    metadata = {"order_id": order_id} if order_id else {}
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": {"id": intent_id, "object": "payment_intent", "metadata": metadata}},
    }


def _sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


@pytest.fixture
def webhook_secret(settings):
    return settings.stripe_webhook_secret


@pytest.fixture
def sign():
    """Build a Stripe-Signature header the way Stripe does."""
    return _sign


@pytest.fixture
def event_body():
    """Return the raw JSON bytes of a payment intent event."""

    def _build(event_type, intent_id, order_id=None, event_id="evt_test"):
        return json.dumps(_make_event(event_type, intent_id, order_id, event_id)).encode("utf-8")

    return _build


@pytest.fixture
def signed_event(event_body):
    """Return (raw_body, signature_header) for an event."""

    def _build(event_type, intent_id, order_id=None, event_id="evt_test", secret=WEBHOOK_SECRET):
        body = event_body(event_type, intent_id, order_id, event_id)
        return body, _sign(body, secret)

    return _build
