import hashlib
import hmac
import io
import json
import logging
import sys
import time
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from checkout_api.config import Settings
from checkout_api.database import Base, make_engine, make_session_factory
from checkout_api.logging import configure_logging
from checkout_api.main import create_app
from checkout_api.store import OrderStore
from checkout_api.stripe_service import GatewayError, StripeGateway

WEBHOOK_SECRET = "whsec_test_secret"


class FakeGateway(StripeGateway):
    """Records Stripe API calls instead of making them.

    Webhook verification is inherited, so signatures are checked for real.
    """

    def __init__(self, session_id="cs_test_123"):
        super().__init__("sk_test_123", WEBHOOK_SECRET)
        self.session_id = session_id
        self.sessions = {}
        self.calls = []
        self.error = None

    def _record(self, *call):
        self.calls.append(call)
        if self.error:
            raise self.error

    def create_product(self, name):
        self._record("create_product", name)
        return "prod_123"

    def create_price(self, product_id, unit_amount, currency):
        self._record("create_price", product_id, unit_amount, currency)
        return "price_123"

    def create_checkout_session(self, price_id, success_url, cancel_url, client_reference_id=None):
        self._record("create_checkout_session", price_id, success_url, cancel_url, client_reference_id)
        return self.session_id

    def retrieve_session(self, session_id):
        self._record("retrieve_session", session_id)
        if session_id not in self.sessions:
            raise GatewayError(f"No such checkout.session: '{session_id}'")
        return self.sessions[session_id]


@pytest.fixture
def settings():
    return Settings(
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret=WEBHOOK_SECRET,
        database_url="sqlite://",
        client_url="http://localhost:3000",
    )


@pytest.fixture
def engine(settings):
    engine = make_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def store(engine):
    return OrderStore(make_session_factory(engine))


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(settings, store, gateway):
    with TestClient(create_app(settings, store, gateway)) as c:
        yield c


@pytest.fixture
def pending_order(store):
    order = store.insert({
        "customer_id": "cust_1",
        "product_name": "Widget",
        "price": Decimal("19.99"),
        "currency": "usd",
        "status": "pending",
    })
    store.link_session(order.id, "cs_test_123")
    return order


@pytest.fixture
def sign():
    """Build a Stripe-Signature header for a payload."""

    def _sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
        timestamp = int(time.time()) if timestamp is None else timestamp
        signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
        signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={signature}"

    return _sign


@pytest.fixture
def event_payload():
    """Serialize a Stripe event the way it arrives on the wire."""

    def _payload(event_type="checkout.session.completed", session_id="cs_test_123",
                 payment_status="paid", event_id="evt_test_1") -> bytes:
        event = {
            "id": event_id,
            "object": "event",
            "type": event_type,
            "data": {
                "object": {
                    "id": session_id,
                    "object": "checkout.session",
                    "payment_status": payment_status,
                }
            },
        }
        return json.dumps(event).encode("utf-8")

    return _payload


@pytest.fixture
def json_logs(monkeypatch):
    """Route logs to a stdout buffer and return a reader of the parsed lines."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    stdout = io.StringIO()
    monkeypatch.setattr(sys, "stdout", stdout)
    configure_logging("INFO", "checkout-api")

    def _read():
        out = stdout.getvalue()
        stdout.seek(0)
        stdout.truncate()
        return [json.loads(line) for line in out.splitlines() if line.startswith("{")]

    yield _read
    root.handlers = handlers
    root.setLevel(level)
