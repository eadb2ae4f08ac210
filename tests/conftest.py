import os
import json
import hmac
import hashlib
import time
from base64 import b64decode, b64encode
from decimal import Decimal
from typing import Generator

# Le rate limiter (Redis) n'est pas initialisé pendant les tests
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import itsdangerous
import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from payflow.app import app as fastapi_app
from payflow.config import SESSION_COOKIE_NAME, SESSION_SECRET_KEY
from payflow.payments.models import Cart, Order, PaymentIntent

WEBHOOK_SECRET = "whsec_test_secret"

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

# Aucun accès Supabase réel pendant les tests
@pytest.fixture(scope="function", autouse=True)
def mock_db_dependency(monkeypatch):
    monkeypatch.setattr("payflow.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("payflow.infra.supabase_client.get_service_supabase", lambda: MagicMock())

# Stripe configuré avec une fausse clé et un secret webhook de test
@pytest.fixture(autouse=True)
def _stripe_test_config(monkeypatch):
    monkeypatch.setattr("payflow.payments.stripe_client.STRIPE_SECRET_KEY", "sk_test_dummy")
    monkeypatch.setattr("payflow.payments.stripe_client.STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)

@pytest.fixture
def cart() -> Cart:
    return Cart(id="cart_7", user_id="u1", total=Decimal("42.50"), currency="eur")

@pytest.fixture
def make_intent():
    def _make(status="succeeded", id="pi_1", amount=4250, currency="eur", error=None, metadata=None):
        return PaymentIntent(
            id=id,
            status=status,
            amount=amount,
            currency=currency,
            metadata=metadata if metadata is not None else {"cart_id": "cart_7"},
            last_payment_error=error,
        )
    return _make

@pytest.fixture
def order_store(monkeypatch):
    """
    Table 'orders' en mémoire avec la même sémantique que l'upsert ignore_duplicates:
    une seule ligne par (cart_id, payment_intent_id), None si la ligne existe déjà.
    """
    rows = {}

    def _find(cart_id, intent_id):
        return rows.get((str(cart_id), str(intent_id)))

    def _create(cart, intent):
        key = (cart.id, intent.id)
        if key in rows:
            return None
        rows[key] = Order(
            id=f"ord_{len(rows) + 1}",
            cart_id=cart.id,
            payment_intent_id=intent.id,
            amount=intent.amount,
            currency=intent.currency,
            status="authorized" if intent.status == "requires_capture" else "captured",
        )
        return rows[key]

    monkeypatch.setattr("payflow.payments.repository.find_order_by_intent", _find)
    monkeypatch.setattr("payflow.payments.repository.create_order", _create)
    return rows

# Cookie de session signé comme le fait SessionMiddleware (itsdangerous + base64 JSON)
@pytest.fixture
def session_cookie():
    signer = itsdangerous.TimestampSigner(str(SESSION_SECRET_KEY))

    def _encode(data: dict) -> dict:
        value = signer.sign(b64encode(json.dumps(data).encode("utf-8"))).decode("utf-8")
        return {"Cookie": f"{SESSION_COOKIE_NAME}={value}"}
    return _encode

@pytest.fixture
def read_session():
    signer = itsdangerous.TimestampSigner(str(SESSION_SECRET_KEY))

    def _decode(response, unchanged=None) -> dict:
        """`unchanged`: session envoyée, renvoyée si le middleware n'a pas réémis le cookie."""
        value = response.cookies.get(SESSION_COOKIE_NAME)
        if value is None and unchanged is not None:
            return unchanged
        if not value or value == "null":
            return {}
        return json.loads(b64decode(signer.unsign(value.encode("utf-8"))))
    return _decode

# Événement webhook signé comme Stripe (en-tête Stripe-Signature: t=...,v1=HMAC-SHA256)
@pytest.fixture
def signed_event():
    def _sign(event: dict, secret: str = WEBHOOK_SECRET) -> dict:
        payload = json.dumps(event)
        timestamp = int(time.time())
        signature = hmac.new(secret.encode("utf-8"), f"{timestamp}.{payload}".encode("utf-8"), hashlib.sha256).hexdigest()
        return {
            "content": payload.encode("utf-8"),
            "headers": {"content-type": "application/json", "stripe-signature": f"t={timestamp},v1={signature}"},
        }
    return _sign
