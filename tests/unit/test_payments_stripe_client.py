from types import SimpleNamespace

import pytest
import stripe
from fastapi import HTTPException

from payflow.payments import stripe_client
from payflow.payments.errors import GatewayRejected, GatewayUnavailable

def _raise(exc):
    def _fn(*args, **kwargs):
        raise exc
    return _fn

def test_require_stripe_without_key(monkeypatch):
    monkeypatch.setattr("payflow.payments.stripe_client.STRIPE_SECRET_KEY", "")
    with pytest.raises(HTTPException) as exc:
        stripe_client.require_stripe()
    assert exc.value.status_code == 500

def test_fetch_intent_maps_fields(monkeypatch):
    payload = {
        "id": "pi_1",
        "status": "requires_payment_method",
        "amount": 4250,
        "currency": "eur",
        "metadata": {"cart_id": "cart_7"},
        "last_payment_error": {"message": "Your card was declined.", "code": "card_declined"},
    }
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", lambda intent_id: payload)
    intent = stripe_client.fetch_intent("pi_1")
    assert intent.id == "pi_1"
    assert intent.status == "requires_payment_method"
    assert intent.metadata == {"cart_id": "cart_7"}
    assert intent.last_payment_error.message == "Your card was declined."

def test_intent_from_attribute_object():
    obj = SimpleNamespace(id="pi_2", status="succeeded", amount=100, currency="eur", metadata=None, last_payment_error=None)
    intent = stripe_client.intent_from_stripe(obj)
    assert intent.status == "succeeded"
    assert intent.metadata == {}
    assert intent.last_payment_error is None

@pytest.mark.parametrize(
    "exc",
    [
        stripe.APIConnectionError("connection reset"),
        stripe.RateLimitError("too many requests"),
        stripe.APIError("stripe is down"),
    ],
)
def test_transport_errors_are_unavailable(monkeypatch, exc):
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", _raise(exc))
    with pytest.raises(GatewayUnavailable) as err:
        stripe_client.fetch_intent("pi_1")
    assert err.value.operation == "fetch_intent"
    assert err.value.status_code == 503

@pytest.mark.parametrize(
    "exc",
    [
        stripe.AuthenticationError("invalid api key"),
        stripe.InvalidRequestError("No such payment_intent: 'pi_x'", "id"),
        stripe.PermissionError("forbidden"),
    ],
)
def test_api_errors_are_rejected(monkeypatch, exc):
    monkeypatch.setattr(stripe.checkout.Session, "retrieve", _raise(exc))
    with pytest.raises(GatewayRejected) as err:
        stripe_client.resolve_session("cs_1")
    assert err.value.status_code == 502

def test_resolve_session_returns_intent_id(monkeypatch):
    monkeypatch.setattr(stripe.checkout.Session, "retrieve", lambda sid: {"id": sid, "payment_intent": "pi_1"})
    assert stripe_client.resolve_session("cs_1") == "pi_1"

def test_resolve_session_expanded_intent(monkeypatch):
    monkeypatch.setattr(stripe.checkout.Session, "retrieve", lambda sid: {"id": sid, "payment_intent": {"id": "pi_9"}})
    assert stripe_client.resolve_session("cs_1") == "pi_9"

def test_resolve_session_without_intent(monkeypatch):
    monkeypatch.setattr(stripe.checkout.Session, "retrieve", lambda sid: {"id": sid, "payment_intent": None})
    assert stripe_client.resolve_session("cs_1") is None

def test_create_checkout_session_tags_cart(monkeypatch, cart):
    captured = {}

    def _create(**kwargs):
        captured.update(kwargs)
        return {"id": "cs_new", "url": "https://checkout.stripe.com/c/cs_new"}

    monkeypatch.setattr(stripe.checkout.Session, "create", _create)
    session = stripe_client.create_checkout_session(cart=cart, success_url="http://s", cancel_url="http://c")
    assert session == {"id": "cs_new", "url": "https://checkout.stripe.com/c/cs_new"}
    assert captured["metadata"] == {"cart_id": "cart_7"}
    assert captured["payment_intent_data"] == {"metadata": {"cart_id": "cart_7"}}
    assert captured["line_items"][0]["price_data"]["unit_amount"] == 4250

def test_create_payment_intent(monkeypatch, cart):
    captured = {}

    def _create(**kwargs):
        captured.update(kwargs)
        return {"id": "pi_new", "client_secret": "pi_new_secret_x"}

    monkeypatch.setattr(stripe.PaymentIntent, "create", _create)
    intent = stripe_client.create_payment_intent(cart=cart)
    assert intent == {"id": "pi_new", "client_secret": "pi_new_secret_x"}
    assert captured["amount"] == 4250
    assert captured["currency"] == "eur"
