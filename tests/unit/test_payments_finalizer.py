from payflow.payments import finalizer
from payflow.payments.errors import OrderStoreError
from payflow.payments.finalizer import finalize

def test_finalize_creates_order(cart, make_intent, order_store):
    result = finalize(cart, make_intent("succeeded"))
    assert result.ok
    assert result.order.cart_id == "cart_7"
    assert result.order.payment_intent_id == "pi_1"
    assert result.order.status == "captured"
    assert len(order_store) == 1

def test_finalize_twice_creates_one_order(cart, make_intent, order_store):
    intent = make_intent("succeeded")
    first = finalize(cart, intent)
    second = finalize(cart, intent)
    assert first.ok and second.ok
    assert first.order.id == second.order.id
    assert len(order_store) == 1

def test_requires_capture_creates_authorized_order(cart, make_intent, order_store):
    result = finalize(cart, make_intent("requires_capture"))
    assert result.ok
    assert result.order.status == "authorized"

def test_lost_race_returns_winning_order(cart, make_intent, monkeypatch):
    winner = {"order": None}

    def _find(cart_id, intent_id):
        return winner["order"]

    def _create(c, intent):
        # Une requête concurrente a inséré la ligne juste avant nous
        from payflow.payments.models import Order
        winner["order"] = Order(id="ord_race", cart_id=c.id, payment_intent_id=intent.id)
        return None

    monkeypatch.setattr("payflow.payments.repository.find_order_by_intent", _find)
    monkeypatch.setattr("payflow.payments.repository.create_order", _create)
    result = finalize(cart, make_intent("succeeded"))
    assert result.ok
    assert result.order.id == "ord_race"

def test_amount_mismatch_fails_without_writing(cart, make_intent, order_store):
    result = finalize(cart, make_intent("succeeded", amount=100))
    assert not result.ok
    assert result.errors == [finalizer.AMOUNT_MISMATCH_ERROR]
    assert order_store == {}

def test_currency_mismatch_fails(cart, make_intent, order_store):
    result = finalize(cart, make_intent("succeeded", currency="usd"))
    assert not result.ok
    assert result.errors == [finalizer.AMOUNT_MISMATCH_ERROR]

def test_foreign_cart_metadata_fails(cart, make_intent, order_store):
    result = finalize(cart, make_intent("succeeded", metadata={"cart_id": "cart_99"}))
    assert not result.ok
    assert finalizer.CART_MISMATCH_ERROR in result.errors
    assert order_store == {}

def test_missing_metadata_is_accepted(cart, make_intent, order_store):
    result = finalize(cart, make_intent("succeeded", metadata={}))
    assert result.ok

def test_store_failure_is_reported(cart, make_intent, monkeypatch):
    monkeypatch.setattr("payflow.payments.repository.find_order_by_intent", lambda cart_id, intent_id: None)

    def _boom(c, intent):
        raise OrderStoreError("duplicate key / network")
    monkeypatch.setattr("payflow.payments.repository.create_order", _boom)
    result = finalize(cart, make_intent("succeeded"))
    assert not result.ok
    assert result.errors == [finalizer.ORDER_STORE_ERROR]

def test_lookup_failure_is_reported(cart, make_intent, monkeypatch):
    def _boom(cart_id, intent_id):
        raise RuntimeError("supabase down")
    monkeypatch.setattr("payflow.payments.repository.find_order_by_intent", _boom)
    result = finalize(cart, make_intent("succeeded"))
    assert not result.ok
    assert result.errors == [finalizer.ORDER_STORE_ERROR]
