"""
Accès aux données pour la feature 'payments' (Supabase).
Tables:
- carts  : lecture seule, propriété de la boutique (id, user_id, total, currency)
- orders : une ligne par paiement finalisé, contrainte unique (cart_id, payment_intent_id)
"""
import logging
from typing import Optional

import payflow.infra.supabase_client as supabase_client
from payflow.payments.errors import CartStoreError, OrderStoreError
from payflow.payments.models import Cart, Order, PaymentIntent, STATUS_REQUIRES_CAPTURE

logger = logging.getLogger(__name__)

ORDER_COLUMNS = "id, cart_id, payment_intent_id, amount, currency, status, created_at"

# module payflow.payments.repository
def get_cart(cart_id: str) -> Optional[Cart]:
    """
    Récupère un panier par son id (table 'carts').
    - Retourne None si absent.
    - Soulève CartStoreError si la table est injoignable (ne pas confondre avec un panier absent).
    """
    if not cart_id:
        return None
    try:
        res = (
            supabase_client.get_supabase()
            .table("carts")
            .select("id, user_id, total, currency")
            .eq("id", str(cart_id))
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return Cart.model_validate(rows[0]) if rows else None
    except Exception as e:
        logger.exception("payments.repository.get_cart failed cart_id=%s", cart_id)
        raise CartStoreError(str(e), cart_id=str(cart_id)) from e

def find_order_by_intent(cart_id: str, intent_id: str) -> Optional[Order]:
    """
    Cherche la commande déjà créée pour la clé d'idempotence (cart_id, payment_intent_id).
    - Lit via le client service: une lecture ratée ne doit pas être prise pour une absence.
    """
    res = (
        supabase_client.get_service_supabase()
        .table("orders")
        .select(ORDER_COLUMNS)
        .eq("cart_id", str(cart_id))
        .eq("payment_intent_id", str(intent_id))
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return Order.model_validate(rows[0]) if rows else None

def create_order(cart: Cart, intent: PaymentIntent) -> Optional[Order]:
    """
    Insère la commande si elle n'existe pas encore (upsert ignore_duplicates sur la contrainte unique).
    - Retourne la commande créée, ou None si une autre requête l'a insérée entre-temps.
    - Soulève OrderStoreError en cas d'échec d'écriture.
    """
    row = {
        "cart_id": cart.id,
        "payment_intent_id": intent.id,
        "user_id": cart.user_id,
        "amount": intent.amount if intent.amount is not None else cart.amount_minor,
        "currency": intent.currency or cart.currency,
        "status": "authorized" if intent.status == STATUS_REQUIRES_CAPTURE else "captured",
    }
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .upsert(row, on_conflict="cart_id,payment_intent_id", ignore_duplicates=True)
            .execute()
        )
    except Exception as e:
        logger.exception("payments.repository.create_order failed cart_id=%s intent_id=%s", cart.id, intent.id)
        raise OrderStoreError(str(e)) from e
    rows = res.data or []
    return Order.model_validate(rows[0]) if rows else None
