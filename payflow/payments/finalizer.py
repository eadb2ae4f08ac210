"""
Finalisation d'un paiement Stripe accepté: création idempotente de la commande.
- Clé d'idempotence: (cart.id, intent.id).
- Ne touche jamais aux références stockées côté client (responsabilité de l'appelant).
"""
import logging

from payflow.payments import repository
from payflow.payments.errors import OrderStoreError
from payflow.payments.models import Cart, FinalizationResult, PaymentIntent

logger = logging.getLogger(__name__)

ORDER_STORE_ERROR = (
    "Votre paiement a bien été reçu mais la commande n'a pas pu être enregistrée. "
    "Réessayez dans quelques instants ou contactez le support."
)
AMOUNT_MISMATCH_ERROR = "Le montant payé ne correspond pas au total du panier. Contactez le support."
CART_MISMATCH_ERROR = "Ce paiement ne correspond pas à votre panier. Contactez le support."

# module payflow.payments.finalizer
def _consistency_errors(cart: Cart, intent: PaymentIntent) -> list:
    errors = []
    meta_cart_id = str((intent.metadata or {}).get("cart_id") or "")
    if meta_cart_id and meta_cart_id != str(cart.id):
        errors.append(CART_MISMATCH_ERROR)
    if intent.amount is not None and intent.amount != cart.amount_minor:
        errors.append(AMOUNT_MISMATCH_ERROR)
    elif intent.currency and intent.currency.lower() != (cart.currency or "").lower():
        errors.append(AMOUNT_MISMATCH_ERROR)
    return errors

def finalize(cart: Cart, intent: PaymentIntent) -> FinalizationResult:
    """
    Crée la commande liée au PaymentIntent si elle n'existe pas déjà.
    - Commande existante -> succès sans nouvelle écriture (requêtes rejouées, webhook concurrent).
    - Incohérence panier/paiement -> échec, rien n'est écrit.
    - Insertion perdue face à une requête concurrente -> relit la commande gagnante.
    - Échec d'écriture -> échec avec un message affichable.
    """
    try:
        existing = repository.find_order_by_intent(cart.id, intent.id)
    except Exception:
        logger.exception("payments.finalize lookup failed cart_id=%s intent_id=%s", cart.id, intent.id)
        return FinalizationResult.failure(ORDER_STORE_ERROR)
    if existing:
        logger.info("payments.finalize already_done order_id=%s cart_id=%s intent_id=%s", existing.id, cart.id, intent.id)
        return FinalizationResult.success(existing)

    errors = _consistency_errors(cart, intent)
    if errors:
        logger.warning(
            "payments.finalize rejected cart_id=%s intent_id=%s amount=%s currency=%s cart_total=%s",
            cart.id, intent.id, intent.amount, intent.currency, cart.amount_minor,
        )
        return FinalizationResult.failure(*errors)

    try:
        order = repository.create_order(cart, intent)
        if order is None:
            # Insertion ignorée: une autre requête a créé la commande entre-temps
            order = repository.find_order_by_intent(cart.id, intent.id)
    except OrderStoreError:
        return FinalizationResult.failure(ORDER_STORE_ERROR)
    except Exception:
        logger.exception("payments.finalize failed cart_id=%s intent_id=%s", cart.id, intent.id)
        return FinalizationResult.failure(ORDER_STORE_ERROR)

    if order is None:
        logger.error("payments.finalize order missing after insert cart_id=%s intent_id=%s", cart.id, intent.id)
        return FinalizationResult.failure(ORDER_STORE_ERROR)

    logger.info("payments.finalize created order_id=%s cart_id=%s intent_id=%s status=%s", order.id, cart.id, intent.id, order.status)
    return FinalizationResult.success(order)
