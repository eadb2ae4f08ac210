"""
Cas d'usage 'payments': réconciliation d'un paiement Stripe avec le panier courant.
Orchestre references (cookie signé), stripe_client, classifier et finalizer,
puis renvoie une seule action: confirmation de commande, retour au checkout, ou erreurs.
"""
import logging
from typing import Optional

from payflow.payments import classifier
from payflow.payments import finalizer
from payflow.payments import repository
from payflow.payments import stripe_client
from payflow.payments.models import Cart, DecisionKind, FlowType, Outcome, PaymentReference
from payflow.payments.references import ReferenceStore

logger = logging.getLogger(__name__)

# module payflow.payments.service
def reconcile(flow_type: FlowType, cart: Optional[Cart], store: ReferenceStore) -> Outcome:
    """
    Point d'entrée de la validation.
    - CHECKOUT: référence = id de session Checkout, résolue en PaymentIntent.
    - CREDIT_CARD: référence = id du PaymentIntent.
    - UNKNOWN, pas de panier ou pas de référence du bon type: retour au checkout.
    Les erreurs Stripe (GatewayError) ne sont pas rattrapées ici.
    """
    if flow_type is FlowType.UNKNOWN or cart is None:
        return Outcome.redirect_checkout()

    reference = _reference_for(store, cart, flow_type)
    if reference is None:
        logger.info("payments.reconcile no_reference flow=%s cart_id=%s", flow_type.value, cart.id)
        return Outcome.redirect_checkout()

    if flow_type is FlowType.CHECKOUT:
        intent_id = stripe_client.resolve_session(reference.value)
        if not intent_id:
            logger.info("payments.reconcile session_without_intent session_id=%s cart_id=%s", reference.value, cart.id)
            return Outcome.redirect_checkout()
    else:
        intent_id = reference.value

    return reconcile_intent(intent_id, cart, store)

def _reference_for(store: ReferenceStore, cart: Cart, flow_type: FlowType) -> Optional[PaymentReference]:
    reference = store.get(cart.id)
    if reference is None or reference.flow_type is not flow_type or not reference.value:
        return None
    return reference

def reconcile_intent(intent_id: str, cart: Cart, store: ReferenceStore) -> Outcome:
    """
    Lit le PaymentIntent, le classe et applique la transition:
    - FINALIZE: finalisation; succès -> référence supprimée + confirmation; échec -> référence conservée + erreurs
    - CANCELLED: référence supprimée + checkout
    - FAILED: référence supprimée + message Stripe
    - PENDING: référence conservée + checkout
    """
    intent = stripe_client.fetch_intent(intent_id)
    decision = classifier.classify(intent)
    logger.info("payments.reconcile intent_id=%s status=%s decision=%s cart_id=%s", intent.id, intent.status, decision.kind.value, cart.id)

    if decision.kind is DecisionKind.FINALIZE:
        result = finalizer.finalize(cart, intent)
        if result.ok:
            store.clear(cart.id)
            return Outcome.order_confirmation(result.order)
        return Outcome.display_errors(result.errors)

    if decision.kind is DecisionKind.CANCELLED:
        store.clear(cart.id)
        return Outcome.redirect_checkout()

    if decision.kind is DecisionKind.FAILED:
        store.clear(cart.id)
        return Outcome.display_errors([decision.message])

    return Outcome.redirect_checkout()

def start_payment(flow_type: FlowType, cart: Cart, store: ReferenceStore, reference_value: str) -> None:
    """Mémorise la référence d'une tentative de paiement (remplace l'éventuelle précédente)."""
    store.put(cart.id, PaymentReference(flow_type=flow_type, value=reference_value))
    logger.info("payments.start flow=%s cart_id=%s reference=%s", flow_type.value, cart.id, reference_value)

WEBHOOK_FINALIZE_EVENTS = ("payment_intent.succeeded", "payment_intent.amount_capturable_updated")

def handle_webhook_event(event: dict) -> dict:
    """
    Finalisation côté webhook (pas de cookie: le panier vient de metadata.cart_id).
    - Seul l'id du PaymentIntent est lu dans l'événement; statut, montant et metadata
      sont relus chez Stripe avant toute écriture.
    - Le finalizer étant idempotent, le webhook peut croiser la redirection navigateur sans doublon.
    """
    if (event or {}).get("type") not in WEBHOOK_FINALIZE_EVENTS:
        return {"status": "ignored"}
    intent_id = stripe_client.intent_from_stripe(event.get("object")).id
    if not intent_id:
        return {"status": "ignored"}
    intent = stripe_client.fetch_intent(intent_id)
    cart_id = str(intent.metadata.get("cart_id") or "")
    cart = repository.get_cart(cart_id) if cart_id else None
    if cart is None:
        logger.warning("payments.webhook unknown cart intent_id=%s cart_id=%s", intent.id, cart_id)
        return {"status": "ignored"}
    if classifier.classify(intent).kind is not DecisionKind.FINALIZE:
        return {"status": "ignored"}
    result = finalizer.finalize(cart, intent)
    if result.ok:
        return {"status": "ok", "order_id": result.order.id}
    return {"status": "failed", "errors": result.errors}
