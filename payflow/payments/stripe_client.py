"""
Adaptateur Stripe: centralise les appels, la configuration Stripe et la
traduction des erreurs du SDK en erreurs typées (GatewayUnavailable / GatewayRejected).
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Optional

import stripe
from fastapi import HTTPException, Request

from payflow.config import STRIPE_MAX_NETWORK_RETRIES, STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from payflow.payments.errors import GatewayRejected, GatewayUnavailable
from payflow.payments.models import Cart, PaymentIntent

logger = logging.getLogger(__name__)

# Erreurs transitoires: un nouvel essai de l'utilisateur peut réussir
_UNAVAILABLE_ERRORS = (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError)

# module payflow.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key et la politique de retry réseau du SDK.
    - Soulève HTTPException(500) si STRIPE_SECRET_KEY est absent.
    """
    if not STRIPE_SECRET_KEY:
        raise HTTPException(status_code=500, detail="STRIPE_SECRET_KEY manquant")
    stripe.api_key = STRIPE_SECRET_KEY
    stripe.max_network_retries = STRIPE_MAX_NETWORK_RETRIES
    return stripe

@contextmanager
def _gateway_call(operation: str):
    """Traduit les exceptions du SDK Stripe en GatewayError typées."""
    try:
        yield
    except _UNAVAILABLE_ERRORS as e:
        logger.warning("payments.stripe %s unavailable: %s", operation, e)
        raise GatewayUnavailable(str(e), operation=operation) from e
    except stripe.StripeError as e:
        logger.warning("payments.stripe %s rejected: %s", operation, e)
        raise GatewayRejected(str(e), operation=operation) from e

def _field(obj: Any, name: str) -> Any:
    """Lecture tolérante d'un champ sur un dict ou un StripeObject."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)

def _as_dict(obj: Any) -> Dict[str, Any]:
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return dict(obj)
    for name in ("to_dict", "to_dict_recursive"):
        to_dict = getattr(obj, name, None)
        if callable(to_dict):
            return dict(to_dict())
    return {}

def intent_from_stripe(obj: Any) -> PaymentIntent:
    """Convertit un PaymentIntent Stripe (objet SDK ou dict webhook) en modèle local."""
    error = _field(obj, "last_payment_error")
    return PaymentIntent(
        id=str(_field(obj, "id") or ""),
        status=str(_field(obj, "status") or ""),
        amount=_field(obj, "amount"),
        currency=_field(obj, "currency"),
        metadata=_as_dict(_field(obj, "metadata")),
        last_payment_error=(
            {"message": _field(error, "message"), "code": _field(error, "code")} if error else None
        ),
    )

def resolve_session(session_id: str) -> Optional[str]:
    """
    Récupère une session Stripe Checkout et renvoie l'identifiant de son PaymentIntent.
    - None si la session n'a pas (encore) de PaymentIntent.
    - payment_intent peut être un id ou un objet développé (expand).
    """
    require_stripe()
    with _gateway_call("resolve_session"):
        session = stripe.checkout.Session.retrieve(session_id)
    payment_intent = _field(session, "payment_intent")
    if payment_intent is None:
        return None
    if isinstance(payment_intent, str):
        return payment_intent
    return _field(payment_intent, "id")

def fetch_intent(intent_id: str) -> PaymentIntent:
    """Récupère un PaymentIntent Stripe par son identifiant."""
    require_stripe()
    with _gateway_call("fetch_intent"):
        intent = stripe.PaymentIntent.retrieve(intent_id)
    return intent_from_stripe(intent)

def create_checkout_session(*, cart: Cart, success_url: str, cancel_url: str) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout pour le total du panier.
    - metadata.cart_id est posé sur la session et sur son PaymentIntent (webhook).
    Retour: {"id": "cs_...", "url": "https://checkout.stripe.com/..."}
    """
    require_stripe()
    metadata = {"cart_id": cart.id}
    with _gateway_call("create_checkout_session"):
        session = stripe.checkout.Session.create(
            mode="payment",
            line_items=[
                {
                    "price_data": {
                        "currency": cart.currency,
                        "product_data": {"name": f"Panier {cart.id}"},
                        "unit_amount": cart.amount_minor,
                    },
                    "quantity": 1,
                }
            ],
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
            payment_intent_data={"metadata": metadata},
        )
    return {"id": _field(session, "id"), "url": _field(session, "url")}

def create_payment_intent(*, cart: Cart) -> Dict[str, Any]:
    """
    Crée un PaymentIntent pour le flux carte intégré (Stripe Elements).
    Retour: {"id": "pi_...", "client_secret": "pi_..._secret_..."}
    """
    require_stripe()
    with _gateway_call("create_payment_intent"):
        intent = stripe.PaymentIntent.create(
            amount=cart.amount_minor,
            currency=cart.currency,
            metadata={"cart_id": cart.id},
            automatic_payment_methods={"enabled": True},
        )
    return {"id": _field(intent, "id"), "client_secret": _field(intent, "client_secret")}

async def parse_event(request: Request) -> Dict[str, Any]:
    """
    Parse et valide un événement Stripe signé (webhook).
    - Valide la signature via Webhook.construct_event (STRIPE_WEBHOOK_SECRET).
    - Soulève HTTPException(500) si le secret est absent, 400 si payload ou signature invalides.
    Retour: {"type": ..., "object": <data.object>}
    """
    if not STRIPE_WEBHOOK_SECRET:
        raise HTTPException(status_code=500, detail="STRIPE_WEBHOOK_SECRET manquant")
    require_stripe()
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature") or ""
    try:
        event = stripe.Webhook.construct_event(payload, sig_header, STRIPE_WEBHOOK_SECRET)
    except (ValueError, stripe.SignatureVerificationError) as e:
        raise HTTPException(status_code=400, detail=f"Webhook invalide: {e}")
    return {"type": _field(event, "type"), "object": _field(_field(event, "data"), "object")}
