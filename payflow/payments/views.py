import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from starlette.status import HTTP_303_SEE_OTHER

from payflow.payments import links
from payflow.payments import repository as payments_repo
from payflow.payments import service as payments_service
from payflow.payments import stripe_client
from payflow.payments.models import Cart, FlowType, OutcomeKind
from payflow.payments.references import ReferenceStore, current_cart_id
from payflow.utils.rate_limit import optional_rate_limit
from payflow.utils.templates import templates

logger = logging.getLogger(__name__)
web_router = APIRouter(prefix="/payments", tags=["Payments"])
api_router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

# module payflow.payments.views
def get_reference_store(request: Request) -> ReferenceStore:
    """Références de paiement du visiteur, stockées dans la session signée."""
    return ReferenceStore(request.session)

def get_current_cart(request: Request) -> Optional[Cart]:
    """Panier courant (id posé en session par la boutique), None si absent. CartStoreError si la table est injoignable."""
    cart_id = current_cart_id(request.session)
    return payments_repo.get_cart(cart_id) if cart_id else None

def require_cart(cart: Optional[Cart] = Depends(get_current_cart)) -> Cart:
    if cart is None:
        raise HTTPException(status_code=400, detail="Aucun panier en cours")
    return cart

def render_errors(request: Request, errors, status_code: int = 200) -> HTMLResponse:
    """Page d'erreur listant les messages dans l'ordre, avec un lien de retour vers la commande."""
    return templates.TemplateResponse(
        request,
        "error.html",
        {"errors": list(errors), "order_link": links.checkout_page_url(request)},
        status_code=status_code,
    )

@web_router.get("/validation", response_class=HTMLResponse, name="payment_validation")
def validate_payment(
    request: Request,
    type: Optional[str] = None,
    cart: Optional[Cart] = Depends(get_current_cart),
    store: ReferenceStore = Depends(get_reference_store),
):
    """
    Retour navigateur après un paiement Stripe.
    - ?type=checkout: session Stripe Checkout mémorisée en cookie
    - ?type=cc: PaymentIntent du formulaire carte mémorisé en cookie
    - autre: retour au checkout
    Réponses: 303 vers la confirmation de commande, 303 vers le checkout, ou page d'erreurs.
    Les erreurs Stripe remontent jusqu'au handler GatewayError (app_setup.exceptions).
    """
    flow_type = FlowType.from_param(type)
    outcome = payments_service.reconcile(flow_type, cart, store)
    logger.info("payments.validation flow=%s outcome=%s cart_id=%s", flow_type.value, outcome.kind.value, getattr(cart, "id", None))
    if outcome.kind is OutcomeKind.REDIRECT_ORDER_CONFIRMATION:
        return RedirectResponse(url=links.order_confirmation_url(request, outcome.order), status_code=HTTP_303_SEE_OTHER)
    if outcome.kind is OutcomeKind.DISPLAY_ERRORS:
        return render_errors(request, outcome.errors)
    return RedirectResponse(url=links.checkout_page_url(request), status_code=HTTP_303_SEE_OTHER)

@api_router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout_session(
    request: Request,
    cart: Cart = Depends(require_cart),
    store: ReferenceStore = Depends(get_reference_store),
):
    """
    Crée une session Stripe Checkout pour le panier courant.
    - Mémorise l'id de session (cs_...) en cookie pour la validation ?type=checkout.
    - Retour: {"id": ..., "url": ...}
    """
    validation_url = str(request.url_for("payment_validation"))
    session = stripe_client.create_checkout_session(
        cart=cart,
        success_url=f"{validation_url}?type={FlowType.CHECKOUT.value}",
        cancel_url=links.checkout_page_url(request),
    )
    if not session.get("id"):
        raise HTTPException(status_code=400, detail="Session Stripe invalide")
    payments_service.start_payment(FlowType.CHECKOUT, cart, store, session["id"])
    return JSONResponse({"id": session.get("id"), "url": session.get("url")})

@api_router.post("/intent", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_payment_intent(
    cart: Cart = Depends(require_cart),
    store: ReferenceStore = Depends(get_reference_store),
):
    """
    Crée un PaymentIntent pour le formulaire carte intégré.
    - Mémorise l'id (pi_...) en cookie pour la validation ?type=cc.
    - Retour: {"id": ..., "client_secret": ...}
    """
    intent = stripe_client.create_payment_intent(cart=cart)
    if not intent.get("id"):
        raise HTTPException(status_code=400, detail="PaymentIntent Stripe invalide")
    payments_service.start_payment(FlowType.CREDIT_CARD, cart, store, intent["id"])
    return JSONResponse({"id": intent.get("id"), "client_secret": intent.get("client_secret")})

@api_router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request):
    """
    Webhook Stripe: finalise la commande sur payment_intent.succeeded / amount_capturable_updated.
    - Réponses: {"status": "ok", "order_id": ...}, {"status": "ignored"} ou {"status": "failed", "errors": [...]}
    - Erreurs: 400 si le payload est invalide
    """
    try:
        event = await stripe_client.parse_event(request)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Erreur webhook_stripe")
        raise HTTPException(status_code=400, detail="Invalid Stripe webhook payload")
    result = payments_service.handle_webhook_event(event)
    logger.info("payments.webhook type=%s status=%s", event.get("type"), result.get("status"))
    return JSONResponse(result)
