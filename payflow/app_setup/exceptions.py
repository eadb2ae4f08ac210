"""
Gestionnaires d'exceptions de l'application.
- GatewayError (Stripe indisponible ou requête refusée) et CartStoreError (panier illisible):
  erreurs fatales pour la requête, avec un message générique (le détail est journalisé, jamais affiché).
  La référence de paiement en cookie n'est pas touchée: l'utilisateur peut relancer la validation.
- HTTPException: detail tel quel.
Web: page d'erreur. API (/api/*): JSON {"detail": ...}.
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from payflow.payments.errors import CartStoreError, GatewayError

logger = logging.getLogger(__name__)

def _error_response(request: Request, status_code: int, message, headers=None):
    if request.url.path.startswith("/api/"):
        return JSONResponse(status_code=status_code, content={"detail": message}, headers=headers)
    # Import local: la vue dépend des templates et des liens de la feature payments
    from payflow.payments.views import render_errors
    response = render_errors(request, [str(message)], status_code=status_code)
    for key, value in (headers or {}).items():
        response.headers[key] = value
    return response

def register_exception_handlers(app: FastAPI) -> None:
    """
    Enregistre les handlers GatewayError, CartStoreError et HTTPException.
    """
    @app.exception_handler(GatewayError)
    async def gateway_error(request: Request, exc: GatewayError):
        logger.error(
            "payments.gateway_error type=%s operation=%s path=%s detail=%s",
            type(exc).__name__, exc.operation, request.url.path, exc.detail,
        )
        return _error_response(request, exc.status_code, exc.public_message)

    @app.exception_handler(CartStoreError)
    async def cart_store_error(request: Request, exc: CartStoreError):
        logger.error("payments.cart_store_error cart_id=%s path=%s detail=%s", exc.cart_id, request.url.path, exc.detail)
        return _error_response(request, exc.status_code, exc.public_message)

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return _error_response(request, exc.status_code, exc.detail, headers=getattr(exc, "headers", None))
