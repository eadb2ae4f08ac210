"""
Liens du tunnel de commande (pages appartenant à la boutique).
"""
from urllib.parse import urlencode

from fastapi import Request

from payflow.config import (
    CHECKOUT_OPC_PAGE_PATH,
    CHECKOUT_PAGE_PATH,
    ORDER_CONFIRMATION_PATH,
    ORDER_PROCESS_TYPE,
)
from payflow.payments.models import Order

# module payflow.payments.links
def _base_url(request: Request) -> str:
    # Construit la base d'URL (ex: http://testserver) sans slash final
    return str(request.base_url).rstrip("/")

def checkout_page_url(request: Request) -> str:
    """Page de commande: une page ("opc") ou en plusieurs étapes selon ORDER_PROCESS_TYPE."""
    path = CHECKOUT_OPC_PAGE_PATH if ORDER_PROCESS_TYPE == "opc" else CHECKOUT_PAGE_PATH
    return f"{_base_url(request)}{path}"

def order_confirmation_url(request: Request, order: Order) -> str:
    query = urlencode({"id_cart": order.cart_id, "id_order": order.id})
    return f"{_base_url(request)}{ORDER_CONFIRMATION_PATH}?{query}"
