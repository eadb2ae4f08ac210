"""
Stockage des références de paiement Stripe (session Checkout ou PaymentIntent)
dans l'état client: la session Starlette, sérialisée dans un cookie signé.
"""
import logging
from typing import Any, MutableMapping, Optional

from pydantic import ValidationError

from payflow.payments.models import PaymentReference

logger = logging.getLogger(__name__)

SESSION_KEY = "payment_references"
CART_SESSION_KEY = "cart_id"

# module payflow.payments.references
class ReferenceStore:
    """
    Références indexées par identifiant de panier:
        session["payment_references"] = {"<cart_id>": {"flow_type": "checkout", "value": "cs_..."}}
    - Une seule référence active par panier (put remplace l'existante).
    - L'absence n'est jamais une erreur: get renvoie None.
    """

    def __init__(self, session: MutableMapping[str, Any]):
        self._session = session

    def _entries(self) -> dict:
        entries = self._session.get(SESSION_KEY)
        return entries if isinstance(entries, dict) else {}

    def get(self, cart_id: Optional[str]) -> Optional[PaymentReference]:
        if not cart_id:
            return None
        raw = self._entries().get(str(cart_id))
        if not raw:
            return None
        try:
            return PaymentReference.model_validate(raw)
        except ValidationError:
            logger.warning("payments.references malformed entry ignored cart_id=%s", cart_id)
            return None

    def put(self, cart_id: str, reference: PaymentReference) -> None:
        entries = dict(self._entries())
        entries[str(cart_id)] = {"flow_type": reference.flow_type.value, "value": reference.value}
        # Réaffectation explicite: la session n'observe pas les mutations internes
        self._session[SESSION_KEY] = entries

    def clear(self, cart_id: Optional[str]) -> None:
        entries = self._entries()
        if not cart_id or str(cart_id) not in entries:
            return
        entries = {k: v for k, v in entries.items() if k != str(cart_id)}
        if entries:
            self._session[SESSION_KEY] = entries
        else:
            self._session.pop(SESSION_KEY, None)


def current_cart_id(session: MutableMapping[str, Any]) -> Optional[str]:
    """Identifiant du panier courant, posé dans la session par la boutique."""
    cart_id = session.get(CART_SESSION_KEY)
    return str(cart_id) if cart_id else None
