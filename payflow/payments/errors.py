"""
Erreurs typées de la feature 'payments'.
- GatewayError et dérivées: levées par l'adaptateur Stripe, jamais rattrapées
  par la réconciliation (elles remontent jusqu'au handler d'exceptions de l'app).
- CartStoreError: lecture du panier impossible, remonte au même handler.
- OrderStoreError: échec d'écriture d'une commande, converti en message par le finalizer.
"""

class GatewayError(Exception):
    """Échec d'un appel Stripe. `detail` est journalisé, jamais affiché tel quel."""

    status_code = 502
    public_message = "Le service de paiement a renvoyé une erreur. Veuillez réessayer."

    def __init__(self, detail: str = "", *, operation: str = ""):
        super().__init__(detail or self.public_message)
        self.detail = detail
        self.operation = operation


class GatewayUnavailable(GatewayError):
    """Réseau, limitation de débit ou indisponibilité côté Stripe."""

    status_code = 503
    public_message = "Le service de paiement est momentanément indisponible. Veuillez réessayer dans quelques instants."


class GatewayRejected(GatewayError):
    """Authentification, permission ou requête refusée par Stripe."""


class CartStoreError(Exception):
    """Table 'carts' injoignable: un panier introuvable n'est pas un panier absent."""

    status_code = 503
    public_message = "Votre panier est momentanément inaccessible. Veuillez réessayer dans quelques instants."

    def __init__(self, detail: str = "", *, cart_id: str = ""):
        super().__init__(detail or self.public_message)
        self.detail = detail
        self.cart_id = cart_id


class OrderStoreError(Exception):
    """Écriture de commande impossible (contrainte, réseau, RLS...)."""
