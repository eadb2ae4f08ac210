"""
Module 'payments' (feature-first): point d'entrée public.
Réunit références de paiement (cookie signé), client Stripe, classification,
finalisation idempotente des commandes et réconciliation.
"""

from .models import FlowType, Decision, DecisionKind, FinalizationResult, Outcome, OutcomeKind
from .errors import GatewayError, GatewayUnavailable, GatewayRejected, CartStoreError, OrderStoreError
from .references import ReferenceStore, current_cart_id
from .stripe_client import require_stripe, resolve_session, fetch_intent, parse_event
from .classifier import classify
from .finalizer import finalize
from .repository import get_cart, find_order_by_intent, create_order
from .service import reconcile, reconcile_intent, start_payment, handle_webhook_event

__all__ = [
    # models
    "FlowType",
    "Decision",
    "DecisionKind",
    "FinalizationResult",
    "Outcome",
    "OutcomeKind",
    # errors
    "GatewayError",
    "GatewayUnavailable",
    "GatewayRejected",
    "CartStoreError",
    "OrderStoreError",
    # references
    "ReferenceStore",
    "current_cart_id",
    # stripe
    "require_stripe",
    "resolve_session",
    "fetch_intent",
    "parse_event",
    # classification / finalisation
    "classify",
    "finalize",
    # repository
    "get_cart",
    "find_order_by_intent",
    "create_order",
    # services
    "reconcile",
    "reconcile_intent",
    "start_payment",
    "handle_webhook_event",
]
