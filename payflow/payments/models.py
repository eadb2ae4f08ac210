"""
Types de la feature 'payments': panier, référence de paiement, PaymentIntent,
décision du classifieur, résultat de finalisation et issue d'une réconciliation.
"""
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# module payflow.payments.models

# Statuts PaymentIntent connus côté Stripe
STATUS_REQUIRES_PAYMENT_METHOD = "requires_payment_method"
STATUS_REQUIRES_CONFIRMATION = "requires_confirmation"
STATUS_REQUIRES_ACTION = "requires_action"
STATUS_PROCESSING = "processing"
STATUS_REQUIRES_CAPTURE = "requires_capture"
STATUS_SUCCEEDED = "succeeded"
STATUS_CANCELED = "canceled"

INTENT_STATUSES = (
    STATUS_REQUIRES_PAYMENT_METHOD,
    STATUS_REQUIRES_CONFIRMATION,
    STATUS_REQUIRES_ACTION,
    STATUS_PROCESSING,
    STATUS_REQUIRES_CAPTURE,
    STATUS_SUCCEEDED,
    STATUS_CANCELED,
)


class FlowType(str, Enum):
    """Type de flux de validation, résolu une seule fois depuis le paramètre `type`."""
    CHECKOUT = "checkout"
    CREDIT_CARD = "cc"
    UNKNOWN = "unknown"

    @classmethod
    def from_param(cls, value: Optional[str]) -> "FlowType":
        raw = (value or "").strip()
        if raw == cls.CHECKOUT.value:
            return cls.CHECKOUT
        if raw == cls.CREDIT_CARD.value:
            return cls.CREDIT_CARD
        return cls.UNKNOWN


class Cart(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    user_id: Optional[str] = None
    total: Decimal = Decimal("0")
    currency: str = "eur"

    @property
    def amount_minor(self) -> int:
        """Total du panier en centimes (unité attendue par Stripe)."""
        return int((self.total * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentReference(BaseModel):
    flow_type: FlowType
    value: str


class LastPaymentError(BaseModel):
    message: Optional[str] = None
    code: Optional[str] = None


class PaymentIntent(BaseModel):
    """
    Vue lecture seule d'un PaymentIntent Stripe.
    - status reste une chaîne libre: un statut inconnu est classé comme non terminal.
    """
    id: str
    status: str
    amount: Optional[int] = None
    currency: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    last_payment_error: Optional[LastPaymentError] = None


class Order(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    cart_id: str
    payment_intent_id: str
    amount: Optional[int] = None
    currency: Optional[str] = None
    status: str = "captured"
    created_at: Optional[str] = None


class DecisionKind(str, Enum):
    FINALIZE = "finalize"
    CANCELLED = "cancelled"
    FAILED = "failed"
    PENDING = "pending"


class Decision:
    def __init__(self, kind: DecisionKind, message: Optional[str] = None):
        self.kind = kind
        self.message = message

    def __eq__(self, other):
        return isinstance(other, Decision) and (self.kind, self.message) == (other.kind, other.message)

    def __repr__(self):
        if self.message is None:
            return f"Decision({self.kind.value})"
        return f"Decision({self.kind.value}, {self.message!r})"


class FinalizationResult:
    def __init__(self, ok: bool, order: Optional[Order] = None, errors: Optional[List[str]] = None):
        self.ok = ok
        self.order = order
        self.errors = list(errors or [])

    @classmethod
    def success(cls, order: Order) -> "FinalizationResult":
        return cls(True, order=order)

    @classmethod
    def failure(cls, *errors: str) -> "FinalizationResult":
        return cls(False, errors=list(errors) or ["Unknown error"])


class OutcomeKind(str, Enum):
    REDIRECT_ORDER_CONFIRMATION = "redirect_order_confirmation"
    REDIRECT_CHECKOUT = "redirect_checkout"
    DISPLAY_ERRORS = "display_errors"


class Outcome:
    """Action unique renvoyée vers la couche HTTP à la fin d'une réconciliation."""

    def __init__(self, kind: OutcomeKind, order: Optional[Order] = None, errors: Optional[List[str]] = None):
        self.kind = kind
        self.order = order
        self.errors = list(errors or [])

    @classmethod
    def redirect_checkout(cls) -> "Outcome":
        return cls(OutcomeKind.REDIRECT_CHECKOUT)

    @classmethod
    def order_confirmation(cls, order: Order) -> "Outcome":
        return cls(OutcomeKind.REDIRECT_ORDER_CONFIRMATION, order=order)

    @classmethod
    def display_errors(cls, errors: List[str]) -> "Outcome":
        return cls(OutcomeKind.DISPLAY_ERRORS, errors=list(errors) or ["Unknown error"])

    def __repr__(self):
        return f"Outcome({self.kind.value}, order={getattr(self.order, 'id', None)}, errors={self.errors})"
