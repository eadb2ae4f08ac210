"""
Classification pure d'un PaymentIntent (pas de Stripe, pas de DB, pas de cookie).
"""
from payflow.payments.models import (
    Decision,
    DecisionKind,
    PaymentIntent,
    STATUS_CANCELED,
    STATUS_REQUIRES_CAPTURE,
    STATUS_SUCCEEDED,
)

UNKNOWN_ERROR = "Unknown error"

# module payflow.payments.classifier
def classify(intent: PaymentIntent) -> Decision:
    """
    Traduit le statut Stripe en décision locale.
    - succeeded / requires_capture -> FINALIZE (même si last_payment_error est renseigné)
    - canceled -> CANCELLED
    - last_payment_error présent -> FAILED(message, ou "Unknown error")
    - sinon -> PENDING (le paiement attend encore une action hors bande)
    """
    if intent.status in (STATUS_SUCCEEDED, STATUS_REQUIRES_CAPTURE):
        return Decision(DecisionKind.FINALIZE)
    if intent.status == STATUS_CANCELED:
        return Decision(DecisionKind.CANCELLED)
    if intent.last_payment_error is not None:
        return Decision(DecisionKind.FAILED, intent.last_payment_error.message or UNKNOWN_ERROR)
    return Decision(DecisionKind.PENDING)
