from .exceptions import InvalidState
from .models import CustomizationStatus

S = CustomizationStatus

TRANSITIONS = {
    S.PENDING_DESIGNER_REVIEW: {S.IN_PROGRESS, S.CANCELLED},
    S.IN_PROGRESS: {S.AWAITING_CUSTOMER_APPROVAL, S.CANCELLED},
    S.AWAITING_CUSTOMER_APPROVAL: {S.APPROVED, S.IN_PROGRESS, S.AWAITING_PRICING, S.CANCELLED},
    S.AWAITING_PRICING: {S.AWAITING_CUSTOMER_APPROVAL, S.CANCELLED},
    S.APPROVED: {S.IN_PRODUCTION, S.COMPLETED},
    S.IN_PRODUCTION: {S.READY_FOR_PICKUP, S.COMPLETED},
    S.READY_FOR_PICKUP: {S.COMPLETED},
    S.COMPLETED: set(),
    S.CANCELLED: set(),
}

# Designer is working on the request, counted towards workload.
ACTIVE_STATUSES = (S.IN_PROGRESS, S.AWAITING_CUSTOMER_APPROVAL, S.AWAITING_PRICING)

LINKABLE_STATUSES = (S.APPROVED, S.IN_PRODUCTION, S.READY_FOR_PICKUP)


def can_transition(current, target):
    return S(target) in TRANSITIONS[S(current)]


def check_transition(current, target, message=None):
    if not can_transition(current, target):
        raise InvalidState(message or f"Cannot move request from {current} to {target}")
