# Allowed status transitions for every workflow entity
# All status writes go through `ensure_transition` so illegal moves never reach the database.

from typing import Dict, FrozenSet, Type
from enum import Enum

from database.marketplace_models import (
    TaskStatusDB,
    ApplicationStatusDB,
    CampaignStatusDB,
    DisputeStatusDB,
    ShipmentStatusDB,
    PaymentStatusDB,
)


class InvalidTransition(Exception):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, entity: str, current, target):
        self.entity = entity
        self.current = _value(current)
        self.target = _value(target)
        super().__init__(f"Cannot move {entity} from '{self.current}' to '{self.target}'")


def _value(status) -> str:
    return status.value if isinstance(status, Enum) else str(status)


T = TaskStatusDB
A = ApplicationStatusDB
C = CampaignStatusDB
D = DisputeStatusDB
S = ShipmentStatusDB
P = PaymentStatusDB

TASK_TRANSITIONS = {
    T.SELECTED: {T.IN_PRODUCTION},
    T.IN_PRODUCTION: {T.UPLOADED},
    T.UPLOADED: {T.NEEDS_EDITS, T.APPROVED, T.DISPUTED},
    T.NEEDS_EDITS: {T.UPLOADED, T.APPROVED, T.DISPUTED},
    T.APPROVED: {T.PAID, T.DISPUTED},
    T.PAID: set(),
    T.DISPUTED: {T.APPROVED, T.NEEDS_EDITS, T.UPLOADED},
}

APPLICATION_TRANSITIONS = {
    A.SUBMITTED: {A.APPROVED, A.REJECTED},
    A.APPROVED: set(),
    A.REJECTED: set(),
}

CAMPAIGN_TRANSITIONS = {
    C.DRAFT: {C.OPEN, C.ARCHIVED},
    C.OPEN: {C.CLOSED, C.ARCHIVED},
    C.CLOSED: {C.OPEN, C.ARCHIVED},
    C.ARCHIVED: set(),
}

DISPUTE_TRANSITIONS = {
    D.OPEN: {D.IN_REVIEW, D.RESOLVED, D.REJECTED},
    D.IN_REVIEW: {D.RESOLVED, D.REJECTED},
    D.RESOLVED: set(),
    D.REJECTED: set(),
}

SHIPMENT_TRANSITIONS = {
    S.NOT_REQUESTED: {S.WAITING_ADDRESS},
    S.WAITING_ADDRESS: {S.ADDRESS_RECEIVED, S.ISSUE},
    S.ADDRESS_RECEIVED: {S.SHIPPED, S.ISSUE},
    S.SHIPPED: {S.DELIVERED, S.ISSUE},
    S.DELIVERED: set(),
    S.ISSUE: {S.SHIPPED, S.DELIVERED},
}

PAYMENT_TRANSITIONS = {
    P.PENDING: {P.APPROVED_FOR_PAYMENT, P.PAID, P.FAILED},
    P.APPROVED_FOR_PAYMENT: {P.PAID, P.FAILED},
    P.PAID: set(),
    P.FAILED: {P.PENDING},
}

# entity name -> (status enum, transition table)
TRANSITIONS: Dict[str, tuple] = {
    "task": (TaskStatusDB, TASK_TRANSITIONS),
    "application": (ApplicationStatusDB, APPLICATION_TRANSITIONS),
    "campaign": (CampaignStatusDB, CAMPAIGN_TRANSITIONS),
    "dispute": (DisputeStatusDB, DISPUTE_TRANSITIONS),
    "shipment_request": (ShipmentStatusDB, SHIPMENT_TRANSITIONS),
    "payment": (PaymentStatusDB, PAYMENT_TRANSITIONS),
}


def allowed_targets(entity: str, current) -> FrozenSet[Enum]:
    enum_cls, table = TRANSITIONS[entity]
    return frozenset(table.get(enum_cls(_value(current)), set()))


def can_transition(entity: str, current, target) -> bool:
    enum_cls: Type[Enum] = TRANSITIONS[entity][0]
    try:
        target_status = enum_cls(_value(target))
    except ValueError:
        return False
    return target_status in allowed_targets(entity, current)


def ensure_transition(entity: str, current, target):
    """Return the target status as an enum member, or raise InvalidTransition."""
    if not can_transition(entity, current, target):
        raise InvalidTransition(entity, current, target)
    return TRANSITIONS[entity][0](_value(target))
