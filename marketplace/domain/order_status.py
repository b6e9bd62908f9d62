# marketplace/domain/order_status.py
"""Order lifecycle. Orders are created as PENDING, admins move them forward."""
from typing import Dict, Set

from marketplace.domain.exceptions import InvalidStatusTransition

PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"
ON_THE_WAY = "ontheway"
FINISHED = "finished"

VALID_TRANSITIONS: Dict[str, Set[str]] = {
    PENDING: {ACCEPTED, REJECTED},
    ACCEPTED: {ON_THE_WAY},
    ON_THE_WAY: {FINISHED},
    REJECTED: set(),
    FINISHED: set(),
}


def check_transition(current: str, new: str) -> None:
    if new not in VALID_TRANSITIONS:
        raise InvalidStatusTransition(f"Invalid order status: {new}")

    if new not in VALID_TRANSITIONS.get(current, set()):
        raise InvalidStatusTransition(
            f"Cannot change order status from {current} to {new}"
        )
