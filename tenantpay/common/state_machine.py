"""Status transition tables for payments and processing requests."""

from tenantpay.common.errors import InvalidTransition


PAYMENT_TRANSITIONS: dict[str, set[str]] = {
    "PENDING": {"PROCESSING", "FAILED"},
    "PROCESSING": {"COMPLETED", "FAILED"},
    "COMPLETED": {"REFUNDED"},
    "FAILED": set(),
    "REFUNDED": set(),
}

PROCESSING_TRANSITIONS: dict[str, set[str]] = {
    "PENDING": {"IN_PROGRESS"},
    "IN_PROGRESS": {"COMPLETED", "FAILED"},
    "COMPLETED": set(),
    "FAILED": set(),
}


def validate_transition(current: str, new: str, allowed: dict[str, set[str]]) -> None:
    """Raise when a transition is not allowed by the given table."""

    if new not in allowed.get(current, set()):
        raise InvalidTransition(f"Invalid transition: {current} -> {new}")


def is_terminal(status: str, allowed: dict[str, set[str]]) -> bool:
    """True when the table allows no further transition out of `status`."""

    return not allowed.get(status)
