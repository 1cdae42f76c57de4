"""Order status transition rules.

Pure functions, no database access.  Three independent checks decide
whether an order may move to a target status:

1. topology: the target is adjacent to the current status
   (``VALID_TRANSITIONS``) and the current status is not terminal;
2. fulfillment: ``ready`` only for pickup orders, ``shipped`` only for
   shipping orders;
3. payload: ``on_hold`` and ``cancelled`` need a non-blank note.

``allowed_transitions`` applies checks 1 and 2 only, which is what the
admin console needs to decide which actions to offer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from modules.orders.constants import (
    FULFILLMENT_ONLY_STATES,
    NOTE_REQUIRED_STATES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    ErrorCode,
    OrderStatus,
)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of ``validate_transition``.

    ``allowed_transitions`` is always the fulfillment-filtered adjacency
    list of the current status, so a rejected caller can self-correct.
    """

    valid: bool
    error: Optional[ErrorCode] = None
    detail: str = ""
    allowed_transitions: Tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return self.valid


def is_terminal_status(status: str) -> bool:
    return status in TERMINAL_STATES


def is_note_required(status: str) -> bool:
    return status in NOTE_REQUIRED_STATES


def _fulfillment_allows(target_status: str, fulfillment_method: str) -> bool:
    required = FULFILLMENT_ONLY_STATES.get(target_status)
    return required is None or required == fulfillment_method


def allowed_transitions(current_status: str, fulfillment_method: str) -> Tuple[str, ...]:
    """Statuses reachable from *current_status* for this fulfillment method."""
    return tuple(
        OrderStatus(status).value
        for status in VALID_TRANSITIONS.get(current_status, ())
        if _fulfillment_allows(status, fulfillment_method)
    )


def validate_transition(
    current_status: str,
    fulfillment_method: str,
    target_status: str,
    note: Optional[str] = None,
) -> TransitionResult:
    """Decide whether an order may move from *current_status* to *target_status*."""
    if is_terminal_status(current_status):
        return TransitionResult(
            valid=False,
            error=ErrorCode.INVALID_TRANSITION,
            detail=f"Cannot transition from terminal status '{current_status}'",
            allowed_transitions=(),
        )

    allowed = allowed_transitions(current_status, fulfillment_method)

    if target_status not in VALID_TRANSITIONS.get(current_status, ()):
        return TransitionResult(
            valid=False,
            error=ErrorCode.INVALID_TRANSITION,
            detail=f"Cannot transition from '{current_status}' to '{target_status}'",
            allowed_transitions=allowed,
        )

    if not _fulfillment_allows(target_status, fulfillment_method):
        required = FULFILLMENT_ONLY_STATES[target_status]
        return TransitionResult(
            valid=False,
            error=ErrorCode.FULFILLMENT_MISMATCH,
            detail=f"'{target_status}' status is only for {required} orders",
            allowed_transitions=allowed,
        )

    if is_note_required(target_status) and not (note or "").strip():
        return TransitionResult(
            valid=False,
            error=ErrorCode.NOTE_REQUIRED,
            detail=f"A note is required when transitioning to '{target_status}'",
            allowed_transitions=allowed,
        )

    return TransitionResult(valid=True, allowed_transitions=allowed)


def common_allowed_transitions(
    orders: Iterable[Tuple[str, str]],
) -> List[str]:
    """Targets valid for every ``(status, fulfillment_method)`` pair at once.

    Intersects ``allowed_transitions`` pairwise, keeping the order of the
    first pair's list.  An empty selection has no common targets.
    """
    common: Optional[List[str]] = None
    for status, fulfillment_method in orders:
        allowed = allowed_transitions(status, fulfillment_method)
        if common is None:
            common = list(allowed)
        else:
            common = [target for target in common if target in allowed]
        if not common:
            break
    return common or []
