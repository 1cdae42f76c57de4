"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is placed and paid."""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised after a validated status transition is committed."""

    from_status: Optional[str] = None
    to_status: Optional[str] = None
    note: Optional[str] = None
