"""Result values returned by ``OrderService``.

Business rejections travel in these objects instead of exceptions, so
the API layer maps them onto HTTP responses without ``try`` blocks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from modules.core.pagination import Pagination
from modules.orders.constants import ErrorCode

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderAuditLog


@dataclass(frozen=True)
class OrderResult:
    """Outcome of a single-order command.

    On success ``order`` is the updated order and ``previous_status`` the
    status before the command.  On failure ``error`` and ``detail`` say
    why and ``allowed_transitions`` lists what would have been accepted.
    """

    order: Optional[Order] = None
    error: Optional[ErrorCode] = None
    detail: str = ""
    allowed_transitions: Tuple[str, ...] = ()
    previous_status: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, order: Order, previous_status: Optional[str] = None) -> OrderResult:
        return cls(
            order=order,
            previous_status=previous_status,
            allowed_transitions=tuple(order.allowed_transitions),
        )

    @classmethod
    def not_found(cls, order_id: str) -> OrderResult:
        return cls(error=ErrorCode.NOT_FOUND, detail=f"Order '{order_id}' not found")


@dataclass(frozen=True)
class BulkFailure:
    order_id: str
    error: str


@dataclass(frozen=True)
class BulkStatusResult:
    succeeded: List[str] = field(default_factory=list)
    failed: List[BulkFailure] = field(default_factory=list)


@dataclass(frozen=True)
class OrderPage:
    orders: List[Order]
    total_count: int
    status_counts: Dict[str, int]
    page: int
    page_size: int

    @property
    def pagination(self) -> Pagination:
        return Pagination(self.page, self.page_size, self.total_count)


@dataclass(frozen=True)
class OrderDetail:
    order: Order
    audit_log: List[OrderAuditLog]


@dataclass(frozen=True)
class AuditLogPage:
    entries: List[OrderAuditLog]
    total_count: int
    page: int
    page_size: int

    @property
    def pagination(self) -> Pagination:
        return Pagination(self.page, self.page_size, self.total_count)
