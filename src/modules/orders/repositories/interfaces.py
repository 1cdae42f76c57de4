"""Order repository interface.

Extends ``IRepository[Order]`` with the methods the order lifecycle
needs: atomic creation with items, row locking for status changes, the
append-only audit log and the admin list queries.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.dtos import CreateOrderDTO, OrderListQueryDTO
    from modules.orders.models import Order, OrderAuditLog


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children.  Audit entries are
    written through ``add_audit_entry`` only and never changed.
    """

    @abstractmethod
    def create(self, dto: CreateOrderDTO) -> Order:
        """Create an order with its items atomically."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order holding a row-level lock until commit."""

    @abstractmethod
    def exists(self, id: str) -> bool:
        """Whether an order with this id exists."""

    @abstractmethod
    def get_many(self, ids: Iterable[str]) -> List[Order]:
        """Retrieve the existing orders among *ids*."""

    @abstractmethod
    def add_audit_entry(
        self,
        order_id: str,
        action: str,
        actor: str,
        from_status: Optional[str] = None,
        to_status: Optional[str] = None,
        note: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> OrderAuditLog:
        """Append one audit entry."""

    @abstractmethod
    def audit_log(
        self,
        order_id: str,
        action: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Tuple[List[OrderAuditLog], int]:
        """Audit entries of an order, oldest first, and their total count."""

    @abstractmethod
    def search(
        self, query: OrderListQueryDTO, offset: int = 0, limit: Optional[int] = None
    ) -> Tuple[List[Order], int]:
        """Filtered, sorted slice of orders and the total match count."""

    @abstractmethod
    def status_counts(self, query: OrderListQueryDTO) -> Dict[str, int]:
        """Orders per status under every filter of *query* except status / tab."""
