"""Order service layer (Use Cases).

Orchestrates the order lifecycle: creation, validated status changes,
tracking numbers, admin notes and the admin list queries.  Every command
is atomic: the order mutation, its audit entry and its outbox event
commit together or not at all.

Business rules enforced:
- Status changes lock the order row (``SELECT FOR UPDATE``) and are
  validated against the locked status by ``validate_transition``.
- Each status-changing command writes exactly one audit entry.
- Rejections are returned as ``OrderResult`` values, never raised.
- Notifications leave through the outbox after commit; a failure to
  schedule or deliver them never affects the committed change.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List, Optional

import structlog
from django.db import DatabaseError, transaction

from modules.core.pagination import clamp_page, clamp_page_size
from modules.core.tasks import publish_outbox_events
from modules.orders.constants import (
    ACTOR_ADMIN,
    ACTOR_SYSTEM,
    AUDIT_DEFAULT_PAGE_SIZE,
    EXPORT_MAX_ROWS,
    AuditAction,
    ErrorCode,
    FulfillmentMethod,
    OrderStatus,
)
from modules.orders.events import OrderCreated, OrderStatusChanged
from modules.orders.results import (
    AuditLogPage,
    BulkFailure,
    BulkStatusResult,
    OrderDetail,
    OrderPage,
    OrderResult,
)
from modules.orders.transitions import common_allowed_transitions, validate_transition

if TYPE_CHECKING:
    from modules.orders.dtos import (
        BulkStatusChangeDTO,
        CreateOrderDTO,
        OrderListQueryDTO,
    )
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

INITIAL_STATUS_NOTE = "Order confirmed and payment received"
BULK_DATABASE_ERROR = "Database error while updating order"


def _clean_note(note: Optional[str]) -> Optional[str]:
    if note is None:
        return None
    return note.strip() or None


def schedule_outbox_publish() -> None:
    """Ask the worker to publish pending outbox events once we commit.

    ``robust=True``: a broker failure is logged by Django and never
    reaches the caller whose transaction already committed.
    """
    transaction.on_commit(publish_outbox_events.delay, robust=True)


class OrderService:
    """Application service for Order use-cases.

    Receives the repository via constructor injection (DIP).
    """

    def __init__(self, order_repository: IOrderRepository) -> None:
        self._order_repo = order_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Persist a paid order in ``confirmed`` status.

        Writes the synthetic initial ``status_change`` audit entry
        (``actor="system"``, no ``from_status``) and an ``OrderCreated``
        outbox event.
        """
        order = self._order_repo.create(dto)
        log = logger.bind(order_id=order.id)

        self._order_repo.add_audit_entry(
            order_id=order.id,
            action=AuditAction.STATUS_CHANGE,
            actor=ACTOR_SYSTEM,
            from_status=None,
            to_status=OrderStatus.CONFIRMED,
            note=INITIAL_STATUS_NOTE,
        )
        order.add_domain_event(OrderCreated(aggregate_id=order.id))
        self._order_repo.save(order, update_fields=["updated_at"])
        schedule_outbox_publish()

        log.info(
            "order.created",
            fulfillment_method=order.fulfillment_method,
            total=order.total,
        )
        return order

    def change_status(
        self,
        order_id: str,
        target_status: str,
        note: Optional[str] = None,
        actor: str = ACTOR_ADMIN,
        action: str = AuditAction.STATUS_CHANGE,
    ) -> OrderResult:
        """Move an order to *target_status* if the transition is allowed.

        The order row is locked before validation, so two concurrent
        changes are serialized and the second one is validated against
        the first one's committed status.
        """
        target_status = str(target_status)
        log = logger.bind(order_id=order_id, target_status=target_status, actor=actor)

        with transaction.atomic():
            order = self._order_repo.get_for_update(order_id)
            if order is None:
                log.info("order.not_found")
                return OrderResult.not_found(order_id)

            verdict = validate_transition(
                order.status, order.fulfillment_method, target_status, note
            )
            if not verdict:
                log.info(
                    "order.transition_rejected",
                    current_status=order.status,
                    error=str(verdict.error),
                )
                return OrderResult(
                    order=order,
                    error=verdict.error,
                    detail=verdict.detail,
                    allowed_transitions=verdict.allowed_transitions,
                )

            previous_status = order.status
            clean_note = _clean_note(note)
            order.status = target_status
            order.add_domain_event(
                OrderStatusChanged(
                    aggregate_id=order.id,
                    from_status=previous_status,
                    to_status=target_status,
                    note=clean_note,
                )
            )
            self._order_repo.save(order, update_fields=["status"])
            self._order_repo.add_audit_entry(
                order_id=order.id,
                action=action,
                actor=actor,
                from_status=previous_status,
                to_status=target_status,
                note=clean_note,
            )
            schedule_outbox_publish()

        log.info("order.status_changed", from_status=previous_status)
        return OrderResult.success(order, previous_status=previous_status)

    def bulk_change_status(
        self, dto: BulkStatusChangeDTO, actor: str = ACTOR_ADMIN
    ) -> BulkStatusResult:
        """Apply one transition to many orders, each in its own transaction.

        A rejected or failing order never blocks or rolls back the others.
        """
        result = BulkStatusResult()
        for order_id in dto.order_ids:
            try:
                outcome = self.change_status(
                    order_id,
                    dto.status,
                    note=dto.note,
                    actor=actor,
                    action=AuditAction.BULK_STATUS_CHANGE,
                )
            except DatabaseError:
                logger.exception("order.bulk_item_failed", order_id=order_id)
                result.failed.append(BulkFailure(order_id, BULK_DATABASE_ERROR))
                continue

            if outcome.ok:
                result.succeeded.append(order_id)
            else:
                result.failed.append(BulkFailure(order_id, outcome.detail))

        logger.info(
            "order.bulk_status_changed",
            target_status=str(dto.status),
            succeeded=len(result.succeeded),
            failed=len(result.failed),
        )
        return result

    @transaction.atomic
    def set_tracking(
        self, order_id: str, tracking_number: str, actor: str = ACTOR_ADMIN
    ) -> OrderResult:
        """Set or correct the tracking number of a shipping order."""
        order = self._order_repo.get_for_update(order_id)
        if order is None:
            return OrderResult.not_found(order_id)

        if order.fulfillment_method != FulfillmentMethod.SHIPPING:
            return OrderResult(
                order=order,
                error=ErrorCode.FULFILLMENT_MISMATCH,
                detail="Tracking numbers can only be set on shipping orders",
            )

        tracking_number = tracking_number.strip()
        previous = order.tracking_number
        order.tracking_number = tracking_number
        self._order_repo.save(order, update_fields=["tracking_number"])

        if previous:
            note = f"Tracking number updated from '{previous}' to '{tracking_number}'"
        else:
            note = f"Tracking number set to '{tracking_number}'"
        self._order_repo.add_audit_entry(
            order_id=order.id,
            action=AuditAction.TRACKING_ADDED,
            actor=actor,
            note=note,
            metadata={"trackingNumber": tracking_number, "previousTracking": previous},
        )

        logger.info("order.tracking_set", order_id=order.id, replaced=bool(previous))
        return OrderResult.success(order)

    @transaction.atomic
    def set_note(self, order_id: str, note: str, actor: str = ACTOR_ADMIN) -> OrderResult:
        """Replace the admin note; the audit log keeps the previous one."""
        order = self._order_repo.get_for_update(order_id)
        if order is None:
            return OrderResult.not_found(order_id)

        note = note.strip()
        previous = order.admin_notes
        order.admin_notes = note
        self._order_repo.save(order, update_fields=["admin_notes"])
        self._order_repo.add_audit_entry(
            order_id=order.id,
            action=AuditAction.NOTE_ADDED,
            actor=actor,
            note=note,
            metadata={"previousNote": previous} if previous else None,
        )

        logger.info("order.note_set", order_id=order.id)
        return OrderResult.success(order)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Optional[Order]:
        return self._order_repo.get_by_id(order_id)

    def list_orders(self, query: OrderListQueryDTO) -> OrderPage:
        """One page of orders plus per-status counters for the same scope."""
        offset = (query.page - 1) * query.page_size
        orders, total = self._order_repo.search(query, offset=offset, limit=query.page_size)
        return OrderPage(
            orders=orders,
            total_count=total,
            status_counts=self._order_repo.status_counts(query),
            page=query.page,
            page_size=query.page_size,
        )

    def export_orders(self, query: OrderListQueryDTO) -> List[Order]:
        """Every order matching *query*, ignoring its page, up to the export cap."""
        orders, total = self._order_repo.search(query, offset=0, limit=EXPORT_MAX_ROWS)
        if total > EXPORT_MAX_ROWS:
            logger.warning("order.export_truncated", total=total, limit=EXPORT_MAX_ROWS)
        return orders

    def get_order_with_audit_log(self, order_id: str) -> Optional[OrderDetail]:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            return None
        entries, _ = self._order_repo.audit_log(order_id)
        return OrderDetail(order=order, audit_log=entries)

    def get_audit_log_page(
        self,
        order_id: str,
        page: int = 1,
        page_size: int = AUDIT_DEFAULT_PAGE_SIZE,
        action: Optional[str] = None,
    ) -> Optional[AuditLogPage]:
        if not self._order_repo.exists(order_id):
            return None
        page = clamp_page(page)
        page_size = clamp_page_size(page_size)
        entries, total = self._order_repo.audit_log(
            order_id,
            action=action,
            offset=(page - 1) * page_size,
            limit=page_size,
        )
        return AuditLogPage(entries=entries, total_count=total, page=page, page_size=page_size)

    def common_allowed_transitions_for(self, order_ids: Iterable[str]) -> List[str]:
        """Targets valid for every existing order among *order_ids*."""
        ids = list(order_ids)
        by_id = {order.id: order for order in self._order_repo.get_many(ids)}
        selected = [by_id[order_id] for order_id in ids if order_id in by_id]
        return common_allowed_transitions(
            (order.status, order.fulfillment_method) for order in selected
        )
