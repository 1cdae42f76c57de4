"""Order API views.

Exposes ``OrderService`` over HTTP with a DRF ViewSet under
``/api/v1/admin/orders/``, plus storefront checkout at
``/api/v1/checkout/``.  Business rejections come back from the service
as result values and are mapped here onto ``404`` / ``422`` responses;
malformed requests are ``400`` through the project exception handler.
"""

from __future__ import annotations

from typing import Any, Dict

from django.http import HttpResponse
from django.utils import timezone
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.views import APIView
from rest_framework.viewsets import ViewSet

from modules.core.exceptions import pydantic_validation_error
from modules.core.pagination import parse_positive_int
from modules.orders.checkout import CheckoutService, build_payment_gateway
from modules.orders.constants import AUDIT_DEFAULT_PAGE_SIZE, ErrorCode
from modules.orders.csv_export import format_orders_as_csv
from modules.orders.dtos import BulkStatusChangeDTO, OrderListQueryDTO
from modules.orders.exceptions import PaymentDeclined
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.results import OrderResult
from modules.orders.serializers import (
    AuditEntrySerializer,
    AuditQuerySerializer,
    BulkStatusChangeSerializer,
    CheckoutSerializer,
    NoteSerializer,
    OrderSerializer,
    OrderSummarySerializer,
    StatusChangeSerializer,
    TrackingSerializer,
)
from modules.orders.services import OrderService

THROTTLE_SCOPES = {
    "list": "order_listing",
    "retrieve": "order_listing",
    "audit": "order_listing",
    "export": "order_export",
    "bulk_status": "order_bulk",
    "bulk_transitions": "order_bulk",
}


def _not_found(order_id: str) -> Response:
    return Response(
        {"error": ErrorCode.NOT_FOUND, "detail": f"Order '{order_id}' not found"},
        status=status.HTTP_404_NOT_FOUND,
    )


def _rejection(result: OrderResult) -> Response:
    """``404`` for unknown orders, ``422`` for business rejections."""
    if result.error == ErrorCode.NOT_FOUND:
        return Response(
            {"error": result.error, "detail": result.detail},
            status=status.HTTP_404_NOT_FOUND,
        )
    return Response(
        {
            "error": result.error,
            "detail": result.detail,
            "allowedTransitions": list(result.allowed_transitions),
        },
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
    )


class OrderViewSet(ViewSet):
    """Admin console endpoints for the order lifecycle.

    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.  Staff only.
    """

    permission_classes = [IsAdminUser]

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(order_repository=OrderDjangoRepository())

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttle scope per action; unlisted actions are not throttled."""
        self.throttle_scope = THROTTLE_SCOPES.get(self.action or "")
        return super().get_throttles()

    def _list_query(self, request: Request) -> OrderListQueryDTO:
        try:
            return OrderListQueryDTO.from_query_params(request.query_params)
        except PydanticValidationError as exc:
            raise pydantic_validation_error(exc) from exc

    # ------------------------------------------------------------------
    # List / Retrieve / Export
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/admin/orders/

        Query: ``page, pageSize, status, fulfillment, search, dateFrom,
        dateTo, sortBy, sortOrder, tab``.
        """
        result = self._service.list_orders(self._list_query(request))
        return Response(
            {
                "data": OrderSummarySerializer(result.orders, many=True).data,
                "pagination": result.pagination.as_dict(),
                "counts": result.status_counts,
            }
        )

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/admin/orders/{pk}/"""
        detail = self._service.get_order_with_audit_log(pk or "")
        if detail is None:
            return _not_found(pk or "")
        return Response(
            {
                "order": OrderSerializer(detail.order).data,
                "auditLog": AuditEntrySerializer(detail.audit_log, many=True).data,
            }
        )

    @action(detail=False, methods=["get"])
    def export(self, request: Request) -> HttpResponse:
        """GET /api/v1/admin/orders/export/ (same filters as the list)."""
        orders = self._service.export_orders(self._list_query(request))
        response = HttpResponse(
            format_orders_as_csv(orders), content_type="text/csv; charset=utf-8"
        )
        filename = f"orders-export-{timezone.now().date().isoformat()}.csv"
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        return response

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/admin/orders/{pk}/status/  ``{status, note?}``"""
        serializer = StatusChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = self._service.change_status(
            pk or "", data["status"], note=data.get("note")
        )
        if not result.ok:
            return _rejection(result)
        return Response(
            {
                "order": OrderSerializer(result.order).data,
                "transition": {"from": result.previous_status, "to": result.order.status},
            }
        )

    @action(detail=False, methods=["post"], url_path="bulk/status")
    def bulk_status(self, request: Request) -> Response:
        """POST /api/v1/admin/orders/bulk/status/  ``{orderIds[], status, note?}``"""
        serializer = BulkStatusChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            dto = BulkStatusChangeDTO(
                order_ids=data["orderIds"], status=data["status"], note=data.get("note")
            )
        except PydanticValidationError as exc:
            raise pydantic_validation_error(exc) from exc

        result = self._service.bulk_change_status(dto)
        return Response(
            {
                "succeeded": result.succeeded,
                "failed": [
                    {"orderId": failure.order_id, "error": failure.error}
                    for failure in result.failed
                ],
            }
        )

    @action(detail=False, methods=["get"], url_path="bulk/transitions")
    def bulk_transitions(self, request: Request) -> Response:
        """GET /api/v1/admin/orders/bulk/transitions/?orderIds=a,b"""
        raw = request.query_params.get("orderIds", "")
        order_ids = [part.strip() for part in raw.split(",") if part.strip()]
        return Response(
            {"allowedTransitions": self._service.common_allowed_transitions_for(order_ids)}
        )

    # ------------------------------------------------------------------
    # Tracking / Notes
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def tracking(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/admin/orders/{pk}/tracking/  ``{trackingNumber}``"""
        serializer = TrackingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self._service.set_tracking(
            pk or "", serializer.validated_data["trackingNumber"]
        )
        if not result.ok:
            return _rejection(result)
        return Response(
            {"orderId": result.order.id, "trackingNumber": result.order.tracking_number}
        )

    @action(detail=True, methods=["post"])
    def notes(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/admin/orders/{pk}/notes/  ``{note}``"""
        serializer = NoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self._service.set_note(pk or "", serializer.validated_data["note"])
        if not result.ok:
            return _rejection(result)
        return Response({"orderId": result.order.id, "adminNotes": result.order.admin_notes})

    # ------------------------------------------------------------------
    # Audit log
    # ------------------------------------------------------------------

    @action(detail=True, methods=["get"])
    def audit(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/admin/orders/{pk}/audit/?page&pageSize&action"""
        query = AuditQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        page = self._service.get_audit_log_page(
            pk or "",
            page=parse_positive_int(request.query_params.get("page"), 1),
            page_size=parse_positive_int(
                request.query_params.get("pageSize"), AUDIT_DEFAULT_PAGE_SIZE
            ),
            action=query.validated_data.get("action"),
        )
        if page is None:
            return _not_found(pk or "")
        body: Dict[str, Any] = {
            "data": AuditEntrySerializer(page.entries, many=True).data,
            "pagination": page.pagination.as_dict(),
        }
        return Response(body)


class CheckoutView(APIView):
    """POST /api/v1/checkout/

    Public storefront endpoint: prices the cart, charges the card through
    the configured payment gateway and records the order.  A declined
    card is ``402`` and leaves no order behind.
    """

    authentication_classes: list = []
    permission_classes = [AllowAny]
    throttle_scope = "checkout"

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._checkout = CheckoutService(
            order_service=OrderService(order_repository=OrderDjangoRepository()),
            payment_gateway=build_payment_gateway(),
        )

    def post(self, request: Request) -> Response:
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            dto = serializer.to_dto()
        except PydanticValidationError as exc:
            raise pydantic_validation_error(exc) from exc

        try:
            order = self._checkout.place_order(dto)
        except PaymentDeclined as exc:
            return Response(
                {"error": ErrorCode.PAYMENT_DECLINED, "detail": str(exc)},
                status=status.HTTP_402_PAYMENT_REQUIRED,
            )
        return Response(
            {"orderId": order.id, "paymentId": order.payment_id, "total": order.total},
            status=status.HTTP_201_CREATED,
        )
