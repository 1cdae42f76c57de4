"""Admin order list filtering.

``OrderFilter`` turns an ``OrderListQueryDTO`` into a queryset filter.
``apply_without_status`` is used for the per-status counters, which
share every filter except the status / tab selection.
"""

from __future__ import annotations

from typing import Any, Dict

import django_filters
from django.db.models import Q, QuerySet

from modules.orders.constants import FulfillmentMethod, OrderStatus
from modules.orders.dtos import OrderListQueryDTO
from modules.orders.models import Order

SEARCH_FIELDS = (
    "id",
    "customer_email",
    "customer_first_name",
    "customer_last_name",
    "customer_phone",
)


class OrderFilter(django_filters.FilterSet):
    status = django_filters.MultipleChoiceFilter(
        field_name="status", choices=OrderStatus.choices
    )
    fulfillment = django_filters.ChoiceFilter(
        field_name="fulfillment_method", choices=FulfillmentMethod.choices
    )
    search = django_filters.CharFilter(method="filter_search")
    date_from = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    date_to = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")

    class Meta:
        model = Order
        fields = ["status", "fulfillment", "search", "date_from", "date_to"]

    def filter_search(self, queryset: QuerySet, name: str, value: str) -> QuerySet:
        """Case-insensitive substring match on id and customer fields."""
        condition = Q()
        for field_name in SEARCH_FIELDS:
            condition |= Q(**{f"{field_name}__icontains": value})
        return queryset.filter(condition)

    @staticmethod
    def data_from_query(query: OrderListQueryDTO, include_status: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if include_status and query.status_filter:
            data["status"] = list(query.status_filter)
        if query.fulfillment:
            data["fulfillment"] = query.fulfillment.value
        if query.search:
            data["search"] = query.search
        if query.date_from:
            data["date_from"] = query.date_from.isoformat()
        if query.date_to:
            data["date_to"] = query.date_to.isoformat()
        return data

    @classmethod
    def apply(cls, query: OrderListQueryDTO, queryset: QuerySet) -> QuerySet:
        return cls(cls.data_from_query(query), queryset=queryset).qs

    @classmethod
    def apply_without_status(cls, query: OrderListQueryDTO, queryset: QuerySet) -> QuerySet:
        return cls(cls.data_from_query(query, include_status=False), queryset=queryset).qs
