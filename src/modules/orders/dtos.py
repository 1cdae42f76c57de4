"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``OrderItemDTO``: a line item snapshot (price in cents).
- ``CustomerInfoDTO`` / ``ShippingAddressDTO``: checkout snapshots.
- ``CreateOrderDTO``: input for order creation with precomputed totals.
- ``CheckoutDTO``: cart + payment token, totals computed server-side.
- ``BulkStatusChangeDTO``: bulk transition request (at most 50 ids).
- ``OrderListQueryDTO``: admin list / export filters, sort and page.
"""

from __future__ import annotations

from datetime import date
from typing import Any, List, Literal, Mapping, Optional, Self, Tuple

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from modules.core.pagination import (
    DEFAULT_PAGE_SIZE,
    clamp_page,
    clamp_page_size,
    parse_positive_int,
)
from modules.orders.constants import (
    DEFAULT_SORT_FIELD,
    MAX_BULK_SIZE,
    SORT_FIELDS,
    STATUS_TABS,
    FulfillmentMethod,
    OrderStatus,
)

# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


class OrderItemDTO(BaseModel):
    """Immutable line item.

    ``unit_price`` is in cents and is captured from the catalog at
    checkout; ``weight_oz`` is the catalog weight, if the product has one.
    """

    model_config = ConfigDict(frozen=True)

    product_id: str
    name: str
    variation: str = ""
    quantity: int
    unit_price: int = Field(ge=0)
    weight_oz: Optional[float] = None

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CustomerInfoDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: EmailStr
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone: str = ""


class ShippingAddressDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    full_name: str
    address_line1: str
    address_line2: str = ""
    city: str
    state: str
    postal_code: str
    country: str = "US"


def _check_address_matches_fulfillment(
    fulfillment_method: str, shipping_address: Optional[ShippingAddressDTO]
) -> None:
    if fulfillment_method == FulfillmentMethod.SHIPPING and shipping_address is None:
        raise ValueError("A shipping address is required for shipping orders.")
    if fulfillment_method == FulfillmentMethod.PICKUP and shipping_address is not None:
        raise ValueError("Pickup orders must not carry a shipping address.")


def _items_must_not_be_empty(items: List[OrderItemDTO]) -> List[OrderItemDTO]:
    if not items:
        raise ValueError("Order must have at least one item.")
    return items


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation.

    Validates:
    - ``items`` must contain at least one item.
    - ``total == subtotal + shipping_cost + tax``.
    - ``shipping_address`` is present iff the order ships.
    """

    model_config = ConfigDict(frozen=True)

    items: List[OrderItemDTO]
    customer: CustomerInfoDTO
    fulfillment_method: FulfillmentMethod
    shipping_address: Optional[ShippingAddressDTO] = None
    subtotal: int = Field(ge=0)
    shipping_cost: int = Field(ge=0)
    tax: int = Field(ge=0)
    total: int = Field(ge=0)
    payment_id: str = Field(min_length=1)

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(cls, v: List[OrderItemDTO]) -> List[OrderItemDTO]:
        return _items_must_not_be_empty(v)

    @model_validator(mode="after")
    def validate_totals_and_address(self) -> Self:
        if self.total != self.subtotal + self.shipping_cost + self.tax:
            raise ValueError("Total must equal subtotal + shipping cost + tax.")
        _check_address_matches_fulfillment(
            self.fulfillment_method, self.shipping_address
        )
        return self


class CheckoutDTO(BaseModel):
    """Cart submitted by the storefront; totals are computed server-side."""

    model_config = ConfigDict(frozen=True)

    items: List[OrderItemDTO]
    customer: CustomerInfoDTO
    fulfillment_method: FulfillmentMethod
    shipping_address: Optional[ShippingAddressDTO] = None
    source_token: str = Field(min_length=1)

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(cls, v: List[OrderItemDTO]) -> List[OrderItemDTO]:
        return _items_must_not_be_empty(v)

    @model_validator(mode="after")
    def validate_address(self) -> Self:
        _check_address_matches_fulfillment(
            self.fulfillment_method, self.shipping_address
        )
        return self


class BulkStatusChangeDTO(BaseModel):
    """Bulk transition request.

    Oversized batches are rejected here, before any order is touched.
    """

    model_config = ConfigDict(frozen=True)

    order_ids: List[str] = Field(min_length=1, max_length=MAX_BULK_SIZE)
    status: OrderStatus
    note: Optional[str] = None

    @field_validator("order_ids")
    @classmethod
    def ids_must_not_be_blank(cls, v: List[str]) -> List[str]:
        ids = [order_id.strip() for order_id in v]
        if any(not order_id for order_id in ids):
            raise ValueError("Order ids must not be blank.")
        return ids


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

TabName = Literal["active", "archived", "completed"]
SortField = Literal["createdAt", "updatedAt", "total", "status"]


def _split_csv(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


class OrderListQueryDTO(BaseModel):
    """Filters, sort and page for the admin order list and CSV export.

    An explicit ``statuses`` filter takes precedence over ``tab``.
    """

    model_config = ConfigDict(frozen=True)

    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    statuses: Tuple[OrderStatus, ...] = ()
    tab: Optional[TabName] = None
    fulfillment: Optional[FulfillmentMethod] = None
    search: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    sort_by: SortField = DEFAULT_SORT_FIELD
    sort_order: Literal["asc", "desc"] = "desc"

    @field_validator("page")
    @classmethod
    def clamp_page_number(cls, v: int) -> int:
        return clamp_page(v)

    @field_validator("page_size")
    @classmethod
    def clamp_size(cls, v: int) -> int:
        return clamp_page_size(v)

    @field_validator("sort_by", mode="before")
    @classmethod
    def unknown_sort_falls_back(cls, v: Any) -> Any:
        return v if v in SORT_FIELDS else DEFAULT_SORT_FIELD

    @field_validator("sort_order", mode="before")
    @classmethod
    def normalize_sort_order(cls, v: Any) -> Any:
        return "asc" if str(v).lower() == "asc" else "desc"

    @model_validator(mode="after")
    def validate_date_range(self) -> Self:
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("dateFrom must not be after dateTo.")
        return self

    @property
    def status_filter(self) -> Tuple[str, ...]:
        """Statuses selected by ``statuses`` or, failing that, by ``tab``."""
        if self.statuses:
            return tuple(status.value for status in self.statuses)
        if self.tab:
            return tuple(sorted(STATUS_TABS[self.tab]))
        return ()

    @classmethod
    def from_query_params(cls, params: Mapping[str, Any]) -> OrderListQueryDTO:
        """Build from admin query-string names (``pageSize``, ``dateFrom``...).

        Page numbers parse leniently; malformed statuses, tabs, fulfillment
        methods and dates raise ``pydantic.ValidationError``.
        """
        return cls(
            page=parse_positive_int(params.get("page"), 1),
            page_size=parse_positive_int(params.get("pageSize"), DEFAULT_PAGE_SIZE),
            statuses=_split_csv(params.get("status")),
            tab=params.get("tab") or None,
            fulfillment=params.get("fulfillment") or None,
            search=(params.get("search") or "").strip() or None,
            date_from=params.get("dateFrom") or None,
            date_to=params.get("dateTo") or None,
            sort_by=params.get("sortBy") or DEFAULT_SORT_FIELD,
            sort_order=params.get("sortOrder") or "desc",
        )
