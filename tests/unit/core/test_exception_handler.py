import pytest
from pydantic import ValidationError

from modules.core.exceptions import pydantic_validation_error
from modules.orders.dtos import BulkStatusChangeDTO, OrderListQueryDTO

pytestmark = pytest.mark.unit


def _capture(factory):
    with pytest.raises(ValidationError) as excinfo:
        factory()
    return pydantic_validation_error(excinfo.value)


def test_field_errors_are_keyed_by_location():
    error = _capture(lambda: BulkStatusChangeDTO(order_ids=["OB-1"], status="lost"))

    assert list(error.detail) == ["status"]
    assert error.status_code == 400


def test_nested_locations_are_joined():
    error = _capture(lambda: OrderListQueryDTO(statuses=("processing", "lost")))

    assert "statuses.1" in error.detail


def test_model_level_errors_go_to_non_field_errors():
    error = _capture(
        lambda: OrderListQueryDTO.from_query_params(
            {"dateFrom": "2026-05-02", "dateTo": "2026-05-01"}
        )
    )

    assert list(error.detail) == ["non_field_errors"]
    assert "dateFrom must not be after dateTo" in str(error.detail["non_field_errors"][0])
