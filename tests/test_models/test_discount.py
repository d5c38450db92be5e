"""
折扣码数据模型测试
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from app.models.cart import LineItem
from app.models.discount import DiscountCreate, DiscountRecord, DiscountType, DiscountValidationRequest


class TestDiscountRecord:

    def test_code_normalized_to_uppercase(self, discount_factory):
        assert discount_factory(code=" flat100 ").code == "FLAT100"

    def test_naive_datetimes_treated_as_utc(self, discount_factory):
        record = discount_factory(valid_until=datetime(2030, 1, 1))
        assert record.valid_until == datetime(2030, 1, 1, tzinfo=timezone.utc)

    def test_availability_window(self, discount_factory, now):
        record = discount_factory()

        assert record.is_available(now) is True
        assert record.is_available(record.valid_until + timedelta(seconds=1)) is False
        assert record.is_available(record.valid_from - timedelta(seconds=1)) is False
        assert discount_factory(is_active=False).is_available(now) is False

    def test_usage_exhausted(self, discount_factory):
        assert discount_factory(usage_limit=None, usage_count=1000).is_usage_exhausted() is False
        assert discount_factory(usage_limit=3, usage_count=2).is_usage_exhausted() is False
        assert discount_factory(usage_limit=3, usage_count=3).is_usage_exhausted() is True

    def test_applies_to_categories(self, discount_factory):
        assert discount_factory(applicable_categories=["All"]).applies_to([]) is True
        assert discount_factory(applicable_categories=["Drinks"]).applies_to(["Drinks", "Starters"]) is True
        assert discount_factory(applicable_categories=["Drinks"]).applies_to(["Starters"]) is False

    def test_json_dump_uses_camel_case_and_numbers(self, discount_factory):
        data = discount_factory().model_dump(mode="json", by_alias=True)

        assert data["minOrderValue"] == 20.0
        assert data["maxDiscount"] == 100.0
        assert data["applicableCategories"] == ["All"]
        assert data["type"] == "PERCENTAGE"

    def test_python_dump_round_trips(self, discount_factory):
        record = discount_factory()
        assert DiscountRecord.model_validate(record.model_dump()) == record


class TestDiscountCreate:

    @pytest.fixture
    def window(self, now):
        return {"valid_from": now, "valid_until": now + timedelta(days=7)}

    def test_defaults(self, window):
        payload = DiscountCreate(code="new10", type=DiscountType.FIXED, value=Decimal("10"), **window)

        assert payload.code == "NEW10"
        assert payload.applicable_categories == ["All"]
        assert payload.is_active is True

    def test_empty_categories_mean_all(self, window):
        payload = DiscountCreate(
            code="NEW10", type=DiscountType.FIXED, value=Decimal("10"), applicable_categories=[], **window
        )
        assert payload.applicable_categories == ["All"]

    @pytest.mark.parametrize("discount_type, value", [
        (DiscountType.PERCENTAGE, Decimal("0")),
        (DiscountType.PERCENTAGE, Decimal("100.5")),
        (DiscountType.FIXED, Decimal("0")),
    ])
    def test_invalid_values(self, window, discount_type, value):
        with pytest.raises(ValidationError):
            DiscountCreate(code="BAD", type=discount_type, value=value, **window)

    def test_window_must_be_ordered(self, now):
        with pytest.raises(ValidationError):
            DiscountCreate(
                code="BAD", type=DiscountType.FIXED, value=Decimal("10"),
                valid_from=now, valid_until=now - timedelta(days=1)
            )

    def test_blank_code(self, window):
        with pytest.raises(ValidationError):
            DiscountCreate(code="   ", type=DiscountType.FIXED, value=Decimal("10"), **window)

    def test_accepts_camel_case_payload(self):
        payload = DiscountCreate.model_validate({
            "code": "bogo",
            "type": "BOGO",
            "value": 1,
            "validUntil": "2030-01-01T00:00:00Z",
            "applicableCategories": ["Pizza"],
        })

        assert payload.type == DiscountType.BOGO
        assert payload.applicable_categories == ["Pizza"]


class TestRequests:

    def test_validation_request_from_json(self):
        request = DiscountValidationRequest.model_validate(
            {"code": "welcome50", "cartTotal": 300, "categories": ["Main Course"]}
        )

        assert request.cart_total == Decimal("300")
        assert request.categories == ["Main Course"]

    def test_line_item_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            LineItem(id="x", price=Decimal("10"), quantity=0, category="Drinks")

    def test_line_item_price_not_negative(self):
        with pytest.raises(ValidationError):
            LineItem(id="x", price=Decimal("-1"), quantity=1, category="Drinks")
