"""
test_pricing.py - line item pricing.

Covers markup variants, labor cost basis and cushion, the discount floor,
markup mode switching and the display margin.
"""
from decimal import Decimal

import pytest

from costbook.core.exceptions import LineItemValidationError
from costbook.models.line_item import LineItem, LineItemCategory, PercentMarkup, AmountMarkup
from costbook.services.pricing_service import PricingService, pricing_service, percent_of


class TestMarkupVariants:

    def test_percent_markup(self, make_item):
        item = make_item(quantity="2", cost="100", percent="20")
        assert item.price_per_unit == Decimal("120")
        assert item.total == Decimal("240")
        assert item.total_cost == Decimal("200")
        assert item.total_markup == Decimal("40")

    def test_amount_markup(self, make_item):
        item = make_item(quantity="3", cost="100", amount="15")
        assert item.price_per_unit == Decimal("115")
        assert item.total == Decimal("345")
        assert item.total_markup == Decimal("45")

    def test_no_markup_prices_at_cost(self, make_item):
        item = make_item(quantity="4", cost="12.5")
        assert item.price_per_unit == Decimal("12.5")
        assert item.total_markup == 0

    def test_totals_follow_quantity_and_price(self, make_item):
        item = make_item(quantity="7", cost="3.33", percent="12.5")
        assert item.total == item.quantity * item.price_per_unit
        assert item.total_markup == item.total - item.total_cost

    def test_only_one_legacy_markup_view_is_set(self, make_item):
        percent = make_item(cost="10", percent="5")
        amount = make_item(cost="10", amount="5")
        assert percent.markup_percent == Decimal("5") and percent.markup_amount is None
        assert amount.markup_amount == Decimal("5") and amount.markup_percent is None

    def test_input_is_not_mutated(self):
        item = LineItem(quantity=Decimal("1"), cost_per_unit=Decimal("10"), markup=PercentMarkup(value=Decimal("50")))
        pricing_service.price_line_item(item)
        assert item.price_per_unit == 0


class TestInternalLabor:

    def test_billing_rate_becomes_cost_basis(self, make_item):
        item = make_item(
            category=LineItemCategory.LABOR_INTERNAL,
            quantity="16",
            cost="0",
            labor_hours=Decimal("16"),
            billing_rate_per_hour=Decimal("75"),
            actual_cost_rate_per_hour=Decimal("45"),
        )
        assert item.cost_per_unit == Decimal("75")
        assert item.price_per_unit == Decimal("75")
        assert item.labor_cushion_amount == Decimal("480")

    def test_markup_applies_to_billing_rate(self, make_item):
        item = make_item(
            category=LineItemCategory.LABOR_INTERNAL,
            quantity="10",
            percent="10",
            labor_hours=Decimal("10"),
            billing_rate_per_hour=Decimal("50"),
            actual_cost_rate_per_hour=Decimal("30"),
        )
        assert item.price_per_unit == Decimal("55")
        assert item.total == Decimal("550")

    def test_cushion_zero_when_a_rate_is_missing(self, make_item):
        item = make_item(
            category=LineItemCategory.LABOR_INTERNAL,
            quantity="8",
            cost="40",
            labor_hours=Decimal("8"),
            billing_rate_per_hour=Decimal("60"),
        )
        assert item.labor_cushion_amount == 0
        assert item.cost_per_unit == Decimal("40")

    def test_rates_ignored_outside_internal_labor(self, make_item):
        item = make_item(
            category=LineItemCategory.SUBCONTRACTORS,
            cost="40",
            billing_rate_per_hour=Decimal("60"),
            actual_cost_rate_per_hour=Decimal("30"),
        )
        assert item.cost_per_unit == Decimal("40")
        assert item.labor_cushion_amount == 0


class TestValidation:

    def test_negative_markup_allowed_above_floor(self, make_item):
        item = make_item(cost="100", percent="-10")
        assert item.price_per_unit == Decimal("90")

    def test_markup_below_floor_rejected(self):
        service = PricingService(min_markup_percent=Decimal("-50"))
        item = LineItem(quantity=Decimal("1"), cost_per_unit=Decimal("10"), markup=PercentMarkup(value=Decimal("-60")))
        with pytest.raises(LineItemValidationError):
            service.price_line_item(item)

    def test_negative_quantity_rejected(self):
        item = LineItem(quantity=Decimal("-1"), cost_per_unit=Decimal("10"))
        with pytest.raises(LineItemValidationError):
            pricing_service.price_line_item(item)

    def test_negative_cost_rejected(self):
        item = LineItem(quantity=Decimal("1"), cost_per_unit=Decimal("-10"))
        with pytest.raises(LineItemValidationError):
            pricing_service.price_line_item(item)


class TestMarkupModeSwitch:

    def test_percent_to_amount_keeps_price(self, make_item):
        item = make_item(cost="80", percent="25")
        switched = pricing_service.switch_markup_mode(item, "amount")
        assert isinstance(switched.markup, AmountMarkup)
        assert switched.markup.value == Decimal("20")
        assert switched.price_per_unit == item.price_per_unit
        assert switched.markup_percent is None

    def test_round_trip_restores_price(self, make_item):
        item = make_item(cost="80", percent="25")
        there = pricing_service.switch_markup_mode(item, "amount")
        back = pricing_service.switch_markup_mode(there, "percent")
        assert isinstance(back.markup, PercentMarkup)
        assert back.markup.value == Decimal("25")
        assert back.price_per_unit == item.price_per_unit

    def test_amount_to_percent_with_zero_cost(self, make_item):
        item = make_item(cost="0", amount="10")
        switched = pricing_service.switch_markup_mode(item, "percent")
        assert switched.markup.value == 0

    def test_unknown_mode_rejected(self, make_item):
        with pytest.raises(LineItemValidationError):
            pricing_service.switch_markup_mode(make_item(cost="1"), "ratio")


class TestMargins:

    def test_display_margin(self):
        assert pricing_service.margin_percent(Decimal("125"), Decimal("100")) == Decimal("20")

    def test_display_margin_zero_price(self):
        assert pricing_service.margin_percent(Decimal("0"), Decimal("100")) == 0

    def test_percent_of_never_divides_by_zero(self):
        assert percent_of(Decimal("5"), Decimal("0")) == 0
        assert percent_of(Decimal("5"), Decimal("-2")) == 0

    def test_negative_markup_items_found(self, make_item):
        below = make_item(cost="100", percent="-5", description="Discounted tile")
        normal = make_item(cost="100", percent="5")
        assert pricing_service.find_negative_markup_items([below, normal]) == [below]
