"""Tests for markup policy resolution and per-line markup."""

from collections.abc import Callable
from datetime import date
from decimal import Decimal

import pytest

from quote_engine.adapters.data_access import CalculationDataAccess
from quote_engine.calculation.context import CalculationContext
from quote_engine.calculation.markup import (
    MarkupPolicy,
    discount_markup_reduction,
    resolve_markup_policy,
    validate_markup_configuration,
)
from quote_engine.calculation.types import ComponentCost, DiscountApplication
from quote_engine.errors import BlockingValidationError, CalculationError, CalculationErrorCode
from quote_engine.models.common import LineItemType, PricingMode
from quote_engine.models.reference import Discount, MarkupConfiguration
from quote_engine.models.store import DataStore


def make_markup(**overrides: object) -> MarkupConfiguration:
    """Helper to create a markup configuration."""
    data: dict[str, object] = {
        "id": "markup-test",
        "scope": "GLOBAL",
        "markup_type": "PERCENTAGE",
        "markup_value": "20",
    }
    data.update(overrides)
    return MarkupConfiguration(**data)


def make_line(line_item_type: LineItemType, cost: str) -> ComponentCost:
    return ComponentCost(
        line_item_type=line_item_type,
        reference_id=line_item_type.value.lower(),
        description=line_item_type.value,
        quantity=1,
        unit_cost=Decimal(cost),
        pricing_mode=PricingMode.PER_BOOKING,
        cost=Decimal(cost),
    )


# Per-line markup


def test_percentage_markup_on_pre_tax_lines() -> None:
    """Test 20% markup on a room line."""
    policy = MarkupPolicy(config=make_markup())

    assert policy.markup_for(LineItemType.ROOM, Decimal("2600")) == Decimal("520")


def test_green_tax_never_marked_up() -> None:
    """Test that government pass-through levies carry no markup."""
    policy = MarkupPolicy(config=make_markup(applies_to_taxes=True))

    assert policy.markup_for(LineItemType.GREEN_TAX, Decimal("48")) == Decimal("0")
    assert policy.markup_for(LineItemType.GST, Decimal("100")) == Decimal("20")


def test_taxes_unmarked_unless_configured() -> None:
    """Test that taxes carry markup only with applies_to_taxes."""
    policy = MarkupPolicy(config=make_markup())

    assert policy.markup_for(LineItemType.SERVICE_CHARGE, Decimal("466")) == Decimal("0")
    assert policy.markup_for(LineItemType.GST, Decimal("820.16")) == Decimal("0")


def test_excluded_components_unmarked() -> None:
    """Test that excluded component types pass through at cost."""
    policy = MarkupPolicy(config=make_markup(excluded_components=["TRANSFER"]))

    assert policy.markup_for(LineItemType.TRANSFER, Decimal("1100")) == Decimal("0")
    assert policy.markup_for(LineItemType.MEAL_PLAN, Decimal("960")) == Decimal("192")


def test_fixed_markup_on_standalone_line() -> None:
    """Test that FIXED markup is a flat amount on a single eligible line."""
    policy = MarkupPolicy(config=make_markup(markup_type="FIXED", markup_value="50"))

    assert policy.markup_for(LineItemType.ROOM, Decimal("2600")) == Decimal("50")
    assert policy.markup_for(LineItemType.ACTIVITY, Decimal("10")) == Decimal("50")


def test_fixed_markup_charged_once_per_category() -> None:
    """Test that FIXED markup lands on the first costed line of each category."""
    config = make_markup(
        markup_type="FIXED", markup_value="100", excluded_components=["TRANSFER"]
    )
    policy = MarkupPolicy(config=config)
    lines = [
        (LineItemType.ROOM, Decimal("650")),
        (LineItemType.ROOM, Decimal("650")),
        (LineItemType.MEAL_PLAN, Decimal("0")),
        (LineItemType.MEAL_PLAN, Decimal("960")),
        (LineItemType.MEAL_PLAN, Decimal("240")),
        (LineItemType.TRANSFER, Decimal("1100")),
        (LineItemType.GREEN_TAX, Decimal("48")),
    ]

    assert policy.allocate(lines) == [
        Decimal("100"),
        Decimal("0"),
        Decimal("0"),
        Decimal("100"),
        Decimal("0"),
        Decimal("0"),
        Decimal("0"),
    ]


def test_percentage_markup_allocated_per_line() -> None:
    policy = MarkupPolicy(config=make_markup())

    assert policy.allocate(
        [(LineItemType.ROOM, Decimal("650")), (LineItemType.ROOM, Decimal("450"))]
    ) == [Decimal("130"), Decimal("90")]


def test_override_zeroes_line_markup() -> None:
    """Test that a quote-level override removes every line-item markup."""
    policy = MarkupPolicy(config=None, override_active=True)

    assert policy.markup_for(LineItemType.ROOM, Decimal("2600")) == Decimal("0")


# Policy resolution


def test_resort_markup_resolved(
    make_context: Callable[..., CalculationContext], catalogue: CalculationDataAccess
) -> None:
    """Test that the resort's own markup is used."""
    ctx = make_context()
    resort = catalogue.get_resort("res-coral")

    policy = resolve_markup_policy(
        ctx, resort, date(2027, 2, 10), override_active=False, scope="leg[0]"
    )

    assert policy.config is not None
    assert policy.config.id == "markup-coral"


def test_override_skips_configuration_lookup(
    make_context: Callable[..., CalculationContext], catalogue: CalculationDataAccess
) -> None:
    """Test that no configuration is needed when an override is present."""
    resort = catalogue.get_resort("res-coral")
    ctx = make_context(store=DataStore(resorts=(resort,)))

    policy = resolve_markup_policy(
        ctx, resort, date(2027, 2, 10), override_active=True, scope="leg[0]"
    )

    assert policy.override_active
    assert policy.config is None


def test_missing_markup_configuration_blocks(
    make_context: Callable[..., CalculationContext], catalogue: CalculationDataAccess
) -> None:
    """Test MARKUP_CONFIG_MISSING when nothing applies."""
    resort = catalogue.get_resort("res-coral")
    ctx = make_context(store=DataStore(resorts=(resort,)))

    with pytest.raises(BlockingValidationError) as exc_info:
        resolve_markup_policy(
            ctx, resort, date(2027, 2, 10), override_active=False, scope="leg[0]"
        )

    assert exc_info.value.items[0].code == "MARKUP_CONFIG_MISSING"
    assert exc_info.value.items[0].scope == "leg[0]"


def test_negative_markup_invalid(make_context: Callable[..., CalculationContext]) -> None:
    """Test that a negative markup value is rejected."""
    ctx = make_context()

    with pytest.raises(CalculationError) as exc_info:
        validate_markup_configuration(ctx, make_markup(markup_value="-5"), scope="leg[0]")

    assert exc_info.value.code == CalculationErrorCode.CALC_MARKUP_INVALID


def test_excessive_percentage_invalid(make_context: Callable[..., CalculationContext]) -> None:
    """Test that percentages above the configured ceiling are rejected."""
    ctx = make_context()

    with pytest.raises(CalculationError):
        validate_markup_configuration(ctx, make_markup(markup_value="1500"), scope="leg[0]")


def test_fixed_markup_currency_mismatch(make_context: Callable[..., CalculationContext]) -> None:
    """Test that a EUR fixed markup cannot be used in a USD quote."""
    ctx = make_context()
    config = make_markup(markup_type="FIXED", markup_value="50", fixed_markup_currency="EUR")

    with pytest.raises(BlockingValidationError) as exc_info:
        validate_markup_configuration(ctx, config, scope="leg[0]")

    assert exc_info.value.items[0].code == "FIXED_MARKUP_CURRENCY_MISMATCH"


# Discount interaction


def test_discount_reduces_markup_proportionally() -> None:
    """Test that a room discount forgoes the markup on the discounted cost."""
    lines = [make_line(LineItemType.ROOM, "3150"), make_line(LineItemType.MEAL_PLAN, "500")]
    markups = [Decimal("630"), Decimal("100")]
    discount = Discount(
        id="d1", code="D1", name="Ten", discount_type="PERCENTAGE", discount_value="10"
    )
    application = DiscountApplication(
        discount=discount,
        base_amount=Decimal("3150"),
        base_composition=(LineItemType.ROOM,),
        excluded_from_base=(),
        amount=Decimal("315"),
    )

    assert discount_markup_reduction(application, lines, markups, False) == Decimal("63")
