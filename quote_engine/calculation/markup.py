"""Markup engine: per-line markup with pass-through exceptions."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from quote_engine.calculation.context import CalculationContext
from quote_engine.calculation.discounts import line_in_base
from quote_engine.calculation.types import DiscountApplication, PreTaxLine
from quote_engine.errors import (
    BlockingCode,
    BlockingValidationError,
    CalculationError,
    CalculationErrorCode,
)
from quote_engine.models.common import (
    LineItemType,
    MarkupType,
    is_government_pass_through,
    is_tax_line_item,
)
from quote_engine.models.reference import MarkupConfiguration, Resort
from quote_engine.models.validation import blocking
from quote_engine.utils.arithmetic import ZERO, percentage_of, safe_divide, safe_multiply, safe_sum


@dataclass(frozen=True)
class MarkupPolicy:
    """Markup rules in force for one leg (or inter-resort transfer)."""

    config: MarkupConfiguration | None
    override_active: bool = False

    def applies_to(self, line_item_type: LineItemType) -> bool:
        """Whether a line of this type carries markup at all."""
        if self.override_active or self.config is None:
            return False
        if is_government_pass_through(line_item_type):
            return False
        if is_tax_line_item(line_item_type) and not self.config.applies_to_taxes:
            return False
        return line_item_type.value not in self.config.excluded_components

    def markup_for(self, line_item_type: LineItemType, cost: Decimal) -> Decimal:
        """Markup for a single standalone line, such as an inter-resort transfer."""
        if not self.applies_to(line_item_type):
            return ZERO
        config = self.config
        if config.markup_type == MarkupType.PERCENTAGE:
            return percentage_of(cost, config.percentage)
        return config.fixed_amount

    def allocate(self, lines: Sequence[tuple[LineItemType, Decimal]]) -> list[Decimal]:
        """Markup for each of a leg's lines, given as (line item type, cost) pairs.

        PERCENTAGE markup is computed line by line. FIXED markup is charged once
        per line item category with a non-zero cost, on the first costed line of
        that category, so it does not depend on how a category is split into
        nights, guests or age bands.
        """
        config = self.config
        if config is None or config.markup_type == MarkupType.PERCENTAGE:
            return [self.markup_for(line_item_type, cost) for line_item_type, cost in lines]
        charged: set[LineItemType] = set()
        markups: list[Decimal] = []
        for line_item_type, cost in lines:
            if line_item_type in charged or cost == ZERO or not self.applies_to(line_item_type):
                markups.append(ZERO)
                continue
            charged.add(line_item_type)
            markups.append(config.fixed_amount)
        return markups


def validate_markup_configuration(
    ctx: CalculationContext, config: MarkupConfiguration, *, scope: str
) -> None:
    """Reject structurally invalid configurations.

    Raises:
        CalculationError: CALC_MARKUP_INVALID
        BlockingValidationError: FIXED_MARKUP_CURRENCY_MISMATCH
    """
    if config.markup_value < ZERO:
        raise CalculationError(
            CalculationErrorCode.CALC_MARKUP_INVALID,
            f"Markup configuration {config.id} has a negative value",
            {"markup_configuration_id": config.id},
        )
    if (
        config.markup_type == MarkupType.PERCENTAGE
        and config.markup_value > ctx.settings.max_markup_percentage
    ):
        raise CalculationError(
            CalculationErrorCode.CALC_MARKUP_INVALID,
            f"Markup configuration {config.id} exceeds {ctx.settings.max_markup_percentage}%",
            {"markup_configuration_id": config.id},
        )
    if config.markup_type == MarkupType.FIXED and config.fixed_markup_currency not in (
        None,
        ctx.quote_currency,
    ):
        raise BlockingValidationError(
            [
                blocking(
                    BlockingCode.FIXED_MARKUP_CURRENCY_MISMATCH,
                    f"Fixed markup {config.id} is in {config.fixed_markup_currency}, "
                    f"quote is in {ctx.quote_currency}",
                    scope=scope,
                    resolution_hint="Quote in the markup currency or use a percentage markup",
                    markup_configuration_id=config.id,
                )
            ]
        )


def resolve_markup_policy(
    ctx: CalculationContext,
    resort: Resort,
    check_in: date,
    *,
    override_active: bool,
    scope: str,
) -> MarkupPolicy:
    """Find and validate the markup configuration for a resort stay.

    With a quote-level override the line-item configuration is irrelevant.

    Raises:
        BlockingValidationError: MARKUP_CONFIG_MISSING
    """
    if override_active:
        return MarkupPolicy(config=None, override_active=True)
    config = ctx.data.get_markup_configuration(resort, check_in)
    if config is None:
        raise BlockingValidationError(
            [
                blocking(
                    BlockingCode.MARKUP_CONFIG_MISSING,
                    f"No markup configuration for {resort.name}",
                    scope=scope,
                    resolution_hint="Configure a resort or global markup",
                    resort_id=resort.id,
                )
            ]
        )
    validate_markup_configuration(ctx, config, scope=scope)
    return MarkupPolicy(config=config)


def discount_markup_reduction(
    application: DiscountApplication,
    lines: Sequence[PreTaxLine],
    line_markups: Sequence[Decimal],
    include_mandatory_festive: bool,
) -> Decimal:
    """Markup forgone because of a discount.

    The discount's cost reduction scaled by the markup-to-cost ratio of the
    lines in its base, so the reduction keeps sell = cost + markup.
    `line_markups` holds the markup allocated to each of `lines`.
    """
    in_base = [
        (line, markup)
        for line, markup in zip(lines, line_markups)
        if line_in_base(line, application.discount.base_type, include_mandatory_festive)
    ]
    base_cost = safe_sum(line.cost for line, _ in in_base)
    if base_cost == ZERO:
        return ZERO
    base_markup = safe_sum(markup for _, markup in in_base)
    return safe_multiply(application.amount, safe_divide(base_markup, base_cost))
