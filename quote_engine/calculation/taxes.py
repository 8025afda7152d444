"""Tax engine: ordered evaluation with cumulative bases."""

from datetime import date
from decimal import Decimal

from quote_engine.calculation.audit_builder import AuditBuilder
from quote_engine.calculation.context import CalculationContext
from quote_engine.calculation.types import GuestCounts, TaxCost
from quote_engine.errors import CalculationError, CalculationErrorCode
from quote_engine.models.audit import AuditStepType
from quote_engine.models.common import TaxCalculationMethod, line_item_type_for_tax
from quote_engine.models.reference import Resort, TaxConfiguration
from quote_engine.utils.arithmetic import HUNDRED, ZERO, percentage_of, safe_add, safe_multiply


def validate_tax_configuration(config: TaxConfiguration) -> list[str]:
    """Return structural problems with a tax configuration."""
    errors: list[str] = []
    if config.rate_value < ZERO:
        errors.append("rate_value must be non-negative")
    if config.calculation_method == TaxCalculationMethod.PERCENTAGE:
        if config.rate_value > HUNDRED:
            errors.append("percentage rate must be at most 100")
    elif config.calculation_method == TaxCalculationMethod.FIXED_PER_PERSON_PER_NIGHT:
        if not config.currency_code:
            errors.append("fixed per-person tax requires currency_code")
    return errors


def count_taxable_guests(config: TaxConfiguration, guests: GuestCounts) -> int:
    """Adults always count; children only if the tax applies to them and they
    are at or above the age threshold."""
    if not config.applies_to_children:
        return guests.adults
    threshold = config.child_age_threshold
    if threshold is None:
        return guests.total_guests
    return guests.adults + sum(1 for c in guests.children if c.age >= threshold)


def calculate_taxes(
    ctx: CalculationContext,
    resort: Resort,
    check_in: date,
    post_discount_subtotal: Decimal,
    guests: GuestCounts,
    nights: int,
    audit: AuditBuilder,
    *,
    leg_index: int = 0,
) -> list[TaxCost]:
    """Evaluate the resort's taxes in ascending calculation_order.

    PERCENTAGE taxes are applied to the post-discount subtotal plus every
    earlier tax flagged is_cumulative_base. `applies_to` is descriptive only.

    Raises:
        CalculationError: CALC_TAX_CONFIG_INVALID when no tax is configured or
            a configuration is invalid
    """
    configs = ctx.data.get_tax_configurations(resort.id, check_in)
    if not configs:
        raise CalculationError(
            CalculationErrorCode.CALC_TAX_CONFIG_INVALID,
            f"No tax configuration for {resort.name} on {check_in.isoformat()}",
            {"resort_id": resort.id, "check_in": check_in.isoformat()},
        )

    results: list[TaxCost] = []
    cumulative_base = post_discount_subtotal

    for config in configs:
        errors = validate_tax_configuration(config)
        if errors:
            raise CalculationError(
                CalculationErrorCode.CALC_TAX_CONFIG_INVALID,
                f"Tax {config.name} is invalid: {'; '.join(errors)}",
                {"tax_configuration_id": config.id},
            )

        guest_nights: int | None = None
        if config.calculation_method == TaxCalculationMethod.PERCENTAGE:
            base = cumulative_base
            cost = percentage_of(base, config.percentage)
        else:
            guest_nights = count_taxable_guests(config, guests) * nights
            base = ctx.convert(config.fixed_amount, config.currency_code or ctx.quote_currency)
            cost = safe_multiply(base, guest_nights)

        results.append(
            TaxCost(
                config=config,
                line_item_type=line_item_type_for_tax(config.tax_type),
                base_amount=base,
                cost=cost,
                guest_nights=guest_nights,
            )
        )
        audit.add_step(
            AuditStepType.TAX_CALCULATION,
            f"{config.name} ({config.calculation_method.value})",
            {
                "tax_configuration_id": config.id,
                "tax_type": config.tax_type,
                "calculation_order": config.calculation_order,
                "rate_value": config.rate_value,
                "base_amount": base,
                "guest_nights": guest_nights,
                "is_cumulative_base": config.is_cumulative_base,
            },
            {"tax_amount": cost},
            cost,
            leg_index=leg_index,
        )

        if config.is_cumulative_base:
            cumulative_base = safe_add(cumulative_base, cost)

    return results
