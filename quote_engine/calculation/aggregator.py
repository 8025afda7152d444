"""Quote aggregator - inter-resort transfers and quote-wide totals."""

from collections.abc import Sequence
from decimal import Decimal

from quote_engine.calculation.audit_builder import AuditBuilder
from quote_engine.calculation.context import CalculationContext
from quote_engine.calculation.markup import MarkupPolicy
from quote_engine.errors import CalculationError, CalculationErrorCode
from quote_engine.models.audit import AuditStepType
from quote_engine.models.common import LineItemType, PricingBreakdown
from quote_engine.models.inputs import InterResortTransferInput, QuoteLevelMarkupInput
from quote_engine.models.results import (
    InterResortTransferResult,
    LegCalculationResult,
    QuoteTotals,
    TaxesBreakdown,
)
from quote_engine.utils.arithmetic import ZERO, ratio_as_percentage, safe_add, safe_sum, to_decimal

_BREAKDOWN_FIELD = {
    LineItemType.GREEN_TAX: "green_tax",
    LineItemType.SERVICE_CHARGE: "service_charge",
    LineItemType.GST: "gst",
    LineItemType.VAT: "vat",
    LineItemType.OTHER_TAX: "other",
}


def price_inter_resort_transfers(
    ctx: CalculationContext,
    transfers: Sequence[InterResortTransferInput],
    policies: Sequence[MarkupPolicy],
    audit: AuditBuilder,
) -> list[InterResortTransferResult]:
    """Convert and mark up transfers between legs.

    Leg indices must already be validated against the leg count; each transfer
    is marked up with the destination leg's policy.
    """
    results: list[InterResortTransferResult] = []
    for index, transfer in enumerate(transfers):
        rate = ctx.rate_for(transfer.currency_code)
        cost = ctx.convert(transfer.cost_amount, transfer.currency_code)
        policy = policies[transfer.to_leg_index]
        pricing = PricingBreakdown.of(
            cost, policy.markup_for(LineItemType.INTER_RESORT_TRANSFER, cost)
        )
        audit.add_step(
            AuditStepType.INTER_RESORT_TRANSFER,
            f"Inter-resort transfer: {transfer.description}",
            {
                "from_leg_index": transfer.from_leg_index,
                "to_leg_index": transfer.to_leg_index,
                "original_amount": transfer.cost_amount,
                "original_currency": transfer.currency_code,
                "exchange_rate": rate,
            },
            {
                "cost_amount": pricing.cost_amount,
                "markup_amount": pricing.markup_amount,
                "sell_amount": pricing.sell_amount,
            },
            pricing.sell_amount,
        )
        results.append(
            InterResortTransferResult(
                transfer_index=index,
                from_leg_index=transfer.from_leg_index,
                to_leg_index=transfer.to_leg_index,
                description=transfer.description,
                original_amount=transfer.cost_amount,
                original_currency=transfer.currency_code,
                exchange_rate=rate,
                notes=transfer.notes,
                pricing=pricing,
            )
        )
    return results


def build_taxes_breakdown(legs: Sequence[LegCalculationResult]) -> TaxesBreakdown:
    """Sum tax costs across legs by tax line type."""
    sums: dict[str, Decimal] = {name: ZERO for name in _BREAKDOWN_FIELD.values()}
    for leg in legs:
        for tax in leg.taxes:
            field = _BREAKDOWN_FIELD[tax.line_item_type]
            sums[field] = safe_add(sums[field], tax.pricing.cost_amount)
    return TaxesBreakdown(**sums, total=safe_sum(sums.values()))


def _ensure_non_negative(label: str, amount: Decimal) -> None:
    if amount < ZERO:
        raise CalculationError(
            CalculationErrorCode.CALC_NEGATIVE_FINAL_AMOUNT,
            f"{label} is negative: {amount}",
            {"field": label, "amount": str(amount)},
        )


def aggregate_quote(
    legs: Sequence[LegCalculationResult],
    transfers: Sequence[InterResortTransferResult],
    quote_level_markup: QuoteLevelMarkupInput | None,
    audit: AuditBuilder,
) -> tuple[QuoteTotals, TaxesBreakdown]:
    """Sum legs and transfers into quote totals.

    total_sell is always total_cost + total_markup. A quote-level markup
    replaces all line-item markup, so total_markup equals it exactly.

    Args:
        legs: Priced legs
        transfers: Priced inter-resort transfers
        quote_level_markup: Optional fixed markup override
        audit: Audit accumulator

    Returns:
        (quote totals, taxes breakdown)

    Raises:
        CalculationError: CALC_NEGATIVE_FINAL_AMOUNT if any final amount is negative
    """
    legs_pricing = PricingBreakdown.zero()
    for leg in legs:
        legs_pricing = legs_pricing.plus(leg.totals.pricing)
    transfers_pricing = PricingBreakdown.zero()
    for transfer in transfers:
        transfers_pricing = transfers_pricing.plus(transfer.pricing)

    total_cost = safe_add(legs_pricing.cost_amount, transfers_pricing.cost_amount)
    override: Decimal | None = None
    if quote_level_markup is not None:
        override = to_decimal(quote_level_markup.markup_value)
        total_markup = override
        audit.add_step(
            AuditStepType.QUOTE_LEVEL_MARKUP,
            "Quote-level fixed markup replaces line-item markup",
            {
                "markup_type": quote_level_markup.markup_type,
                "markup_value": override,
                "override_reason": quote_level_markup.override_reason,
                "replaced_line_item_markup": safe_add(
                    legs_pricing.markup_amount, transfers_pricing.markup_amount
                ),
            },
            {"total_markup": total_markup},
            total_markup,
        )
    else:
        total_markup = safe_add(legs_pricing.markup_amount, transfers_pricing.markup_amount)
    total_sell = safe_add(total_cost, total_markup)

    for leg in legs:
        _ensure_non_negative(f"leg[{leg.leg_index}] sell amount", leg.totals.pricing.sell_amount)
    _ensure_non_negative("total cost", total_cost)
    _ensure_non_negative("total sell", total_sell)

    taxes = build_taxes_breakdown(legs)
    totals = QuoteTotals(
        legs_cost=legs_pricing.cost_amount,
        legs_markup=legs_pricing.markup_amount,
        legs_sell=legs_pricing.sell_amount,
        transfers_cost=transfers_pricing.cost_amount,
        transfers_markup=transfers_pricing.markup_amount,
        transfers_sell=transfers_pricing.sell_amount,
        quote_level_markup=override,
        total_cost=total_cost,
        total_markup=total_markup,
        total_sell=total_sell,
        markup_percentage=ratio_as_percentage(total_markup, total_cost),
        margin_percentage=ratio_as_percentage(total_markup, total_sell),
        total_taxes=taxes.total,
        total_discount=safe_sum(leg.totals.total_discount for leg in legs),
    )
    audit.add_step(
        AuditStepType.QUOTE_AGGREGATION,
        f"Quote totals across {len(legs)} leg(s) and {len(transfers)} transfer(s)",
        {
            "legs_sell": totals.legs_sell,
            "transfers_sell": totals.transfers_sell,
            "quote_level_markup": override,
        },
        {
            "total_cost": totals.total_cost,
            "total_markup": totals.total_markup,
            "total_sell": totals.total_sell,
            "markup_percentage": totals.markup_percentage,
            "margin_percentage": totals.margin_percentage,
        },
        totals.total_sell,
    )
    return totals, taxes
