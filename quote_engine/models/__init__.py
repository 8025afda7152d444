"""Models package - re-exports for convenience."""

from quote_engine.models.audit import (
    AuditStep,
    AuditStepType,
    AuditSummary,
    AuditVerification,
    QuoteCalculationAudit,
)
from quote_engine.models.common import (
    DiscountBaseType,
    DiscountType,
    GuestType,
    LineItemType,
    MarkupScope,
    MarkupType,
    Money,
    Percentage,
    PricingBreakdown,
    PricingMode,
    TaxAppliesTo,
    TaxCalculationMethod,
    TaxType,
)
from quote_engine.models.inputs import (
    ChildInput,
    InterResortTransferInput,
    LegCalculationInput,
    QuoteCalculationInput,
    QuoteLevelMarkupInput,
)
from quote_engine.models.reference import (
    Activity,
    BlackoutDate,
    ChildAgeBand,
    Currency,
    Discount,
    ExchangeRate,
    ExtraPersonCharge,
    FestiveSupplement,
    MarkupConfiguration,
    MealPlan,
    MinimumStayRule,
    Rate,
    Resort,
    RoomType,
    Season,
    TaxConfiguration,
    TransferType,
)
from quote_engine.models.results import (
    AppliedDiscount,
    InterResortTransferResult,
    LegCalculationResult,
    LegTotals,
    NightlyRoomRate,
    QuoteCalculationResult,
    QuoteTotals,
    TaxesBreakdown,
)
from quote_engine.models.store import DataStore
from quote_engine.models.validation import ValidationItem, ValidationSeverity

__all__ = [
    # Common
    "Money",
    "Percentage",
    "PricingBreakdown",
    "PricingMode",
    "GuestType",
    "TaxType",
    "TaxCalculationMethod",
    "TaxAppliesTo",
    "DiscountType",
    "DiscountBaseType",
    "MarkupType",
    "MarkupScope",
    "LineItemType",
    # Reference data
    "Currency",
    "ExchangeRate",
    "Resort",
    "RoomType",
    "ChildAgeBand",
    "Season",
    "Rate",
    "ExtraPersonCharge",
    "MealPlan",
    "TransferType",
    "Activity",
    "FestiveSupplement",
    "TaxConfiguration",
    "Discount",
    "MarkupConfiguration",
    "BlackoutDate",
    "MinimumStayRule",
    "DataStore",
    # Inputs
    "QuoteCalculationInput",
    "LegCalculationInput",
    "ChildInput",
    "InterResortTransferInput",
    "QuoteLevelMarkupInput",
    # Results
    "QuoteCalculationResult",
    "LegCalculationResult",
    "LegTotals",
    "NightlyRoomRate",
    "AppliedDiscount",
    "InterResortTransferResult",
    "QuoteTotals",
    "TaxesBreakdown",
    # Validation
    "ValidationItem",
    "ValidationSeverity",
    # Audit
    "AuditStep",
    "AuditStepType",
    "QuoteCalculationAudit",
    "AuditVerification",
    "AuditSummary",
]
