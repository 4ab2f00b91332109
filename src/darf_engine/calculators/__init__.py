"""Withholding calculation: rate table, income-nature catalog, calculator."""

from darf_engine.calculators.income_nature import (
    INCOME_NATURES,
    IncomeNature,
    get_income_nature,
    natures_for_fiscal_code,
)
from darf_engine.calculators.rate_table import RateTable
from darf_engine.calculators.types import (
    DocumentStatus,
    OrgUnit,
    TaxKind,
    WithholdingDetail,
    WithholdingRates,
)
from darf_engine.calculators.withholding_calculator import WithholdingCalculator

__all__ = [
    "INCOME_NATURES",
    "IncomeNature",
    "get_income_nature",
    "natures_for_fiscal_code",
    "RateTable",
    "DocumentStatus",
    "OrgUnit",
    "TaxKind",
    "WithholdingDetail",
    "WithholdingRates",
    "WithholdingCalculator",
]
