"""Type definitions for the withholding calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def quantize_money(value: Decimal | int | float | str | None) -> Decimal:
    """Round a monetary value to 2 places, half-up (storage precision)."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class OrgUnit(str, Enum):
    """The two organizational partitions a document belongs to."""

    PRIMARY = "PRIMARY"
    SECONDARY = "SECONDARY"

    @property
    def unit_number(self) -> int:
        return _UNIT_NUMBERS[self]


_UNIT_NUMBERS = {
    OrgUnit.PRIMARY: 160147,
    OrgUnit.SECONDARY: 167147,
}


class DocumentStatus(str, Enum):
    """Document lifecycle status, derived from the payment date."""

    SETTLED = "SETTLED"
    PAID = "PAID"


class TaxKind(str, Enum):
    """Federal contributions withheld on each payment."""

    IR = "IR"
    CSLL = "CSLL"
    COFINS = "COFINS"
    PIS = "PIS"


@dataclass(frozen=True)
class WithholdingRates:
    """Percentage rates for one fiscal code, e.g. 4.80 for 4.8%."""

    ir: Decimal
    csll: Decimal
    cofins: Decimal
    pis: Decimal

    def rate_for(self, kind: TaxKind) -> Decimal | None:
        return {
            TaxKind.IR: self.ir,
            TaxKind.CSLL: self.csll,
            TaxKind.COFINS: self.cofins,
            TaxKind.PIS: self.pis,
        }[kind]

    @property
    def total(self) -> Decimal:
        return sum((r or ZERO for r in (self.ir, self.csll, self.cofins, self.pis)), ZERO)


@dataclass(frozen=True)
class WithholdingDetail:
    """Fully computed withholding for a gross amount under one fiscal code.

    Only WithholdingCalculator builds these; persisted rows copy every field
    at once through ``Withholding.apply_detail``.
    """

    fiscal_code: str
    gross_amount: Decimal
    rates: WithholdingRates
    withheld_ir: Decimal
    withheld_csll: Decimal
    withheld_cofins: Decimal
    withheld_pis: Decimal
    net_amount: Decimal

    @property
    def total_withheld(self) -> Decimal:
        return (
            self.withheld_ir
            + self.withheld_csll
            + self.withheld_cofins
            + self.withheld_pis
        )

    def withheld_for(self, kind: TaxKind) -> Decimal:
        return {
            TaxKind.IR: self.withheld_ir,
            TaxKind.CSLL: self.withheld_csll,
            TaxKind.COFINS: self.withheld_cofins,
            TaxKind.PIS: self.withheld_pis,
        }[kind]
