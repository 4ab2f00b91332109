"""Withholding calculation from gross amount and fiscal code."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from darf_engine.calculators.rate_table import RateTable
from darf_engine.calculators.types import TaxKind, WithholdingDetail, quantize_money
from darf_engine.errors import InvalidFiscalCode, InvalidGrossAmount

HUNDRED = Decimal("100")


class WithholdingSource(Protocol):
    """Anything carrying the two inputs of a withholding calculation."""

    fiscal_code: str | None
    gross_amount: Decimal | None


class WithholdingCalculator:
    """Computes the four withheld contributions and the net amount.

    For each tax kind: withheld = gross * rate / 100, rounded half-up to
    cents. Net = gross - sum(withheld). Rates always come from the rate
    table; rates carried by the source are ignored.

    The result is a new frozen WithholdingDetail, so a failed calculation
    leaves whatever the caller holds untouched.
    """

    def __init__(self, rate_table: type[RateTable] = RateTable):
        self.rate_table = rate_table

    def apply(self, source: WithholdingSource) -> WithholdingDetail:
        """Calculate withholding for a source.

        Raises:
            InvalidFiscalCode: If the fiscal code is empty or unknown
            InvalidGrossAmount: If the gross amount is missing
        """
        fiscal_code = (source.fiscal_code or "").strip()
        if not fiscal_code:
            raise InvalidFiscalCode(source.fiscal_code)
        if source.gross_amount is None:
            raise InvalidGrossAmount(None)

        rates = self.rate_table.lookup(fiscal_code)
        gross = quantize_money(source.gross_amount)

        withheld = {
            kind: self._calculate_withheld(gross, rates.rate_for(kind))
            for kind in TaxKind
        }
        net = gross - sum(withheld.values(), Decimal("0"))

        return WithholdingDetail(
            fiscal_code=fiscal_code,
            gross_amount=gross,
            rates=rates,
            withheld_ir=withheld[TaxKind.IR],
            withheld_csll=withheld[TaxKind.CSLL],
            withheld_cofins=withheld[TaxKind.COFINS],
            withheld_pis=withheld[TaxKind.PIS],
            net_amount=net,
        )

    def _calculate_withheld(self, gross: Decimal, rate: Decimal | None) -> Decimal:
        """Withheld amount for one tax kind; a missing rate withholds nothing."""
        if rate is None:
            return Decimal("0.00")
        return (gross * rate / HUNDRED).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
