"""Withholding rate lookup by fiscal code."""

from __future__ import annotations

from decimal import Decimal
from types import MappingProxyType

from darf_engine.calculators.types import WithholdingRates
from darf_engine.errors import InvalidFiscalCode


def _rates(ir: str, csll: str, cofins: str, pis: str) -> WithholdingRates:
    return WithholdingRates(
        ir=Decimal(ir),
        csll=Decimal(csll),
        cofins=Decimal(cofins),
        pis=Decimal(pis),
    )


class RateTable:
    """Closed table of withholding rates keyed by fiscal code.

    Rates are percentages (IR, CSLL, COFINS, PIS/PASEP). The table is fixed;
    a code outside it is an error, never a default.
    """

    RATES: MappingProxyType[str, WithholdingRates] = MappingProxyType(
        {
            "6147": _rates("1.20", "1.00", "3.00", "0.65"),
            "9060": _rates("0.24", "1.00", "3.00", "0.65"),
            "8739": _rates("0.24", "1.00", "0.00", "0.00"),
            "8767": _rates("1.20", "1.00", "0.00", "0.00"),
            "8850": _rates("2.40", "1.00", "3.00", "0.65"),
            "8863": _rates("0.00", "1.00", "3.00", "0.65"),
            "6188": _rates("2.40", "1.00", "3.00", "0.65"),
            "6190": _rates("4.80", "1.00", "3.00", "0.65"),
        }
    )

    @classmethod
    def lookup(cls, fiscal_code: str | None) -> WithholdingRates:
        """Return the rates for a fiscal code.

        Raises:
            InvalidFiscalCode: If the code is empty or not in the table
        """
        key = fiscal_code.strip() if fiscal_code else ""
        try:
            return cls.RATES[key]
        except KeyError:
            raise InvalidFiscalCode(fiscal_code) from None

    @classmethod
    def is_known(cls, fiscal_code: str | None) -> bool:
        return bool(fiscal_code) and fiscal_code.strip() in cls.RATES

    @classmethod
    def codes(cls) -> list[str]:
        return sorted(cls.RATES)
