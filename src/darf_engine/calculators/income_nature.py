"""Income-nature catalog mapping each nature code to one fiscal code."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType

from darf_engine.errors import UnknownIncomeNature


@dataclass(frozen=True)
class IncomeNature:
    """A classification of the good or service behind a payment."""

    code: str
    fiscal_code: str
    description: str


_CATALOG = (
    IncomeNature("17001", "6147", "Food"),
    IncomeNature("17002", "6147", "Electric power"),
    IncomeNature("17003", "6147", "Services rendered with supply of materials"),
    IncomeNature("17004", "6147", "Civil construction contracted with supply of materials"),
    IncomeNature("17005", "6147", "Hospital services (IN RFB 1.234/2012, art. 30)"),
    IncomeNature("17006", "6147", "Cargo transport, except nature 17017"),
    IncomeNature(
        "17007",
        "6147",
        "Diagnostic support and therapy services (IN RFB 1.234/2012, art. 31)",
    ),
    IncomeNature(
        "17008",
        "6147",
        "Pharmaceutical, perfumery, toiletry and personal hygiene products, "
        "except natures 17019 to 17022",
    ),
    IncomeNature("17009", "6147", "Goods and merchandise in general"),
    IncomeNature(
        "17010",
        "9060",
        "Gasoline, diesel, LPG, aviation kerosene and other petroleum "
        "derivatives acquired from refineries, producers or importers",
    ),
    IncomeNature(
        "17011",
        "9060",
        "Hydrated ethyl alcohol acquired from producer, importer or distributor",
    ),
    IncomeNature("17012", "9060", "Biodiesel acquired from producer or importer"),
    IncomeNature(
        "17013",
        "8739",
        "Gasoline (except aviation), diesel, LPG and kerosene acquired from "
        "distributors and retailers",
    ),
    IncomeNature(
        "17014",
        "8739",
        "Domestic hydrated ethyl alcohol acquired from retailers",
    ),
    IncomeNature("17015", "8739", "Biodiesel acquired from distributors and retailers"),
    IncomeNature(
        "17016",
        "8739",
        "Biodiesel from producers holding the 'Combustivel Social' seal",
    ),
    IncomeNature("17017", "8767", "International cargo transport by national companies"),
    IncomeNature("17018", "8767", "Brazilian shipyards registered in the REB"),
    IncomeNature(
        "17019",
        "8767",
        "Perfumery, toiletry and hygiene products acquired from distributors "
        "and retailers (IN RFB 1.234/2012, art. 22, par. 1)",
    ),
    IncomeNature("17020", "8767", "Products under IN RFB 1.234/2012, art. 22, par. 2"),
    IncomeNature(
        "17021",
        "8767",
        "Products under IN RFB 1.234/2012, art. 5, I, items 'c' to 'k'",
    ),
    IncomeNature(
        "17022",
        "8767",
        "Other products or services exempt or zero-rated for COFINS and PIS/PASEP",
    ),
    IncomeNature(
        "17023",
        "8850",
        "Air and road tickets and other passenger transport, except international",
    ),
    IncomeNature(
        "17024",
        "8850",
        "International passenger transport by national companies",
    ),
    IncomeNature(
        "17025",
        "8863",
        "Services rendered by professional associations and cooperatives",
    ),
    IncomeNature(
        "17026",
        "8863",
        "Services rendered by banks, credit, insurance and pension institutions",
    ),
    IncomeNature("17027", "8863", "Health insurance"),
    IncomeNature("17028", "6190", "Water supply services"),
    IncomeNature("17029", "6190", "Telephone"),
    IncomeNature("17030", "6190", "Mail and telegraph"),
    IncomeNature("17031", "6190", "Security"),
    IncomeNature("17032", "6190", "Cleaning"),
    IncomeNature("17033", "6190", "Labor leasing"),
    IncomeNature("17034", "6190", "Business brokerage"),
    IncomeNature(
        "17035",
        "6190",
        "Administration, lease or assignment of real estate, movable property "
        "and rights",
    ),
    IncomeNature("17036", "6190", "Factoring"),
    IncomeNature(
        "17037",
        "6190",
        "Human, veterinary or dental health plans with fixed per-capita values",
    ),
    IncomeNature(
        "17038",
        "6190",
        "Payments to cooperatives for supply of goods (IN RFB 1.234/2012, art. 24)",
    ),
    IncomeNature(
        "17039",
        "6190",
        "Services rendered with supply of materials (IN RFB 1.234/2012, art. 27, II, c)",
    ),
    IncomeNature("17040", "6190", "Other services"),
)

INCOME_NATURES: MappingProxyType[str, IncomeNature] = MappingProxyType(
    {nature.code: nature for nature in _CATALOG}
)


def get_income_nature(code: str) -> IncomeNature:
    """Return the catalog entry for an income-nature code.

    Raises:
        UnknownIncomeNature: If the code is not in the catalog
    """
    key = code.strip() if code else ""
    try:
        return INCOME_NATURES[key]
    except KeyError:
        raise UnknownIncomeNature(code) from None


def natures_for_fiscal_code(fiscal_code: str) -> list[IncomeNature]:
    """List every income nature that maps onto a fiscal code."""
    return [n for n in _CATALOG if n.fiscal_code == fiscal_code]
