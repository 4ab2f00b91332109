"""Fiscal document and withholding models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from darf_engine.calculators.income_nature import IncomeNature, get_income_nature
from darf_engine.calculators.types import (
    DocumentStatus,
    OrgUnit,
    WithholdingDetail,
)
from darf_engine.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from darf_engine.services.types import DocumentDraft

MONEY = Numeric(15, 2)
RATE = Numeric(5, 2)


class FiscalDocument(Base, TimestampMixin):
    """A payment document issued against an invoice.

    ``status`` and the withholding amounts are derived. They are written by
    StatusResolver.apply and Withholding.apply_detail, never from caller input.
    """

    __tablename__ = "fiscal_document"

    document_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    org_unit: Mapped[str] = mapped_column(String(16), nullable=False)
    document_number: Mapped[str] = mapped_column(String(14), nullable=False)
    payer_id: Mapped[str] = mapped_column(String(14), nullable=False)
    invoice_number: Mapped[int] = mapped_column(Integer, nullable=False)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=DocumentStatus.SETTLED.value
    )
    income_nature_code: Mapped[str] = mapped_column(String(5), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "document_number", "org_unit", name="fiscal_document_number_org_unit_key"
        ),
        UniqueConstraint(
            "payer_id",
            "invoice_number",
            "org_unit",
            name="fiscal_document_invoice_key",
        ),
        CheckConstraint(
            "org_unit IN ('PRIMARY', 'SECONDARY')",
            name="fiscal_document_org_unit_check",
        ),
        CheckConstraint(
            "status IN ('SETTLED', 'PAID')",
            name="fiscal_document_status_check",
        ),
        CheckConstraint(
            "invoice_number > 0",
            name="fiscal_document_invoice_number_check",
        ),
        CheckConstraint(
            "payment_date IS NULL OR payment_date >= invoice_date",
            name="fiscal_document_payment_date_check",
        ),
    )

    # Relationships
    withholding: Mapped[Withholding] = relationship(
        back_populates="document",
        cascade="all, delete-orphan",
        lazy="selectin",
        uselist=False,
    )

    @property
    def id(self) -> UUID:
        """Alias for document_id."""
        return self.document_id

    @property
    def org_unit_enum(self) -> OrgUnit:
        return OrgUnit(self.org_unit)

    @property
    def org_unit_number(self) -> int:
        """Public numeric identifier of the org unit (e.g. 160147)."""
        return self.org_unit_enum.unit_number

    @property
    def status_enum(self) -> DocumentStatus:
        return DocumentStatus(self.status)

    @property
    def income_nature(self) -> IncomeNature:
        return get_income_nature(self.income_nature_code)

    @property
    def income_nature_description(self) -> str:
        return self.income_nature.description

    def assign_draft(self, draft: DocumentDraft) -> None:
        """Copy the caller-owned fields of a validated draft."""
        self.org_unit = OrgUnit(draft.org_unit).value
        self.document_number = draft.document_number
        self.payer_id = draft.payer_id
        self.invoice_number = draft.invoice_number
        self.invoice_date = draft.invoice_date
        self.payment_date = draft.payment_date
        self.income_nature_code = draft.income_nature_code

    def __repr__(self) -> str:
        return (
            f"<FiscalDocument {self.document_number} {self.org_unit} "
            f"status={self.status}>"
        )


class Withholding(Base):
    """Withholding breakdown owned by exactly one fiscal document."""

    __tablename__ = "withholding"

    withholding_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    document_id: Mapped[UUID] = mapped_column(
        ForeignKey("fiscal_document.document_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    fiscal_code: Mapped[str] = mapped_column(String(4), nullable=False)
    gross_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    rate_ir: Mapped[Decimal] = mapped_column(RATE, nullable=False, default=Decimal("0"))
    rate_csll: Mapped[Decimal] = mapped_column(RATE, nullable=False, default=Decimal("0"))
    rate_cofins: Mapped[Decimal] = mapped_column(RATE, nullable=False, default=Decimal("0"))
    rate_pis: Mapped[Decimal] = mapped_column(RATE, nullable=False, default=Decimal("0"))

    withheld_ir: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    withheld_csll: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    withheld_cofins: Mapped[Decimal] = mapped_column(
        MONEY, nullable=False, default=Decimal("0")
    )
    withheld_pis: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    net_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))

    __table_args__ = (
        CheckConstraint("gross_amount > 0", name="withholding_gross_positive_check"),
    )

    # Relationships
    document: Mapped[FiscalDocument] = relationship(back_populates="withholding")

    @classmethod
    def from_detail(cls, detail: WithholdingDetail) -> Withholding:
        withholding = cls()
        withholding.apply_detail(detail)
        return withholding

    def apply_detail(self, detail: WithholdingDetail) -> None:
        """Overwrite every rate and amount with a freshly computed detail."""
        self.fiscal_code = detail.fiscal_code
        self.gross_amount = detail.gross_amount
        self.rate_ir = detail.rates.ir
        self.rate_csll = detail.rates.csll
        self.rate_cofins = detail.rates.cofins
        self.rate_pis = detail.rates.pis
        self.withheld_ir = detail.withheld_ir
        self.withheld_csll = detail.withheld_csll
        self.withheld_cofins = detail.withheld_cofins
        self.withheld_pis = detail.withheld_pis
        self.net_amount = detail.net_amount

    @property
    def total_withheld(self) -> Decimal:
        return self.withheld_ir + self.withheld_csll + self.withheld_cofins + self.withheld_pis
