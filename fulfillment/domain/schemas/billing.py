"""Pydantic schemas for billing — line items, invoices, tiers, batch reports."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, Field, PlainSerializer, model_validator

# Decimal internally, plain number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class LineItem(BaseModel):
    """An invoice line computed by the billing engine (not yet persisted)."""
    description: str
    quantity: int
    unit_price: Money
    total_price: Money
    type: str


class MissingPriceWarning(BaseModel):
    """A referenced price was absent from the catalog and defaulted to zero."""
    key: str
    kind: str = "service_type"  # service_type | package_type
    message: str = "Preço não encontrado no catálogo; usando 0."


class TierBand(BaseModel):
    from_: int = Field(alias="from")
    to: Optional[int] = None
    price: Decimal

    model_config = {"populate_by_name": True}


class TierConfig(BaseModel):
    tiers: list[TierBand]

    @model_validator(mode="after")
    def check_contiguous(self) -> "TierConfig":
        """Bands must be ordered, non-overlapping and contiguous; only the last may be open."""
        previous: Optional[TierBand] = None
        for band in self.tiers:
            if band.to is not None and band.to < band.from_:
                raise ValueError(f"faixa inválida: {band.from_}-{band.to}")
            if previous is not None:
                if previous.to is None:
                    raise ValueError("apenas a última faixa pode ser aberta")
                if band.from_ != previous.to + 1:
                    raise ValueError(f"faixas não contíguas após {previous.to}")
            previous = band
        return self


class InvoiceComputation(BaseModel):
    """Result of one compute_invoice pass."""
    invoice_id: int
    user_id: int
    period: str
    due_date: date
    auto_items: list[LineItem]
    auto_total: Money
    manual_total: Money
    total: Money
    warnings: list[MissingPriceWarning] = []


class InvoiceItemRead(BaseModel):
    id: int
    description: str
    quantity: int
    unit_price: Money
    total_price: Money
    type: str
    service_date: Optional[date] = None

    model_config = {"from_attributes": True}


class InvoiceRead(BaseModel):
    id: int
    user_id: int
    period: str
    due_date: date
    payment_date: Optional[date] = None
    total_amount: Money
    status: str
    items: list[InvoiceItemRead] = []

    model_config = {"from_attributes": True}


class ManualItemCreate(BaseModel):
    user_id: int
    period: str
    service_id: int
    quantity: Optional[int] = None
    service_date: Optional[date] = None


class ContractCreate(BaseModel):
    service_id: int
    volume: Optional[int] = Field(default=None, gt=0)
    start_date: date
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def check_dates(self) -> "ContractCreate":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date anterior a start_date")
        return self


class ContractRead(BaseModel):
    id: int
    user_id: int
    service_id: int
    volume: Optional[int] = None
    start_date: date
    end_date: Optional[date] = None

    model_config = {"from_attributes": True}


class ManualServiceRead(BaseModel):
    id: int
    name: str
    type: str
    price: Optional[Money] = None
    config: Optional[dict] = None

    model_config = {"from_attributes": True}


class ManualItemHistoryRead(BaseModel):
    id: int
    service_date: Optional[date] = None
    description: str
    quantity: int
    unit_price: Money
    total_price: Money
    period: str
    client_name: str
    client_email: str


class BillingSummaryRow(BaseModel):
    user_id: int
    email: str
    last_invoice_total: Money = Decimal("0")
    last_invoice_status: Optional[str] = None
    last_invoice_period: Optional[str] = None


class RecalculationFailure(BaseModel):
    user_id: int
    period: Optional[str] = None
    error: str
    code: str


class RecalculationReport(BaseModel):
    processed_users: int = 0
    processed_invoices: int = 0
    failures: list[RecalculationFailure] = []
    started_at: datetime
    finished_at: Optional[datetime] = None
