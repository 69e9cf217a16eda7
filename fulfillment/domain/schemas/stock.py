"""Pydantic schemas for SKUs, stock movements and sales."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from fulfillment.domain.models.stock_movement import MovementType
from fulfillment.domain.schemas.billing import Money


class MovementCreate(BaseModel):
    user_id: int
    movement_type: MovementType
    quantity_change: int = Field(gt=0)
    reason: str = Field(min_length=1)
    related_sale_id: Optional[int] = None
    force_component: bool = False


class MovementRead(BaseModel):
    id: int
    sku_id: int
    movement_type: str
    quantity_change: int
    reason: Optional[str] = None
    related_sale_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class KitComponentRead(BaseModel):
    child_sku_id: int
    child_sku: str
    quantity_per_kit: int
    child_quantity: int


class SkuStockRead(BaseModel):
    id: int
    sku: str
    descricao: Optional[str] = None
    quantidade: int
    is_kit: bool
    package_type: Optional[str] = None
    kit_components: list[KitComponentRead] = []
    available_kit_quantity: Optional[int] = None


class KitComponentIn(BaseModel):
    child_sku_id: int
    quantity_per_kit: int = Field(default=1, gt=0)


class SkuCreate(BaseModel):
    sku: str = Field(min_length=1, max_length=255)
    descricao: str = Field(min_length=1)
    quantidade: int = Field(default=0, ge=0)
    package_type_id: Optional[int] = None
    is_kit: bool = False
    ativo: bool = True
    kit_components: list[KitComponentIn] = []
    is_monthly: bool = False
    monthly_price: Optional[Decimal] = None
    monthly_start_date: Optional[date] = None

    @field_validator("sku")
    @classmethod
    def strip_code(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("SKU é obrigatório")
        return v

    @model_validator(mode="after")
    def check_monthly(self) -> "SkuCreate":
        if self.is_monthly:
            if self.monthly_price is None or self.monthly_price <= 0:
                raise ValueError("Preço mensal é obrigatório para SKUs mensais.")
            if self.monthly_start_date is None:
                raise ValueError("Data de início é obrigatória para SKUs mensais.")
        if self.kit_components and not self.is_kit:
            raise ValueError("Apenas kits possuem componentes.")
        return self


class SkuUpdate(BaseModel):
    """Partial update; `kit_components`, when sent, replaces the kit's list."""
    descricao: Optional[str] = Field(default=None, min_length=1)
    package_type_id: Optional[int] = None
    ativo: Optional[bool] = None
    is_monthly: Optional[bool] = None
    monthly_price: Optional[Decimal] = None
    monthly_start_date: Optional[date] = None
    kit_components: Optional[list[KitComponentIn]] = None


class SkuRead(BaseModel):
    id: int
    user_id: int
    sku: str
    descricao: Optional[str] = None
    quantidade: int
    package_type_id: Optional[int] = None
    is_kit: bool
    ativo: bool
    is_monthly: bool
    monthly_price: Optional[Money] = None
    monthly_start_date: Optional[date] = None

    model_config = {"from_attributes": True}


class SaleStatusUpdate(BaseModel):
    sale_id: int
    sku: str
    user_id: int
    shipping_status: str
    force: bool = False


class SaleRead(BaseModel):
    id: int
    sku: str
    user_id: int
    quantity: Optional[int] = None
    shipping_status: Optional[str] = None
    processed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SaleToProcess(BaseModel):
    id: int
    sku: str
    user_id: int


class SaleBatchRequest(BaseModel):
    sales: list[SaleToProcess]


class SaleBatchFailure(BaseModel):
    sale_id: int
    sku: str
    reason: str
    code: str


class SaleBatchResult(BaseModel):
    success: list[SaleToProcess] = []
    failed: list[SaleBatchFailure] = []


class OrderImportRequest(BaseModel):
    user_id: int
    account_nickname: Optional[str] = None
    access_token: Optional[str] = None
    orders: list[dict[str, Any]]


class OrderImportResult(BaseModel):
    received_orders: int
    sale_rows: int
    inserted: int
    enriched: int = 0
