"""Sales API routes — dispatch status, batch processing, marketplace import."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fulfillment.infrastructure.database import get_db
from fulfillment.interfaces.api.deps import ensure_owner_or_admin, get_current_user, require_admin
from fulfillment.domain.models.user import User
from fulfillment.domain.schemas.stock import (
    OrderImportRequest, OrderImportResult, SaleBatchRequest, SaleBatchResult, SaleRead, SaleStatusUpdate,
)
from fulfillment.application.services.order_sync_service import import_orders
from fulfillment.application.services.sale_service import list_sales, process_sales, update_sale_status

router = APIRouter(prefix="/api/sales", tags=["Sales"])


@router.get("/users/{user_id}", response_model=List[SaleRead])
def user_sales(user_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    ensure_owner_or_admin(user, user_id)
    return list_sales(db, user_id)


@router.put("/status", response_model=SaleRead)
def update_status(
    body: SaleStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """A "despachado" status deducts stock once; pass force=true to only rewrite the status."""
    return update_sale_status(db, body)


@router.post("/process", response_model=SaleBatchResult)
def process(body: SaleBatchRequest, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return process_sales(db, body.sales)


@router.post("/import", response_model=OrderImportResult)
async def import_marketplace_orders(
    body: OrderImportRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return await import_orders(db, body)
