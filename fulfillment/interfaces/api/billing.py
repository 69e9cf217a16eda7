"""Billing API routes — contracts, invoices, manual items, summary, batch recalculation."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from fulfillment.infrastructure.database import get_db
from fulfillment.interfaces.api.deps import ensure_owner_or_admin, get_current_user, require_admin
from fulfillment.domain.models.user import User
from fulfillment.domain.schemas.billing import (
    BillingSummaryRow, ContractCreate, ContractRead, InvoiceComputation, InvoiceRead, ManualItemCreate,
    ManualItemHistoryRead, ManualServiceRead, RecalculationReport,
)
from fulfillment.application.services.contract_service import create_contract, delete_contract, list_contracts
from fulfillment.application.services.period import current_period
from fulfillment.application.services.invoice_service import (
    add_manual_item,
    billing_summary,
    compute_invoice,
    get_invoices,
    list_manual_services,
    manual_item_history,
    recalculate_all,
    recalculate_period,
)

router = APIRouter(prefix="/api/billing", tags=["Billing"])


@router.get("/invoices/{user_id}", response_model=List[InvoiceRead])
def list_invoices(
    user_id: int,
    period: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Refresh the requested period (current month by default) and list all invoices."""
    ensure_owner_or_admin(user, user_id)
    return get_invoices(db, user_id, period or current_period())


@router.post("/invoices/{user_id}/{period}/compute", response_model=InvoiceComputation)
def compute(
    user_id: int,
    period: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return compute_invoice(db, user_id, period)


@router.post("/manual-items", response_model=InvoiceRead, status_code=status.HTTP_201_CREATED)
def create_manual_item(
    body: ManualItemCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return add_manual_item(db, body)


@router.get("/manual-services", response_model=List[ManualServiceRead])
def manual_services(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return list_manual_services(db)


@router.get("/manual-items", response_model=List[ManualItemHistoryRead])
def manual_items(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return manual_item_history(db)


@router.get("/summary", response_model=List[BillingSummaryRow])
def summary(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return billing_summary(db)


@router.post("/recalculate", response_model=RecalculationReport)
def recalculate(
    period: Optional[str] = Query(None, description="Recalcula só este período para todos os clientes ativos"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if period:
        return recalculate_period(db, period)
    return recalculate_all(db)


@router.get("/contracts/{user_id}", response_model=List[ContractRead])
def user_contracts(user_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    ensure_owner_or_admin(user, user_id)
    return list_contracts(db, user_id)


@router.post("/contracts/{user_id}", response_model=ContractRead, status_code=status.HTTP_201_CREATED)
def add_contract(
    user_id: int,
    body: ContractCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return create_contract(db, user_id, body)


@router.delete("/contracts/{user_id}/{contract_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_contract(
    user_id: int,
    contract_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    delete_contract(db, user_id, contract_id)
