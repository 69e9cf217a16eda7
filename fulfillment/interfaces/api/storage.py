"""Storage API routes — SKU and kit catalog, stock listing, movements, SKU removal."""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from fulfillment.infrastructure.database import get_db
from fulfillment.interfaces.api.deps import ensure_owner_or_admin, get_current_user, require_admin
from fulfillment.domain.models.user import User
from fulfillment.domain.schemas.stock import (
    KitComponentIn, KitComponentRead, MovementCreate, MovementRead, SkuCreate, SkuRead, SkuStockRead, SkuUpdate,
)
from fulfillment.application.services.sku_service import (
    add_kit_component,
    create_sku,
    remove_kit_component,
    update_sku,
)
from fulfillment.application.services.stock_service import (
    delete_sku,
    list_movements,
    list_stock,
    register_movement,
    reverse_movement,
)

router = APIRouter(prefix="/api/storage", tags=["Storage"])


@router.get("/users/{user_id}/skus", response_model=List[SkuStockRead])
def user_skus(user_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """SKUs with kit availability derived from child stock."""
    ensure_owner_or_admin(user, user_id)
    return list_stock(db, user_id)


@router.get("/users/{user_id}/movements", response_model=List[MovementRead])
def user_movements(user_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    ensure_owner_or_admin(user, user_id)
    return list_movements(db, user_id)


@router.post("/skus/{sku_code}/movements", response_model=List[MovementRead], status_code=status.HTTP_201_CREATED)
def create_movement(
    sku_code: str,
    body: MovementCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return register_movement(db, sku_code, body)


@router.delete("/movements/{movement_id}", response_model=MovementRead)
def delete_movement(movement_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return reverse_movement(db, movement_id)


@router.delete("/skus/{sku_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_sku(sku_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    delete_sku(db, sku_id)


@router.post("/users/{user_id}/skus", response_model=SkuRead, status_code=status.HTTP_201_CREATED)
def create_user_sku(
    user_id: int,
    body: SkuCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Create a SKU, or a kit together with its components."""
    return create_sku(db, user_id, body)


@router.put("/skus/{sku_id}", response_model=SkuRead)
def edit_sku(
    sku_id: int,
    body: SkuUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return update_sku(db, sku_id, body)


@router.post("/kits/{kit_id}/components", response_model=KitComponentRead)
def link_kit_component(
    kit_id: int,
    body: KitComponentIn,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    component = add_kit_component(db, kit_id, body.child_sku_id, body.quantity_per_kit)
    return KitComponentRead(
        child_sku_id=component.child_sku_id,
        child_sku=component.child.sku,
        quantity_per_kit=component.quantity_per_kit,
        child_quantity=component.child.quantidade,
    )


@router.delete("/kits/{kit_id}/components/{child_id}", status_code=status.HTTP_204_NO_CONTENT)
def unlink_kit_component(
    kit_id: int,
    child_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    remove_kit_component(db, kit_id, child_id)
