"""
Test Suite Configuration
"""
import os

# The engine is built at import time; point it at SQLite before importing the package
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "testing"

from datetime import date, datetime
from typing import Generator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from fulfillment.infrastructure.database import Base, get_db
from fulfillment.infrastructure.seed import seed_catalog
from fulfillment.application.services.auth_service import hash_password
from fulfillment.domain.models.user import User, UserRole
from fulfillment.domain.models.service import PackageType, Service
from fulfillment.domain.models.contract import UserContract
from fulfillment.domain.models.sku import Sku, SkuKitComponent
from fulfillment.domain.models.stock_movement import MovementType, StockMovement
from fulfillment.domain.models.sale import Sale
from fulfillment.domain.models.invoice import Invoice, InvoiceItem  # noqa: F401

from helpers import PASSWORD

_PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
def engine():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    """Create test database session"""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def catalog(db):
    """Seed default services and package types"""
    seed_catalog(db)
    services = {s.name: s for s in db.query(Service).all()}
    packages = {p.name: p for p in db.query(PackageType).all()}
    return {"services": services, "packages": packages}


def _make_user(db: Session, name: str, email: str, role: str) -> User:
    user = User(name=name, email=email, password_hash=_PASSWORD_HASH, role=role, is_active=True)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def customer(db) -> User:
    return _make_user(db, "Loja Azul", "azul@example.com", UserRole.CUSTOMER.value)


@pytest.fixture
def other_customer(db) -> User:
    return _make_user(db, "Loja Verde", "verde@example.com", UserRole.CUSTOMER.value)


@pytest.fixture
def admin(db) -> User:
    return _make_user(db, "Admin", "admin@example.com", UserRole.ADMIN.value)


@pytest.fixture
def make_sku(db):
    """Factory for SKUs"""
    def factory(
        user: User,
        code: str,
        quantidade: int = 0,
        package_type: Optional[PackageType] = None,
        is_kit: bool = False,
        **extra,
    ) -> Sku:
        sku = Sku(
            user_id=user.id,
            sku=code,
            quantidade=quantidade,
            package_type_id=package_type.id if package_type else None,
            is_kit=is_kit,
            ativo=True,
            **extra,
        )
        db.add(sku)
        db.commit()
        return sku
    return factory


@pytest.fixture
def add_component(db):
    def factory(kit: Sku, child: Sku, quantity_per_kit: int = 1) -> SkuKitComponent:
        component = SkuKitComponent(kit_sku_id=kit.id, child_sku_id=child.id, quantity_per_kit=quantity_per_kit)
        db.add(component)
        db.commit()
        return component
    return factory


@pytest.fixture
def make_contract(db, catalog):
    def factory(user: User, service_type: str, start: date, volume: Optional[int] = None,
                end: Optional[date] = None) -> UserContract:
        service = next(s for s in catalog["services"].values() if s.type == service_type)
        contract = UserContract(user_id=user.id, service_id=service.id, volume=volume, start_date=start, end_date=end)
        db.add(contract)
        db.commit()
        return contract
    return factory


@pytest.fixture
def make_sale(db):
    def factory(user: User, sale_id: int, sku: str, quantity: int, status: str = "pending") -> Sale:
        sale = Sale(id=sale_id, sku=sku, user_id=user.id, quantity=quantity, shipping_status=status, channel="ML")
        db.add(sale)
        db.commit()
        return sale
    return factory


@pytest.fixture
def add_exit(db):
    """Append a saida ledger row at a given dispatch time"""
    def factory(sku: Sku, quantity: int, when: datetime, reason: str = "Saída por Venda - ID: 1") -> StockMovement:
        movement = StockMovement(
            sku_id=sku.id,
            user_id=sku.user_id,
            movement_type=MovementType.SAIDA.value,
            quantity_change=quantity,
            reason=reason,
            created_at=when,
        )
        db.add(movement)
        db.commit()
        return movement
    return factory


@pytest.fixture
def client(session_factory) -> Generator[TestClient, None, None]:
    """API client bound to the test database (lifespan not started)"""
    from fulfillment.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
