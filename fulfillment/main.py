"""FastAPI application — main entry point."""

import structlog
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fulfillment.config import get_settings
from fulfillment.infrastructure.database import engine, Base
from fulfillment.core.logging import configure_logging
from fulfillment.core.middleware import setup_middleware
from fulfillment.core.exceptions import AppError, global_exception_handler

# Import all models so SQLAlchemy knows about them
from fulfillment.domain.models.user import User
from fulfillment.domain.models.service import Service, PackageType
from fulfillment.domain.models.contract import UserContract
from fulfillment.domain.models.sku import Sku, SkuKitComponent
from fulfillment.domain.models.stock_movement import StockMovement
from fulfillment.domain.models.sale import Sale
from fulfillment.domain.models.invoice import Invoice, InvoiceItem

# Import routers
from fulfillment.interfaces.api.auth import router as auth_router
from fulfillment.interfaces.api.billing import router as billing_router
from fulfillment.interfaces.api.storage import router as storage_router
from fulfillment.interfaces.api.sales import router as sales_router

settings = get_settings()

# Configure logging immediately
configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown events."""
    logger.info("Starting Fulfillment Billing...", env=settings.ENVIRONMENT)

    # Create DB tables (dev only, use migrations in production)
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    # Create default admin user and catalog if missing
    from fulfillment.infrastructure.database import SessionLocal
    from fulfillment.infrastructure.repositories.user_repository import SQLAlchemyUserRepository
    from fulfillment.application.services.auth_service import create_user
    from fulfillment.infrastructure.seed import seed_catalog
    from fulfillment.domain.models.user import UserRole
    db = SessionLocal()
    try:
        if not SQLAlchemyUserRepository(db, User).get_by_email(settings.DEFAULT_ADMIN_EMAIL):
            create_user(
                db,
                name="Admin",
                email=settings.DEFAULT_ADMIN_EMAIL,
                password=settings.DEFAULT_ADMIN_PASSWORD,
                role=UserRole.ADMIN.value,
            )
            logger.info("Default admin user created", email=settings.DEFAULT_ADMIN_EMAIL)
        seed_catalog(db)
    finally:
        db.close()

    from fulfillment.scheduler.jobs import start_scheduler
    start_scheduler()

    yield

    from fulfillment.scheduler.jobs import stop_scheduler
    stop_scheduler()
    logger.info("Fulfillment Billing stopped")


app = FastAPI(
    title="Fulfillment — Faturamento de Armazenagem e Expedição",
    description="API Backend — Estoque, kits, vendas e faturas mensais",
    version="1.0.0",
    lifespan=lifespan,
)

# Setup Middleware (Correlation ID, Logging)
setup_middleware(app)

# Global Exception Handling
app.add_exception_handler(AppError, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# Starlette runs middleware LIFO; CORS is added last so it sees requests first
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(billing_router)
app.include_router(storage_router)
app.include_router(sales_router)


@app.get("/")
def root():
    return {
        "name": "Fulfillment Billing",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
def health():
    return {"status": "healthy"}
