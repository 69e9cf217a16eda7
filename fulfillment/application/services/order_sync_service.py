"""Order import — Mercado Livre orders to sale rows.

Shipment SLAs are fetched with bounded fan-out; rows are inserted in chunks
with duplicates on (id, sku, user_id) silently skipped.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.orm import Session

from fulfillment.config import get_settings
from fulfillment.domain.models.sale import Sale
from fulfillment.domain.schemas.stock import OrderImportRequest, OrderImportResult
from fulfillment.infrastructure.database import transaction
from fulfillment.infrastructure.mercadolivre_api import MercadoLivreClient
from fulfillment.infrastructure.repositories.sale_repository import SQLAlchemySaleRepository

settings = get_settings()
logger = structlog.get_logger(__name__)


def parse_api_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def build_sale_rows(orders: List[Dict[str, Any]], user_id: int, nickname: Optional[str] = None) -> List[Dict[str, Any]]:
    """One row per order item carrying a seller SKU."""
    rows: Dict[tuple, Dict[str, Any]] = {}
    now = datetime.now(timezone.utc)

    for order in orders:
        shipping = order.get("shipping") or {}
        sla = order.get("sla_data") or {}
        limit_date = sla.get("shipping_limit_date") or (
            ((shipping.get("shipping_option") or {}).get("estimated_delivery_time") or {}).get("shipping_limit_date")
        )

        for entry in order.get("order_items") or []:
            item = entry.get("item") or {}
            sku = item.get("seller_sku")
            if not sku:
                continue
            key = (order["id"], sku)
            if key in rows:
                continue
            rows[key] = {
                "id": order["id"],
                "sku": sku,
                "user_id": user_id,
                "seller_id": (order.get("seller") or {}).get("id"),
                "channel": "ML",
                "account_nickname": nickname,
                "sale_date": parse_api_datetime(order.get("date_created")),
                "product_title": item.get("title"),
                "quantity": entry.get("quantity") or 1,
                "shipping_mode": shipping.get("shipping_mode"),
                "shipping_limit_date": parse_api_datetime(limit_date),
                "packages": 1 if order.get("pack_id") else 0,
                "shipping_status": shipping.get("status"),
                "raw_api_data": order,
                "updated_at": now,
            }
    return list(rows.values())


async def enrich_with_sla(orders: List[Dict[str, Any]], client: MercadoLivreClient) -> int:
    """Attach `sla_data` to each order with a shipment; returns how many were enriched."""
    semaphore = asyncio.Semaphore(settings.SYNC_CONCURRENCY)

    async def fetch(order: Dict[str, Any]) -> Optional[dict]:
        shipment_id = (order.get("shipping") or {}).get("id")
        if not shipment_id:
            return None
        async with semaphore:
            return await client.get_shipment_sla(shipment_id)

    results = await asyncio.gather(*(fetch(order) for order in orders))
    enriched = 0
    for order, sla in zip(orders, results):
        if sla:
            order["sla_data"] = sla
            enriched += 1
    return enriched


def insert_sale_rows(db: Session, rows: List[Dict[str, Any]]) -> int:
    sales = SQLAlchemySaleRepository(db, Sale)
    inserted = 0
    with transaction(db):
        for start in range(0, len(rows), settings.UPSERT_BATCH_SIZE):
            chunk = rows[start:start + settings.UPSERT_BATCH_SIZE]
            inserted += sales.insert_ignore_duplicates(chunk)
            logger.debug("Sale chunk saved", offset=start, size=len(chunk))
    return inserted


async def import_orders(
    db: Session, request: OrderImportRequest, client: Optional[MercadoLivreClient] = None
) -> OrderImportResult:
    enriched = 0
    if request.access_token and request.orders:
        if client is None:
            async with MercadoLivreClient(request.access_token) as ml_client:
                enriched = await enrich_with_sla(request.orders, ml_client)
        else:
            enriched = await enrich_with_sla(request.orders, client)

    rows = build_sale_rows(request.orders, request.user_id, request.account_nickname)
    inserted = insert_sale_rows(db, rows)

    logger.info(
        "Orders imported",
        user_id=request.user_id,
        orders=len(request.orders),
        rows=len(rows),
        inserted=inserted,
        enriched=enriched,
    )
    return OrderImportResult(
        received_orders=len(request.orders),
        sale_rows=len(rows),
        inserted=inserted,
        enriched=enriched,
    )
