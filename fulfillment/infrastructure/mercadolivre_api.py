"""Mercado Livre HTTP client — shipment SLA lookups for order import."""

import asyncio
import logging
from typing import Optional

import httpx

from fulfillment.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class MercadoLivreClient:
    """Read-only client for the Mercado Livre shipments API.

    Transient failures (429, 5xx, connection errors) are retried with a
    linear backoff; anything else returns None so one bad shipment never
    aborts a whole import.
    """

    def __init__(
        self,
        access_token: str,
        base_url: Optional[str] = None,
        timeout: float = 15,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.MERCADOLIVRE_API_URL).rstrip("/")
        self.headers = {"Authorization": f"Bearer {access_token}"}
        self.timeout = timeout
        self.max_retries = 3
        self.retry_delay = 1  # seconds
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "MercadoLivreClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url, headers=self.headers, timeout=self.timeout, transport=self.transport
        )
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get_shipment_sla(self, shipment_id: int) -> Optional[dict]:
        """Fetch the SLA of one shipment (carries shipping_limit_date)."""
        if self._client is None:
            raise RuntimeError("MercadoLivreClient must be used as an async context manager")

        for attempt in range(1, self.max_retries + 1):
            try:
                response = await self._client.get(f"/shipments/{shipment_id}/sla")
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status not in (429, 500, 502, 503, 504):
                    logger.warning(f"SLA lookup failed for shipment {shipment_id}: {status}")
                    return None
                logger.info(f"SLA lookup for shipment {shipment_id} got {status} (attempt {attempt}/{self.max_retries})")
            except httpx.HTTPError as e:
                logger.warning(f"SLA lookup connection error for shipment {shipment_id} (attempt {attempt}): {e}")

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay * attempt)

        logger.error(f"SLA lookup gave up for shipment {shipment_id} after {self.max_retries} attempts")
        return None
