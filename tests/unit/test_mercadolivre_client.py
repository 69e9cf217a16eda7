"""
Unit Tests - Mercado Livre Client
"""
import httpx
import pytest

from fulfillment.infrastructure.mercadolivre_api import MercadoLivreClient


def client_for(handler) -> MercadoLivreClient:
    client = MercadoLivreClient("token", base_url="https://ml.test", transport=httpx.MockTransport(handler))
    client.retry_delay = 0
    return client


class TestGetShipmentSla:
    """Tests for get_shipment_sla"""

    async def test_success(self):
        """Test the SLA payload is returned with the bearer token"""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"shipping_limit_date": "2024-08-22T23:59:00Z"})

        async with client_for(handler) as client:
            sla = await client.get_shipment_sla(42)

        assert sla == {"shipping_limit_date": "2024-08-22T23:59:00Z"}
        assert seen[0].url.path == "/shipments/42/sla"
        assert seen[0].headers["Authorization"] == "Bearer token"

    async def test_retries_transient_errors(self):
        """Test 429 and 5xx responses are retried"""
        responses = [httpx.Response(429), httpx.Response(503), httpx.Response(200, json={"ok": True})]

        async with client_for(lambda request: responses.pop(0)) as client:
            assert await client.get_shipment_sla(1) == {"ok": True}

        assert responses == []

    async def test_gives_up_after_max_retries(self):
        """Test persistent server errors end in None"""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        async with client_for(handler) as client:
            assert await client.get_shipment_sla(1) is None

        assert len(calls) == 3

    async def test_client_error_not_retried(self):
        """Test a 404 returns None immediately"""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        async with client_for(handler) as client:
            assert await client.get_shipment_sla(1) is None

        assert len(calls) == 1

    async def test_requires_context_manager(self):
        """Test calls outside the async context are refused"""
        with pytest.raises(RuntimeError):
            await MercadoLivreClient("token").get_shipment_sla(1)
