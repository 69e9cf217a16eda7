"""
Invoice Repository Interface.
Invoice headers and items for the assembler.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from fulfillment.domain.repositories.base import BaseRepository
from fulfillment.domain.models.invoice import Invoice, InvoiceItem
from fulfillment.domain.schemas.billing import LineItem


class InvoiceRepository(BaseRepository[Invoice]):
    """Interface for invoice persistence."""

    def upsert_header(self, user_id: int, period: str, due_date: date) -> int:
        """Insert a pending invoice or refresh due date/status of the existing one."""
        ...

    def replace_auto_items(self, invoice_id: int, items: Sequence[LineItem]) -> None:
        """Delete storage/shipment items and insert the given ones."""
        ...

    def add_item(self, invoice_id: int, item: LineItem, service_date: Optional[date] = None) -> InvoiceItem:
        """Insert one item."""
        ...

    def sum_manual_items(self, invoice_id: int) -> Decimal:
        """Sum total_price of manual items."""
        ...

    def sum_items(self, invoice_id: int) -> Decimal:
        """Sum total_price of all items."""
        ...

    def set_total(self, invoice_id: int, total: Decimal) -> None:
        """Write the invoice total."""
        ...

    def get_for_period(self, user_id: int, period: str) -> Optional[Invoice]:
        """Get the invoice of a user for a period, with items."""
        ...

    def list_for_user(self, user_id: int) -> List[Invoice]:
        """Get all invoices of a user, newest period first."""
        ...

    def list_periods(self, user_id: int) -> List[str]:
        """Get the distinct invoice periods of a user."""
        ...

    def users_with_invoices(self) -> List[int]:
        """Get customers that have at least one invoice."""
        ...

    def summary(self) -> List[Dict[str, Any]]:
        """Get the latest invoice of every customer."""
        ...

    def manual_item_history(self) -> List[Dict[str, Any]]:
        """Get every manual item launched, newest first."""
        ...
