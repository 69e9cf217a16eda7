"""Recompute every existing invoice period of every customer.

Usage:
    python scripts/recalculate_invoices.py            # all customers with invoices
    python scripts/recalculate_invoices.py 12 15      # only these user ids
"""

import sys
import os

# Add parent dir to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fulfillment.core.logging import configure_logging
from fulfillment.infrastructure.database import SessionLocal
from fulfillment.application.services.invoice_service import recalculate_all


def main(argv):
    configure_logging()
    user_ids = [int(arg) for arg in argv] or None

    db = SessionLocal()
    try:
        report = recalculate_all(db, user_ids)
    finally:
        db.close()

    print(f"Users processed: {report.processed_users}")
    print(f"Invoices recomputed: {report.processed_invoices}")
    if report.failures:
        print(f"Failures: {len(report.failures)}")
        for failure in report.failures:
            print(f"  user {failure.user_id} {failure.period}: {failure.code} - {failure.error}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
