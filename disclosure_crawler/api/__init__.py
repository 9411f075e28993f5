"""
FastAPI crawler service.

Provides REST API for periodic disclosures with:
- GET /crawler/daily-prices/{date}
- GET /crawler/monthly-revenues/{month}
- GET /crawler/quarterly-eps/{quarter}
- GET /crawler/quarterly-capital/{quarter}
- GET /crawler/quarterly-cash-flows/{quarter}
- GET /health - Database connectivity check
"""

from disclosure_crawler.api.app import create_app

__all__ = ["create_app"]
