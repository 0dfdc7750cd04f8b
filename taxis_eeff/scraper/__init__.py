"""Scraper module for the Taxis financial-statement portal.

Primary components:
- portal_session: httpx client carrying the session cookie
- StatementLister: one listing call per entity (TaxPayerStatementsList)
- StatementCache: local HTML cache with fetch-on-miss (Details / GetStatement)

Statement HTML is saved under ``data/statements/<company>/<PIB>-<year>.html``.
"""

from taxis_eeff.scraper.session import create_portal_client, portal_request, portal_session
from taxis_eeff.scraper.statement_cache import (
    STATEMENT_ENDPOINTS,
    CachedStatement,
    StatementCache,
    StatementEndpoint,
    resolve_endpoint,
)
from taxis_eeff.scraper.statement_lister import StatementLister, parse_statement_listing

__all__ = [
    "STATEMENT_ENDPOINTS",
    "CachedStatement",
    "StatementCache",
    "StatementEndpoint",
    "StatementLister",
    "create_portal_client",
    "parse_statement_listing",
    "portal_request",
    "portal_session",
    "resolve_endpoint",
]
