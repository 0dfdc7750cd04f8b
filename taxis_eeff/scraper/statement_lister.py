"""Listing of financial statements available for an entity.

One POST per entity to ``TaxPayerStatementsList`` returns a JSON envelope
shaped like ``{"data": [{"FinStatementNumber": "123", "Year": "2022"}, ...]}``.
Key casing varies between portal releases, so keys are matched
case-insensitively. Anything else is a parse failure.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from taxis_eeff.config import setup_logging
from taxis_eeff.errors import HarvestError, ListingError, ParseError
from taxis_eeff.models import StatementRef
from taxis_eeff.scraper.session import portal_request

if TYPE_CHECKING:
    import httpx

logger = setup_logging(__name__)

DEFAULT_LISTING_PATH = "TaxPayerStatementsList?PIB={entity_id}&take={take}"
DEFAULT_TAKE = 20

# Accepted spellings for the statement number, compared lowercased
STATEMENT_ID_KEYS = ("finstatementnumber", "statementid", "rbr", "id")


def _lookup(item: dict[str, Any], *keys: str) -> Any:
    """Return the first value whose key matches one of ``keys`` ignoring case."""
    lowered = {str(k).lower(): v for k, v in item.items()}
    for key in keys:
        if key in lowered:
            return lowered[key]
    return None


def parse_statement_listing(payload: Any) -> list[StatementRef]:
    """Convert a decoded listing envelope into statement references.

    Parameters
    ----------
    payload : Any
        Decoded JSON body.

    Returns
    -------
    list[StatementRef]
        References in listing order; duplicates are dropped.

    Raises
    ------
    ParseError
        If the envelope or any item does not have the expected shape.
    """
    if not isinstance(payload, dict):
        msg = f"Expected a JSON object envelope, got {type(payload).__name__}"
        raise ParseError(msg)

    rows = _lookup(payload, "data")
    if not isinstance(rows, list):
        msg = "Envelope has no 'data' array"
        raise ParseError(msg)

    refs: list[StatementRef] = []
    seen: set[StatementRef] = set()
    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            msg = f"Listing item {index} is not an object"
            raise ParseError(msg)

        statement_id = _lookup(row, *STATEMENT_ID_KEYS)
        year = _lookup(row, "year")
        if statement_id in (None, "") or year in (None, ""):
            msg = f"Listing item {index} lacks a statement number or year: {row}"
            raise ParseError(msg)

        ref = StatementRef(statement_id=str(statement_id), year=str(year))
        if ref in seen:
            logger.warning("Duplicate statement %s (%s) in listing, ignoring", ref.statement_id, ref.year)
            continue
        seen.add(ref)
        refs.append(ref)

    return refs


class StatementLister:
    """Resolve the statements published for an entity.

    Parameters
    ----------
    client : httpx.Client
        Portal client from :func:`taxis_eeff.scraper.session.portal_session`.
    listing_path : str, optional
        Path template with ``{entity_id}`` and ``{take}`` placeholders.
    """

    def __init__(self, client: httpx.Client, listing_path: str = DEFAULT_LISTING_PATH) -> None:
        self._client = client
        self._listing_path = listing_path

    def list_statements(self, entity_id: str, take: int = DEFAULT_TAKE) -> list[StatementRef]:
        """Issue one listing request and parse it.

        Parameters
        ----------
        entity_id : str
            PIB of the entity.
        take : int, optional
            Page-size bound passed to the portal. Default 20.

        Returns
        -------
        list[StatementRef]
            Statements in the order the portal lists them.

        Raises
        ------
        ListingError
            Wrapping the transport, auth or parse failure. No retry is attempted.
        """
        url = self._listing_path.format(entity_id=entity_id, take=take)
        try:
            response = portal_request(
                self._client,
                "POST",
                url,
                headers={"Content-Length": "0", "Accept": "application/json"},
            )
            logger.debug("Raw listing response for %s: %s", entity_id, response.text)
            try:
                payload = json.loads(response.text)
            except json.JSONDecodeError as err:
                msg = f"Listing response is not JSON: {err}"
                raise ParseError(msg) from err
            refs = parse_statement_listing(payload)
        except HarvestError as err:
            raise ListingError(entity_id, err) from err

        logger.info("Found %d financial statements for %s", len(refs), entity_id)
        return refs
