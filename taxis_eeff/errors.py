"""Exception types raised by the harvesting pipeline.

This module contains pure type definitions with no pipeline dependencies,
so it can be imported from any layer without circular imports.

Propagation
-----------
* ``ListingError`` skips the whole entity.
* ``FetchError`` and ``PersistenceError`` skip a single statement.
* ``AuthError`` means the session cookie was rejected; it aborts the run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from taxis_eeff.models import StatementRef

__all__ = [
    "AuthError",
    "FetchError",
    "HarvestError",
    "ListingError",
    "ParseError",
    "PersistenceError",
    "TransportError",
]


class HarvestError(Exception):
    """Base class for all pipeline errors."""


class TransportError(HarvestError):
    """Network failure, timeout, or non-2xx response from the portal."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthError(TransportError):
    """Portal rejected the session credential (401/403 or login redirect)."""


class ParseError(HarvestError):
    """Listing payload is not the expected JSON envelope."""


class PersistenceError(HarvestError):
    """Local filesystem failure (cache artifact, working directory, or CSV)."""


class ListingError(HarvestError):
    """Listing statements for an entity failed.

    Attributes
    ----------
    entity_id : str
        PIB of the entity whose listing failed.
    cause : HarvestError
        Underlying ``TransportError``, ``AuthError`` or ``ParseError``.
    """

    def __init__(self, entity_id: str, cause: HarvestError) -> None:
        super().__init__(f"Listing failed for {entity_id}: {cause}")
        self.entity_id = entity_id
        self.cause = cause


class FetchError(HarvestError):
    """Fetching a statement's markup from the portal failed.

    Attributes
    ----------
    entity_id : str
        PIB of the owning entity.
    ref : StatementRef
        Statement that could not be fetched.
    cause : TransportError
        Underlying transport or auth failure.
    """

    def __init__(self, entity_id: str, ref: StatementRef, cause: TransportError) -> None:
        super().__init__(f"Fetch failed for {entity_id} statement {ref.statement_id} ({ref.year}): {cause}")
        self.entity_id = entity_id
        self.ref = ref
        self.cause = cause
