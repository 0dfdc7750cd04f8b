"""Local cache of statement HTML with fetch-on-miss.

Artifacts live at ``<cache_dir>/<display name>/<PIB>-<key>.html`` where the key
is the statement year (default) or the statement number. When an entity lists
several statements for one year, those get ``<PIB>-<year>-<number>.html`` so
every statement has its own artifact. An existing file is
authoritative: it is returned verbatim and never re-fetched or validated.

On a miss, exactly one request is sent through the configured
``StatementEndpoint`` and the body is persisted before it is returned. Writes
go through a temporary file and ``os.replace`` so artifacts are whole or
absent. A failed write is logged and the fetched content is still returned.
"""

from __future__ import annotations

import contextlib
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from taxis_eeff.config import setup_logging
from taxis_eeff.errors import FetchError, PersistenceError, TransportError
from taxis_eeff.scraper.session import portal_request

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from taxis_eeff.models import Entity, StatementRef

logger = setup_logging(__name__)

CACHE_KEYS = ("year", "statement_id")

_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


@dataclass(frozen=True)
class StatementEndpoint:
    """How statement markup is requested from the portal.

    Attributes
    ----------
    name : str
        Config key (``"details"`` or ``"statement"``).
    method : str
        HTTP method.
    path : str
        Path template with a ``{statement_id}`` placeholder.
    """

    name: str
    method: str
    path: str

    def url_for(self, ref: StatementRef) -> str:
        """Return the request path for ``ref``."""
        return self.path.format(statement_id=ref.statement_id, year=ref.year)


# Both endpoints serve the same statement page; which one the portal honours
# has changed between deployments.
STATEMENT_ENDPOINTS: dict[str, StatementEndpoint] = {
    "details": StatementEndpoint("details", "POST", "Details?rbr={statement_id}"),
    "statement": StatementEndpoint("statement", "GET", "GetStatement?id={statement_id}"),
}


def resolve_endpoint(name: str, overrides: dict[str, dict[str, Any]] | None = None) -> StatementEndpoint:
    """Look up an endpoint by name, letting config override method and path.

    Raises
    ------
    ValueError
        If ``name`` is neither built in nor configured.
    """
    overrides = overrides or {}
    base = STATEMENT_ENDPOINTS.get(name)
    override = overrides.get(name)

    if base is None and override is None:
        msg = f"Unknown statement endpoint: {name}. Known: {sorted({*STATEMENT_ENDPOINTS, *overrides})}"
        raise ValueError(msg)
    if override is None:
        return base  # type: ignore[return-value]

    return StatementEndpoint(
        name=name,
        method=str(override.get("method", base.method if base else "GET")).upper(),
        path=str(override.get("path", base.path if base else "")),
    )


def safe_dirname(name: str) -> str:
    """Make a display name usable as a single path component."""
    cleaned = _UNSAFE_CHARS.sub("_", name).strip().strip(".")
    return cleaned or "_"


@dataclass(frozen=True)
class CachedStatement:
    """Statement markup plus where it came from."""

    content: str
    path: Path
    from_cache: bool


class StatementCache:
    """Map (entity, statement) to locally persisted markup.

    Parameters
    ----------
    client : httpx.Client
        Portal client used on cache misses.
    cache_dir : Path
        Root directory for per-entity folders.
    endpoint : StatementEndpoint, optional
        Remote statement endpoint. Default ``details`` (POST).
    cache_key : str, optional
        ``"year"`` or ``"statement_id"``; selects the filename key.
    """

    def __init__(
        self,
        client: httpx.Client,
        cache_dir: Path,
        endpoint: StatementEndpoint = STATEMENT_ENDPOINTS["details"],
        cache_key: str = "year",
    ) -> None:
        if cache_key not in CACHE_KEYS:
            msg = f"Invalid cache_key: {cache_key}. Must be one of {CACHE_KEYS}"
            raise ValueError(msg)

        self._client = client
        self.cache_dir = cache_dir
        self.endpoint = endpoint
        self.cache_key = cache_key
        self.hits = 0
        self.fetches = 0

    def entity_dir(self, entity: Entity) -> Path:
        """Return the working directory for ``entity``."""
        return self.cache_dir / safe_dirname(entity.display_name)

    def path_for(self, entity: Entity, ref: StatementRef, year_shared: bool = False) -> Path:
        """Return the deterministic artifact path for ``ref``.

        With the year key, ``year_shared`` marks a statement whose year is also
        used by another statement of the same entity; the statement number is
        then appended so the two artifacts cannot collide.
        """
        if self.cache_key == "statement_id":
            key = ref.statement_id
        elif year_shared:
            key = f"{ref.year}-{ref.statement_id}"
        else:
            key = ref.year
        return self.entity_dir(entity) / f"{entity.id}-{safe_dirname(key)}.html"

    def ensure_entity_dir(self, entity: Entity) -> Path:
        """Create the entity's working directory.

        Raises
        ------
        PersistenceError
            If the directory cannot be created.
        """
        folder = self.entity_dir(entity)
        try:
            folder.mkdir(parents=True, exist_ok=True)
        except OSError as err:
            msg = f"Failed to create directory {folder}: {err}"
            raise PersistenceError(msg) from err

        logger.debug("Created/verified directory: %s", folder)
        return folder

    def get(
        self,
        entity: Entity,
        ref: StatementRef,
        before_fetch: Callable[[], None] | None = None,
        year_shared: bool = False,
    ) -> CachedStatement:
        """Return the statement markup, fetching and persisting on a miss.

        Parameters
        ----------
        entity : Entity
            Owning entity.
        ref : StatementRef
            Statement to resolve.
        before_fetch : Callable[[], None] | None, optional
            Invoked right before a remote request (the orchestrator's
            throttle). Never called on a cache hit.
        year_shared : bool, optional
            Another listed statement of this entity has the same year; see
            :meth:`path_for`.

        Returns
        -------
        CachedStatement
            Markup, artifact path, and whether it was a cache hit.

        Raises
        ------
        FetchError
            If the remote fetch fails.
        PersistenceError
            If an existing artifact cannot be read.
        """
        path = self.path_for(entity, ref, year_shared=year_shared)

        if path.exists():
            logger.info("File %s already exists locally. Reading from disk.", path)
            try:
                content = path.read_bytes().decode("utf-8")
            except (OSError, UnicodeDecodeError) as err:
                msg = f"Failed to read local file {path}: {err}"
                raise PersistenceError(msg) from err
            self.hits += 1
            return CachedStatement(content=content, path=path, from_cache=True)

        if before_fetch is not None:
            before_fetch()

        logger.info("Downloading statement %s for year %s to %s", ref.statement_id, ref.year, path)
        content = self._fetch(entity, ref)
        self.fetches += 1
        self._persist(path, content)
        return CachedStatement(content=content, path=path, from_cache=False)

    def _fetch(self, entity: Entity, ref: StatementRef) -> str:
        url = self.endpoint.url_for(ref)
        headers = {"Content-Length": "0"} if self.endpoint.method == "POST" else None
        try:
            response = portal_request(self._client, self.endpoint.method, url, headers=headers)
        except TransportError as err:
            raise FetchError(entity.id, ref, err) from err

        logger.debug("Statement content length: %d", len(response.text))
        return response.text

    def _persist(self, path: Path, content: str) -> None:
        """Write ``content`` atomically; failures are logged, not raised."""
        tmp_name: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                newline="",
                dir=path.parent,
                prefix=f".{path.stem}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(content)
            os.replace(tmp_name, path)
        except OSError as err:
            logger.warning("Failed to save downloaded file %s: %s", path, err)
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    Path(tmp_name).unlink(missing_ok=True)
            return

        logger.info("Saved statement HTML to: %s", path)
