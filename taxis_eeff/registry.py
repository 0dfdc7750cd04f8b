"""Entity registry loading.

The registry is plain configuration: ``config/entities.json`` maps each PIB to
a display name. A list of ``{"id": ..., "name": ...}`` objects is accepted
too, which is handier when names repeat or ordering matters.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from taxis_eeff.config import get_entities_config, setup_logging
from taxis_eeff.models import Entity

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = setup_logging(__name__)


def parse_entities(raw: dict[str, Any] | list[dict[str, Any]]) -> list[Entity]:
    """Build ``Entity`` objects from a registry payload.

    Parameters
    ----------
    raw
        Either ``{"entities": {...}}``, a bare ``{pib: name}`` mapping, or a
        list of ``{"id", "name"}`` objects.

    Returns
    -------
    list[Entity]
        Entities in declaration order; duplicate PIBs keep the first entry.

    Raises
    ------
    ValueError
        If an entry lacks an id or a name.
    """
    if isinstance(raw, dict) and "entities" in raw:
        raw = raw["entities"]

    pairs: Iterable[tuple[Any, Any]]
    if isinstance(raw, dict):
        pairs = raw.items()
    else:
        pairs = ((item.get("id"), item.get("name", item.get("display_name"))) for item in raw)

    entities: list[Entity] = []
    seen: set[str] = set()
    for entity_id, name in pairs:
        if not entity_id or not name:
            msg = f"Invalid registry entry: id={entity_id!r}, name={name!r}"
            raise ValueError(msg)
        entity_id = str(entity_id).strip()
        if entity_id in seen:
            logger.warning("Duplicate PIB %s in registry, keeping first entry", entity_id)
            continue
        seen.add(entity_id)
        entities.append(Entity(id=entity_id, display_name=str(name).strip()))

    return entities


def load_entities(path: Path | None = None) -> list[Entity]:
    """Load the entity registry from ``path`` or ``config/entities.json``."""
    if path is None:
        return parse_entities(get_entities_config())

    with path.open(encoding="utf-8") as f:
        return parse_entities(json.load(f))
