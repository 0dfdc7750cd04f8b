"""Pytest configuration for taxis_eeff tests.

This module provides fixtures wiring the fake portal from ``tests.helpers``
into portal clients, plus the shipped extraction rules and a sample entity.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from taxis_eeff.extractor.patterns import FieldSpec, load_field_specs
from taxis_eeff.models import Entity
from taxis_eeff.scraper.session import create_portal_client
from tests.helpers import BASE_URL, SESSION_COOKIE, FakePortal

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture
def portal() -> FakePortal:
    """Empty fake portal; tests register listings and statements."""
    return FakePortal()


@pytest.fixture
def client(portal: FakePortal) -> Generator[httpx.Client, None, None]:
    """Portal client routed to the fake portal."""
    portal_client = create_portal_client(
        SESSION_COOKIE,
        base_url=BASE_URL,
        timeout=5.0,
        transport=httpx.MockTransport(portal.handler),
    )
    yield portal_client
    portal_client.close()


@pytest.fixture
def acme() -> Entity:
    """Entity used across scenario tests."""
    return Entity(id="X1", display_name="Acme")


@pytest.fixture
def field_specs() -> list[FieldSpec]:
    """Extraction rules as shipped in ``config/extraction_rules.json``."""
    return load_field_specs()
