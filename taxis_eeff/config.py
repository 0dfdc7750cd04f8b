"""Configuration management for taxis-eeff.

This module centralizes file-system paths, environment variables, and the
JSON configuration loaders used by the harvesting pipeline.

Configuration files
-------------------
* ``config.json``: portal endpoints, listing page size, throttle and cache settings
* ``entities.json``: registry of entities to harvest (PIB -> display name)
* ``extraction_rules.json``: ordered pattern rules per extracted field

Environment variables
---------------------
``DATA_DIR`` and ``LOGS_DIR`` override default directories. The portal session
cookie is read from ``TAXIS_SESSION_COOKIE``. Directories are created eagerly
on import so downstream callers can rely on their existence.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, cast

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
DATA_DIR = Path(os.getenv("DATA_DIR", PROJECT_ROOT / "data"))
LOGS_DIR = Path(os.getenv("LOGS_DIR", PROJECT_ROOT / "logs"))
CACHE_DIR = DATA_DIR / "statements"
OUTPUT_DIR = DATA_DIR / "output"

# Ensure directories exist
DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)
CACHE_DIR.mkdir(parents=True, exist_ok=True)
OUTPUT_DIR.mkdir(parents=True, exist_ok=True)

# Portal credential (expires server-side, refreshed manually)
TAXIS_SESSION_COOKIE = os.getenv("TAXIS_SESSION_COOKIE", "")

DEFAULT_BASE_URL = "https://eprijava.tax.gov.me/TaxisPortal/FinancialStatement"


def setup_logging(name: str = "taxis_eeff") -> logging.Logger:
    """Configure a console+file logger if not already present.

    Parameters
    ----------
    name : str, optional
        Logger namespace; reused to avoid duplicate handlers.

    Returns
    -------
    logging.Logger
        Logger with INFO-level console handler and DEBUG-level file handler
        under ``LOGS_DIR``.
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.setLevel(logging.DEBUG)

        # Console handler
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_format = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
        console_handler.setFormatter(console_format)
        logger.addHandler(console_handler)

        # File handler
        log_filename = f"{datetime.now(UTC).strftime('%Y-%m-%d')}_run.log"
        file_handler = logging.FileHandler(LOGS_DIR / log_filename, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_format = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        file_handler.setFormatter(file_format)
        logger.addHandler(file_handler)

    return logger


def _load_json_config(filename: str) -> dict[str, Any]:
    """Load a JSON file from ``CONFIG_DIR``.

    Raises
    ------
    FileNotFoundError
        If the file is missing.
    json.JSONDecodeError
        If the file exists but is not valid JSON.
    """
    config_path = CONFIG_DIR / filename
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with config_path.open(encoding="utf-8") as f:
        return cast("dict[str, Any]", json.load(f))


def get_config() -> dict[str, Any]:
    """Load the primary project configuration.

    Returns
    -------
    dict[str, Any]
        Parsed contents of ``config/config.json`` with ``portal`` and
        ``harvest`` sections.
    """
    return _load_json_config("config.json")


def get_portal_config(config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return the ``portal`` section with defaults filled in.

    Parameters
    ----------
    config : dict[str, Any] | None, optional
        Preloaded configuration (tests pass their own); loaded from disk when ``None``.

    Returns
    -------
    dict[str, Any]
        Keys ``base_url``, ``listing_path``, ``listing_take``,
        ``timeout_seconds``, ``statement_endpoint`` and ``statement_endpoints``.
    """
    if config is None:
        config = get_config()

    portal = dict(config.get("portal", {}))
    portal.setdefault("base_url", DEFAULT_BASE_URL)
    portal.setdefault("listing_path", "TaxPayerStatementsList?PIB={entity_id}&take={take}")
    portal.setdefault("listing_take", 20)
    portal.setdefault("timeout_seconds", 60.0)
    portal.setdefault("statement_endpoint", "details")
    portal.setdefault("statement_endpoints", {})
    return portal


def get_harvest_config(config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return the ``harvest`` section with defaults filled in.

    Returns
    -------
    dict[str, Any]
        Keys ``throttle_seconds``, ``cache_key`` and ``output_filename``.
    """
    if config is None:
        config = get_config()

    harvest = dict(config.get("harvest", {}))
    harvest.setdefault("throttle_seconds", 1.0)
    harvest.setdefault("cache_key", "year")
    harvest.setdefault("output_filename", "Results.csv")
    return harvest


def get_entities_config() -> dict[str, Any]:
    """Load the entity registry from ``entities.json``."""
    return _load_json_config("entities.json")


def get_extraction_rules() -> dict[str, Any]:
    """Load field extraction rules from ``extraction_rules.json``.

    Returns
    -------
    dict[str, Any]
        Mapping with a ``fields`` key: field name -> ordered list of rules.
    """
    return _load_json_config("extraction_rules.json")
