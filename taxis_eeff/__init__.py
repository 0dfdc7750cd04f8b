"""taxis-eeff: financial statement harvesting from the Montenegrin Taxis portal.

The package lists the statements each registered company has filed, caches
the statement HTML locally, extracts a few figures with ordered regex rules,
and appends one row per statement to ``Results.csv``.

Architecture
------------
* ``scraper``: httpx session, statement listing, and the local HTML cache.
* ``extractor``: Config-driven regex rules with ordered fallback per field.
* ``transformer``: Derived metrics (monthly average pay).
* ``writer``: Append-only CSV sink and the post-run report.
* ``harvest``: Orchestration, failure isolation, and request throttling.

Configuration and credentials
-----------------------------
Paths default to the ``data/`` and ``logs/`` trees but respect ``DATA_DIR`` and
``LOGS_DIR`` overrides. The portal session cookie is read from
``TAXIS_SESSION_COOKIE`` (a ``.env`` file is honoured).

Examples
--------
Harvest every registered company:

    $ python -m taxis_eeff.main_harvest

Harvest one company using the GET statement endpoint:

    $ python -m taxis_eeff.main_harvest --only 03014215 --endpoint statement
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
