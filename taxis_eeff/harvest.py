"""Harvest orchestrator: entities -> statements -> extraction -> CSV.

Per entity the flow is ``Listing -> (per statement: Caching -> Extracting ->
Sinking) -> Done``. Failures are isolated as narrowly as possible:

* working directory or listing failure skips the entity;
* fetch, cache read or CSV write failure skips one statement;
* extraction never fails a statement, missing fields default to 0;
* a rejected session (``AuthError``) aborts the run, every later call would fail too.

Remote statement fetches are spaced by a ``Throttle``; cache hits do not wait.
Everything runs sequentially on one thread.
"""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from taxis_eeff.config import setup_logging
from taxis_eeff.errors import AuthError, FetchError, ListingError, PersistenceError
from taxis_eeff.extractor.patterns import extract_fields
from taxis_eeff.transformer.metrics import build_record

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from taxis_eeff.extractor.patterns import ExtractionMiss, FieldSpec
    from taxis_eeff.models import Entity, StatementRef
    from taxis_eeff.scraper.statement_cache import StatementCache
    from taxis_eeff.scraper.statement_lister import StatementLister
    from taxis_eeff.writer.csv_sink import CsvSink

logger = setup_logging(__name__)


class Throttle:
    """Enforce a minimum interval between consecutive remote fetches.

    Parameters
    ----------
    min_interval : float
        Seconds that must elapse between two ``wait()`` returns.
    clock, sleep : Callable, optional
        Injectable time source and sleeper (tests pass fakes).
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.min_interval = max(0.0, min_interval)
        self._clock = clock
        self._sleep = sleep
        self._last: float | None = None

    def wait(self) -> None:
        """Block until ``min_interval`` has passed since the previous call."""
        if self._last is not None:
            remaining = self.min_interval - (self._clock() - self._last)
            if remaining > 0:
                logger.debug("Throttling for %.2fs", remaining)
                self._sleep(remaining)
        self._last = self._clock()


class EntityState(StrEnum):
    """Terminal state of an entity's harvest."""

    DONE = "done"
    SKIPPED = "skipped"


@dataclass
class EntityOutcome:
    """What happened to one entity."""

    entity: Entity
    state: EntityState = EntityState.DONE
    statements_listed: int = 0
    statements_written: int = 0
    statements_skipped: int = 0
    reason: str | None = None


@dataclass
class HarvestSummary:
    """Aggregate result of a run.

    Attributes
    ----------
    outcomes : list[EntityOutcome]
        One entry per processed entity, in processing order.
    cache_hits, remote_fetches : int
        Statement resolutions served from disk vs. from the portal.
    misses : list[ExtractionMiss]
        Fields that defaulted to 0, for drift detection.
    """

    outcomes: list[EntityOutcome] = field(default_factory=list)
    cache_hits: int = 0
    remote_fetches: int = 0
    misses: list[ExtractionMiss] = field(default_factory=list)

    @property
    def rows_written(self) -> int:
        return sum(o.statements_written for o in self.outcomes)

    @property
    def skipped_entities(self) -> list[EntityOutcome]:
        return [o for o in self.outcomes if o.state is EntityState.SKIPPED]

    def log(self) -> None:
        """Write a short end-of-run summary to the log."""
        logger.info(
            "Harvest finished: %d entities (%d skipped), %d rows, %d cache hits, %d downloads, %d extraction misses",
            len(self.outcomes),
            len(self.skipped_entities),
            self.rows_written,
            self.cache_hits,
            self.remote_fetches,
            len(self.misses),
        )
        for outcome in self.skipped_entities:
            logger.warning("  skipped %s (%s): %s", outcome.entity.display_name, outcome.entity.id, outcome.reason)


class HarvestOrchestrator:
    """Drive listing, caching, extraction and output for a set of entities.

    All collaborators are constructed by the caller and passed in; the
    orchestrator owns none of them and closes nothing.

    Parameters
    ----------
    lister : StatementLister
        Resolves statements per entity.
    cache : StatementCache
        Resolves statement markup.
    sink : CsvSink
        Receives finished records.
    field_specs : list[FieldSpec]
        Extraction rules.
    throttle : Throttle
        Spacing between remote statement fetches.
    take : int, optional
        Listing page-size bound. Default 20.
    """

    def __init__(
        self,
        lister: StatementLister,
        cache: StatementCache,
        sink: CsvSink,
        field_specs: list[FieldSpec],
        throttle: Throttle,
        take: int = 20,
    ) -> None:
        self.lister = lister
        self.cache = cache
        self.sink = sink
        self.field_specs = field_specs
        self.throttle = throttle
        self.take = take
        self._emitted: set[tuple[str, str]] = set()

    def run(self, entities: Iterable[Entity]) -> HarvestSummary:
        """Harvest every entity and return the run summary.

        Raises
        ------
        AuthError
            If the portal rejects the session; rows already written stay on disk.
        """
        summary = HarvestSummary()
        hits_before, fetches_before = self.cache.hits, self.cache.fetches

        try:
            for entity in entities:
                summary.outcomes.append(self.harvest_entity(entity, summary))
        finally:
            summary.cache_hits = self.cache.hits - hits_before
            summary.remote_fetches = self.cache.fetches - fetches_before

        summary.log()
        return summary

    def harvest_entity(self, entity: Entity, summary: HarvestSummary) -> EntityOutcome:
        """Process one entity; never raises except for ``AuthError``."""
        outcome = EntityOutcome(entity=entity)
        logger.info("Processing company: %s (%s)", entity.display_name, entity.id)

        try:
            self.cache.ensure_entity_dir(entity)
        except PersistenceError as err:
            logger.error("%s. Skipping company.", err)
            return self._skip(outcome, str(err))

        try:
            refs = self.lister.list_statements(entity.id, take=self.take)
        except ListingError as err:
            if isinstance(err.cause, AuthError):
                logger.error("Session rejected while listing %s: %s", entity.display_name, err.cause)
                raise err.cause from err
            logger.error("Failed to get report list for %s: %s", entity.display_name, err.cause)
            return self._skip(outcome, str(err.cause))

        outcome.statements_listed = len(refs)
        year_counts = Counter(ref.year for ref in refs)
        for ref in refs:
            year_shared = year_counts[ref.year] > 1
            if self.harvest_statement(entity, ref, summary, year_shared=year_shared):
                outcome.statements_written += 1
            else:
                outcome.statements_skipped += 1

        try:
            self.sink.flush()
        except OSError as err:
            logger.warning("Failed to flush results after %s: %s", entity.display_name, err)

        logger.info("Finished processing all reports for %s", entity.display_name)
        return outcome

    def harvest_statement(
        self,
        entity: Entity,
        ref: StatementRef,
        summary: HarvestSummary,
        year_shared: bool = False,
    ) -> bool:
        """Cache, extract and emit one statement.

        ``year_shared`` is set when the listing holds another statement for the
        same year, so the cache keeps the two apart.

        Returns
        -------
        bool
            ``True`` when a row was written.
        """
        key = (entity.id, ref.statement_id)
        if key in self._emitted:
            logger.warning("Statement %s for %s already emitted this run, skipping", ref.statement_id, entity.id)
            return False

        context = f"{entity.display_name} ({ref.year})"
        logger.info("Processing report no. %s for year %s", ref.statement_id, ref.year)

        try:
            statement = self.cache.get(
                entity,
                ref,
                before_fetch=self.throttle.wait,
                year_shared=year_shared,
            )
        except FetchError as err:
            if isinstance(err.cause, AuthError):
                logger.error("Session rejected while fetching %s: %s", context, err.cause)
                raise err.cause from err
            logger.error("Failed to download report for %s: %s. Skipping report.", context, err.cause)
            return False
        except PersistenceError as err:
            logger.error("%s. Skipping report.", err)
            return False

        fields, misses = extract_fields(statement.content, self.field_specs, context=context)
        summary.misses.extend(misses)

        record = build_record(entity, ref, fields)
        logger.info(
            "Data loaded - totalIncome: %d, profit: %d, employees: %d, netPayCosts: %d",
            record.total_income,
            record.profit,
            record.employee_count,
            record.net_pay_costs,
        )

        try:
            self.sink.append(record)
        except PersistenceError as err:
            logger.error("Failed to write CSV record for %s: %s", context, err)
            return False

        self._emitted.add(key)
        return True

    @staticmethod
    def _skip(outcome: EntityOutcome, reason: str) -> EntityOutcome:
        outcome.state = EntityState.SKIPPED
        outcome.reason = reason
        return outcome
