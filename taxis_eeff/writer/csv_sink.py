"""Append-only CSV output for harvested statement records.

The header is written once when the file is created. Every appended row is
flushed and fsync'd before ``append`` returns, so an interrupted run keeps all
completed rows and loses at most the row in flight.

Rows are serialized with pandas ``DataFrame.to_csv``: integers as plain
decimal text and ``averagePay`` in shortest round-trip float form
(``10000.0``, ``1234.5678``). The sink does not deduplicate; the orchestrator
guarantees one row per (entity, statement).
"""

from __future__ import annotations

import os
from typing import IO, TYPE_CHECKING

import pandas as pd

from taxis_eeff.config import setup_logging
from taxis_eeff.errors import PersistenceError
from taxis_eeff.models import CSV_COLUMNS

if TYPE_CHECKING:
    from pathlib import Path
    from types import TracebackType

    from taxis_eeff.models import ResultRecord

logger = setup_logging(__name__)


class CsvSink:
    """Open CSV results file.

    Use :meth:`open` rather than the constructor; the sink is a context
    manager and closes (after a final flush) on exit.
    """

    def __init__(self, path: Path, handle: IO[str]) -> None:
        self.path = path
        self._handle = handle
        self.rows_written = 0

    @classmethod
    def open(cls, path: Path, append: bool = False) -> CsvSink:
        """Create (or reopen) the results file.

        Parameters
        ----------
        path : Path
            CSV destination; parent directories are created.
        append : bool, optional
            Keep existing rows. The header is only written when the file is
            new or empty. Default ``False`` truncates.

        Returns
        -------
        CsvSink
            Sink positioned after the header.

        Raises
        ------
        PersistenceError
            If the file cannot be created or the header cannot be written.
        """
        write_header = not append or not path.exists() or path.stat().st_size == 0

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handle = path.open("a" if append else "w", encoding="utf-8", newline="")
        except OSError as err:
            msg = f"Cannot open results file {path}: {err}"
            raise PersistenceError(msg) from err

        sink = cls(path, handle)
        if write_header:
            sink._write_frame(pd.DataFrame(columns=list(CSV_COLUMNS)), header=True)
        logger.info("CSV file initialized: %s", path)
        return sink

    def append(self, record: ResultRecord) -> None:
        """Write one record as one row and flush it to disk.

        Raises
        ------
        PersistenceError
            If the write or flush fails.
        """
        frame = pd.DataFrame([record.as_row()], columns=list(CSV_COLUMNS))
        self._write_frame(frame, header=False)
        self.rows_written += 1
        logger.debug("Written record to CSV for %s (%s)", record.name, record.year)

    def _write_frame(self, frame: pd.DataFrame, header: bool) -> None:
        try:
            frame.to_csv(self._handle, header=header, index=False, lineterminator="\n")
            self.flush()
        except (OSError, ValueError) as err:
            msg = f"Failed to write to {self.path}: {err}"
            raise PersistenceError(msg) from err

    def flush(self) -> None:
        """Flush buffered rows through to the backing store."""
        self._handle.flush()
        os.fsync(self._handle.fileno())

    def close(self) -> None:
        """Flush and close the file; safe to call twice."""
        if self._handle.closed:
            return
        try:
            self.flush()
        finally:
            self._handle.close()

    def __enter__(self) -> CsvSink:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
