"""Tests for the append-only results CSV and its report."""

from __future__ import annotations

from pathlib import Path

import pytest

from taxis_eeff.errors import PersistenceError
from taxis_eeff.models import ResultRecord
from taxis_eeff.writer.csv_sink import CsvSink
from taxis_eeff.writer.report import format_harvest_report, load_results, summarize_results

HEADER = "name,Year,totalIncome,profit,employeeCount,netPayCosts,averagePay\n"


def _record(name: str = "Acme", year: str = "2022", average_pay: float = 10000.0) -> ResultRecord:
    return ResultRecord(
        name=name,
        year=year,
        total_income=5000000,
        profit=300000,
        employee_count=10,
        net_pay_costs=1200000,
        average_pay=average_pay,
    )


class TestCsvSinkHeader:
    """Tests for header handling."""

    def test_header_written_with_no_rows(self, tmp_path: Path) -> None:
        """Opening and closing without rows leaves exactly the header."""
        path = tmp_path / "Results.csv"

        with CsvSink.open(path):
            pass

        assert path.read_text(encoding="utf-8") == HEADER

    def test_header_visible_before_close(self, tmp_path: Path) -> None:
        """The header is flushed at creation."""
        path = tmp_path / "Results.csv"
        sink = CsvSink.open(path)
        try:
            assert path.read_text(encoding="utf-8") == HEADER
        finally:
            sink.close()

    def test_append_mode_keeps_rows_and_single_header(self, tmp_path: Path) -> None:
        """Reopening with append=True does not repeat the header."""
        path = tmp_path / "Results.csv"
        with CsvSink.open(path) as sink:
            sink.append(_record(year="2021"))
        with CsvSink.open(path, append=True) as sink:
            sink.append(_record(year="2022"))

        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines[0] + "\n" == HEADER
        assert len(lines) == 3

    def test_truncates_by_default(self, tmp_path: Path) -> None:
        """A fresh run starts a new file."""
        path = tmp_path / "Results.csv"
        path.write_text("stale\n", encoding="utf-8")

        with CsvSink.open(path):
            pass

        assert path.read_text(encoding="utf-8") == HEADER

    def test_unwritable_path_raises(self, tmp_path: Path) -> None:
        """Failure to create the file surfaces as PersistenceError."""
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("", encoding="utf-8")

        with pytest.raises(PersistenceError):
            CsvSink.open(blocker / "Results.csv")


class TestCsvSinkAppend:
    """Tests for row serialization."""

    def test_row_format(self, tmp_path: Path) -> None:
        """Integers are plain decimals and average pay keeps its float form."""
        path = tmp_path / "Results.csv"

        with CsvSink.open(path) as sink:
            sink.append(_record())

        assert path.read_text(encoding="utf-8") == HEADER + "Acme,2022,5000000,300000,10,1200000,10000.0\n"

    def test_rows_visible_while_open(self, tmp_path: Path) -> None:
        """Each row is flushed before append returns."""
        path = tmp_path / "Results.csv"

        with CsvSink.open(path) as sink:
            sink.append(_record())
            assert path.read_text(encoding="utf-8").count("\n") == 2
            assert sink.rows_written == 1

    def test_no_deduplication(self, tmp_path: Path) -> None:
        """Appending the same record twice writes two rows."""
        path = tmp_path / "Results.csv"

        with CsvSink.open(path) as sink:
            sink.append(_record())
            sink.append(_record())

        assert len(path.read_text(encoding="utf-8").splitlines()) == 3

    def test_name_with_comma_is_quoted(self, tmp_path: Path) -> None:
        """Display names containing commas stay in one column."""
        path = tmp_path / "Results.csv"

        with CsvSink.open(path) as sink:
            sink.append(_record(name="Acme, d.o.o."))

        assert '"Acme, d.o.o.",2022' in path.read_text(encoding="utf-8")

    def test_append_after_close_raises(self, tmp_path: Path) -> None:
        """Writing to a closed sink is a persistence failure."""
        sink = CsvSink.open(tmp_path / "Results.csv")
        sink.close()

        with pytest.raises(PersistenceError):
            sink.append(_record())


class TestReport:
    """Tests for the post-run summary."""

    def test_summary_per_entity(self, tmp_path: Path) -> None:
        """Rows collapse to one line per entity with year range."""
        path = tmp_path / "Results.csv"
        with CsvSink.open(path) as sink:
            sink.append(_record(year="2021", average_pay=900.0))
            sink.append(_record(year="2022", average_pay=1000.0))
            sink.append(_record(name="Beta", year="2022", average_pay=0.0))

        summary = summarize_results(load_results(path))

        acme = summary[summary["name"] == "Acme"].iloc[0]
        assert acme["statements"] == 2
        assert acme["first_year"] == "2021"
        assert acme["last_year"] == "2022"
        assert acme["last_average_pay"] == 1000.0
        assert list(summary["name"]) == ["Acme", "Beta"]

    def test_empty_results(self, tmp_path: Path) -> None:
        """A header-only file reports that nothing was harvested."""
        path = tmp_path / "Results.csv"
        with CsvSink.open(path):
            pass

        assert format_harvest_report(load_results(path)) == "No statements harvested."
