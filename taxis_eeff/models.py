"""Dataclasses shared across the harvesting pipeline.

This module contains pure data structures with no business logic dependencies,
ensuring they can be imported without circular dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "CSV_COLUMNS",
    "Entity",
    "ExtractedFields",
    "ResultRecord",
    "StatementRef",
]

# Output header, case preserved as consumers of Results.csv expect it
CSV_COLUMNS = ("name", "Year", "totalIncome", "profit", "employeeCount", "netPayCosts", "averagePay")


@dataclass(frozen=True)
class Entity:
    """Registered taxpayer being harvested.

    Attributes
    ----------
    id : str
        PIB (tax identification number), unique per entity.
    display_name : str
        Human-readable company name; also names the cache sub-folder.
    """

    id: str
    display_name: str


@dataclass(frozen=True)
class StatementRef:
    """One financial statement as returned by the portal listing."""

    statement_id: str  # FinStatementNumber ("rbr") on the portal
    year: str


@dataclass
class ExtractedFields:
    """Numeric fields extracted from a statement page.

    A value of 0 may mean "no rule matched"; see ``FieldResult.matched``
    for the distinction.
    """

    total_income: int = 0
    profit: int = 0
    employee_count: int = 0
    net_pay_costs: int = 0


@dataclass(frozen=True)
class ResultRecord:
    """One CSV row: extracted fields plus the derived average pay."""

    name: str
    year: str
    total_income: int
    profit: int
    employee_count: int
    net_pay_costs: int
    average_pay: float

    def as_row(self) -> list[str | int | float]:
        """Return values in ``CSV_COLUMNS`` order."""
        return [
            self.name,
            self.year,
            self.total_income,
            self.profit,
            self.employee_count,
            self.net_pay_costs,
            self.average_pay,
        ]
