"""Derived metrics computed from extracted statement fields."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from taxis_eeff.models import ResultRecord

if TYPE_CHECKING:
    from taxis_eeff.models import Entity, ExtractedFields, StatementRef

MONTHS_PER_YEAR = 12.0


@dataclass(frozen=True)
class DerivedMetrics:
    """Computed values appended to each record."""

    average_pay: float


def derive(fields: ExtractedFields) -> DerivedMetrics:
    """Compute monthly average net pay per employee.

    Parameters
    ----------
    fields : ExtractedFields
        Values extracted from the statement.

    Returns
    -------
    DerivedMetrics
        ``net_pay_costs / employee_count / 12``, or ``0.0`` when there are no
        employees. Not rounded.
    """
    if fields.employee_count > 0:
        return DerivedMetrics(average_pay=fields.net_pay_costs / fields.employee_count / MONTHS_PER_YEAR)
    return DerivedMetrics(average_pay=0.0)


def build_record(entity: Entity, ref: StatementRef, fields: ExtractedFields) -> ResultRecord:
    """Assemble the output row for one statement."""
    metrics = derive(fields)
    return ResultRecord(
        name=entity.display_name,
        year=ref.year,
        total_income=fields.total_income,
        profit=fields.profit,
        employee_count=fields.employee_count,
        net_pay_costs=fields.net_pay_costs,
        average_pay=metrics.average_pay,
    )
