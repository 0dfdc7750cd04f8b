"""Post-run report built from the results CSV."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pandas as pd

if TYPE_CHECKING:
    from pathlib import Path


def load_results(path: Path) -> pd.DataFrame:
    """Read the results CSV, keeping ``Year`` as text."""
    return pd.read_csv(path, dtype={"name": str, "Year": str}, encoding="utf-8")


def summarize_results(results: pd.DataFrame) -> pd.DataFrame:
    """Collapse rows to one line per entity.

    Parameters
    ----------
    results : pd.DataFrame
        Frame as returned by :func:`load_results`.

    Returns
    -------
    pd.DataFrame
        Columns ``name``, ``statements``, ``first_year``, ``last_year``,
        ``last_total_income``, ``last_average_pay``; sorted by name.
        Entities whose rows carry duplicate years keep the last occurrence.
    """
    if results.empty:
        return pd.DataFrame(
            columns=["name", "statements", "first_year", "last_year", "last_total_income", "last_average_pay"],
        )

    ordered = results.drop_duplicates(subset=["name", "Year"], keep="last").sort_values(["name", "Year"])
    grouped = ordered.groupby("name", sort=True)

    summary = pd.DataFrame(
        {
            "statements": grouped.size(),
            "first_year": grouped["Year"].first(),
            "last_year": grouped["Year"].last(),
            "last_total_income": grouped["totalIncome"].last(),
            "last_average_pay": grouped["averagePay"].last().round(2),
        },
    )
    return summary.reset_index()


def format_harvest_report(results: pd.DataFrame) -> str:
    """Render the per-entity summary as a plain-text table."""
    summary = summarize_results(results)
    if summary.empty:
        return "No statements harvested."
    return summary.to_string(index=False)


def print_harvest_report(path: Path) -> None:
    """Print the per-entity summary for the results file at ``path``."""
    print(format_harvest_report(load_results(path)))  # noqa: T201
