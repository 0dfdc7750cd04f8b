"""Shared test helpers: statement page builder and a fake Taxis portal."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import httpx

BASE_URL = "https://portal.test/TaxisPortal/FinancialStatement"
SESSION_COOKIE = "taxisSession=test-session"

_VALUE_CELL = '<td style="text-align: right; padding-right: 8px">{value}</td>'


def build_statement_html(
    total_income: int | None = None,
    profit: int | None = None,
    employee_count: int | None = None,
    net_pay_costs: int | None = None,
    total_income_layout: str = "original",
) -> str:
    """Render a statement page containing only the requested rows.

    ``total_income_layout`` selects the older ``"original"`` row (empty note
    cell right after AOP 201) or the newer ``"row"`` layout with a populated
    note cell.
    """
    rows: list[str] = []

    if total_income is not None:
        if total_income_layout == "original":
            rows.append(
                "<tr>\n"
                '<td style="text-align: left">A. POSLOVNI PRIHODI</td>\n'
                '<td style="text-align: center;">201</td>\n'
                "<td></td>\n"
                f"{_VALUE_CELL.format(value=total_income)}\n"
                "</tr>",
            )
        else:
            rows.append(
                "<tr>\n"
                '<td style="text-align: left">6</td>\n'
                '<td style="text-align: left">A. POSLOVNI PRIHODI</td>\n'
                '<td style="text-align: center;">201</td>\n'
                "<td>3.1</td>\n"
                f"{_VALUE_CELL.format(value=total_income)}\n"
                "</tr>",
            )

    if profit is not None:
        rows.append(
            "<tr>\n"
            '<td style="text-align: left">IX. Neto sveobuhvatni rezultat (248+259)</td>\n'
            '<td style="text-align: center;">260</td>\n'
            "<td></td>\n"
            f"{_VALUE_CELL.format(value=profit)}\n"
            "</tr>",
        )

    if employee_count is not None:
        rows.append(
            "<tr>\n"
            '<td style="text-align: left">Prosječan broj zaposlenih (na osnovu stanja krajem mjeseca)</td>\n'
            '<td style="text-align: center;">001</td>\n'
            "<td></td>\n"
            f"{_VALUE_CELL.format(value=employee_count)}\n"
            "</tr>",
        )

    if net_pay_costs is not None:
        rows.append(
            "<tr>\n"
            '<td style="text-align: left">a) Neto troškovi zarada, naknada zarada i lični rashodi</td>\n'
            '<td style="text-align: center;">212</td>\n'
            "<td></td>\n"
            f"{_VALUE_CELL.format(value=net_pay_costs)}\n"
            "</tr>",
        )

    body = "\n".join(rows)
    return f'<html>\n<body>\n<table class="fin-statement">\n{body}\n</table>\n</body>\n</html>\n'


@dataclass
class FakePortal:
    """In-memory stand-in for the Taxis portal.

    Attributes
    ----------
    listings : dict[str, Any]
        PIB -> JSON payload (or an ``httpx.Response`` / exception to return).
    statements : dict[str, Any]
        Statement number -> HTML (or an ``httpx.Response`` / exception).
    requests : list[httpx.Request]
        Every request received, in order.
    """

    listings: dict[str, Any] = field(default_factory=dict)
    statements: dict[str, Any] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)

    def add_listing(self, pib: str, items: list[dict[str, Any]]) -> None:
        self.listings[pib] = {"data": items}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        endpoint = request.url.path.rsplit("/", 1)[-1]

        if endpoint == "TaxPayerStatementsList":
            return self._respond(self.listings.get(request.url.params.get("PIB", "")), request, as_json=True)
        if endpoint == "Details":
            return self._respond(self.statements.get(request.url.params.get("rbr", "")), request)
        if endpoint == "GetStatement":
            return self._respond(self.statements.get(request.url.params.get("id", "")), request)
        return httpx.Response(404, request=request)

    @staticmethod
    def _respond(entry: Any, request: httpx.Request, as_json: bool = False) -> httpx.Response:
        if entry is None:
            return httpx.Response(404, request=request)
        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, httpx.Response):
            return entry
        if as_json:
            return httpx.Response(200, text=json.dumps(entry), headers={"Content-Type": "application/json"})
        return httpx.Response(200, text=entry, headers={"Content-Type": "text/html; charset=utf-8"})

    def calls_to(self, endpoint: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(f"/{endpoint}")]


