"""
Xero Data Parsers
Flatten the Profit & Loss report tree into per-account monthly lines.

The report is a list of rows:
- one Header row whose cells after the first are month labels
- Section rows with a Title and child rows
- child Row entries whose first cell is the account name and whose
  remaining cells are per-month amounts (SummaryRow totals are ignored)

Section titles are free text chosen by Xero per organization and locale,
so classification is a case-insensitive keyword match.
"""

import logging
import math
from decimal import Decimal
from typing import Any, Optional, TypedDict, Union
from uuid import UUID

from app.integrations.xero.utils import parse_currency_value, parse_month_label
from app.models.xero_pl_line import AccountType

logger = logging.getLogger(__name__)

DEFAULT_SECTION_TITLE = "Other"

# Checked in order; the more specific "other ..." titles must win over
# plain "income" / "expense".
SECTION_KEYWORDS: list[tuple[AccountType, tuple[str, ...]]] = [
    (AccountType.OTHER_INCOME, ("other income",)),
    (AccountType.OTHER_EXPENSE, ("other expense",)),
    (AccountType.REVENUE, ("income", "revenue")),
    (AccountType.COGS, ("cost of", "cogs", "direct")),
    (AccountType.OPEX, ("expense", "operating")),
]


class NormalizedPLLine(TypedDict):
    """One account line ready for storage."""
    business_id: UUID
    account_name: str
    account_type: str
    section: str
    monthly_values: dict[str, float]


class MonthlySummary(TypedDict):
    """Totals for one month across all lines."""
    month: str
    revenue: float
    cogs: float
    gross_profit: float
    opex: float
    other_income: float
    other_expense: float
    net_profit: float


def _get(node: dict, key: str, default: Any = None) -> Any:
    """Read a PascalCase Xero key, falling back to its snake_case form."""
    snake = "".join("_" + c.lower() if c.isupper() else c for c in key).lstrip("_")
    return node.get(key, node.get(snake, default))


def classify_section(title: Optional[str]) -> AccountType:
    """
    Map a report section title to an account type.

    Examples:
        "Income" / "Trading Income" → revenue
        "Less Cost of Sales" → cogs
        "Less Operating Expenses" → opex
        "Plus Other Income" → other_income
        "Gross Profit" → other
    """
    lowered = (title or "").lower()
    for account_type, keywords in SECTION_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return account_type
    return AccountType.OTHER


def _cell_value(cell: Any) -> Any:
    if isinstance(cell, dict):
        return _get(cell, "Value")
    return None


def _to_float(value: Decimal) -> float:
    """Decimal to float; magnitudes beyond float range become 0.0."""
    amount = float(value)
    return amount if math.isfinite(amount) else 0.0


class ProfitLossParser:
    """
    Parse the monthly Profit & Loss report.

    Pure functions of their input: the same report always yields the
    same lines in the same order.
    """

    @staticmethod
    def extract_rows(report: Union[dict, list, None]) -> list[dict]:
        """Accept either a report (Reports[0]) or its Rows list."""
        if isinstance(report, list):
            rows = report
        elif isinstance(report, dict):
            rows = _get(report, "Rows", [])
        else:
            return []

        if not isinstance(rows, list):
            return []
        return [row for row in rows if isinstance(row, dict)]

    @staticmethod
    def extract_month_labels(rows: list[dict]) -> list[Any]:
        """Month labels from the Header row, in column order."""
        for row in rows:
            if _get(row, "RowType") == "Header":
                cells = _get(row, "Cells", []) or []
                return [_cell_value(cell) for cell in cells[1:]]
        return []

    @classmethod
    def normalize(
        cls,
        report: Union[dict, list, None],
        business_id: UUID,
    ) -> list[NormalizedPLLine]:
        """
        Flatten the report into one line per account.

        Args:
            report: Reports[0] from the ProfitAndLoss endpoint, or its Rows
            business_id: Business the lines belong to

        Returns:
            Lines with monthly_values keyed by YYYY-MM. Accounts with no
            parseable month columns are dropped.
        """
        rows = cls.extract_rows(report)
        month_keys = [parse_month_label(label) for label in cls.extract_month_labels(rows)]

        lines: list[NormalizedPLLine] = []

        for section in rows:
            if _get(section, "RowType") != "Section":
                continue

            children = _get(section, "Rows")
            if not isinstance(children, list) or not children:
                continue

            section_title = _get(section, "Title") or DEFAULT_SECTION_TITLE
            account_type = classify_section(section_title)

            for row in children:
                if not isinstance(row, dict) or _get(row, "RowType") != "Row":
                    continue

                cells = _get(row, "Cells")
                if not isinstance(cells, list) or not cells:
                    continue

                account_name = _cell_value(cells[0])
                if not account_name:
                    continue

                monthly_values: dict[str, float] = {}
                for index, month_key in enumerate(month_keys, start=1):
                    if month_key is None:
                        continue
                    raw = _cell_value(cells[index]) if index < len(cells) else None
                    monthly_values[month_key] = _to_float(parse_currency_value(raw))

                if not monthly_values:
                    continue

                lines.append(
                    NormalizedPLLine(
                        business_id=business_id,
                        account_name=str(account_name),
                        account_type=account_type.value,
                        section=section_title,
                        monthly_values=monthly_values,
                    )
                )

        logger.debug(
            "Normalized %d P&L lines across %d months for business %s",
            len(lines),
            len([key for key in month_keys if key]),
            business_id,
        )
        return lines

    @staticmethod
    def count_months(lines: list[dict]) -> int:
        """Distinct months covered by a set of lines."""
        months: set[str] = set()
        for line in lines:
            months.update((line.get("monthly_values") or {}).keys())
        return len(months)

    @staticmethod
    def summarize(lines: list[dict]) -> list[MonthlySummary]:
        """
        Per-month totals, oldest month first.

        gross_profit = revenue - cogs
        net_profit = gross_profit - opex + other_income - other_expense
        """
        buckets: dict[str, dict[str, Decimal]] = {}

        for line in lines:
            account_type = line.get("account_type", AccountType.OTHER.value)
            for month, value in (line.get("monthly_values") or {}).items():
                bucket = buckets.setdefault(month, {t.value: Decimal("0") for t in AccountType})
                bucket.setdefault(account_type, Decimal("0"))
                bucket[account_type] += parse_currency_value(value)

        summary: list[MonthlySummary] = []
        for month in sorted(buckets):
            bucket = buckets[month]
            revenue = bucket[AccountType.REVENUE.value]
            cogs = bucket[AccountType.COGS.value]
            opex = bucket[AccountType.OPEX.value]
            other_income = bucket[AccountType.OTHER_INCOME.value]
            other_expense = bucket[AccountType.OTHER_EXPENSE.value]
            gross_profit = revenue - cogs
            net_profit = gross_profit - opex + other_income - other_expense

            summary.append(
                MonthlySummary(
                    month=month,
                    revenue=_to_float(revenue),
                    cogs=_to_float(cogs),
                    gross_profit=_to_float(gross_profit),
                    opex=_to_float(opex),
                    other_income=_to_float(other_income),
                    other_expense=_to_float(other_expense),
                    net_profit=_to_float(net_profit),
                )
            )

        return summary
