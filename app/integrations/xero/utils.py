"""
Xero Integration Utilities
Shared helpers for parsing values and dates out of Xero responses.
"""

import logging
import re
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

# Day/month default for month-only labels such as "Jan 2024"
_MONTH_LABEL_DEFAULT = datetime(2000, 1, 1)

# Xero's legacy JSON date format: /Date(1577836800000+0000)/
_MS_DATE_PATTERN = re.compile(r"/Date\((-?\d+)([+-]\d{4})?\)/")


def parse_currency_value(value: Any, default: str = "0.00") -> Decimal:
    """
    Robustly parse currency values from Xero cell values.

    Handles:
    - Currency symbols: $, £, €, USD, EUR, GBP, etc.
    - Parentheses for negatives: (500.00) → -500.00
    - Dashes/empty for zeros: -, —, "" → 0.00
    - European format: 1.234,56 (thousands=., decimal=,)
    - US/UK format: 1,234.56 (thousands=,, decimal=.)
    - None values and non-finite results (NaN, Infinity)

    Args:
        value: Raw cell value (string, number, None)
        default: Default value if parsing fails

    Returns:
        Finite Decimal value or default
    """
    if value is None:
        return Decimal(default)

    try:
        value_str = str(value).strip()

        if not value_str or value_str in ("-", "—", "–"):
            return Decimal(default)

        currency_symbols = ["$", "£", "€", "USD", "EUR", "GBP", "AUD", "NZD", "CAD"]
        for symbol in currency_symbols:
            value_str = value_str.replace(symbol, "").strip()

        if value_str.startswith("(") and value_str.endswith(")"):
            value_str = "-" + value_str[1:-1].strip()

        has_european_thousands = re.search(r"\d{1,3}(\.\d{3})+,\d{1,2}$", value_str)
        has_us_thousands = re.search(r"\d{1,3}(,\d{3})+\.\d{1,2}$", value_str)

        if has_european_thousands:
            value_str = value_str.replace(".", "").replace(",", ".")
        elif has_us_thousands:
            value_str = value_str.replace(",", "")
        elif re.fullmatch(r"-?\d+,\d{1,2}", value_str):
            # Lone comma with cents after it is a decimal separator
            value_str = value_str.replace(",", ".")
        else:
            value_str = value_str.replace(",", "")

        parsed = Decimal(value_str)
        if not parsed.is_finite():
            raise InvalidOperation(f"non-finite value {value_str!r}")
        return parsed

    except (InvalidOperation, ValueError) as e:
        logger.warning(
            "Failed to parse currency value '%s': %s. Using default: %s",
            value,
            e,
            default
        )
        return Decimal(default)


def parse_month_label(label: Any) -> Optional[str]:
    """
    Convert a report column label ("Jan 2024", "31 Jan 2024") to a YYYY-MM key.

    This is a heuristic: any label dateutil can read is accepted, anything
    else yields None.
    """
    if not isinstance(label, str) or not label.strip():
        return None

    try:
        parsed = date_parser.parse(label.strip(), default=_MONTH_LABEL_DEFAULT)
    except (ValueError, OverflowError):
        logger.debug("Unparseable month label: %r", label)
        return None

    return f"{parsed.year}-{parsed.month:02d}"


def parse_xero_date(value: Any) -> Optional[date]:
    """
    Parse a Xero date value.

    Accepts the legacy /Date(ms+zone)/ format as well as ISO strings.
    """
    if not value or not isinstance(value, str):
        return None

    match = _MS_DATE_PATTERN.match(value.strip())
    if match:
        millis = int(match.group(1))
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).date()

    try:
        return date_parser.isoparse(value.strip()).date()
    except (ValueError, OverflowError):
        logger.debug("Unparseable Xero date: %r", value)
        return None


def get_sync_date_range(months: int, today: Optional[date] = None) -> tuple[date, date]:
    """
    Date range covering the last N months up to today.

    Args:
        months: Number of months of history
        today: Reference date (defaults to today)

    Returns:
        (from_date, to_date)
    """
    to_date = today or date.today()
    from_date = to_date - relativedelta(months=months)
    return from_date, to_date
