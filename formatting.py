# formatting.py
import math
import re
from datetime import date, datetime

from config import Config


def to_number(value, default: float = 0.0) -> float:
    try:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return float(default)
        n = float(value)
    except (TypeError, ValueError):
        return float(default)
    if math.isnan(n) or math.isinf(n):
        return float(default)
    return n


def money(value, currency: str | None = None) -> str:
    currency = Config.CURRENCY if currency is None else currency
    return f"{to_number(value):.2f} {currency}".rstrip()


def to_date_safe(value) -> datetime | None:
    """
    Best-effort conversion of stored/posted date values.
    Accepts datetime, date, ISO strings and epoch numbers (seconds or ms).
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        n = float(value)
        if math.isnan(n) or math.isinf(n):
            return None
        # JS-style millisecond timestamps
        if abs(n) > 1e11:
            n = n / 1000.0
        try:
            return datetime.fromtimestamp(n)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(s)
        except ValueError:
            pass
        for fmt in ("%d/%m/%Y", "%m/%d/%Y", "%Y/%m/%d", "%B %d, %Y", "%b %d, %Y"):
            try:
                return datetime.strptime(s, fmt)
            except ValueError:
                pass
    return None


def format_date(value, fmt: str | None = None) -> str:
    dt = to_date_safe(value)
    if dt is None:
        return ""
    return dt.strftime(fmt or Config.DATE_FORMAT)


def format_quantity(value) -> str:
    return f"{to_number(value):g}"


def safe_filename(invoice_number: str | None) -> str:
    # keep only [a-z0-9-_], runs of anything else collapse to one hyphen
    raw = (invoice_number or "").strip()
    if not raw:
        return "invoice"
    return re.sub(r"[^A-Za-z0-9_-]+", "-", raw).lower()
