"""Small shared helpers: amount/currency and date normalization, id factory."""

from __future__ import annotations

import math
import re
import uuid
from datetime import date
from typing import Iterable, List, Literal, Optional, Tuple

import pandas as pd

from .constants import (
    CURRENCY_MARKERS,
    DEFAULT_CURRENCY,
    LOCAL_CURRENCY,
    LOCAL_MAGNITUDE_THRESHOLD,
    LOCAL_PAYMENT_RX,
    MONTHS,
)

ColumnHint = Literal["debit", "credit", "amount"]

_NUMERIC_CHARS_RX = re.compile(r"[^\d.,]")
_DATE_SEPARATOR_RX = re.compile(r"[/.-]")


def new_transaction_id() -> str:
    """Return a short opaque id for a freshly ingested row."""
    return uuid.uuid4().hex[:12]


def detect_currency_marker(raw: str) -> Optional[str]:
    for rx, code in CURRENCY_MARKERS:
        if rx.search(raw):
            return code
    return None


def _shape_currency(digits: str, local: str) -> Optional[str]:
    """Currency implied by the separator shape / magnitude of ``digits``."""
    dots = digits.count(".")
    commas = digits.count(",")
    if dots and not commas:
        return local
    if dots and commas:
        return local if digits.rfind(",") > digits.rfind(".") else DEFAULT_CURRENCY
    if commas:
        if len(digits.rsplit(",", 1)[1]) == 3:
            return DEFAULT_CURRENCY
        return None
    if digits.isdigit() and int(digits) > LOCAL_MAGNITUDE_THRESHOLD:
        return local
    return None


def _decimal_separator(digits: str, currency: Optional[str], local: str) -> Optional[str]:
    """Return the character acting as decimal point in ``digits`` (or None)."""
    dots = digits.count(".")
    commas = digits.count(",")
    if dots and commas:
        return "," if digits.rfind(",") > digits.rfind(".") else "."
    if commas:
        if commas == 1 and len(digits.rsplit(",", 1)[1]) != 3:
            return ","
        return None
    if dots:
        if currency == local or dots > 1:
            return None
        return "."
    return None


def _to_float(digits: str, decimal_sep: Optional[str]) -> float:
    if decimal_sep is None:
        core = digits.replace(".", "").replace(",", "")
    else:
        thousands = "," if decimal_sep == "." else "."
        core = digits.replace(thousands, "")
        int_part, _, frac = core.rpartition(decimal_sep)
        core = int_part.replace(decimal_sep, "") + "." + frac
    if not core or core == ".":
        return 0.0
    try:
        value = float(core)
    except ValueError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def normalize_amount(
    raw: Optional[str],
    column_hint: Optional[ColumnHint] = None,
    description: Optional[str] = None,
    local_currency: Optional[str] = None,
) -> Tuple[float, Optional[str]]:
    """Parse a raw amount token into ``(signed_amount, currency)``.

    Currency is decided by the first heuristic that fires:

    1. an explicit marker in the token (``Rp``, ``€``, ``GBP``, ``$`` ...)
    2. local-payment vocabulary in ``description`` (QRIS, GoPay, tagihan ...)
    3. separator shape (dots only, both, commas only)
    4. magnitude of a bare integer (> 1000 is local money)

    Separators are then interpreted for that currency. ``currency`` is None
    when nothing fired; callers infer it later. Unparsable input yields
    ``0.0``; this function never raises for bad text.

    Sign: ``debit`` forces negative, ``credit`` positive, ``amount`` negative
    unless the token carries an explicit ``+``. Without a hint the sign in
    the text (``-`` or parentheses) is kept.
    """
    local = (local_currency or LOCAL_CURRENCY).upper()
    if raw is None:
        return 0.0, None
    token = str(raw).strip()
    if not token:
        return 0.0, None

    negative = token.startswith("-") or token.endswith("-") or (
        token.startswith("(") and token.endswith(")")
    )
    explicit_plus = token.startswith("+")

    digits = _NUMERIC_CHARS_RX.sub("", token).strip(".,")

    currency = detect_currency_marker(token)
    if currency is None and description and LOCAL_PAYMENT_RX.search(description):
        currency = local
    if currency is None:
        currency = _shape_currency(digits, local)

    value = abs(_to_float(digits, _decimal_separator(digits, currency, local)))

    if column_hint == "debit":
        amount = -value
    elif column_hint == "credit":
        amount = value
    elif column_hint == "amount":
        amount = value if explicit_plus else -value
    else:
        amount = -value if negative else value
    # -0.0 reads oddly in JSON output
    return (amount if amount else 0.0), currency


def normalize_date(raw: Optional[str], today: Optional[date] = None) -> Optional[str]:
    """Return ``raw`` as ``YYYY-MM-DD`` or None when it is not a valid date.

    Accepts day + month-name forms ("20 Jan", "20-Jan-2024", "Jan 20 2024",
    Indonesian month names included) and numeric forms separated by ``/``,
    ``-`` or ``.``. Numeric dates are ``YYYY-MM-DD`` when the first segment
    has four digits and day-first otherwise. A missing year means the current
    year; two-digit years get the ``20`` century.
    """
    if not raw:
        return None
    today = today or date.today()
    clean = str(raw).strip().rstrip(".,").strip()
    if not clean:
        return None

    if re.search(r"[A-Za-z]", clean):
        parts = [p for p in re.split(r"[\s\-]+", clean.replace(",", "")) if p]
        if len(parts) >= 2:
            day_tok, month_tok = parts[0], parts[1]
            year_tok = parts[2] if len(parts) > 2 else str(today.year)
            if not day_tok.isdigit() and month_tok.isdigit():
                day_tok, month_tok = month_tok, day_tok
            month_key = month_tok.lower().rstrip(".")
            month = MONTHS.get(month_key[:3]) or MONTHS.get(month_key)
            if month and day_tok.isdigit() and year_tok.isdigit():
                if len(year_tok) == 2:
                    year_tok = "20" + year_tok
                day = int(day_tok)
                if len(year_tok) == 4 and 1 <= day <= 31:
                    return f"{int(year_tok):04d}-{month:02d}-{day:02d}"

    sep = _DATE_SEPARATOR_RX.search(clean)
    if not sep:
        return None
    parts = clean.split(sep.group(0))
    if len(parts) == 3:
        if len(parts[0]) == 4:
            year_s, month_s, day_s = parts
        else:
            day_s, month_s, year_s = parts
        if len(year_s) == 2:
            year_s = "20" + year_s
    elif len(parts) == 2:
        day_s, month_s = parts
        year_s = str(today.year)
    else:
        return None
    if not (year_s.isdigit() and month_s.isdigit() and day_s.isdigit()):
        return None
    if len(year_s) != 4:
        return None
    y, m, d = int(year_s), int(month_s), int(day_s)
    if not (1 <= m <= 12 and 1 <= d <= 31):
        return None
    return f"{y:04d}-{m:02d}-{d:02d}"


def transactions_to_frame(transactions: Iterable) -> pd.DataFrame:
    """Flatten Transaction models into a DataFrame (wire/camelCase columns)."""
    rows = [t.model_dump(by_alias=True) for t in transactions]
    return pd.DataFrame(
        rows,
        columns=["id", "date", "description", "originalDescription", "amount", "currency"],
    )


def df_to_records(df: pd.DataFrame) -> List[dict]:
    """Convert a DataFrame to JSON-serializable records (NA -> None)."""
    if df is None or df.empty:
        return []
    out = df.to_dict(orient="records")
    for rec in out:
        for k, v in list(rec.items()):
            if v is None:
                continue
            if isinstance(v, float) and pd.isna(v):
                rec[k] = None
    return out


__all__ = [
    "ColumnHint",
    "new_transaction_id",
    "detect_currency_marker",
    "normalize_amount",
    "normalize_date",
    "transactions_to_frame",
    "df_to_records",
]
