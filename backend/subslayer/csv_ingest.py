"""Bank CSV export -> Transaction list.

Column names vary per bank; they are resolved case-insensitively against the
alias lists in :mod:`constants`. One bad row never fails the file: the row is
kept with amount ``0`` and, when its date cannot be read, today's date.
"""

from __future__ import annotations

import io
import logging
from datetime import date
from typing import Dict, List, Optional, Sequence, Union

import pandas as pd

from .constants import (
    CSV_AMOUNT_ALIASES,
    CSV_VALUE_ALIASES,
    CSV_CREDIT_ALIASES,
    CSV_CURRENCY_ALIASES,
    CSV_DATE_ALIASES,
    CSV_DEBIT_ALIASES,
    CSV_DESCRIPTION_ALIASES,
)
from .errors import StatementParseError
from .models import Transaction
from .utils import new_transaction_id, normalize_amount, normalize_date

logger = logging.getLogger(__name__)


def _decode(data: Union[str, bytes]) -> str:
    if isinstance(data, str):
        return data.lstrip("\ufeff")
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise StatementParseError(f"CSV is not valid UTF-8: {e}") from e


def _resolve(columns: Dict[str, str], aliases: Sequence[str]) -> Optional[str]:
    for alias in aliases:
        col = columns.get(alias)
        if col is not None:
            return col
    return None


def _cell(row: pd.Series, col: Optional[str]) -> str:
    if col is None:
        return ""
    v = row.get(col, "")
    # short rows are padded with NaN
    return "" if v is None or pd.isna(v) else str(v).strip()


def read_csv_frame(data: Union[str, bytes]) -> pd.DataFrame:
    """Load CSV text into an all-string DataFrame (empty cells = "").

    Rows with more fields than the header are cut to the header width and
    kept; short rows are padded.
    """
    text = _decode(data)
    if not text.strip():
        raise StatementParseError("CSV file is empty")
    try:
        width = len(pd.read_csv(io.StringIO(text), nrows=0).columns)
        return pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            skipinitialspace=True,
            engine="python",
            on_bad_lines=lambda fields: fields[:width],
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise StatementParseError(f"Unreadable CSV: {e}") from e


def ingest_csv(data: Union[str, bytes], today: Optional[date] = None) -> List[Transaction]:
    today = today or date.today()
    df = read_csv_frame(data)
    columns = {str(c).strip().lower(): c for c in df.columns}

    amount_col = _resolve(columns, CSV_AMOUNT_ALIASES)
    value_col = _resolve(columns, CSV_VALUE_ALIASES)
    debit_col = _resolve(columns, CSV_DEBIT_ALIASES)
    credit_col = _resolve(columns, CSV_CREDIT_ALIASES)
    desc_col = _resolve(columns, CSV_DESCRIPTION_ALIASES)
    date_col = _resolve(columns, CSV_DATE_ALIASES)
    currency_col = _resolve(columns, CSV_CURRENCY_ALIASES)
    if date_col is None:
        logger.info("CSV has no date column; rows dated %s", today.isoformat())

    out: List[Transaction] = []
    for _, row in df.iterrows():
        description = _cell(row, desc_col) or "Unknown"
        # first non-empty of Amount, Debit, Value, Credit
        raw, hint = "", None
        for col, col_hint in (
            (amount_col, "amount"),
            (debit_col, "debit"),
            (value_col, "amount"),
            (credit_col, "credit"),
        ):
            raw = _cell(row, col)
            if raw:
                hint = col_hint
                break
        explicit_currency = _cell(row, currency_col).upper()
        if explicit_currency and raw:
            # the column acts as a marker so separators are read for that currency
            raw = f"{raw} {explicit_currency}"
        amount, currency = normalize_amount(raw, hint, description)
        if explicit_currency:
            currency = explicit_currency

        iso = normalize_date(_cell(row, date_col), today) if date_col else None
        out.append(
            Transaction(
                id=new_transaction_id(),
                date=iso or today.isoformat(),
                description=description,
                original_description=description,
                amount=amount,
                currency=currency,
            )
        )
    logger.debug("CSV ingested: %d rows", len(out))
    return out


__all__ = ["ingest_csv", "read_csv_frame"]
