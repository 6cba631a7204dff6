"""Shared patterns and lookup tables used by the ingestion and analysis modules."""

from __future__ import annotations

import os
import re
from typing import Dict, List, Tuple

# Currency used when a heuristic decides "local" (large-denomination) money.
LOCAL_CURRENCY = os.getenv("LOCAL_CURRENCY", "IDR").strip().upper() or "IDR"
DEFAULT_CURRENCY = "USD"


def _code(iso: str) -> str:
    # letters may not touch the code; digits may ("USD15.00", "15.00USD")
    return rf"(?<![A-Za-z]){iso}(?![A-Za-z])"


# Explicit markers checked in order; multi-letter codes before bare symbols so
# "S$" / "A$" win over "$".
CURRENCY_MARKERS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"\bRp\.?|" + _code("IDR"), re.IGNORECASE), "IDR"),
    (re.compile(r"€|" + _code("EUR"), re.IGNORECASE), "EUR"),
    (re.compile(r"£|" + _code("GBP"), re.IGNORECASE), "GBP"),
    (re.compile(r"\bS\$|" + _code("SGD"), re.IGNORECASE), "SGD"),
    (re.compile(r"\bA\$|" + _code("AUD"), re.IGNORECASE), "AUD"),
    (re.compile(r"\$|" + _code("USD"), re.IGNORECASE), "USD"),
]

# Administrative / local-payment vocabulary implying the local currency.
LOCAL_PAYMENT_KEYWORDS: List[str] = [
    "biaya",
    "transfer fee",
    "biaya transfer",
    "qris",
    "gopay",
    "ovo",
    "dana",
    "shopeepay",
    "linkaja",
    "langganan",
    "tagihan",
    "pembayaran",
    "indomaret",
    "alfamart",
]
LOCAL_PAYMENT_RX = re.compile(
    r"\b(" + "|".join(re.escape(k) for k in LOCAL_PAYMENT_KEYWORDS) + r")\b",
    re.IGNORECASE,
)

# A bare integer above this is read as large-denomination local money.
LOCAL_MAGNITUDE_THRESHOLD = 1000
# Untagged subscription amounts above this are inferred as local money.
LOCAL_SUBSCRIPTION_THRESHOLD = 10000

# Approximate value of one unit in the base (IDR) currency.
EXCHANGE_RATES: Dict[str, float] = {
    "IDR": 1,
    "USD": 16000,
    "EUR": 17000,
    "GBP": 20000,
    "SGD": 12000,
    "AUD": 10500,
}

MONTHS: Dict[str, int] = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
    # Indonesian
    "mei": 5,
    "agu": 8,
    "agustus": 8,
    "okt": 10,
    "oktober": 10,
    "des": 12,
    "desember": 12,
}

_MONTH_ALTERNATION = "Jan|Feb|Mar|Apr|May|Mei|Jun|Jul|Aug|Agu|Sep|Oct|Okt|Nov|Dec|Des"

# Date-like tokens inside a reconstructed PDF row.
STATEMENT_DATE_RX = re.compile(
    r"(?<![\d.,/-])(?:"
    r"\d{4}[/.-]\d{1,2}[/.-]\d{1,2}(?!\d)"
    r"|\d{1,2}[/.-]\d{1,2}(?:[/.-](?:\d{4}|\d{2}))?(?![.,]?\d)"
    r"|\d{1,2}[\s-]+(?:" + _MONTH_ALTERNATION + r")[a-z]*\.?(?:[\s-]+(?:\d{4}|\d{2})(?![.,]?\d))?"
    r")",
    re.IGNORECASE,
)
# Numeric tokens (amount candidates) inside a reconstructed PDF row.
AMOUNT_TOKEN_RX = re.compile(r"\d(?:[\d.,]*\d)?")
BARE_YEAR_RX = re.compile(r"^(19|20)\d{2}$")

# Symbols / codes stripped from PDF descriptions.
CURRENCY_STRIP_RX = re.compile(r"\bRp\.?(?=[\s\d]|$)|\b(?:IDR|USD|EUR|GBP|SGD|AUD)\b|[$€£]")
EDGE_NOISE_RX = re.compile(r"^[^A-Za-z0-9]+|[^A-Za-z0-9]+$")

# Boilerplate removed before grouping descriptions.
SHORT_DATE_RX = re.compile(r"\d{2}/\d{2}")
DIGITS_RX = re.compile(r"\d+")
BOILERPLATE_RX = re.compile(r"bill payment|purchase|recurring", re.IGNORECASE)

# CSV header aliases (compared case-insensitively).
CSV_AMOUNT_ALIASES = ["amount"]
CSV_VALUE_ALIASES = ["value"]
CSV_DEBIT_ALIASES = ["debit"]
CSV_CREDIT_ALIASES = ["credit"]
CSV_DESCRIPTION_ALIASES = ["description", "memo", "details", "narrative", "payee"]
CSV_DATE_ALIASES = ["date", "posted", "posting date", "transaction date"]
CSV_CURRENCY_ALIASES = ["currency"]

PDF_ROW_TOLERANCE = 4.0
MIN_DESCRIPTION_LENGTH = 3

__all__ = [
    "LOCAL_CURRENCY",
    "DEFAULT_CURRENCY",
    "CURRENCY_MARKERS",
    "LOCAL_PAYMENT_KEYWORDS",
    "LOCAL_PAYMENT_RX",
    "LOCAL_MAGNITUDE_THRESHOLD",
    "LOCAL_SUBSCRIPTION_THRESHOLD",
    "EXCHANGE_RATES",
    "MONTHS",
    "STATEMENT_DATE_RX",
    "AMOUNT_TOKEN_RX",
    "BARE_YEAR_RX",
    "CURRENCY_STRIP_RX",
    "EDGE_NOISE_RX",
    "SHORT_DATE_RX",
    "DIGITS_RX",
    "BOILERPLATE_RX",
    "CSV_AMOUNT_ALIASES",
    "CSV_VALUE_ALIASES",
    "CSV_DEBIT_ALIASES",
    "CSV_CREDIT_ALIASES",
    "CSV_DESCRIPTION_ALIASES",
    "CSV_DATE_ALIASES",
    "CSV_CURRENCY_ALIASES",
    "PDF_ROW_TOLERANCE",
    "MIN_DESCRIPTION_LENGTH",
]
