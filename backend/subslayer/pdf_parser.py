"""PDF statement parsing.

pdfplumber gives absolutely positioned words per page. Rows are rebuilt by
binning words on their vertical position (with a tolerance, since glyph runs
on one printed line rarely share an exact baseline), ordering the bins
top-to-bottom and the words inside each bin left-to-right. Each rebuilt line
is then searched for a date and an amount; lines without both are not
transactions.
"""

import io
import logging
import re
from datetime import date
from typing import List, NamedTuple, Optional, Sequence, Tuple

import pdfplumber

from .constants import (
    AMOUNT_TOKEN_RX,
    BARE_YEAR_RX,
    CURRENCY_STRIP_RX,
    EDGE_NOISE_RX,
    MIN_DESCRIPTION_LENGTH,
    PDF_ROW_TOLERANCE,
    STATEMENT_DATE_RX,
)
from .errors import StatementParseError
from .models import TextFragment, Transaction
from .utils import new_transaction_id, normalize_amount, normalize_date

__all__ = [
    "Row",
    "extract_fragments",
    "group_rows",
    "parse_row_line",
    "parse_statement_pdf",
    "debug_dump",
]

logger = logging.getLogger(__name__)


class Row(NamedTuple):
    y: float
    text: str


def _normalize_space(s: str) -> str:
    return re.sub(r"[ \t]+", " ", s.replace("\u00a0", " ")).strip()


def _open(pdf_file):
    if isinstance(pdf_file, (bytes, bytearray)):
        return pdfplumber.open(io.BytesIO(pdf_file))
    return pdfplumber.open(pdf_file)


def extract_fragments(pdf_file, max_pages: Optional[int] = None) -> List[List[TextFragment]]:
    """Return one list of positioned fragments per page.

    ``y`` is converted to PDF space (origin bottom-left) so larger means
    higher on the page. Raises :class:`StatementParseError` when the document
    cannot be opened or has no pages.
    """
    pages: List[List[TextFragment]] = []
    try:
        with _open(pdf_file) as pdf:
            source_pages = pdf.pages if max_pages is None else pdf.pages[:max_pages]
            for page in source_pages:
                height = float(page.height)
                words = page.extract_words() or []
                pages.append(
                    [
                        TextFragment(
                            text=w["text"],
                            x=float(w["x0"]),
                            y=height - float(w["bottom"]),
                        )
                        for w in words
                    ]
                )
    except Exception as e:
        raise StatementParseError(f"Unreadable PDF: {e}") from e
    if not pages:
        raise StatementParseError("PDF has no pages")
    return pages


def group_rows(
    fragments: Sequence[TextFragment], tolerance: float = PDF_ROW_TOLERANCE
) -> List[Row]:
    """Bin fragments into text rows, ordered top-to-bottom.

    A fragment joins the first bin whose anchor ``y`` is closer than
    ``tolerance``; otherwise it starts a new bin anchored at its own ``y``.
    """
    bins: List[Tuple[float, List[TextFragment]]] = []
    for frag in fragments:
        for anchor, members in bins:
            if abs(anchor - frag.y) < tolerance:
                members.append(frag)
                break
        else:
            bins.append((frag.y, [frag]))

    bins.sort(key=lambda b: b[0], reverse=True)
    rows: List[Row] = []
    for anchor, members in bins:
        members.sort(key=lambda f: f.x)
        text = _normalize_space(" ".join(f.text for f in members))
        if text:
            rows.append(Row(anchor, text))
    return rows


def _select_date(
    matches: Sequence[re.Match], today: date
) -> Optional[Tuple[str, re.Match]]:
    """Pick the statement date among date-like matches on one line.

    First choice: a date within [this year - 3, next year]. Fallback: any
    valid date after 2020. Otherwise None (the row is dropped).
    """
    parsed = []
    for m in matches:
        iso = normalize_date(m.group(0), today)
        if iso:
            parsed.append((iso, m))
    for iso, m in parsed:
        if today.year - 3 <= int(iso[:4]) <= today.year + 1:
            return iso, m
    for iso, m in parsed:
        if int(iso[:4]) > 2020:
            return iso, m
    return None


def _is_amount_candidate(token: str) -> bool:
    if BARE_YEAR_RX.match(token):
        return False
    return "." in token or "," in token or len(token) >= 3


def _remove_first(text: str, literal: str) -> str:
    return re.sub(re.escape(literal), " ", text, count=1, flags=re.IGNORECASE)


def parse_row_line(line: str, today: Optional[date] = None) -> Optional[Transaction]:
    """Turn one rebuilt statement line into an outgoing Transaction, or None."""
    today = today or date.today()
    date_matches = list(STATEMENT_DATE_RX.finditer(line))
    amount_matches = list(AMOUNT_TOKEN_RX.finditer(line))
    if not date_matches or not amount_matches:
        return None

    chosen = _select_date(date_matches, today)
    if chosen is None:
        return None
    iso, date_match = chosen
    d_start, d_end = date_match.span()

    candidates = [
        m.group(0)
        for m in amount_matches
        if _is_amount_candidate(m.group(0))
        and not (d_start <= m.start() and m.end() <= d_end)
    ]
    if not candidates:
        return None
    raw_amount = candidates[-1]
    # token shape and magnitude only; line vocabulary does not pick the currency
    amount, currency = normalize_amount(raw_amount, "debit")
    if amount == 0:
        return None

    description = _remove_first(line, date_match.group(0))
    description = _remove_first(description, raw_amount)
    description = CURRENCY_STRIP_RX.sub(" ", description)
    description = EDGE_NOISE_RX.sub("", _normalize_space(description))
    if len(description) < MIN_DESCRIPTION_LENGTH:
        return None

    return Transaction(
        id=new_transaction_id(),
        date=iso,
        description=description,
        original_description=line,
        amount=amount,
        currency=currency,
    )


def parse_statement_pdf(pdf_file, today: Optional[date] = None) -> List[Transaction]:
    """Extract outgoing transactions from a PDF statement.

    ``pdf_file`` may be raw bytes, a path or a binary file object.
    """
    pages = extract_fragments(pdf_file)
    transactions: List[Transaction] = []
    for page_no, fragments in enumerate(pages, start=1):
        rows = group_rows(fragments)
        logger.debug("Page %d: %d fragments -> %d rows", page_no, len(fragments), len(rows))
        for row in rows:
            rec = parse_row_line(row.text, today)
            if rec is not None:
                transactions.append(rec)
    logger.info(
        "Extracted %d transactions from %d pages", len(transactions), len(pages)
    )
    return transactions


def debug_dump(pdf_file, max_pages: int = 2) -> str:
    """Plain-text dump of the rebuilt rows of the first ``max_pages`` pages."""
    pages = extract_fragments(pdf_file, max_pages=max_pages)
    out: List[str] = []
    for page_no, fragments in enumerate(pages, start=1):
        out.append(f"--- Page {page_no} ---")
        out.extend(f"[Y={round(row.y)}] {row.text}" for row in group_rows(fragments))
        out.append("")
    return "\n".join(out)
