"""Batch ingestion: each uploaded file is parsed independently.

A failure in one file (unsupported type, unreadable bytes, nothing
extracted) is reported on that file's outcome and never affects the others.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence, Tuple

from .csv_ingest import ingest_csv
from .errors import (
    EmptyFileError,
    NoTransactionsFoundError,
    SubSlayerError,
    TooManyFilesError,
    UnsupportedFormatError,
)
from .models import Transaction
from .pdf_parser import parse_statement_pdf

logger = logging.getLogger(__name__)

MAX_FILES = int(os.getenv("MAX_FILES", 3))


@dataclass
class FileOutcome:
    filename: str
    transactions: List[Transaction] = field(default_factory=list)
    error: Optional[str] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def detect_format(filename: str, content_type: Optional[str] = None) -> str:
    name = (filename or "").lower()
    if name.endswith(".csv") or content_type == "text/csv":
        return "csv"
    if name.endswith(".pdf") or content_type == "application/pdf":
        return "pdf"
    raise UnsupportedFormatError(f"Unsupported file type: {filename!r}")


def parse_file(
    filename: str,
    data: bytes,
    content_type: Optional[str] = None,
    today: Optional[date] = None,
) -> List[Transaction]:
    """Parse one file; raises a :class:`SubSlayerError` subclass on failure."""
    if not data:
        raise EmptyFileError(f"Empty file: {filename!r}")
    kind = detect_format(filename, content_type)
    if kind == "csv":
        transactions = ingest_csv(data, today=today)
    else:
        transactions = parse_statement_pdf(data, today=today)
    if not transactions:
        raise NoTransactionsFoundError(f"No valid transactions found in {filename!r}")
    return transactions


def ingest_files(
    files: Sequence[Tuple[str, bytes]],
    max_files: int = MAX_FILES,
    today: Optional[date] = None,
) -> List[FileOutcome]:
    if len(files) > max_files:
        raise TooManyFilesError(f"At most {max_files} files per upload ({len(files)} given)")
    outcomes: List[FileOutcome] = []
    for filename, data in files:
        try:
            txns = parse_file(filename, data, today=today)
        except SubSlayerError as e:
            logger.warning("%s: %s (%s)", filename, e.code, e)
            outcomes.append(FileOutcome(filename, error=e.code, message=str(e)))
            continue
        outcomes.append(FileOutcome(filename, transactions=txns))
    return outcomes


def merged_transactions(outcomes: Sequence[FileOutcome]) -> List[Transaction]:
    return [t for o in outcomes if o.ok for t in o.transactions]


__all__ = [
    "MAX_FILES",
    "FileOutcome",
    "detect_format",
    "parse_file",
    "ingest_files",
    "merged_transactions",
]
