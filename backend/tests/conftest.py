"""Shared fixtures.

PDF tests never need a real PDF: ``fake_pdf`` swaps ``pdfplumber.open`` for a
stand-in document whose pages return the words each test supplies, in the
same shape ``page.extract_words()`` produces (``text``, ``x0``, ``bottom``).
"""

from __future__ import annotations

from datetime import date
from typing import Callable, List, Optional

import pytest

from subslayer import pdf_parser
from subslayer.models import Transaction

TODAY = date(2024, 6, 15)


class FakePage:
    def __init__(self, words: List[dict], height: float = 800.0):
        self._words = words
        self.height = height

    def extract_words(self) -> List[dict]:
        return list(self._words)


class FakePDF:
    def __init__(self, pages: List[FakePage]):
        self.pages = pages

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def make_tx() -> Callable[..., Transaction]:
    counter = {"n": 0}

    def _make(
        description: str, amount: float, tx_date: str, currency: Optional[str] = None
    ) -> Transaction:
        counter["n"] += 1
        return Transaction(
            id=f"tx{counter['n']}",
            date=tx_date,
            description=description,
            original_description=description,
            amount=amount,
            currency=currency,
        )

    return _make


@pytest.fixture
def fake_pdf(monkeypatch: pytest.MonkeyPatch):
    """Install a fake document; call with a list of pages (lists of words)."""

    def _install(pages: List[List[dict]]) -> None:
        doc = FakePDF([FakePage(ws) for ws in pages])
        monkeypatch.setattr(pdf_parser.pdfplumber, "open", lambda _f: doc)

    return _install
