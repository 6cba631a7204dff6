"""Recurring-charge (subscription) detection.

Outgoing transactions are grouped by a normalized description (digits, short
dates, asterisks and boilerplate words removed). A group becomes a
subscription when:

  * its description matches a known service (confidence 0.9), or
  * it has at least two transactions and few distinct amounts, i.e.
    ``distinct_amounts / group_size <= 0.5`` (confidence 0.6).

Everything else is dropped. Totals are expressed in the dominant currency,
the one with the largest converted sum across detected subscriptions.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .constants import (
    BOILERPLATE_RX,
    DEFAULT_CURRENCY,
    DIGITS_RX,
    EXCHANGE_RATES,
    LOCAL_CURRENCY,
    LOCAL_SUBSCRIPTION_THRESHOLD,
    MIN_DESCRIPTION_LENGTH,
    SHORT_DATE_RX,
)
from .knowledge import KnowledgeBase, default_knowledge_base
from .models import AnalysisResult, Subscription, Transaction

logger = logging.getLogger(__name__)

KNOWN_SERVICE_CONFIDENCE = 0.9
RECURRENCE_CONFIDENCE = 0.6
MAX_DISTINCT_AMOUNT_RATIO = 0.5


def normalize_description(desc: str) -> str:
    """Grouping key for a transaction description ("NETFLIX 234 02/12" -> "netflix")."""
    if not isinstance(desc, str):
        return ""
    working = desc.lower()
    working = SHORT_DATE_RX.sub("", working)
    working = DIGITS_RX.sub("", working)
    working = working.replace("*", "")
    working = BOILERPLATE_RX.sub("", working)
    return re.sub(r"\s+", " ", working).strip()


def _capitalize(name: str) -> str:
    return name[:1].upper() + name[1:]


def convert_amount(
    amount: float,
    from_currency: str,
    to_currency: str,
    rates: Mapping[str, float] = EXCHANGE_RATES,
) -> float:
    """Convert using the static approximate table; unknown codes count as 1."""
    if from_currency == to_currency:
        return amount
    return amount * rates.get(from_currency, 1) / rates.get(to_currency, 1)


def dominant_currency(
    subscriptions: Sequence[Subscription], rates: Mapping[str, float] = EXCHANGE_RATES
) -> str:
    """Currency with the largest converted total; USD when nothing is found."""
    totals: Dict[str, float] = {}
    for sub in subscriptions:
        totals[sub.currency] = totals.get(sub.currency, 0.0) + sub.amount
    best, best_value = DEFAULT_CURRENCY, 0.0
    for code, total in totals.items():
        value = total * rates.get(code, 1)
        if value > best_value:
            best, best_value = code, value
    return best


class SubscriptionAnalyzer:
    """Detect subscriptions in a flat transaction list.

    The knowledge base and the rate table are injected so alternate service
    sets or test doubles need no changes here. Instances hold no per-run
    state and can be shared.
    """

    def __init__(
        self,
        knowledge_base: Optional[KnowledgeBase] = None,
        rates: Optional[Mapping[str, float]] = None,
        local_currency: str = LOCAL_CURRENCY,
    ):
        self.knowledge_base = (
            knowledge_base if knowledge_base is not None else default_knowledge_base()
        )
        self.rates = dict(rates) if rates is not None else dict(EXCHANGE_RATES)
        self.local_currency = local_currency

    def _group(self, transactions: Iterable[Transaction]) -> Dict[str, List[Transaction]]:
        groups: Dict[str, List[Transaction]] = {}
        for t in transactions:
            if t.amount > 0:  # income
                continue
            key = normalize_description(t.description)
            if len(key) < MIN_DESCRIPTION_LENGTH:
                continue
            groups.setdefault(key, []).append(t)
        return groups

    def _infer_currency(self, t: Transaction) -> str:
        if t.currency:
            return t.currency
        if abs(t.amount) > LOCAL_SUBSCRIPTION_THRESHOLD:
            return self.local_currency
        return DEFAULT_CURRENCY

    def _classify(self, key: str, group: List[Transaction]) -> Optional[Subscription]:
        # ISO dates sort lexically; latest first
        group = sorted(group, key=lambda t: t.date, reverse=True)
        latest = group[0]
        amount = abs(latest.amount)
        base = dict(
            id=latest.id,
            amount=amount,
            currency=self._infer_currency(latest),
            frequency="Monthly",
            last_payment_date=latest.date,
            status="Active",
        )

        known = self.knowledge_base.lookup(key)
        if known is not None:
            return Subscription(
                name=_capitalize(known.name),
                category=known.category,
                confidence=KNOWN_SERVICE_CONFIDENCE,
                logo=known.logo or None,
                cancellation_url=known.cancellation_url or None,
                knowledge_id=known.id,
                **base,
            )

        if len(group) >= 2:
            distinct = {abs(t.amount) for t in group}
            if len(distinct) / len(group) <= MAX_DISTINCT_AMOUNT_RATIO:
                return Subscription(
                    name=_capitalize(key),
                    category="Other",
                    confidence=RECURRENCE_CONFIDENCE,
                    **base,
                )
        return None

    def analyze(self, transactions: Sequence[Transaction]) -> AnalysisResult:
        groups = self._group(transactions)
        subscriptions: List[Subscription] = []
        for key, group in groups.items():
            sub = self._classify(key, group)
            if sub is not None:
                subscriptions.append(sub)

        currency = dominant_currency(subscriptions, self.rates)
        total = sum(
            convert_amount(s.amount, s.currency, currency, self.rates)
            for s in subscriptions
        )
        # Sorted on each subscription's own-currency amount, not converted.
        subscriptions.sort(key=lambda s: s.amount, reverse=True)
        logger.debug(
            "Analyzed %d transactions: %d groups, %d subscriptions (%s)",
            len(transactions),
            len(groups),
            len(subscriptions),
            currency,
        )
        return AnalysisResult(
            subscriptions=subscriptions,
            total_monthly_spend=total,
            yearly_projection=total * 12,
            processed_transactions=len(transactions),
            currency=currency,
        )


def analyze_subscriptions(
    transactions: Sequence[Transaction],
    knowledge_base: Optional[KnowledgeBase] = None,
) -> AnalysisResult:
    return SubscriptionAnalyzer(knowledge_base).analyze(transactions)


__all__ = [
    "KNOWN_SERVICE_CONFIDENCE",
    "RECURRENCE_CONFIDENCE",
    "normalize_description",
    "convert_amount",
    "dominant_currency",
    "SubscriptionAnalyzer",
    "analyze_subscriptions",
]
