"""Caller-owned subscription list with the Active -> Cancelled transition."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .analysis import convert_amount
from .constants import EXCHANGE_RATES
from .models import AnalysisResult, Subscription


class SubscriptionLedger:
    """Canonical list of detected subscriptions for one user session.

    The detection engine never mutates what it returns; this ledger keeps its
    own copies and replaces a subscription when its status changes.
    """

    def __init__(self, subscriptions: Iterable[Subscription], currency: str = "USD"):
        self.currency = currency
        self._subs: Dict[str, Subscription] = {}
        for sub in subscriptions:
            self._subs[sub.id] = sub

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "SubscriptionLedger":
        return cls(result.subscriptions, currency=result.currency)

    def __len__(self) -> int:
        return len(self._subs)

    def get(self, subscription_id: str) -> Optional[Subscription]:
        return self._subs.get(subscription_id)

    def all(self) -> List[Subscription]:
        return list(self._subs.values())

    def active(self) -> List[Subscription]:
        return [s for s in self._subs.values() if s.status == "Active"]

    def cancelled(self) -> List[Subscription]:
        return [s for s in self._subs.values() if s.status == "Cancelled"]

    def cancel(self, subscription_id: str) -> Subscription:
        """Mark a subscription cancelled. Idempotent; unknown ids raise KeyError."""
        sub = self._subs[subscription_id]
        if sub.status == "Cancelled":
            return sub
        updated = sub.model_copy(update={"status": "Cancelled"})
        self._subs[subscription_id] = updated
        return updated

    def monthly_savings(self) -> float:
        """Monthly amount no longer spent, in the ledger currency."""
        return sum(
            (
                convert_amount(s.amount, s.currency, self.currency, EXCHANGE_RATES)
                for s in self.cancelled()
            ),
            0.0,
        )


__all__ = ["SubscriptionLedger"]
