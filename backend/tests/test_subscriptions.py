import pytest

from subslayer.analysis import analyze_subscriptions
from subslayer.subscriptions import SubscriptionLedger


@pytest.fixture
def result(make_tx):
    return analyze_subscriptions(
        [
            make_tx("Netflix", -15, "2024-01-01"),
            make_tx("Netflix", -15, "2024-02-01"),
            make_tx("Spotify", -10, "2024-02-03"),
            make_tx("Indihome", -320000, "2024-02-10"),
        ]
    )


def test_ledger_starts_all_active(result):
    ledger = SubscriptionLedger.from_result(result)
    assert len(ledger) == 3
    assert ledger.currency == "USD"
    assert len(ledger.active()) == 3
    assert ledger.cancelled() == []


def test_cancel_is_idempotent_and_leaves_result_alone(result):
    ledger = SubscriptionLedger.from_result(result)
    netflix = next(s for s in ledger.all() if s.name == "Netflix")

    cancelled = ledger.cancel(netflix.id)
    assert cancelled.status == "Cancelled"
    assert ledger.cancel(netflix.id) is cancelled
    assert ledger.get(netflix.id).status == "Cancelled"
    assert [s.id for s in ledger.cancelled()] == [netflix.id]
    assert all(s.status == "Active" for s in result.subscriptions)


def test_cancel_unknown_id(result):
    ledger = SubscriptionLedger.from_result(result)
    with pytest.raises(KeyError):
        ledger.cancel("nope")
    assert ledger.get("nope") is None


def test_monthly_savings_in_ledger_currency(result):
    ledger = SubscriptionLedger.from_result(result)
    assert ledger.monthly_savings() == 0.0
    for sub in ledger.all():
        if sub.name in ("Netflix", "IndiHome"):
            ledger.cancel(sub.id)
    assert ledger.monthly_savings() == pytest.approx(15 + 320000 / 16000)
