import pytest

from subslayer.analysis import (
    KNOWN_SERVICE_CONFIDENCE,
    RECURRENCE_CONFIDENCE,
    SubscriptionAnalyzer,
    analyze_subscriptions,
    convert_amount,
    dominant_currency,
    normalize_description,
)
from subslayer.knowledge import KnowledgeBase


def test_known_service_is_detected_once(make_tx):
    txns = [
        make_tx("Netflix", -15.00, "2024-01-01"),
        make_tx("Netflix", -15.00, "2024-02-01"),
        make_tx("Coffee Shop", -5.00, "2024-01-05"),
    ]
    result = analyze_subscriptions(txns)
    assert len(result.subscriptions) == 1
    sub = result.subscriptions[0]
    assert sub.name == "Netflix"
    assert sub.amount == 15.00
    assert sub.currency == "USD"
    assert sub.confidence == KNOWN_SERVICE_CONFIDENCE
    assert sub.category == "Entertainment"
    assert sub.knowledge_id == "netflix"
    assert sub.frequency == "Monthly"
    assert sub.status == "Active"
    assert result.total_monthly_spend == 15.00
    assert result.currency == "USD"
    assert result.processed_transactions == 3


def test_unknown_recurring_charge_is_detected(make_tx):
    txns = [
        make_tx("Mystery Service", -20, "2024-01-01"),
        make_tx("Mystery Service", -20, "2024-02-01"),
    ]
    (sub,) = analyze_subscriptions(txns).subscriptions
    assert sub.confidence == RECURRENCE_CONFIDENCE
    assert sub.name == "Mystery service"
    assert sub.category == "Other"
    assert sub.knowledge_id is None


def test_single_unknown_charge_is_not_a_subscription(make_tx):
    result = analyze_subscriptions([make_tx("One time purchase", -50, "2024-01-01")])
    assert result.subscriptions == []
    assert result.total_monthly_spend == 0
    assert result.currency == "USD"


def test_large_untagged_amounts_are_local_currency(make_tx):
    txns = [
        make_tx("Indihome", -315000, "2024-01-10"),
        make_tx("Indihome", -315000, "2024-02-10"),
    ]
    result = analyze_subscriptions(txns)
    (sub,) = result.subscriptions
    assert sub.amount == 315000
    assert sub.currency == "IDR"
    assert sub.name == "IndiHome"
    assert result.currency == "IDR"
    assert result.total_monthly_spend == 315000


def test_empty_input():
    result = analyze_subscriptions([])
    assert result.subscriptions == []
    assert result.total_monthly_spend == 0
    assert result.yearly_projection == 0
    assert result.processed_transactions == 0
    assert result.currency == "USD"


def test_income_is_never_a_subscription(make_tx):
    txns = [
        make_tx("Salary ACME", 5000, "2024-01-25"),
        make_tx("Salary ACME", 5000, "2024-02-25"),
        make_tx("Netflix refund", 15, "2024-02-03"),
    ]
    result = analyze_subscriptions(txns)
    assert result.subscriptions == []
    assert result.processed_transactions == 3


def test_latest_transaction_supplies_fields(make_tx):
    txns = [
        make_tx("Netflix", -17, "2024-03-01"),
        make_tx("Netflix", -15, "2024-01-01"),
        make_tx("Netflix", -15, "2024-02-01"),
    ]
    (sub,) = analyze_subscriptions(txns).subscriptions
    assert sub.amount == 17
    assert sub.last_payment_date == "2024-03-01"
    assert sub.id == txns[0].id


@pytest.mark.parametrize(
    "amounts, detected",
    [
        ([-10, -10], True),
        ([-10, -10, -10, -12], True),  # 2 distinct / 4 = 0.5
        ([-10, -10, -12], False),  # 2 / 3
        ([-10, -12], False),
    ],
)
def test_amount_stability_rule(make_tx, amounts, detected):
    txns = [make_tx("Gym Club", a, f"2024-0{i + 1}-05") for i, a in enumerate(amounts)]
    result = analyze_subscriptions(txns)
    assert bool(result.subscriptions) is detected


def test_descriptions_group_after_normalization(make_tx):
    txns = [
        make_tx("GYM CLUB 0423 01/02", -30, "2024-01-02"),
        make_tx("Gym Club 0523 01/03", -30, "2024-02-02"),
    ]
    (sub,) = analyze_subscriptions(txns).subscriptions
    assert sub.name == "Gym club"


def test_tagged_currency_wins_over_magnitude(make_tx):
    txns = [
        make_tx("Adobe", -54.99, "2024-01-01", currency="EUR"),
    ]
    (sub,) = analyze_subscriptions(txns).subscriptions
    assert sub.currency == "EUR"
    assert analyze_subscriptions(txns).currency == "EUR"


def test_untagged_threshold_is_strictly_greater(make_tx):
    (sub,) = analyze_subscriptions([make_tx("Canva", -10000, "2024-01-01")]).subscriptions
    assert sub.currency == "USD"
    (sub,) = analyze_subscriptions([make_tx("Canva", -10001, "2024-01-01")]).subscriptions
    assert sub.currency == "IDR"


def test_mixed_currencies_total_in_dominant(make_tx):
    txns = [
        make_tx("Netflix", -15, "2024-01-01"),
        make_tx("Netflix", -15, "2024-02-01"),
        make_tx("PLN token", -50000, "2024-01-03"),
        make_tx("PLN token", -50000, "2024-02-03"),
    ]
    result = analyze_subscriptions(txns)
    # 15 USD = 240000 IDR outweighs 50000 IDR
    assert result.currency == "USD"
    assert result.total_monthly_spend == pytest.approx(15 + 50000 / 16000)
    assert result.yearly_projection == pytest.approx(result.total_monthly_spend * 12)
    # raw-amount ordering, not converted
    assert [s.currency for s in result.subscriptions] == ["IDR", "USD"]


def test_yearly_is_twelve_times_monthly(make_tx):
    txns = [
        make_tx("Spotify", -9.99, "2024-01-01"),
        make_tx("Dropbox", -11.99, "2024-01-04"),
    ]
    result = analyze_subscriptions(txns)
    assert result.total_monthly_spend == pytest.approx(21.98)
    assert result.yearly_projection == pytest.approx(21.98 * 12)
    assert [s.name for s in result.subscriptions] == ["Dropbox", "Spotify"]


def test_injected_knowledge_base(make_tx):
    kb = KnowledgeBase.from_records(
        [{"id": "gym", "name": "city gym", "category": "Lifestyle", "keywords": ["gym club"]}]
    )
    analyzer = SubscriptionAnalyzer(kb)
    (sub,) = analyzer.analyze([make_tx("GYM CLUB 0423", -30, "2024-01-02")]).subscriptions
    assert sub.name == "City gym"
    assert sub.category == "Lifestyle"
    assert sub.confidence == KNOWN_SERVICE_CONFIDENCE

    # the built-in services are unknown to this analyzer
    assert analyzer.analyze([make_tx("Netflix", -15, "2024-01-01")]).subscriptions == []


def test_input_is_not_mutated(make_tx):
    txns = [make_tx("Netflix", -15, "2024-01-01"), make_tx("Netflix", -15, "2024-02-01")]
    before = [t.model_dump() for t in txns]
    analyze_subscriptions(txns)
    assert [t.model_dump() for t in txns] == before


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("NETFLIX*Subscription 234234 02/12", "netflixsubscription"),
        ("Bill Payment Indihome", "indihome"),
        ("Recurring SPOTIFY  AB", "spotify ab"),
        ("Amazon Purchase", "amazon"),
        ("12345", ""),
    ],
)
def test_normalize_description(raw, expected):
    assert normalize_description(raw) == expected


def test_convert_amount():
    assert convert_amount(16000, "IDR", "USD") == 1
    assert convert_amount(2, "USD", "IDR") == 32000
    assert convert_amount(5, "EUR", "EUR") == 5
    # unknown codes count as 1 unit of the base currency
    assert convert_amount(100, "XYZ", "IDR") == 100


def test_dominant_currency_defaults_to_usd():
    assert dominant_currency([]) == "USD"
