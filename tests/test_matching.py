from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from ledger_engine.matching import (
    amount_matches,
    apply_update,
    description_matches,
    link_to_obligations,
)
from ledger_engine.models import Cadence, RecurringObligation


@pytest.fixture
def electric() -> RecurringObligation:
    return RecurringObligation(
        id="elec",
        description="City Power",
        amount=Decimal("-100.00"),
        cadence=Cadence("monthly", day_of_month=20),
        next_due=date(2024, 1, 20),
        category="Utilities",
        amount_type="variable",
        tolerance_pct=Decimal("10"),
    )


def test_fixed_amount_matches_within_a_cent(rent):
    assert amount_matches(rent, Decimal("-1200.00"))
    assert amount_matches(rent, Decimal("-1200.009"))
    assert not amount_matches(rent, Decimal("-1200.01"))


def test_variable_amount_uses_tolerance(electric):
    assert amount_matches(electric, Decimal("-110.00"))
    assert amount_matches(electric, Decimal("-90.00"))
    assert not amount_matches(electric, Decimal("-110.01"))


@pytest.mark.parametrize(
    ("a", "b", "expected"),
    [
        ("Rent", "RENT", True),
        ("Netflix", "NETFLIX.COM 866-579", True),
        ("City Power", "POWER CITY ONLINE", True),
        ("Acme Gym Monthly Dues", "Monthly dues for Acme gym downtown", True),
        ("Spotify", "Hulu", False),
        ("", "Rent", False),
    ],
)
def test_description_matches(a, b, expected):
    assert description_matches(a, b) is expected


def test_link_sets_obligation_and_category(make_record, rent, electric):
    records = [
        make_record("2024-01-01", "-1200.00", "RENT PAYMENT"),
        make_record("2024-01-18", "-104.37", "CITY POWER ONLINE PMT"),
        make_record("2024-01-19", "-3.00", "Coffee"),
    ]
    result = link_to_obligations(records, [rent, electric])

    assert [r.obligation_id for r in result.records] == ["rent", "elec", None]
    assert [r.category for r in result.records] == ["Housing", "Utilities", "Uncategorized"]
    assert records[0].obligation_id is None  # inputs untouched

    updates = {u.obligation_id: u for u in result.updates}
    assert updates["rent"].proposed_next_due == date(2024, 3, 1)
    assert updates["elec"].proposed_next_due == date(2024, 2, 20)
    assert updates["elec"].matched_amount == Decimal("-104.37")

    [variation] = result.variations
    assert variation.obligation_id == "elec"
    assert variation.difference == Decimal("-4.37")
    assert variation.percent_diff == Decimal("4.4")


def test_update_uses_most_recent_match(make_record, rent):
    records = [
        make_record("2024-02-01", "-1200.00", "Rent"),
        make_record("2024-01-01", "-1200.00", "Rent"),
    ]
    [update] = link_to_obligations(records, [rent]).updates
    assert update.matched_date == date(2024, 2, 1)
    assert apply_update(rent, update).next_due == date(2024, 3, 1)


def test_inactive_or_other_account_obligations_do_not_match(make_record, rent):
    record = make_record("2024-01-01", "-1200.00", "Rent", account="savings")
    paused = replace(rent, active=False)
    assert link_to_obligations([record], [paused]).records[0].obligation_id is None
    other = replace(rent, account="checking")
    assert link_to_obligations([record], [other]).updates == ()


def test_apply_update_rejects_wrong_obligation(make_record, rent, electric):
    [update] = link_to_obligations([make_record("2024-01-01", "-1200", "Rent")], [rent]).updates
    with pytest.raises(ValueError):
        apply_update(electric, update)
