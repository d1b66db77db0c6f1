from dataclasses import replace
from decimal import Decimal

from ledger_engine.merge import merge_import


def test_new_records_are_appended(make_record):
    existing = [make_record("2024-01-01", "-1.00", "A")]
    incoming = [make_record("2024-01-02", "-2.00", "B")]
    result = merge_import(existing, incoming)
    assert [r.description for r in result.records] == ["A", "B"]
    assert (result.new, result.updated, result.skipped, result.posted) == (1, 0, 0, 0)


def test_reimport_same_ids_is_skipped(make_record):
    existing = [make_record("2024-01-01", "-1.00", "A")]
    result = merge_import(existing, list(existing))
    assert result.records == tuple(existing)
    assert result.skipped == 1 and result.new == 0


def test_data_match_is_duplicate(make_record):
    existing = [make_record("2024-01-01", "-1.00", "A", id="old-id")]
    incoming = [make_record("2024-01-01", "-1.00", "A", id="new-id")]
    result = merge_import(existing, incoming)
    assert [r.id for r in result.records] == ["old-id"]
    assert result.skipped == 1


def test_pending_to_posted_keeps_reconciled(make_record):
    pending = make_record(
        "2024-01-03", "-25.00", "AMAZON MKTP", pending=True, reconciled=True, id="p1"
    )
    posted = make_record(
        "2024-01-05", "-25.00", "AMAZON MKTP US*2K4", id="posted-1", category="Shopping"
    )
    result = merge_import([pending], [posted])

    [record] = result.records
    assert record.id == "posted-1"
    assert record.date.isoformat() == "2024-01-05"
    assert record.category == "Shopping"
    assert record.reconciled and not record.pending
    assert result.posted == 1


def test_pending_reimport_refreshes_but_keeps_link(make_record):
    old = make_record(
        "2024-01-03",
        "-60.00",
        "SPOTIFY",
        pending=True,
        obligation_id="sp",
        category="Music",
        id="x1",
    )
    again = make_record("2024-01-03", "-60.00", "SPOTIFY", pending=True, id="x2")
    result = merge_import([old], [again])
    [record] = result.records
    assert record.id == "x2"
    assert record.obligation_id == "sp"
    assert record.category == "Music"
    assert result.updated == 1


def test_materialized_placeholder_superseded_by_linked_import(make_record):
    placeholder = make_record(
        "2024-02-01",
        "-1200.00",
        "Rent",
        id="manual-rent-2024-02-01",
        manual=True,
        pending=True,
        obligation_id="rent",
    )
    actual = make_record(
        "2024-02-03", "-1200.00", "ACH LANDLORD LLC", obligation_id="rent", id="r1"
    )
    result = merge_import([placeholder], [actual])
    assert [r.id for r in result.records] == ["r1"]
    assert result.new == 1


def test_placeholder_outside_window_is_kept(make_record):
    placeholder = make_record(
        "2024-02-01", "-1200.00", "Rent", manual=True, pending=True, obligation_id="rent"
    )
    actual = make_record("2024-02-12", "-1200.00", "ACH LANDLORD LLC", obligation_id="rent")
    result = merge_import([placeholder], [actual])
    assert len(result.records) == 2


def test_manual_record_replaced_on_id_match(make_record):
    manual = make_record("2024-01-09", "-9.99", "Cash", manual=True, reconciled=True, id="m1")
    imported = replace(manual, manual=False, reconciled=False, description="CASH WITHDRAWAL")
    result = merge_import([manual], [imported])
    [record] = result.records
    assert record.description == "CASH WITHDRAWAL"
    assert record.reconciled and not record.manual
    assert result.updated == 1


def test_amount_mismatch_is_not_a_pending_match(make_record):
    pending = make_record("2024-01-03", "-25.00", "Fuel", pending=True)
    posted = make_record("2024-01-04", "-40.00", "Fuel")
    result = merge_import([pending], [posted])
    assert len(result.records) == 2
    assert result.records[0].amount == Decimal("-25.00")


def test_older_linked_import_leaves_future_placeholder(make_record):
    placeholder = make_record(
        "2024-02-01",
        "-1200.00",
        "Rent",
        id="manual-rent-2024-02-01",
        manual=True,
        pending=True,
        obligation_id="rent",
    )
    january = make_record("2024-01-05", "-1200.00", "RENT PAYMENT", obligation_id="rent")
    result = merge_import([placeholder], [january])
    assert [r.id for r in result.records] == ["manual-rent-2024-02-01", january.id]
    assert result.new == 1 and result.updated == 0
