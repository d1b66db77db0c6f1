# ruff: noqa: E501
import csv
import io
import re
import textwrap
from datetime import date
from decimal import Decimal

import pytest

from ledger_engine.ingest import (
    NO_DATA_ERROR,
    UNSUPPORTED_FORMAT_ERROR,
    FormatSpec,
    detect_format,
    parse_rows,
)
from ledger_engine.ingest.adapters.split_amount_csv import parse_split_row
from ledger_engine.ingest.adapters.typed_amount_csv import classify_type
from ledger_engine.ingest.parser import assign_sequences
from ledger_engine.ingest.rows import ParsedRow
from ledger_engine.settings import IngestSettings


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n").rstrip()


def _parse(csv_text: str, **kw):
    reader = csv.DictReader(io.StringIO(_dedent(csv_text)))
    rows = list(reader)
    return parse_rows(reader.fieldnames or [], rows, **kw)


def _amounts(result) -> list[Decimal]:
    return [r.amount for r in result.records]


def test_debit_only_rows_are_negative_in_file_order():
    result = _parse(
        """
        Date,Description,Debit,Credit
        2024-01-01,Gym,50.00,
        2024-01-05,Gym,50.00,
        2024-01-10,Gym,50.00,
        """
    )
    assert result.format_name == "debit_credit"
    assert result.errors == ()
    assert _amounts(result) == [Decimal("-50.00")] * 3
    assert [r.date for r in result.records] == [
        date(2024, 1, 1),
        date(2024, 1, 5),
        date(2024, 1, 10),
    ]


@pytest.mark.parametrize(
    ("inflow", "outflow", "expected"),
    [
        ("25.00", "", "25.00"),
        ("", "40.00", "-40.00"),
        ("", "-40.00", "-40.00"),
        ("0.00", "12.34", "-12.34"),
        ("10.00", "99.00", "10.00"),
    ],
)
def test_split_layout_sign_rule(inflow: str, outflow: str, expected: str):
    result = _parse(
        f"""
        Transaction Date,Posted Date,Card No.,Description,Category,Debit,Credit
        2024-03-02,2024-03-03,1234,STORE,Shopping,{outflow},{inflow}
        """
    )
    assert result.format_name == "capital_one"
    assert _amounts(result) == [Decimal(expected)]


def test_split_row_with_no_amount_cells_is_skipped():
    result = _parse(
        """
        Date,Description,Withdrawals,Deposits
        01/02/2024,Opening note,,
        01/03/2024,Paycheck,,2000.00
        """
    )
    assert result.errors == ()
    assert _amounts(result) == [Decimal("2000.00")]


def test_apple_card_types_decide_sign():
    result = _parse(
        """
        Transaction Date,Clearing Date,Description,Merchant,Category,Type,Amount (USD),Purchased By
        01/20/2024,01/21/2024,UBER *TRIP,Uber,Transportation,Purchase,23.10,Pat
        01/19/2024,01/19/2024,ACH DEPOSIT,Apple,Payment,Payment,500.00,Pat
        01/18/2024,01/18/2024,MONTHLY INSTALLMENT,Apple,Other,Installment,41.58,Pat
        01/17/2024,01/18/2024,RETURN AMAZON,Amazon,Shopping,Credit,-15.00,Pat
        """
    )
    assert result.format_name == "apple_card"
    assert _amounts(result) == [
        Decimal("-23.10"),
        Decimal("500.00"),
        Decimal("-41.58"),
        Decimal("15.00"),
    ]


def test_chase_types_and_unknown_type_keeps_sign():
    result = _parse(
        """
        Transaction Date,Post Date,Description,Category,Type,Amount,Memo
        02/01/2024,02/02/2024,NETFLIX,Entertainment,Sale,15.49,
        02/03/2024,02/03/2024,AUTOMATIC PAYMENT - THANK,,Payment,-300.00,
        02/04/2024,02/04/2024,ADJUSTMENT,,Adjustment,-2.00,
        """
    )
    assert result.format_name == "chase"
    assert _amounts(result) == [Decimal("-15.49"), Decimal("300.00"), Decimal("-2.00")]


def test_classify_type_prefers_inflow_keywords():
    assert classify_type("Payment Credit") == "inflow"
    assert classify_type("PURCHASE") == "outflow"
    assert classify_type("Adjustment") is None
    assert classify_type(None) is None


USAA_CHECKING = """
    Date,Description,Original Description,Category,Amount,Status
    2024-01-05,Coffee Shop,COFFEE SHOP 123,Restaurants,-4.50,Posted
    2024-01-04,Payroll,ACME PAYROLL,Income,2000.00,Posted
    2024-01-03,Grocery,GROCERY MART,Groceries,-82.10,Posted
    2024-01-02,Electric,CITY POWER,Utilities,-95.00,Pending
"""

USAA_CARD = """
    Date,Description,Original Description,Category,Amount,Status
    2024-01-05,Coffee Shop,COFFEE SHOP 123,Restaurants,-4.50,Posted
    2024-01-04,Payment Received,USAA PAYMENT RECEIVED,Credit Card Payment,250.00,Posted
    2024-01-03,Grocery,GROCERY MART,Groceries,-82.10,Posted
"""


def test_usaa_checking_keeps_signs():
    result = _parse(USAA_CHECKING)
    assert result.format_name == "usaa"
    assert not result.inverted
    assert _amounts(result) == [
        Decimal("-4.50"),
        Decimal("2000.00"),
        Decimal("-82.10"),
        Decimal("-95.00"),
    ]
    assert [r.pending for r in result.records] == [False, False, False, True]
    assert result.records[0].description == "Coffee Shop | COFFEE SHOP 123"
    assert result.warnings == ()


def test_usaa_card_is_inverted_by_payment_ratio():
    result = _parse(USAA_CARD)
    assert result.inverted
    # Liability export: purchases raise the balance owed, the payment lowers it.
    assert _amounts(result) == [Decimal("4.50"), Decimal("-250.00"), Decimal("82.10")]
    assert result.records[1].description.startswith("Payment Received")


def test_account_kind_hint_overrides_heuristic_with_warning():
    result = _parse(USAA_CARD, account_kind="asset")
    assert not result.inverted
    assert _amounts(result)[0] == Decimal("-4.50")
    assert len(result.warnings) == 1
    assert "marked asset" in result.warnings[0]


def test_account_kind_hint_agreeing_is_silent():
    result = _parse(USAA_CARD, account_kind="liability")
    assert result.inverted
    assert result.warnings == ()


def test_near_threshold_ratio_is_reported_as_ambiguous():
    header = "Date,Description,Original Description,Category,Amount,Status"
    rows = [f"2024-01-{d:02d},Store {d},STORE,Shopping,-10.00,Posted" for d in range(1, 17)]
    rows.append("2024-01-20,Payment Received,PAYMENT RECEIVED,Credit Card Payment,100.00,Posted")
    reader = csv.DictReader(io.StringIO("\n".join([header, *rows])))
    # 1 of 17 rows (~5.9%) is just above the 5% threshold.
    result = parse_rows(reader.fieldnames or [], list(reader))
    assert result.inverted
    assert len(result.warnings) == 1
    assert result.warnings[0].startswith("Ambiguous sign convention")


def test_threshold_is_configurable():
    settings = IngestSettings(payment_ratio_threshold=0.5, ambiguity_margin=0.0)
    result = _parse(USAA_CARD, settings=settings)
    assert not result.inverted


def test_generic_fallback_uses_alias_table():
    result = _parse(
        """
        Posting Date,Payee,Transaction Amount,Transaction Status
        2024-02-01,Landlord,-1200.00,posted
        2024-02-02,Corner Store,-3.25,PENDING
        """
    )
    assert result.format_name == "generic"
    assert _amounts(result) == [Decimal("-1200.00"), Decimal("-3.25")]
    assert [r.pending for r in result.records] == [False, True]
    assert all(r.category == "Uncategorized" for r in result.records)


def test_unsupported_headers_error():
    result = _parse(
        """
        Foo,Bar
        1,2
        """
    )
    assert result.records == ()
    assert result.errors[-1] == UNSUPPORTED_FORMAT_ERROR


def test_empty_file_reports_no_data():
    result = parse_rows(["Date", "Description", "Amount"], [])
    assert result.errors == (NO_DATA_ERROR,)
    blank = parse_rows(
        ["Date", "Description", "Amount"], [{"Date": "", "Description": " ", "Amount": ""}]
    )
    assert blank.errors == (NO_DATA_ERROR,)


def test_row_errors_do_not_abort_batch():
    result = _parse(
        """
        Date,Description,Amount
        2024-01-01,Good,-1.00
        not-a-date,Bad date,-2.00
        2024-01-03,Bad amount,abc
        2024-01-04,,-4.00
        2024-01-05,Also good,5.00
        """
    )
    assert _amounts(result) == [Decimal("-1.00"), Decimal("5.00")]
    assert len(result.errors) == 2
    assert result.errors[0].startswith("Row 2: ")
    assert result.errors[1].startswith("Row 3: ")


def test_record_ids_encode_date_and_descending_sequence():
    result = _parse(
        """
        Date,Description,Amount
        2024-01-02,Later,-3.00
        2024-01-02,Middle,-2.00
        2024-01-02,Earlier,-1.00
        2024-01-01,Prev day,-9.00
        """,
        account="chk",
    )
    ids = [r.id for r in result.records]
    assert all(re.fullmatch(r"\d{8}-\d{4}-[0-9a-f]{10}", i) for i in ids)
    assert [i[:13] for i in ids] == [
        "20240102-0003",
        "20240102-0002",
        "20240102-0001",
        "20240101-0001",
    ]
    # Sorting by id reproduces chronological order within the day.
    by_id = sorted(result.records, key=lambda r: r.id)
    assert [r.description for r in by_id] == ["Prev day", "Earlier", "Middle", "Later"]
    assert all(r.account == "chk" and r.source == "generic" for r in result.records)


def test_reimport_yields_identical_ids():
    text = """
        Date,Description,Amount
        2024-01-02,A,-3.00
        2024-01-02,A,-3.00
    """
    first = [r.id for r in _parse(text).records]
    second = [r.id for r in _parse(text).records]
    assert first == second
    assert len(set(first)) == 2


def test_assign_sequences_per_day():
    rows = [
        ParsedRow(date(2024, 1, 2), "a", Decimal("1")),
        ParsedRow(date(2024, 1, 1), "b", Decimal("1")),
        ParsedRow(date(2024, 1, 2), "c", Decimal("1")),
    ]
    assert assign_sequences(rows) == [2, 1, 1]


def test_custom_registry_entry_takes_priority():
    custom = FormatSpec("my_bank", lambda h: "ref no" in h, parse_split_row)
    found = detect_format(["Ref No", "Date", "Description", "Debit", "Credit"], (custom,))
    assert found is custom
    assert detect_format(["Foo"], (custom,)) is None
