from datetime import date, datetime, timezone
from decimal import Decimal

from milk_center.domain.models import AdvanceEntry, CollectionEntry
from milk_center.presentation.report_export import (
    advances_to_rows,
    collections_to_rows,
    render_csv,
    render_html,
    to_dataframe,
)


def make_entry(name: str = "Ravi", manual: bool = False) -> CollectionEntry:
    return CollectionEntry(
        user_id="f1",
        user_name=name,
        date=date(2024, 3, 5),
        time="06:30",
        liters=Decimal("10.5"),
        fat_percentage=Decimal("4.1"),
        rate=Decimal("45"),
        amount=Decimal("472.5"),
        is_manually_edited=manual,
    )


def test_collection_rows_and_csv():
    rows = collections_to_rows([make_entry(), make_entry(manual=True)])

    assert rows[0]["amount"] == "472.50"
    assert rows[1]["type"] == "manual"
    csv_text = render_csv(rows).decode("utf-8")
    assert csv_text.splitlines()[0] == "date,time,farmer,liters,fat_percentage,rate,amount,type"
    assert "2024-03-05,06:30,Ravi,10.5,4.1,45,472.50,auto" in csv_text


def test_advance_rows_show_direction():
    entry = AdvanceEntry("f1", "Ravi", Decimal("-300"), datetime(2024, 3, 5, tzinfo=timezone.utc), "repaid")

    assert advances_to_rows([entry]) == [
        {"date": "2024-03-05", "farmer": "Ravi", "type": "repayment", "amount": "300.00", "description": "repaid"}
    ]


def test_html_escapes_and_handles_empty():
    html = render_html(collections_to_rows([make_entry(name="<b>Ravi</b>")]))

    assert "&lt;b&gt;Ravi&lt;/b&gt;" in html
    assert html.startswith("<table>")
    assert render_html([]) == "<p>No records found.</p>"
    assert render_csv([]) == b""


def test_dataframe_columns():
    frame = to_dataframe(collections_to_rows([make_entry()]))

    assert list(frame.columns)[:3] == ["date", "time", "farmer"]
    assert len(frame) == 1
