from datetime import date
from decimal import Decimal

from milk_center.domain.models import CollectionEntry
from milk_center.infrastructure.http.normalize import normalize_identity
from milk_center.infrastructure.parsing import (
    advance_from_payload,
    collection_from_payload,
    collection_to_payload,
    farmer_from_payload,
    parse_decimal,
)


def test_normalize_identity_recurses_and_skips_falsy_ids():
    payload = {"_id": "a", "items": [{"_id": "b", "nested": {"_id": "c"}}], "blank": {"_id": ""}}

    assert normalize_identity(payload) == {
        "id": "a",
        "items": [{"id": "b", "nested": {"id": "c"}}],
        "blank": {"_id": ""},
    }
    assert normalize_identity([1, "x", None]) == [1, "x", None]


def test_parse_decimal_handles_currency_and_blanks():
    assert parse_decimal("₹1,250.50") == Decimal("1250.50")
    assert parse_decimal("(40)") == Decimal("-40")
    assert parse_decimal(4.1) == Decimal("4.1")
    assert parse_decimal("") == Decimal("0")
    assert parse_decimal(None) == Decimal("0")


def test_collection_payload_with_populated_farmer():
    entry = collection_from_payload(
        {
            "id": "c1",
            "userId": {"id": "f1", "name": "Ravi"},
            "date": "2024-03-05T00:00:00.000Z",
            "time": "06:30",
            "liters": 10.5,
            "fatPercentage": 4.1,
            "rate": 45,
            "amount": 472.5,
        }
    )

    assert entry.user_id == "f1"
    assert entry.user_name == "Ravi"
    assert entry.date == date(2024, 3, 5)
    assert entry.liters == Decimal("10.5")
    assert entry.fat_percentage == Decimal("4.1")
    assert entry.is_manually_edited is False


def test_collection_to_payload_uses_backend_field_names():
    entry = CollectionEntry(
        user_id="f1",
        user_name="Ravi",
        date=date(2024, 3, 5),
        time="06:30",
        liters=Decimal("10.5"),
        fat_percentage=Decimal("4.1"),
        rate=Decimal("45"),
        amount=Decimal("472.50"),
        is_manually_edited=True,
    )

    assert collection_to_payload(entry) == {
        "userId": "f1",
        "userName": "Ravi",
        "date": "2024-03-05",
        "time": "06:30",
        "liters": 10.5,
        "fatPercentage": 4.1,
        "rate": 45.0,
        "amount": 472.5,
        "isManuallyEdited": True,
    }


def test_farmer_and_advance_payloads():
    farmer = farmer_from_payload(
        {"id": "f1", "name": "Ravi", "isActive": False, "deactivationReason": "moved", "deactivatedAt": "2024-03-01T10:00:00Z"}
    )
    assert farmer.accepts_entries is False
    assert farmer.deactivation_reason == "moved"
    assert farmer.deactivated_at is not None

    legacy = farmer_from_payload({"id": "f2", "name": "Meena", "isActive": None})
    assert legacy.accepts_entries is True

    advance = advance_from_payload(
        {"id": "a1", "userId": "f1", "userName": "Ravi", "amount": -300, "date": "2024-03-05T09:00:00Z", "description": "repaid"}
    )
    assert advance.is_repayment
    assert advance.amount == Decimal("-300")
