"""Shared parsing utilities for backend payloads and form input."""
from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from milk_center.domain.models import AdvanceEntry, CollectionEntry, FatRate, Farmer, Helper


def parse_decimal(value: object) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    s = str(value).strip()
    if not s or s.upper() == "NAN":
        return Decimal("0")
    negative = False
    if s.startswith("(") and s.endswith(")"):
        negative = True
        s = s[1:-1]
    for ch in [",", "₹", "$", " "]:
        s = s.replace(ch, "")
    try:
        result = Decimal(s)
    except InvalidOperation:
        return Decimal("0")
    return -result if negative else result


def parse_datetime(value: object) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip().replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def parse_date(value: object) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def _reference(value: Any) -> tuple[str, str]:
    """``userId`` arrives either as a bare id or as a populated object."""
    if isinstance(value, dict):
        return str(value.get("id", "")), str(value.get("name", ""))
    return ("" if value is None else str(value)), ""


def fat_rate_from_payload(data: dict[str, Any]) -> FatRate:
    return FatRate(parse_decimal(data.get("fatPercentage")), parse_decimal(data.get("rate")))


def farmer_from_payload(data: dict[str, Any]) -> Farmer:
    return Farmer(
        id=str(data.get("id", "")),
        name=str(data.get("name", "")),
        phone_number=str(data.get("phoneNumber") or ""),
        address=str(data.get("address") or ""),
        is_active=data.get("isActive", True),
        deactivated_at=parse_datetime(data.get("deactivatedAt")),
        deactivation_reason=data.get("deactivationReason"),
        created_at=parse_datetime(data.get("createdAt")),
    )


def helper_from_payload(data: dict[str, Any]) -> Helper:
    created_by = data.get("createdBy")
    return Helper(
        id=str(data.get("id", "")),
        name=str(data.get("name", "")),
        username=str(data.get("username", "")),
        phone_number=str(data.get("phoneNumber") or ""),
        is_active=bool(data.get("isActive", True)),
        password_expires_at=parse_datetime(data.get("passwordExpiresAt")),
        created_at=parse_datetime(data.get("createdAt")),
        updated_at=parse_datetime(data.get("updatedAt")),
        created_by=created_by.get("username") if isinstance(created_by, dict) else created_by,
    )


def collection_from_payload(data: dict[str, Any]) -> CollectionEntry:
    user_id, populated_name = _reference(data.get("userId"))
    return CollectionEntry(
        id=str(data["id"]) if data.get("id") else None,
        user_id=user_id,
        user_name=str(data.get("userName") or populated_name),
        date=parse_date(data.get("date")),
        time=str(data.get("time") or ""),
        liters=parse_decimal(data.get("liters")),
        fat_percentage=parse_decimal(data.get("fatPercentage")),
        rate=parse_decimal(data.get("rate")),
        amount=parse_decimal(data.get("amount")),
        is_manually_edited=bool(data.get("isManuallyEdited", False)),
    )


def collection_to_payload(entry: CollectionEntry) -> dict[str, Any]:
    return {
        "userId": entry.user_id,
        "userName": entry.user_name,
        "date": entry.date.isoformat(),
        "time": entry.time,
        "liters": float(entry.liters),
        "fatPercentage": float(entry.fat_percentage),
        "rate": float(entry.rate),
        "amount": float(entry.amount),
        "isManuallyEdited": entry.is_manually_edited,
    }


def advance_from_payload(data: dict[str, Any]) -> AdvanceEntry:
    user_id, populated_name = _reference(data.get("userId"))
    return AdvanceEntry(
        id=str(data["id"]) if data.get("id") else None,
        user_id=user_id,
        user_name=str(data.get("userName") or populated_name),
        amount=parse_decimal(data.get("amount")),
        date=parse_datetime(data.get("date")) or datetime.now(timezone.utc),
        description=str(data.get("description") or ""),
    )


def advance_to_payload(entry: AdvanceEntry) -> dict[str, Any]:
    return {
        "userId": entry.user_id,
        "userName": entry.user_name,
        "amount": float(entry.amount),
        "date": entry.date.isoformat(),
        "description": entry.description,
    }
