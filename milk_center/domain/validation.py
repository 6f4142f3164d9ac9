"""Field rules for the entry and administration forms."""
from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Mapping

from .errors import FormValidationError
from .rates import RateTable, as_decimal

PHONE_PATTERN = re.compile(r"^\+?[\d\s\-\(\)]{10,15}$")
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")


@dataclass(frozen=True)
class FieldRule:
    required: bool = False
    min_length: int | None = None
    max_length: int | None = None
    pattern: re.Pattern[str] | None = None
    min: Decimal | None = None
    max: Decimal | None = None
    custom: Callable[[Any], str | None] | None = None


def format_field_name(name: str) -> str:
    """``phoneNumber`` / ``phone_number`` -> ``Phone Number``."""
    spaced = re.sub(r"([A-Z])", r" \1", name).replace("_", " ")
    words = spaced.split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_number(value: Any) -> Decimal | None:
    try:
        return as_decimal(value)
    except (TypeError, ValueError):
        return None


def validate_field(name: str, value: Any, rule: FieldRule) -> str:
    label = format_field_name(name)
    if _is_blank(value):
        return f"{label} is required" if rule.required else ""

    if isinstance(value, str):
        if rule.min_length is not None and len(value) < rule.min_length:
            return f"{label} must be at least {rule.min_length} characters long"
        if rule.max_length is not None and len(value) > rule.max_length:
            return f"{label} must not exceed {rule.max_length} characters"
        if rule.pattern is not None and not rule.pattern.match(value):
            return f"{label} format is invalid"

    number = _as_number(value)
    if number is None and (rule.min is not None or rule.max is not None):
        return f"{label} must be a number"
    if number is not None:
        if rule.min is not None and number < rule.min:
            return f"{label} must be at least {rule.min}"
        if rule.max is not None and number > rule.max:
            return f"{label} must not exceed {rule.max}"

    if rule.custom is not None:
        return rule.custom(value) or ""
    return ""


def validate_form(values: Mapping[str, Any], rules: Mapping[str, FieldRule]) -> dict[str, str]:
    errors: dict[str, str] = {}
    for name, rule in rules.items():
        message = validate_field(name, values.get(name), rule)
        if message:
            errors[name] = message
    return errors


def ensure_valid(values: Mapping[str, Any], rules: Mapping[str, FieldRule]) -> None:
    errors = validate_form(values, rules)
    if errors:
        raise FormValidationError(errors)


def error_kind(message: str) -> str:
    if "required" in message:
        return "required"
    if "format" in message or "invalid" in message or message.endswith("must be a number"):
        return "format"
    if any(token in message for token in ("must be", "characters", "at least", "exceed")):
        return "range"
    return "custom"


def _valid_phone(value: Any) -> str | None:
    if value and not PHONE_PATTERN.match(str(value)):
        return "Please enter a valid phone number"
    return None


COLLECTION_RULES: dict[str, FieldRule] = {
    "userId": FieldRule(required=True),
    "liters": FieldRule(required=True, min=Decimal("0.1"), max=Decimal("1000")),
    "fatPercentage": FieldRule(required=True, min=Decimal("0.1"), max=Decimal("15")),
    "amount": FieldRule(required=True, min=Decimal("0.01")),
}

FARMER_RULES: dict[str, FieldRule] = {
    "name": FieldRule(required=True, min_length=2, max_length=100),
    "phoneNumber": FieldRule(required=True, custom=_valid_phone),
    "address": FieldRule(required=True, min_length=5, max_length=500),
}


def helper_rules(creating: bool) -> dict[str, FieldRule]:
    return {
        "name": FieldRule(required=True, min_length=2, max_length=100),
        "username": FieldRule(
            required=True,
            min_length=3,
            max_length=50,
            custom=lambda v: None
            if USERNAME_PATTERN.match(str(v))
            else "Username can only contain letters, numbers, and underscores",
        ),
        "password": FieldRule(required=creating, min_length=6),
        "phoneNumber": FieldRule(required=True, custom=_valid_phone),
    }


def fat_rate_rules(table: RateTable, editing: Decimal | None = None) -> dict[str, FieldRule]:
    def unique_fat(value: Any) -> str | None:
        number = _as_number(value)
        if number is None or number <= 0 or number > 10:
            return "Fat percentage must be between 0.1 and 10"
        if number in table and (editing is None or number != editing):
            return "Fat percentage already exists"
        return None

    def positive_rate(value: Any) -> str | None:
        number = _as_number(value)
        if number is None or number <= 0:
            return "Rate must be greater than 0"
        return None

    return {
        "fatPercentage": FieldRule(required=True, min=Decimal("0.1"), max=Decimal("10"), custom=unique_fat),
        "rate": FieldRule(required=True, min=Decimal("0.01"), custom=positive_rate),
    }


def _non_zero_amount(value: Any) -> str | None:
    number = _as_number(value)
    if number is None or number == 0:
        return "Please enter a valid amount (cannot be zero)"
    return None


ADVANCE_RULES: dict[str, FieldRule] = {
    "userId": FieldRule(required=True),
    "amount": FieldRule(required=True, custom=_non_zero_amount),
    "description": FieldRule(required=True),
}
