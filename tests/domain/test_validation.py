from decimal import Decimal

import pytest

from milk_center.domain.errors import FormValidationError
from milk_center.domain.rates import RateTable
from milk_center.domain.validation import (
    ADVANCE_RULES,
    COLLECTION_RULES,
    FARMER_RULES,
    FieldRule,
    ensure_valid,
    error_kind,
    fat_rate_rules,
    format_field_name,
    helper_rules,
    validate_field,
    validate_form,
)


def test_field_names_are_humanized():
    assert format_field_name("phoneNumber") == "Phone Number"
    assert format_field_name("phone_number") == "Phone Number"
    assert format_field_name("fatPercentage") == "Fat Percentage"


def test_generic_rule_messages():
    rule = FieldRule(required=True, min_length=2, max_length=4)

    assert validate_field("name", "", rule) == "Name is required"
    assert validate_field("name", "a", rule) == "Name must be at least 2 characters long"
    assert validate_field("name", "abcde", rule) == "Name must not exceed 4 characters"
    assert validate_field("name", "abc", rule) == ""
    assert validate_field("nickname", None, FieldRule()) == ""


def test_collection_ranges():
    errors = validate_form({"userId": "", "liters": "0.05", "fatPercentage": "16", "amount": "0"}, COLLECTION_RULES)

    assert errors["userId"] == "User Id is required"
    assert errors["liters"] == "Liters must be at least 0.1"
    assert errors["fatPercentage"] == "Fat Percentage must not exceed 15"
    assert errors["amount"] == "Amount must be at least 0.01"
    assert validate_form({"userId": "f1", "liters": "10", "fatPercentage": "4.1", "amount": "410"}, COLLECTION_RULES) == {}


def test_farmer_phone_and_address():
    errors = validate_form({"name": "Ravi", "phoneNumber": "12ab", "address": "Pune"}, FARMER_RULES)

    assert errors == {
        "phoneNumber": "Please enter a valid phone number",
        "address": "Address must be at least 5 characters long",
    }
    assert validate_form(
        {"name": "Ravi", "phoneNumber": "+91 98765 43210", "address": "Main Road"}, FARMER_RULES
    ) == {}


def test_helper_password_only_required_when_creating():
    fields = {"name": "Asha", "username": "asha_1", "password": "", "phoneNumber": "9876543210"}

    assert validate_form(fields, helper_rules(creating=True)) == {"password": "Password is required"}
    assert validate_form(fields, helper_rules(creating=False)) == {}
    bad = dict(fields, username="asha-1", password="abc")
    assert validate_form(bad, helper_rules(creating=True)) == {
        "username": "Username can only contain letters, numbers, and underscores",
        "password": "Password must be at least 6 characters long",
    }


def test_fat_rate_rules_reject_duplicates_except_when_editing():
    table = RateTable.from_pairs({"4.0": "40"})

    assert validate_form({"fatPercentage": "4.0", "rate": "42"}, fat_rate_rules(table)) == {
        "fatPercentage": "Fat percentage already exists"
    }
    assert validate_form({"fatPercentage": "4.0", "rate": "42"}, fat_rate_rules(table, editing=Decimal("4.0"))) == {}
    assert "fatPercentage" in validate_form({"fatPercentage": "11", "rate": "42"}, fat_rate_rules(table))
    assert validate_form({"fatPercentage": "4.5", "rate": "0"}, fat_rate_rules(table))["rate"]


def test_advance_amount_cannot_be_zero():
    errors = validate_form({"userId": "f1", "amount": "0", "description": ""}, ADVANCE_RULES)

    assert errors == {
        "amount": "Please enter a valid amount (cannot be zero)",
        "description": "Description is required",
    }
    assert validate_form({"userId": "f1", "amount": "-200", "description": "repaid"}, ADVANCE_RULES) == {}


def test_ensure_valid_raises_with_field_errors():
    with pytest.raises(FormValidationError) as excinfo:
        ensure_valid({"userId": "f1", "amount": "0", "description": "x"}, ADVANCE_RULES)

    assert excinfo.value.errors == {"amount": "Please enter a valid amount (cannot be zero)"}
    assert excinfo.value.message == "Form Validation Failed"


def test_error_kind_classification():
    assert error_kind("Name is required") == "required"
    assert error_kind("Name format is invalid") == "format"
    assert error_kind("Liters must be at least 0.1") == "range"


def test_unparseable_numbers_fail_numeric_rules():
    errors = validate_form({"userId": "f1", "liters": "abc", "fatPercentage": "nan", "amount": "inf"}, COLLECTION_RULES)

    assert errors == {
        "liters": "Liters must be a number",
        "fatPercentage": "Fat Percentage must be a number",
        "amount": "Amount must be a number",
    }
    assert error_kind(errors["liters"]) == "format"
    assert validate_field("amount", "nan", ADVANCE_RULES["amount"]) == "Please enter a valid amount (cannot be zero)"
