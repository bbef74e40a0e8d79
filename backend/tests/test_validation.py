"""
PIEM Backend — Validation Layer Tests
======================================

What:  Tests for sanitizers, rule factories, payload models and error formatting.
How:   Pure unit tests against piem.validation and piem.schemas (no store).

What we test:
    ✅ Free text is trimmed and HTML-escaped; emails lower-cased
    ✅ Rule messages match the API wording
    ✅ Create models require fields; update models make them optional
    ✅ Pydantic errors flatten into ordered {field, message} pairs
    ✅ The shared ID rule rejects non-ObjectId strings
"""

import pytest
from bson import ObjectId
from pydantic import ValidationError

from piem.exceptions import InvalidArgumentError
from piem.schemas.category import CategoryCreate, CategoryUpdate
from piem.schemas.inventory import InventoryCreate
from piem.schemas.supplier import SupplierCreate, SupplierUpdate
from piem.schemas.user import UserCreate, UserUpdate
from piem.validation import (
    boolean_rule,
    clean_text,
    escape_html,
    format_validation_errors,
    length_rule,
    normalize_email,
    parse_object_id,
)


def _errors(model, payload):
    with pytest.raises(ValidationError) as exc_info:
        model.model_validate(payload)
    return format_validation_errors(exc_info.value.errors())


class TestSanitizers:
    def test_escape_html_replaces_markup(self):
        assert escape_html("<b>&'\"/`\\</b>") == (
            "&lt;b&gt;&amp;&#x27;&quot;&#x2F;&#96;&#x5C;&lt;&#x2F;b&gt;"
        )

    def test_clean_text_trims_then_escapes(self):
        assert clean_text("  Tools & Parts  ") == "Tools &amp; Parts"

    def test_clean_text_passes_non_strings_through(self):
        assert clean_text(42) == 42

    def test_normalize_email(self):
        assert normalize_email("  Jane.Doe@Example.COM ") == "jane.doe@example.com"


class TestRules:
    def test_length_rule_both_bounds_message(self):
        check = length_rule("Name", 2, 50)
        with pytest.raises(ValueError, match="Name must be between 2 and 50 characters"):
            check("x")
        assert check("ok") == "ok"

    def test_length_rule_min_only_message(self):
        with pytest.raises(ValueError, match="Username must be at least 3 characters"):
            length_rule("Username", min_length=3)("ab")

    def test_length_rule_max_only_message(self):
        with pytest.raises(ValueError, match="Description cannot exceed 200 characters"):
            length_rule("Description", max_length=200)("d" * 201)

    @pytest.mark.parametrize("raw,expected", [(True, True), ("false", False), ("1", True), (0, False)])
    def test_boolean_rule_accepts_common_forms(self, raw, expected):
        assert boolean_rule("bad")(raw) is expected

    def test_boolean_rule_rejects_other_values(self):
        with pytest.raises(ValueError, match="bad"):
            boolean_rule("bad")("yes")


class TestPayloadModels:
    def test_category_name_is_escaped_and_length_checked(self):
        payload = CategoryCreate.model_validate({"name": "  A<B  "})
        assert payload.name == "A&lt;B"

        errors = _errors(CategoryCreate, {"name": "x"})
        assert errors == [{"field": "name", "message": "Name must be between 2 and 50 characters"}]

    def test_category_missing_name_is_required(self):
        assert _errors(CategoryCreate, {}) == [{"field": "name", "message": "name is required"}]

    def test_category_update_accepts_camel_case_flag(self):
        payload = CategoryUpdate.model_validate({"isActive": "false"})
        assert payload.is_active is False
        assert payload.model_dump(by_alias=True, exclude_unset=True) == {"isActive": False}

    def test_category_update_rejects_non_boolean_flag(self):
        errors = _errors(CategoryUpdate, {"isActive": "maybe"})
        assert errors == [{"field": "isActive", "message": "isActive must be a boolean value"}]

    def test_unknown_and_server_managed_keys_are_ignored(self):
        payload = CategoryCreate.model_validate(
            {"name": "Books", "itemCount": 99, "createdBy": "x", "_id": "y", "color": "red"}
        )
        assert payload.model_dump(by_alias=True, exclude_none=True) == {"name": "Books"}

    def test_user_email_is_lower_cased_and_validated(self):
        payload = UserCreate.model_validate({"username": "jdoe", "email": " JDoe@Example.com "})
        assert payload.email == "jdoe@example.com"
        assert payload.role == "user"

        errors = _errors(UserCreate, {"username": "jdoe", "email": "not-an-email"})
        assert errors == [{"field": "email", "message": "Invalid email format"}]

    def test_user_role_must_be_known(self):
        errors = _errors(UserUpdate, {"role": "root"})
        assert errors == [{"field": "role", "message": 'Role must be either "user" or "admin"'}]

    def test_inventory_numeric_rules(self):
        base = {
            "name": "Widget",
            "category": "Tools",
            "quantity": 1,
            "price": 1.5,
            "status": "Available",
            "supplier": "Acme",
        }
        assert InventoryCreate.model_validate(base).description is None

        errors = _errors(InventoryCreate, {**base, "quantity": -1, "price": -0.01, "status": "Gone"})
        assert [e["field"] for e in errors] == ["quantity", "price", "status"]
        assert errors[0]["message"] == "Quantity must be a non-negative integer"
        assert errors[1]["message"] == "Price must be a non-negative number"

    @pytest.mark.parametrize("price", ["NaN", "Infinity", "-Infinity", float("nan"), float("inf"), True])
    def test_inventory_price_must_be_finite(self, price):
        base = {
            "name": "Widget",
            "category": "Tools",
            "quantity": 1,
            "price": price,
            "status": "Available",
            "supplier": "Acme",
        }
        errors = _errors(InventoryCreate, base)
        assert errors == [{"field": "price", "message": "Price must be a non-negative number"}]

    def test_inventory_quantity_rejects_booleans(self):
        errors = _errors(
            InventoryCreate,
            {
                "name": "Widget",
                "category": "Tools",
                "quantity": True,
                "price": 1,
                "status": "Available",
                "supplier": "Acme",
            },
        )
        assert errors == [{"field": "quantity", "message": "Quantity must be a non-negative integer"}]

    def test_supplier_create_requires_every_field_in_order(self):
        errors = _errors(SupplierCreate, {"name": "Acme"})
        assert [e["field"] for e in errors] == [
            "contactName", "email", "phone", "address", "city", "state", "zipCode",
        ]
        assert errors[0]["message"] == "contactName is required"

    def test_supplier_update_checks_supplied_fields_only(self):
        payload = SupplierUpdate.model_validate({"phone": " +1 (555) 010-0000 "})
        assert payload.phone == "+1 (555) 010-0000"

        errors = _errors(SupplierUpdate, {"zipCode": "12"})
        assert errors == [{"field": "zipCode", "message": "Zip code format is invalid"}]

    def test_explicit_null_counts_as_omitted(self):
        payload = SupplierUpdate.model_validate({"city": None, "state": "Ohio"})
        assert payload.model_dump(by_alias=True, exclude_none=True) == {"state": "Ohio"}


class TestFormatValidationErrors:
    def test_strips_location_prefix(self):
        errors = format_validation_errors([
            {"loc": ("body", "name"), "type": "missing", "msg": "Field required"},
            {"loc": ("query", "active"), "type": "bool_parsing", "msg": "Input should be a valid boolean"},
        ])
        assert errors == [
            {"field": "name", "message": "name is required"},
            {"field": "active", "message": "Input should be a valid boolean"},
        ]

    def test_invalid_json(self):
        errors = format_validation_errors([
            {"loc": ("body", 10), "type": "json_invalid", "msg": "JSON decode error"},
        ])
        assert errors == [{"field": "10", "message": "Request body must be valid JSON"}]


class TestObjectIdRule:
    def test_valid_id(self):
        oid = ObjectId()
        assert parse_object_id(str(oid)) == oid

    @pytest.mark.parametrize("raw", ["123", "zzzzzzzzzzzzzzzzzzzzzzzz", "", "6543210fedcba9876543210"])
    def test_invalid_id(self, raw):
        with pytest.raises(InvalidArgumentError) as exc_info:
            parse_object_id(raw)
        assert exc_info.value.message == "Invalid ID format"
        assert exc_info.value.errors == [{"field": "id", "message": "Invalid ID format"}]
