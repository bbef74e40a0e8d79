"""
PIEM Backend — Validation Helpers
==================================

What:  Building blocks shared by every resource's create/update rule set.
How:   Pydantic `BeforeValidator`s sanitize input (trim, HTML-escape,
       lower-case), `AfterValidator`s enforce length/range/pattern rules
       with human messages, and `format_validation_errors` flattens a
       pydantic error list into the `{field, message}` pairs the API returns.
Who:   schemas/* (rule sets), main.py (RequestValidationError handler),
       routes (ID parameter rule).
"""

import math
import re
from typing import Any, Callable, Dict, Iterable, List, Optional

from bson import ObjectId
from fastapi import Path
from pydantic.networks import validate_email
from pydantic_core import PydanticCustomError

from piem.exceptions import InvalidArgumentError


# ══════════════════════════════════════════════════════════════════════════
# Sanitizers
# ══════════════════════════════════════════════════════════════════════════

# Characters rewritten to entities by `escape_html`
_HTML_ESCAPES = str.maketrans({
    "&": "&amp;",
    '"': "&quot;",
    "'": "&#x27;",
    "<": "&lt;",
    ">": "&gt;",
    "/": "&#x2F;",
    "\\": "&#x5C;",
    "`": "&#96;",
})


def escape_html(value: str) -> str:
    return value.translate(_HTML_ESCAPES)


def clean_text(value: Any) -> Any:
    """Trim and HTML-escape free text. Non-strings pass through for type checks."""
    if isinstance(value, str):
        return escape_html(value.strip())
    return value


def strip_text(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    return value


def normalize_email(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


# ══════════════════════════════════════════════════════════════════════════
# Rules
# ══════════════════════════════════════════════════════════════════════════

def length_rule(
    label: str,
    min_length: Optional[int] = None,
    max_length: Optional[int] = None,
) -> Callable[[str], str]:
    """
    Build an AfterValidator enforcing a string length window.

    Messages follow the API's wording:
        both bounds → "Name must be between 2 and 50 characters"
        min only    → "Username must be at least 3 characters"
        max only    → "Description cannot exceed 200 characters"
    """
    if min_length is not None and max_length is not None:
        message = f"{label} must be between {min_length} and {max_length} characters"
    elif min_length is not None:
        message = f"{label} must be at least {min_length} characters"
    else:
        message = f"{label} cannot exceed {max_length} characters"

    def check(value: str) -> str:
        if min_length is not None and len(value) < min_length:
            raise ValueError(message)
        if max_length is not None and len(value) > max_length:
            raise ValueError(message)
        return value

    return check


def numeric_rule(message: str) -> Callable[[Any], Any]:
    """BeforeValidator refusing booleans, which pydantic would otherwise coerce to 0/1."""

    def check(value):
        if isinstance(value, bool):
            raise ValueError(message)
        return value

    return check


def minimum_rule(message: str, minimum: float) -> Callable[[Any], Any]:
    """AfterValidator enforcing a lower bound. NaN and infinities never pass."""

    def check(value):
        if not math.isfinite(value) or value < minimum:
            raise ValueError(message)
        return value

    return check


def pattern_rule(message: str, pattern: str) -> Callable[[str], str]:
    compiled = re.compile(pattern)

    def check(value: str) -> str:
        if not compiled.fullmatch(value):
            raise ValueError(message)
        return value

    return check


def boolean_rule(message: str) -> Callable[[Any], Any]:
    """BeforeValidator accepting real booleans and their common string/0-1 forms."""
    truthy = {"true", "1"}
    falsy = {"false", "0"}

    def check(value):
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str) and value.strip().lower() in truthy | falsy:
            return value.strip().lower() in truthy
        raise ValueError(message)

    return check


def email_rule(message: str) -> Callable[[str], str]:
    """AfterValidator delegating the address check to pydantic's email-validator integration."""

    def check(value: str) -> str:
        try:
            validate_email(value)
        except PydanticCustomError:
            raise ValueError(message)
        return value

    return check


def choice_rule(message: str, choices: Iterable[str]) -> Callable[[str], str]:
    allowed = frozenset(choices)

    def check(value: str) -> str:
        if value not in allowed:
            raise ValueError(message)
        return value

    return check


# ══════════════════════════════════════════════════════════════════════════
# Error Formatting
# ══════════════════════════════════════════════════════════════════════════

# Location prefixes FastAPI adds in front of the field name
_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


def _field_name(loc: Iterable[Any]) -> str:
    parts = [str(p) for p in loc]
    if parts and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(parts) or "body"


def _error_message(error: Dict[str, Any], field: str) -> str:
    error_type = error.get("type", "")
    if error_type == "missing":
        return f"{field} is required"
    if error_type == "json_invalid":
        return "Request body must be valid JSON"
    ctx = error.get("ctx") or {}
    # Custom rules raise ValueError; pydantic keeps the original exception in ctx
    if error_type == "value_error" and "error" in ctx:
        return str(ctx["error"])
    return error.get("msg", "Invalid value")


def format_validation_errors(errors: Iterable[Dict[str, Any]]) -> List[Dict[str, str]]:
    """
    Convert pydantic/FastAPI error dicts into ordered {field, message} pairs.

    Example:
        [{"loc": ("body", "name"), "type": "missing", ...}]
        → [{"field": "name", "message": "name is required"}]
    """
    formatted = []
    for error in errors:
        field = _field_name(error.get("loc", ()))
        formatted.append({"field": field, "message": _error_message(error, field)})
    return formatted


# ══════════════════════════════════════════════════════════════════════════
# ID Parameter Rule
# ══════════════════════════════════════════════════════════════════════════

def parse_object_id(value: str, field: str = "id") -> ObjectId:
    """Return the ObjectId for `value` or raise InvalidArgumentError."""
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise InvalidArgumentError(
            message="Invalid ID format",
            errors=[{"field": field, "message": "Invalid ID format"}],
            context={"value": str(value)},
        )
    return ObjectId(value)


async def valid_object_id(
    id: str = Path(description="Resource identifier (24-character hex ObjectId)"),
) -> ObjectId:
    """
    FastAPI dependency implementing the shared ID rule.

    Declared as the first dependency of every `/{id}` route so a malformed
    id is rejected before authentication or any store access.
    """
    return parse_object_id(id)
