from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Date, Integer, JSON, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from reportflow.errors import ValidationError
from reportflow.time_utils import parse_iso_date


# Financial sections must be present (as JSON objects) before a report can
# leave the editable pool. Their contents are opaque to the workflow.
FINANCIAL_FIELDS = ("product_info", "expense_info", "income_info")

REQUIRED_FOR_SUBMISSION = ("title", "report_date") + FINANCIAL_FIELDS

LOCATION_FIELDS = ("branch_id", "subdistrict_id", "city_id")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


# Branch users own the whole editable surface of their report, location included.
REPORT_AUTHOR_POLICY = ModelValidationPolicy(
    writable_fields={
        "title",
        "content",
        "report_date",
        "total_sales",
        "branch_manager",
        "branch_id",
        "subdistrict_id",
        "city_id",
        *FINANCIAL_FIELDS,
    },
    required_on_create=set(),
)

# Subdistrict admins may correct content while reviewing, never location or ownership.
REPORT_REVIEWER_POLICY = ModelValidationPolicy(
    writable_fields={
        "title",
        "content",
        "report_date",
        "total_sales",
        "branch_manager",
        *FINANCIAL_FIELDS,
    },
)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or not stripped.lstrip("-").isdigit():
                raise ValidationError(f"{col.key} must be an integer")
            return int(stripped)
        raise ValidationError(f"{col.key} must be an integer")

    # Money-like values
    if isinstance(coltype, Numeric):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        if isinstance(value, (int, float, Decimal, str)):
            try:
                d = Decimal(str(value).strip())
            except InvalidOperation:
                raise ValidationError(f"{col.key} must be a number")
            if not d.is_finite():
                raise ValidationError(f"{col.key} must be a finite number")
            return d
        raise ValidationError(f"{col.key} must be a number")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    # Dates (accept "YYYY-MM-DD" strings)
    if isinstance(coltype, Date):
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                parsed = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            if parsed is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            return parsed
        raise ValidationError(f"{col.key} must be a date")

    # Opaque JSON sections
    if isinstance(coltype, JSON):
        if not isinstance(value, dict):
            raise ValidationError(f"{col.key} must be an object")
        return value

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing=missing)

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}", field=k)
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}", field=k)

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null", field=k)
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank", field=k)

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}", field=k)

        patch[k] = val

    return patch


def enforce_rules_report_submission(values: dict) -> None:
    """
    Completeness rules a report must satisfy to enter review.

    ``values`` is the merged view of the stored report and any pending patch.
    Location consistency is checked separately against the hierarchy.
    """
    missing = []
    for field_name in REQUIRED_FOR_SUBMISSION + LOCATION_FIELDS:
        value = values.get(field_name)
        if value is None:
            missing.append(field_name)
        elif isinstance(value, str) and not value.strip():
            missing.append(field_name)
        elif field_name in FINANCIAL_FIELDS and not value:
            missing.append(field_name)

    if missing:
        raise ValidationError(
            f"Report is incomplete, missing: {', '.join(missing)}",
            missing=missing,
        )
