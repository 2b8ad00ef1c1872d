from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from hydropak.time_utils import parse_iso_datetime


# Maximum money amount: 99,999,999.99 (9,999,999,999 cents), DECIMAL(12,2) range
MAX_MONEY_CENTS = 9_999_999_999

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """400-level input problem. `fields` maps field name -> list of messages."""

    def __init__(self, message: str = "Invalid request", fields: dict[str, list[str]] | None = None):
        super().__init__(message)
        self.fields = fields or {}

    def to_dict(self) -> dict:
        return {"error": "Invalid request", "message": str(self), "fields": self.fields}


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


class NotFoundError(LookupError):
    """404: referenced entity does not exist."""


class FieldErrors:
    """Collects per-field messages and raises them together."""

    def __init__(self):
        self.fields: dict[str, list[str]] = {}

    def add(self, name: str, message: str) -> None:
        self.fields.setdefault(name, []).append(message)

    def __bool__(self) -> bool:
        return bool(self.fields)

    def raise_if_any(self) -> None:
        if self.fields:
            first = next(iter(self.fields.items()))
            raise ValidationError(f"{first[0]}: {first[1][0]}", self.fields)


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - choices: enum-like string fields and their allowed (upper-case) values
    - non_negative: numeric fields that must be >= 0
    - email_fields: fields that must look like an email address
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    choices: dict[str, set[str]] = field(default_factory=dict)
    non_negative: set[str] = field(default_factory=set)
    email_fields: set[str] = field(default_factory=set)
    ranges: dict[str, tuple[int, int]] = field(default_factory=dict)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(name: str, value: Any) -> int:
    """Strict integer coercion: rejects floats with fractions, booleans and scientific notation."""
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer", {name: ["must be an integer"]})
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationError(f"{name} must be an integer, not a decimal", {name: ["must be an integer"]})
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped or "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{name} must be an integer", {name: ["must be an integer"]})
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer", {name: ["must be an integer"]})
    raise ValidationError(f"{name} must be an integer", {name: ["must be an integer"]})


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    if isinstance(coltype, Numeric):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number", {col.key: ["must be a number"]})
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{col.key} must be a number", {col.key: ["must be a number"]})

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime", {col.key: ["must be an ISO-8601 datetime"]})
            return dt
        raise ValidationError(f"{col.key} must be a datetime", {col.key: ["must be a datetime"]})

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

    All problems are collected and raised as one ValidationError whose
    `fields` lists every offending key.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload", {"_body": ["must be a JSON object"]})

    errors = FieldErrors()
    cols = _columns_by_key(model)

    if not partial:
        for f in sorted(policy.required_on_create):
            if f not in payload or payload[f] is None:
                errors.add(f, "is required")

    patch: dict = {}

    for k, raw in payload.items():
        if k not in policy.writable_fields or k not in cols:
            errors.add(k, "is not allowed")
            continue
        col = cols[k]

        # Blank strings on optional fields mean "unset"
        if isinstance(raw, str) and raw.strip() == "" and col.nullable:
            raw = None

        if raw is None:
            if not col.nullable:
                if partial or k not in policy.required_on_create:
                    errors.add(k, "cannot be null")
                continue
            patch[k] = None
            continue

        try:
            val = _coerce_value(col, raw)
        except ValidationError as e:
            for msg in e.fields.get(k, [str(e)]):
                errors.add(k, msg)
            continue

        if isinstance(col.type, (String, Text)):
            if not col.nullable and val == "":
                errors.add(k, "cannot be blank")
                continue
            if isinstance(col.type, String) and col.type.length and len(val) > col.type.length:
                errors.add(k, f"exceeds max length {col.type.length}")
                continue

        if k in policy.choices:
            val = str(val).upper()
            if val not in policy.choices[k]:
                errors.add(k, f"must be one of: {', '.join(sorted(policy.choices[k]))}")
                continue

        if k in policy.email_fields and not EMAIL_RE.match(val):
            errors.add(k, "must be a valid email address")
            continue
        if k in policy.email_fields:
            val = val.lower()

        if k in policy.non_negative and val < 0:
            errors.add(k, "must be >= 0")
            continue

        if k in policy.ranges:
            lo, hi = policy.ranges[k]
            if not lo <= val <= hi:
                errors.add(k, f"must be between {lo} and {hi}")
                continue

        if k.endswith("_cents") and isinstance(val, int) and abs(val) > MAX_MONEY_CENTS:
            errors.add(k, f"cannot exceed {MAX_MONEY_CENTS}")
            continue

        patch[k] = val

    errors.raise_if_any()
    return patch


def require_json_object(payload) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload", {"_body": ["must be a JSON object"]})
    return payload
