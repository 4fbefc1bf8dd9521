"""
Declarative form field schemas and the per-request form instance built from them.

A schema is an ordered ``dict[str, FieldSchema]``; dict order is rendering order.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class FieldTag(str, Enum):
    INPUT = "input"
    SELECT = "select"
    HIDDEN = "hidden"


METHOD_OVERRIDE_FIELD = "_METHOD"


@dataclass
class FieldSchema:
    tag: FieldTag
    label: str = ""
    validation: dict[str, Any] = field(default_factory=dict)
    attributes: dict[str, str] = field(default_factory=dict)
    options: dict[str, str] | None = None  # display -> value
    selected: str | None = None
    persist: bool = True

    def __post_init__(self) -> None:
        if self.tag is FieldTag.SELECT and self.options is None:
            raise ValueError("select fields require options")
        if self.tag is not FieldTag.SELECT and self.options is not None:
            raise ValueError(f"{self.tag.value} fields cannot have options")

    @property
    def name(self) -> str:
        return self.attributes.get("name", "")

    @property
    def is_password(self) -> bool:
        return self.attributes.get("type") == "password"

    @property
    def is_submit(self) -> bool:
        return self.attributes.get("type") == "submit"

    def copy(self) -> "FieldSchema":
        """Copy deep enough that label/validation/attribute edits don't leak back."""
        return replace(
            self,
            validation=dict(self.validation),
            attributes=dict(self.attributes),
            options=dict(self.options) if self.options is not None else None,
        )


def submit_field(value: str = "Go!") -> FieldSchema:
    return FieldSchema(
        tag=FieldTag.INPUT,
        attributes={"type": "submit", "name": "submit", "value": value},
    )


def method_override_field(verb: str) -> FieldSchema:
    # HTML forms can only GET/POST; the controller reads this to treat a POST as ``verb``.
    return FieldSchema(
        tag=FieldTag.HIDDEN,
        attributes={"type": "hidden", "name": METHOD_OVERRIDE_FIELD, "value": verb.upper()},
    )


@dataclass(frozen=True)
class FormField:
    """One field of a rendered form: schema + value + error for a single response."""

    key: str
    schema: FieldSchema
    value: str = ""
    error: str | None = None

    @property
    def tag(self) -> str:
        return self.schema.tag.value

    @property
    def label(self) -> str:
        return self.schema.label

    @property
    def attributes(self) -> dict[str, str]:
        return self.schema.attributes

    @property
    def options(self) -> dict[str, str]:
        return self.schema.options or {}

    @property
    def selected(self) -> str | None:
        if self.schema.tag is FieldTag.SELECT and self.value in self.options.values():
            return self.value
        return self.schema.selected

    @property
    def required(self) -> bool:
        return "required" in self.schema.validation


def _fixed_value(schema: FieldSchema) -> bool:
    return schema.tag is FieldTag.HIDDEN or schema.is_submit


def persistable_values(fields: Mapping[str, FieldSchema], data: Mapping[str, Any]) -> dict[str, str]:
    """Subset of ``data`` that may be echoed back to the client (passwords only when persist is set)."""
    out: dict[str, str] = {}
    for key, schema in fields.items():
        if _fixed_value(schema) or key not in data:
            continue
        if schema.is_password and not schema.persist:
            continue
        value = data.get(key)
        out[key] = "" if value is None else str(value)
    return out


def build_form(
    fields: Mapping[str, FieldSchema],
    values: Mapping[str, Any] | None = None,
    errors: Mapping[str, str] | None = None,
) -> list[FormField]:
    values = persistable_values(fields, values or {})
    errors = errors or {}
    form: list[FormField] = []
    for key, schema in fields.items():
        if _fixed_value(schema):
            value = schema.attributes.get("value", "")
        else:
            value = values.get(key, schema.attributes.get("value", "") if not schema.is_password else "")
        form.append(FormField(key=key, schema=schema, value=value, error=errors.get(key)))
    return form


def focus_field(form: list[FormField]) -> str | None:
    """Name of the first field with an error, else the first visible non-submit field."""
    for f in form:
        if f.error:
            return f.schema.name or f.key
    for f in form:
        if f.schema.tag is not FieldTag.HIDDEN and not f.schema.is_submit:
            return f.schema.name or f.key
    return None
