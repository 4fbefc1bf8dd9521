from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from app.backoffice.errors import InvalidArgument, ValidationFailure
from app.backoffice.forms import FieldSchema

CONFIRM_PREFIX = "confirm_"


@dataclass(frozen=True)
class PatternRule:
    regex: str
    description: str

    def matches(self, value: str) -> bool:
        return re.fullmatch(self.regex, value) is not None


LETTERS_ONLY = PatternRule(r"^[a-zA-Z]+$", "only letters")
_ALPHASPACE = re.compile(r"[a-zA-Z ]+")

RULE_NAMES = frozenset({"required", "minlength", "maxlength", "pattern", "alphaspace", "confirm"})


def get_rules(fields: Mapping[str, FieldSchema]) -> dict[str, dict[str, Any]]:
    """Project each field's validation mapping into a flat rule table."""
    rules: dict[str, dict[str, Any]] = {}
    for key, schema in fields.items():
        if not schema.validation:
            continue
        unknown = sorted(set(schema.validation) - RULE_NAMES)
        if unknown:
            raise InvalidArgument(f"Unknown validation rule(s) for {key}: {', '.join(unknown)}")
        rules[key] = dict(schema.validation)
    return rules


def _is_empty(value: Any) -> bool:
    # Callers strip text inputs; password whitespace is significant.
    return value is None or value == ""


class Validator:
    def __init__(self, rules: Mapping[str, Mapping[str, Any]]):
        self.rules = rules

    def validate(self, data: Mapping[str, Any]) -> dict[str, list[str]]:
        errors: dict[str, list[str]] = {}
        for key, field_rules in self.rules.items():
            messages = self._check_field(key, field_rules, data)
            if messages:
                errors[key] = messages
        return errors

    def check(self, data: Mapping[str, Any]) -> None:
        errors = self.validate(data)
        if errors:
            raise ValidationFailure(errors)

    def _check_field(self, key: str, field_rules: Mapping[str, Any], data: Mapping[str, Any]) -> list[str]:
        value = data.get(key)
        messages: list[str] = []

        if "confirm" in field_rules:
            if not key.startswith(CONFIRM_PREFIX):
                raise InvalidArgument(f"confirm rule requires a {CONFIRM_PREFIX}<field> key, got {key}")
            paired = data.get(key[len(CONFIRM_PREFIX):]) or ""
            if (value or "") != paired:
                messages.append("Does not match.")

        if _is_empty(value):
            if "required" in field_rules:
                messages.insert(0, "Required.")
            # Remaining rules constrain non-empty values only.
            return messages

        text = str(value)
        for rule, param in field_rules.items():
            if rule == "minlength" and len(text) < int(param):
                messages.append(f"Must be at least {int(param)} characters.")
            elif rule == "maxlength" and len(text) > int(param):
                messages.append(f"Must be no more than {int(param)} characters.")
            elif rule == "pattern" and not param.matches(text):
                messages.append(f"Must contain {param.description}.")
            elif rule == "alphaspace" and not _ALPHASPACE.fullmatch(text):
                messages.append("Must contain only letters and spaces.")
        return messages
