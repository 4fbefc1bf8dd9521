from __future__ import annotations


class BackofficeError(Exception):
    pass


class InvalidArgument(BackofficeError, ValueError):
    """Programming/config error (e.g. bad form type). Never user-facing."""


class NotFound(BackofficeError, LookupError):
    def __init__(self, table: str, primary_key: object):
        super().__init__(f"No {table} record for id {primary_key}")
        self.table = table
        self.primary_key = primary_key


class IntegrityViolation(BackofficeError):
    """Rejected before reaching the database (invalid role, duplicate username)."""


class ValidationFailure(BackofficeError):
    def __init__(self, errors: dict[str, list[str]]):
        super().__init__("Form validation failed: " + ", ".join(sorted(errors)))
        self.errors = errors

    def first_messages(self) -> dict[str, str]:
        return {k: v[0] for k, v in self.errors.items() if v}
