from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from werkzeug.security import check_password_hash, generate_password_hash

from app.backoffice.constants import ADMIN_ROLES
from app.backoffice.errors import IntegrityViolation, InvalidArgument, NotFound
from app.backoffice.forms import FieldSchema, FieldTag, method_override_field, submit_field
from app.backoffice.query import QueryBuilder
from app.backoffice.table import TableGateway
from app.backoffice.validation import LETTERS_ONLY, get_rules

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

FORM_TYPES = ("insert", "update")
ROLE_PLACEHOLDER = "disabled"

# Columns shown on the list page (never the password hash).
LIST_COLUMNS = "id, username, name, role, created_at"


def _role_options() -> dict[str, str]:
    options = {"-- select --": ROLE_PLACEHOLDER}
    options.update({role: role for role in ADMIN_ROLES})
    return options


def _columns() -> dict[str, FieldSchema]:
    return {
        "username": FieldSchema(
            tag=FieldTag.INPUT,
            label="Username",
            validation={"required": None, "pattern": LETTERS_ONLY, "minlength": 5, "maxlength": 20},
            attributes={
                "id": "username",
                "name": "username",
                "type": "text",
                "size": "15",
                "maxlength": "20",
                "value": "",
            },
        ),
        "name": FieldSchema(
            tag=FieldTag.INPUT,
            label="Name",
            validation={"required": None, "alphaspace": None, "maxlength": 50},
            attributes={
                "id": "name",
                "name": "name",
                "type": "text",
                "size": "15",
                "maxlength": "50",
                "value": "",
            },
        ),
        "role": FieldSchema(
            tag=FieldTag.SELECT,
            label="Role",
            validation={"required": None},
            attributes={"id": "role", "name": "role", "type": "select", "value": ""},
            options=_role_options(),
            selected=ROLE_PLACEHOLDER,
        ),
        "password_hash": FieldSchema(
            tag=FieldTag.INPUT,
            label="Password",
            validation={"minlength": 12},
            attributes={
                "id": "password",
                "name": "password_hash",
                "type": "password",
                "size": "20",
                "maxlength": "30",
            },
        ),
    }


def _check_form_type(form_type: str) -> None:
    if form_type not in FORM_TYPES:
        raise InvalidArgument(f"formType must be insert or update: {form_type!r}")


class AdminsModel:
    """Record model for the ``admins`` table: form schema plus typed CRUD."""

    primary_key_column = "id"

    def __init__(self, s: "Session"):
        self.s = s
        self.table = TableGateway(s, "admins", self.primary_key_column)
        self.columns = _columns()

    # ---------- Form schema ----------
    def get_form_fields(self, form_type: str = "insert", persist_passwords: bool = False) -> dict[str, FieldSchema]:
        _check_form_type(form_type)

        fields = {key: schema.copy() for key, schema in self.columns.items()}
        fields["confirm_password_hash"] = FieldSchema(
            tag=FieldTag.INPUT,
            label="Confirm Password",
            validation={"minlength": 12, "confirm": None},
            attributes={"type": "password", "name": "confirm_password_hash", "size": "20", "maxlength": "30"},
            persist=persist_passwords,
        )
        fields["submit"] = submit_field()
        fields["password_hash"].persist = persist_passwords

        if form_type == "insert":
            fields["password_hash"].validation["required"] = None
            fields["confirm_password_hash"].validation["required"] = None
        else:
            fields["password_hash"].label = "Change Password (leave blank to keep existing password)"
            fields["confirm_password_hash"].label = "Confirm New Password"
            fields["_METHOD"] = method_override_field("PUT")

        return fields

    def get_validation_rules(self, form_type: str = "insert") -> dict[str, dict[str, Any]]:
        _check_form_type(form_type)
        return get_rules(self.get_form_fields(form_type))

    # ---------- Reads ----------
    def select(self, columns: str = "*") -> list[dict[str, Any]]:
        return self.table.select(columns, order_by="username")

    def select_for_primary_key(self, primary_key: int) -> dict[str, Any] | None:
        return self.table.select_for_primary_key(primary_key)

    def select_for_username(self, username: str) -> dict[str, Any] | None:
        q = QueryBuilder("SELECT * FROM admins WHERE username = $1", username)
        row = q.execute(self.s).mappings().first()
        return dict(row) if row else None

    def check_record_exists_for_username(self, username: str) -> bool:
        q = QueryBuilder("SELECT id FROM admins WHERE username = $1", username)
        return q.execute(self.s).first() is not None

    def formal_table_name(self, plural: bool = True) -> str:
        return self.table.formal_table_name(plural)

    # ---------- Writes ----------
    @staticmethod
    def validate_role(role: str) -> bool:
        return role in ADMIN_ROLES

    def _require_role(self, role: str, action: str) -> None:
        if not self.validate_role(role):
            logger.warning("Rejected admin %s with invalid role %r", action, role)
            raise IntegrityViolation(f"Admin being {action}d with invalid role {role}")

    def insert(self, name: str, username: str, role: str, password: str) -> int:
        self._require_role(role, "insert")
        q = QueryBuilder(
            "INSERT INTO admins (name, username, role, password_hash) VALUES ($1, $2, $3, $4) RETURNING id",
            name,
            username,
            role,
            generate_password_hash(password),
        )
        return q.execute(self.s).scalar_one()

    def update(self, admin_id: int, name: str, username: str, role: str, password: str | None = None) -> str:
        """
        Overwrite name/username/role. A ``None`` password keeps the stored hash.
        Returns the updated username.
        """
        self._require_role(role, "update")
        q = QueryBuilder("UPDATE admins SET name = $1, username = $2, role = $3", name, username, role)
        arg_num = 4
        if password is not None:
            q.add(f", password_hash = ${arg_num}", generate_password_hash(password))
            arg_num += 1
        q.add(f" WHERE id = ${arg_num} RETURNING username", admin_id)
        row = q.execute(self.s).first()
        if row is None:
            raise NotFound("admins", admin_id)
        return row[0]

    def delete(self, admin_id: int) -> str:
        return self.table.delete_by_primary_key(admin_id, returning="username")

    def record_changed(self, admin_id: int, name: str, username: str, role: str, password: str | None = None) -> bool:
        """
        True if the proposed values differ from the stored row.

        The password is verified against the stored salted hash rather than
        re-hashed: two hashes of the same plaintext never compare equal.
        """
        record = self.select_for_primary_key(admin_id)
        if not record:
            raise NotFound("admins", admin_id)

        if name != record["name"] or username != record["username"] or role != record["role"]:
            return True
        if password is not None and not check_password_hash(record["password_hash"], password):
            return True
        return False
