"""
Generic list/insert/update pages for one table.

``CrudView`` is composed over any record model that provides the ``CrudModel``
capabilities; it knows nothing about a specific entity.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from flask import current_app, flash, redirect, render_template, url_for

from app.backoffice.forms import FieldSchema, build_form, focus_field
from app.backoffice.nav import NavAdmin
from app.backoffice.rbac import Authorization
from app.backoffice.session_store import OneShotStore


class CrudModel(Protocol):
    primary_key_column: str

    def select(self, columns: str = "*") -> list[dict[str, Any]]: ...

    def select_for_primary_key(self, primary_key: Any) -> dict[str, Any] | None: ...

    def get_form_fields(self, form_type: str = "insert", persist_passwords: bool = False) -> dict[str, FieldSchema]: ...

    def formal_table_name(self, plural: bool = True) -> str: ...


class CrudView:
    def __init__(
        self,
        model: CrudModel,
        route_prefix: str,
        authorization: Authorization,
        nav: NavAdmin,
        list_columns: str = "*",
    ):
        self.model = model
        self.route_prefix = route_prefix
        self.authorization = authorization
        self.nav = nav
        self.list_columns = list_columns
        self.form_store = OneShotStore(route_prefix)

    def _navigation_items(self) -> dict[str, dict[str, Any]]:
        return self.nav.permitted_sections(self.authorization)

    # ---------- Redirect-preserved form state ----------
    def keep_form_state(
        self,
        values: Mapping[str, Any],
        errors: Mapping[str, str] | None = None,
        general_error: str | None = None,
    ) -> None:
        """Stash (already persistable) input and errors for the next render."""
        self.form_store.put("input", dict(values))
        self.form_store.put("errors", dict(errors or {}))
        if general_error:
            self.form_store.put("general_error", general_error)

    def _take_form_state(self) -> tuple[dict[str, Any] | None, dict[str, str], str | None]:
        return (
            self.form_store.take("input"),
            self.form_store.take("errors") or {},
            self.form_store.take("general_error"),
        )

    # ---------- Pages ----------
    def index(self):
        rows = self.model.select(self.list_columns)
        insert_link: dict[str, str] | bool = False
        if self.authorization.check(f"{self.route_prefix}.insert"):
            insert_link = {
                "text": f"Insert {self.model.formal_table_name(False)}",
                "route": f"{self.route_prefix}.insert",
            }
        return render_template(
            "admin/list.html",
            title=self.model.formal_table_name(),
            primary_key_column=self.model.primary_key_column,
            insert_link=insert_link,
            update_permitted=self.authorization.check(f"{self.route_prefix}.update"),
            update_route=f"{self.route_prefix}.update",
            add_delete_column=self.authorization.check(f"{self.route_prefix}.delete"),
            delete_route=f"{self.route_prefix}.delete",
            columns=list(rows[0].keys()) if rows else [],
            table=rows,
            navigation_items=self._navigation_items(),
        )

    def insert_form(
        self,
        values: Mapping[str, Any] | None = None,
        errors: Mapping[str, str] | None = None,
        general_error: str | None = None,
        status: int = 200,
    ):
        if values is None:
            values, errors, general_error = self._take_form_state()
        fields = self.model.get_form_fields("insert")
        form = build_form(fields, values, errors)
        return (
            render_template(
                "admin/form.html",
                title=f"Insert {self.model.formal_table_name(False)}",
                form_action_route=f"{self.route_prefix}.post_insert",
                primary_key=None,
                form_fields=form,
                focus_field=focus_field(form),
                general_form_error=general_error,
                navigation_items=self._navigation_items(),
            ),
            status,
        )

    def update_form(
        self,
        primary_key: Any,
        values: Mapping[str, Any] | None = None,
        errors: Mapping[str, str] | None = None,
        general_error: str | None = None,
        status: int = 200,
    ):
        """
        Render the update form. With no ``values`` the stored record is shown;
        after a failed PUT the controller passes the submitted values directly.
        """
        record = self.model.select_for_primary_key(primary_key)
        if not record:
            return self.redirect_not_found(primary_key)

        fields = self.model.get_form_fields("update")
        form = build_form(fields, record if values is None else values, errors)
        return (
            render_template(
                "admin/form.html",
                title=f"Update {self.model.formal_table_name(False)}",
                form_action_route=f"{self.route_prefix}.put_update",
                primary_key=primary_key,
                form_fields=form,
                focus_field=focus_field(form),
                general_form_error=general_error,
                navigation_items=self._navigation_items(),
            ),
            status,
        )

    def redirect_not_found(self, primary_key: Any):
        current_app.logger.info("%s record %s not found; redirecting to list", self.route_prefix, primary_key)
        flash(f"Record {primary_key} Not Found", "danger")
        return redirect(url_for(f"{self.route_prefix}.index"))
