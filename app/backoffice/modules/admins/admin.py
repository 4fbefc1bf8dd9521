from __future__ import annotations

from flask import Blueprint, abort, current_app, flash, g, redirect, request, url_for

from app.backoffice.audit import field_changes, record_event
from app.backoffice.crud import CrudView
from app.backoffice.db import db_session
from app.backoffice.errors import IntegrityViolation, NotFound, ValidationFailure
from app.backoffice.forms import METHOD_OVERRIDE_FIELD, FieldSchema, persistable_values
from app.backoffice.modules.admins.models import Admin
from app.backoffice.modules.admins.service import LIST_COLUMNS, AdminsModel
from app.backoffice.nav import NavAdmin
from app.backoffice.rbac import current_authorization, outranks, require_authorization
from app.backoffice.validation import Validator

bp = Blueprint("admins", __name__)


def _current_admin() -> Admin:
    a = getattr(g, "current_admin", None)
    if not a:
        raise RuntimeError("No current admin")
    return a


def _view(model: AdminsModel) -> CrudView:
    return CrudView(
        model,
        "admins",
        current_authorization(),
        NavAdmin(current_app.config),
        list_columns=LIST_COLUMNS,
    )


def _form_input(fields: dict[str, FieldSchema]) -> dict[str, str]:
    data: dict[str, str] = {}
    for key, schema in fields.items():
        if schema.is_submit or key == METHOD_OVERRIDE_FIELD:
            continue
        raw = request.form.get(schema.name or key) or ""
        data[key] = raw if schema.is_password else raw.strip()
    return data


# ---------- List ----------
@bp.get("/admins")
@require_authorization("admins.index")
def index():
    return _view(AdminsModel(db_session())).index()


# ---------- Insert ----------
@bp.get("/admins/insert")
@require_authorization("admins.insert")
def insert():
    return _view(AdminsModel(db_session())).insert_form()


@bp.post("/admins/insert")
@require_authorization("admins.insert")
def post_insert():
    s = db_session()
    a = _current_admin()
    model = AdminsModel(s)
    view = _view(model)
    fields = model.get_form_fields("insert")
    data = _form_input(fields)

    try:
        Validator(model.get_validation_rules("insert")).check(data)
        if model.check_record_exists_for_username(data["username"]):
            raise IntegrityViolation(f"Username {data['username']} already exists.")
        new_id = model.insert(data["name"], data["username"], data["role"], data["password_hash"])
    except ValidationFailure as e:
        view.keep_form_state(persistable_values(fields, data), e.first_messages())
        return redirect(url_for("admins.insert"))
    except IntegrityViolation as e:
        view.keep_form_state(persistable_values(fields, data), general_error=str(e))
        return redirect(url_for("admins.insert"))

    record_event(
        s,
        actor=a,
        action="admin.create",
        entity_type="Admin",
        entity_id=str(new_id),
        metadata={"username": data["username"], "role": data["role"]},
    )
    s.commit()
    current_app.logger.info("Admin %s inserted by %s", data["username"], a.username)
    flash(f"Inserted admin {data['username']}.", "success")
    return redirect(url_for("admins.index"))


# ---------- Update ----------
@bp.get("/admins/<int:primary_key>")
@require_authorization("admins.update")
def update(primary_key: int):
    return _view(AdminsModel(db_session())).update_form(primary_key)


@bp.route("/admins/<int:primary_key>", methods=["PUT", "POST"])
@require_authorization("admins.update")
def put_update(primary_key: int):
    # POST is only accepted as a form-tunnelled PUT.
    if request.method == "POST" and (request.form.get(METHOD_OVERRIDE_FIELD) or "").upper() != "PUT":
        abort(405)

    s = db_session()
    a = _current_admin()
    model = AdminsModel(s)
    view = _view(model)

    record = model.select_for_primary_key(primary_key)
    if not record:
        return view.redirect_not_found(primary_key)

    fields = model.get_form_fields("update")
    data = _form_input(fields)
    password = data["password_hash"] or None

    errors = Validator(model.get_validation_rules("update")).validate(data)
    if errors:
        return view.update_form(primary_key, values=data, errors=ValidationFailure(errors).first_messages(), status=400)

    refusal = None
    if primary_key == a.id and data["role"] != record["role"]:
        refusal = "You cannot change your own role."
    elif outranks(a.role, record["role"]):
        refusal = "You cannot modify an account ranked above your own."
    elif outranks(a.role, data["role"]):
        refusal = f"You cannot grant the {data['role']} role."
    if refusal:
        current_app.logger.warning(
            "Admin %s refused role change on admin id=%s (%s -> %s)", a.username, primary_key, record["role"], data["role"]
        )
        return view.update_form(primary_key, values=data, general_error=refusal, status=403)

    if not model.record_changed(primary_key, data["name"], data["username"], data["role"], password):
        flash(f"No changes made to admin {record['username']}.", "info")
        return redirect(url_for("admins.index"))

    if data["username"] != record["username"] and model.check_record_exists_for_username(data["username"]):
        return view.update_form(
            primary_key, values=data, general_error=f"Username {data['username']} already exists.", status=400
        )

    try:
        username = model.update(primary_key, data["name"], data["username"], data["role"], password)
    except IntegrityViolation as e:
        return view.update_form(primary_key, values=data, general_error=str(e), status=400)

    changes = field_changes(record, data, ("name", "username", "role"))
    if password is not None:
        changes["password"] = "changed"
    record_event(
        s,
        actor=a,
        action="admin.update",
        entity_type="Admin",
        entity_id=str(primary_key),
        metadata={"username": username, "changes": changes},
    )
    s.commit()
    current_app.logger.info("Admin %s updated by %s (fields=%s)", username, a.username, sorted(changes))
    flash(f"Updated admin {username}.", "success")
    return redirect(url_for("admins.index"))


# ---------- Delete ----------
@bp.post("/admins/<int:primary_key>/delete")
@require_authorization("admins.delete")
def delete(primary_key: int):
    s = db_session()
    a = _current_admin()
    model = AdminsModel(s)

    if primary_key == a.id:
        flash("You cannot delete your own account.", "danger")
        return redirect(url_for("admins.index"))

    try:
        username = model.delete(primary_key)
    except NotFound:
        return _view(model).redirect_not_found(primary_key)

    record_event(
        s,
        actor=a,
        action="admin.delete",
        entity_type="Admin",
        entity_id=str(primary_key),
        metadata={"username": username},
    )
    s.commit()
    current_app.logger.info("Admin %s deleted by %s", username, a.username)
    flash(f"Deleted admin {username}.", "success")
    return redirect(url_for("admins.index"))
