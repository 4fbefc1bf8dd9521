from flask import Blueprint, current_app, render_template

from app.backoffice.nav import NavAdmin
from app.backoffice.rbac import current_authorization, require_authorization

bp = Blueprint("admin", __name__)


@bp.get("/")
@require_authorization("admin.view")
def index():
    nav = NavAdmin(current_app.config)
    return render_template("admin/index.html", navigation_items=nav.permitted_sections(current_authorization()))
