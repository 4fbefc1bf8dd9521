"""Tests for the admins record model against a throwaway sqlite database."""
import pytest
from sqlalchemy import event
from werkzeug.security import check_password_hash, generate_password_hash

from app.backoffice import create_app
from app.backoffice.errors import IntegrityViolation, InvalidArgument, NotFound
from app.backoffice.models import Admin, Base
from app.backoffice.modules.admins.service import AdminsModel
from app.backoffice.query import QueryBuilder


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])
    return app


@pytest.fixture()
def s(app):
    sm = app.extensions["sqlalchemy_sessionmaker"]
    s = sm()
    yield s
    s.close()


@pytest.fixture()
def model(s):
    return AdminsModel(s)


@pytest.fixture()
def admin_id(model, s):
    new_id = model.insert("Same Name", "sameuser", "admin", "longpassword1")
    s.commit()
    return new_id


def test_exists_for_username(model, s):
    assert model.check_record_exists_for_username("nobody") is False
    model.insert("New Person", "somebody", "store", "longpassword1")
    assert model.check_record_exists_for_username("somebody") is True


def test_insert_hashes_password(model, admin_id):
    record = model.select_for_primary_key(admin_id)
    assert record["username"] == "sameuser"
    assert record["password_hash"] != "longpassword1"
    assert check_password_hash(record["password_hash"], "longpassword1")
    assert model.select_for_username("sameuser")["id"] == admin_id


def test_insert_invalid_role(model):
    with pytest.raises(IntegrityViolation):
        model.insert("Bad Role", "badrole", "zzz", "longpassword1")
    assert model.check_record_exists_for_username("badrole") is False


def test_record_changed_identical(model, admin_id):
    assert model.record_changed(admin_id, "Same Name", "sameuser", "admin", None) is False


def test_record_changed_name_differs(model, admin_id):
    assert model.record_changed(admin_id, "New Name", "sameuser", "admin", None) is True


def test_record_changed_role_differs(model, admin_id):
    assert model.record_changed(admin_id, "Same Name", "sameuser", "manager", None) is True


def test_record_changed_password(model, admin_id):
    # Same plaintext verifies against the stored salted hash.
    assert model.record_changed(admin_id, "Same Name", "sameuser", "admin", "longpassword1") is False
    assert model.record_changed(admin_id, "Same Name", "sameuser", "admin", "newpass12345") is True


def test_record_changed_missing(model):
    with pytest.raises(NotFound):
        model.record_changed(999, "Same Name", "sameuser", "admin", None)


def test_update_without_password_keeps_hash(model, admin_id, s):
    before = model.select_for_primary_key(admin_id)["password_hash"]
    assert model.update(admin_id, "Other Name", "otheruser", "director", None) == "otheruser"
    s.commit()
    after = model.select_for_primary_key(admin_id)
    assert after["password_hash"] == before
    assert (after["name"], after["username"], after["role"]) == ("Other Name", "otheruser", "director")


def test_update_with_password_changes_hash(model, admin_id, s):
    before = model.select_for_primary_key(admin_id)["password_hash"]
    model.update(admin_id, "Same Name", "sameuser", "admin", "newpass12345")
    s.commit()
    after = model.select_for_primary_key(admin_id)["password_hash"]
    assert after != before
    assert check_password_hash(after, "newpass12345")


def test_update_invalid_role_rejected_before_any_statement(app, s, model):
    bad = Admin(username="rogue", name="Rogue", role="zzz", password_hash=generate_password_hash("longpassword1"))
    s.add(bad)
    s.commit()

    statements = []
    engine = app.extensions["sqlalchemy_engine"]

    def _count(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine, "before_cursor_execute", _count)
    try:
        with pytest.raises(IntegrityViolation):
            model.update(bad.id, "Rogue", "rogue", "zzz", None)
    finally:
        event.remove(engine, "before_cursor_execute", _count)
    assert statements == []


def test_update_missing_id(model):
    with pytest.raises(NotFound):
        model.update(999, "Nobody", "nobody", "admin", None)


def test_delete(model, admin_id, s):
    assert model.delete(admin_id) == "sameuser"
    s.commit()
    assert model.select_for_primary_key(admin_id) is None
    with pytest.raises(NotFound):
        model.delete(admin_id)


def test_select_orders_by_username(model, s):
    model.insert("Zed Person", "zeduser", "store", "longpassword1")
    model.insert("Amy Person", "amyuser", "store", "longpassword1")
    rows = model.select("id, username")
    assert [r["username"] for r in rows] == ["amyuser", "zeduser"]
    assert set(rows[0]) == {"id", "username"}


def test_formal_table_name(model):
    assert model.formal_table_name() == "Admins"
    assert model.formal_table_name(False) == "Admin"


def test_query_builder_numbering():
    q = QueryBuilder("UPDATE admins SET name = $1", "n")
    q.add(", role = $2", "admin").add(" WHERE id = $3", 7)
    sql, params = q.compile()
    assert sql == "UPDATE admins SET name = :p1, role = :p2 WHERE id = :p3"
    assert params == {"p1": "n", "p2": "admin", "p3": 7}


def test_query_builder_missing_argument():
    with pytest.raises(InvalidArgument):
        QueryBuilder("SELECT * FROM admins WHERE id = $2", 1).compile()
