from __future__ import annotations

from contextlib import contextmanager
from collections.abc import Generator

from flask import Flask, current_app, g
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker


def init_db(app: Flask) -> None:
    db_url = app.config["DATABASE_URL"]
    engine_kwargs: dict[str, object] = {"pool_pre_ping": True}
    if db_url.startswith("postgres"):
        engine_kwargs.update({"pool_recycle": 1800, "pool_size": 5, "max_overflow": 10})
    engine = create_engine(db_url, **engine_kwargs)
    app.extensions["sqlalchemy_engine"] = engine
    # Raw-SQL record models read back rows after commit; keep loaded state.
    app.extensions["sqlalchemy_sessionmaker"] = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def db_session() -> Session:
    """Session bound to the current request; closed in ``teardown_db_session``."""
    s = getattr(g, "db_session", None)
    if s is None:
        s = g.db_session = current_app.extensions["sqlalchemy_sessionmaker"]()
    return s


def teardown_db_session(exc: BaseException | None) -> None:
    s: Session | None = g.pop("db_session", None)
    if s is None:
        return
    if exc is not None:
        s.rollback()
    s.close()


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """Scripts/tests: commit on success, roll back on error."""
    s: Session = app.extensions["sqlalchemy_sessionmaker"]()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
