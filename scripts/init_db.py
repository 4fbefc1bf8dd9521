import os
import sys
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.backoffice.models import Admin  # noqa: E402


@contextmanager
def _session_scope(database_url: str):
    engine = create_engine(database_url, future=True, pool_pre_ping=True)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed the owner account in an idempotent way.
    Does NOT overwrite an existing account's password or role.
    """
    username = (os.environ.get("ADMIN_USERNAME") or "owner").strip()
    name = (os.environ.get("ADMIN_NAME") or "Site Owner").strip()
    password = os.environ.get("ADMIN_PASSWORD") or "change-me-now"

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///backoffice.db").strip()

    with _session_scope(db_url) as s:
        admin = s.query(Admin).filter(Admin.username == username).one_or_none()
        if not admin:
            s.add(Admin(username=username, name=name, role="owner", password_hash=generate_password_hash(password)))
            print(f"Created owner account: {username}")
        else:
            print(f"Owner account already exists: {username}")

    print("Initialized database (seed_only).")
    print("Owner password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
