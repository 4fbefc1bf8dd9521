from __future__ import annotations

import logging
import re
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import CursorResult
from sqlalchemy.orm import Session

from app.backoffice.errors import InvalidArgument

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\$(\d+)")


class QueryBuilder:
    """
    Build one parameterized statement piecewise.

    Placeholders are positional (``$1``, ``$2``...) and numbered across all
    ``add()`` calls, e.g.::

        q = QueryBuilder("UPDATE admins SET name = $1", name)
        q.add(" WHERE id = $2", admin_id)
    """

    def __init__(self, sql: str = "", *args: Any):
        self.sql = ""
        self.args: list[Any] = []
        if sql:
            self.add(sql, *args)

    def add(self, sql: str, *args: Any) -> "QueryBuilder":
        self.sql += sql
        self.args.extend(args)
        return self

    def compile(self) -> tuple[str, dict[str, Any]]:
        def _sub(m: re.Match[str]) -> str:
            n = int(m.group(1))
            if n < 1 or n > len(self.args):
                raise InvalidArgument(f"Placeholder ${n} has no argument (got {len(self.args)})")
            return f":p{n}"

        sql = _PLACEHOLDER.sub(_sub, self.sql)
        return sql, {f"p{i}": v for i, v in enumerate(self.args, start=1)}

    def execute(self, s: Session) -> CursorResult:
        sql, params = self.compile()
        logger.debug("SQL: %s params=%s", sql, sorted(params))
        return s.execute(text(sql), params)
