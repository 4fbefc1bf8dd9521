from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from app.backoffice.errors import NotFound
from app.backoffice.query import QueryBuilder


class TableGateway:
    """Generic single-table reads/deletes shared by the record models."""

    def __init__(self, s: Session, table_name: str, primary_key: str = "id"):
        self.s = s
        self.table_name = table_name
        self.primary_key = primary_key

    def select(self, columns: str = "*", order_by: str | None = None) -> list[dict[str, Any]]:
        q = QueryBuilder(f"SELECT {columns} FROM {self.table_name} ORDER BY {order_by or self.primary_key}")
        return [dict(row) for row in q.execute(self.s).mappings()]

    def select_for_primary_key(self, primary_key: Any) -> dict[str, Any] | None:
        q = QueryBuilder(f"SELECT * FROM {self.table_name} WHERE {self.primary_key} = $1", primary_key)
        row = q.execute(self.s).mappings().first()
        return dict(row) if row else None

    def delete_by_primary_key(self, primary_key: Any, returning: str | None = None) -> Any:
        """Delete one row. Returns the ``returning`` column's value (or the row count)."""
        q = QueryBuilder(f"DELETE FROM {self.table_name} WHERE {self.primary_key} = $1", primary_key)
        if returning:
            q.add(f" RETURNING {returning}")
            row = q.execute(self.s).first()
            if row is None:
                raise NotFound(self.table_name, primary_key)
            return row[0]
        res = q.execute(self.s)
        if not res.rowcount:
            raise NotFound(self.table_name, primary_key)
        return res.rowcount

    def formal_table_name(self, plural: bool = True) -> str:
        name = self.table_name.replace("_", " ").title()
        if not plural and name.endswith("s"):
            name = name[:-1]
        return name
