"""
TitleDesk Backend — Filter/Sort/Paginate Helper
=================================================

What:  Collects optional list filters as SQLAlchemy predicates and applies
       the same predicate list to both the page query and the count query.
How:   Callers `add()` predicates (or `add_if()` for optional values),
       then `paginate()` runs:
           SELECT ... WHERE <all predicates> ORDER BY <allowed col> LIMIT/OFFSET
           SELECT count(*) FROM (SELECT ... WHERE <all predicates>)
       Sort keys come from an allow-list; anything else uses the default.

Example:
    filters = FilterSet()
    filters.add(Application.status != "deleted")
    filters.add_if(company, lambda v: Application.company == v)
    rows, total = await filters.paginate(
        db, select(Application), sort_columns, sort_by, order, page, limit
    )
"""

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement


def ilike_pattern(term: str) -> str:
    """Wrap a search term for a contains-style ILIKE, escaping wildcards."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class FilterSet:
    """An ordered list of WHERE predicates joined with AND."""

    def __init__(self) -> None:
        self._clauses: List[ColumnElement[bool]] = []

    def add(self, clause: ColumnElement[bool]) -> "FilterSet":
        self._clauses.append(clause)
        return self

    def add_if(
        self,
        value: Any,
        build: Callable[[Any], ColumnElement[bool]],
    ) -> "FilterSet":
        """Add `build(value)` unless value is None or an empty string."""
        if value is None or (isinstance(value, str) and not value.strip()):
            return self
        if isinstance(value, str):
            value = value.strip()
        return self.add(build(value))

    @property
    def clauses(self) -> List[ColumnElement[bool]]:
        return list(self._clauses)

    def apply(self, stmt: Select) -> Select:
        if self._clauses:
            stmt = stmt.where(*self._clauses)
        return stmt

    def count_statement(self, stmt: Select) -> Select:
        filtered = self.apply(stmt).order_by(None)
        return select(func.count()).select_from(filtered.subquery())

    async def paginate(
        self,
        db: AsyncSession,
        stmt: Select,
        sort_columns: Dict[str, Any],
        sort_by: Optional[str],
        order: str,
        page: int,
        limit: int,
        default_sort: Optional[str] = None,
    ) -> Tuple[Sequence[Any], int]:
        """
        Run the filtered page query and the matching count query.

        Args:
            sort_columns: allow-list of API sort keys → columns
            sort_by: requested key; unknown keys fall back to default_sort
                     (or the first allow-listed key)
            order: 'asc' or 'desc' (anything else is treated as desc)

        Returns:
            (rows for the requested page, total matching rows)
        """
        default_key = default_sort or next(iter(sort_columns))
        column = sort_columns.get(sort_by or "", sort_columns[default_key])
        ordering = column.asc() if (order or "").lower() == "asc" else column.desc()

        page_stmt = (
            self.apply(stmt)
            .order_by(ordering)
            .limit(limit)
            .offset((page - 1) * limit)
        )
        result = await db.execute(page_stmt)
        rows = result.scalars().all()

        count_result = await db.execute(self.count_statement(stmt))
        total = count_result.scalar() or 0
        return rows, total
