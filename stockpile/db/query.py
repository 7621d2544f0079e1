# stockpile/db/query.py
"""
Composable query specifications.

A :class:`QuerySpec` collects the extra columns, joins, filters, ordering,
search and pagination an endpoint needs. The repository compiles it onto the
resource's table and adds organization scoping, so endpoints describe *what*
they need without issuing statements themselves.

Resource modifiers share one signature, ``modifier(request, spec) -> spec``,
and are applied with :meth:`QuerySpec.modify`.
"""
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.sql import ColumnElement, FromClause, Select


@dataclass
class Join:
    target: FromClause
    onclause: Optional[ColumnElement] = None
    isouter: bool = False


class QuerySpec:
    def __init__(self):
        self.columns: List[Any] = []
        self.only_columns: Optional[List[Any]] = None
        self.joins: List[Join] = []
        self.filters: List[ColumnElement] = []
        self.ordering: List[Any] = []
        self.search_columns: List[Any] = []
        self.search_term: Optional[str] = None
        self.limit: Optional[int] = None
        self.offset: Optional[int] = None

    def __repr__(self) -> str:
        return (
            f"QuerySpec(joins={len(self.joins)}, filters={len(self.filters)}, "
            f"search={self.search_term!r}, limit={self.limit}, offset={self.offset})"
        )

    def select(self, *columns) -> "QuerySpec":
        """Add columns to the table's own columns."""
        self.columns.extend(columns)
        return self

    def only(self, *columns) -> "QuerySpec":
        """Replace the table's own columns."""
        self.only_columns = list(columns)
        return self

    def join(self, target: FromClause, onclause: Optional[ColumnElement] = None) -> "QuerySpec":
        self.joins.append(Join(target, onclause))
        return self

    def outerjoin(self, target: FromClause, onclause: Optional[ColumnElement] = None) -> "QuerySpec":
        self.joins.append(Join(target, onclause, isouter=True))
        return self

    def where(self, *criteria: ColumnElement) -> "QuerySpec":
        self.filters.extend(criteria)
        return self

    def order(self, *clauses) -> "QuerySpec":
        self.ordering.extend(clauses)
        return self

    def search(self, term: Optional[str], *columns) -> "QuerySpec":
        """Case-insensitive substring match on any of ``columns``."""
        if term:
            self.search_term = term
            self.search_columns.extend(columns)
        return self

    def paginate(self, limit: Optional[int], offset: Optional[int] = None) -> "QuerySpec":
        self.limit = limit
        self.offset = offset
        return self

    def modify(self, fn: Optional[Callable[..., "QuerySpec"]], *args) -> "QuerySpec":
        """Apply ``fn(*args, spec)``; a modifier returning ``None`` keeps this spec."""
        if fn is None:
            return self
        result = fn(*args, self)
        return self if result is None else result

    def merge(self, other: Optional["QuerySpec"]) -> "QuerySpec":
        if other is None:
            return self
        self.columns.extend(other.columns)
        if other.only_columns is not None:
            self.only_columns = list(other.only_columns)
        self.joins.extend(other.joins)
        self.filters.extend(other.filters)
        self.ordering.extend(other.ordering)
        if other.search_term:
            self.search_term = other.search_term
            self.search_columns.extend(other.search_columns)
        if other.limit is not None:
            self.limit = other.limit
        if other.offset is not None:
            self.offset = other.offset
        return self

    def _apply_criteria(self, statement: Select) -> Select:
        for join in self.joins:
            statement = statement.join(join.target, join.onclause, isouter=join.isouter)
        if self.filters:
            statement = statement.where(*self.filters)
        if self.search_term and self.search_columns:
            pattern = f"%{self.search_term.lower()}%"
            statement = statement.where(
                or_(*(func.lower(column).like(pattern) for column in self.search_columns))
            )
        return statement

    def build(self, table: FromClause, columns) -> Select:
        selected = self.only_columns if self.only_columns is not None else list(columns)
        statement = select(*selected, *self.columns).select_from(table)
        statement = self._apply_criteria(statement)
        if self.ordering:
            statement = statement.order_by(*self.ordering)
        if self.limit is not None:
            statement = statement.limit(self.limit)
        if self.offset:
            statement = statement.offset(self.offset)
        return statement

    def build_count(self, table: FromClause) -> Select:
        """Row count with the same joins, filters and search, unpaginated."""
        statement = select(func.count()).select_from(table)
        return self._apply_criteria(statement)
