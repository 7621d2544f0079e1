# stockpile/db/repository.py
"""
Generic organization-scoped repository.

This is the single tenant-isolation boundary: every read and write issued on
behalf of a caller passes the caller's organization id, and the repository
adds the matching filter, either on the table's own scope column or through
an ``EXISTS`` on the owning row for join tables.

The repository flushes but never commits. Handlers commit once per request,
so multi-row operations succeed or fail together.
"""
from typing import Any, Dict, List, Optional, Sequence, Union

from sqlalchemy import delete, exists, insert, literal, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stockpile.db.errors import (
    DataAccessError,
    InvalidReferenceError,
    InvalidValueError,
    MissingDataError,
    RowNotFoundError,
    ScopeViolationError,
    classify_integrity_error,
)
from stockpile.db.query import QuerySpec
from stockpile.db.schema import ResourceSchema

Row = Dict[str, Any]

DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class Repository:
    """CRUD over one table described by a :class:`ResourceSchema`."""

    def __init__(self, schema: ResourceSchema, session: AsyncSession):
        self.schema = schema
        self.table = schema.table
        self.session = session

    async def _execute(self, statement, *args):
        try:
            return await self.session.execute(statement, *args)
        except IntegrityError as exc:
            raise classify_integrity_error(exc, self.schema.name) from exc
        except SQLAlchemyError as exc:
            raise DataAccessError(str(getattr(exc, "orig", None) or exc), self.schema.name) from exc

    def scope(self, organization_id: Optional[int]) -> list:
        """Criteria restricting rows of this table to one organization."""
        if organization_id is None:
            return []
        if self.schema.scope_column is not None:
            return [self.table.c[self.schema.scope_column] == organization_id]
        owner = self.schema.owner
        if owner is not None:
            parent = owner.table
            return [
                exists()
                .where(
                    parent.c[owner.owner_column] == self.table.c[owner.column],
                    parent.c.organization_id == organization_id,
                )
                .correlate(self.table)
            ]
        return []

    def _lookup(self, column: str, value: Any):
        key_column = self.schema.column(column)
        return key_column == self.schema.coerce(column, value)

    async def get(
        self,
        value: Any,
        organization_id: Optional[int] = None,
        spec: Optional[QuerySpec] = None,
        column: Optional[str] = None,
    ) -> Row:
        """Return the first row whose ``column`` equals ``value``."""
        column = column or self.schema.key
        try:
            criterion = self._lookup(column, value)
        except InvalidValueError:
            raise RowNotFoundError(table=self.schema.name) from None

        statement = (
            (spec or QuerySpec())
            .build(self.table, self.schema.visible_columns())
            .where(criterion, *self.scope(organization_id))
            .limit(1)
        )
        result = await self._execute(statement)
        row = result.mappings().first()
        if row is None:
            raise RowNotFoundError(table=self.schema.name)
        return dict(row)

    async def get_all(self, organization_id: Optional[int] = None, spec: Optional[QuerySpec] = None) -> List[Row]:
        statement = (
            (spec or QuerySpec())
            .build(self.table, self.schema.visible_columns())
            .where(*self.scope(organization_id))
        )
        result = await self._execute(statement)
        return [dict(row) for row in result.mappings().all()]

    async def count_rows(self, organization_id: Optional[int] = None, spec: Optional[QuerySpec] = None) -> int:
        statement = (spec or QuerySpec()).build_count(self.table).where(*self.scope(organization_id))
        result = await self._execute(statement)
        return result.scalar_one()

    def _check_scope(self, values: Row, organization_id: Optional[int]) -> Row:
        scope_column = self.schema.scope_column
        if scope_column is None or organization_id is None:
            return values
        current = values.get(scope_column)
        if current is None:
            values[scope_column] = organization_id
        elif current != organization_id:
            raise ScopeViolationError(table=self.schema.name)
        return values

    async def _check_references(self, values: Row, organization_id: Optional[int]) -> None:
        """Foreign keys must point at rows of the caller's organization."""
        if organization_id is None:
            return
        for name, value in values.items():
            if value is None or name == self.schema.scope_column:
                continue
            for foreign_key in self.table.c[name].foreign_keys:
                target = foreign_key.column.table
                if "organization_id" not in target.c:
                    continue
                statement = (
                    select(literal(1))
                    .select_from(target)
                    .where(foreign_key.column == value, target.c.organization_id == organization_id)
                    .limit(1)
                )
                result = await self._execute(statement)
                if result.first() is None:
                    raise InvalidReferenceError(f"{name} does not reference a row of this organization", self.schema.name)

    async def create(
        self,
        data: Union[Row, Sequence[Row]],
        organization_id: Optional[int] = None,
    ) -> Union[Any, List[Any]]:
        """Insert one row or a list of rows and return the key value(s)."""
        many = isinstance(data, (list, tuple))
        rows = list(data) if many else [data]
        if not rows or any(not row for row in rows):
            raise MissingDataError(table=self.schema.name)

        prepared = [self._check_scope(self.schema.validate(row), organization_id) for row in rows]
        key_column = self.table.c[self.schema.key]
        keys = []
        for values in prepared:
            await self._check_references(values, organization_id)
            result = await self._execute(insert(self.table).values(**values).returning(key_column))
            keys.append(result.scalar_one())
        return keys if many else keys[0]

    async def update(
        self,
        value: Any,
        data: Row,
        organization_id: Optional[int] = None,
        spec: Optional[QuerySpec] = None,
        column: Optional[str] = None,
    ) -> Row:
        """Update the row whose ``column`` equals ``value`` and return it."""
        if not data:
            raise MissingDataError(table=self.schema.name)
        column = column or self.schema.key
        values = self.schema.validate(data)
        scope_column = self.schema.scope_column
        if scope_column in values and organization_id is not None and values[scope_column] != organization_id:
            raise ScopeViolationError(table=self.schema.name)

        # Modifier filters narrow the target row, joins only shape the result
        filters = spec.filters if spec is not None else []
        existing = await self.get(value, organization_id, spec=QuerySpec().where(*filters), column=column)
        await self._check_references(values, organization_id)

        current = existing[column]
        statement = (
            update(self.table)
            .where(self.table.c[column] == current, *self.scope(organization_id), *filters)
            .values(**values)
        )
        await self._execute(statement)
        return await self.get(values.get(column, current), organization_id, spec=spec, column=column)

    async def delete(
        self,
        value: Any,
        organization_id: Optional[int] = None,
        spec: Optional[QuerySpec] = None,
        column: Optional[str] = None,
    ) -> int:
        """Delete matching rows and return how many were removed."""
        column = column or self.schema.key
        try:
            criterion = self._lookup(column, value)
        except InvalidValueError:
            return 0
        filters = spec.filters if spec is not None else []
        statement = delete(self.table).where(criterion, *self.scope(organization_id), *filters)
        result = await self._execute(statement)
        return result.rowcount

    async def upsert(self, data: Row, conflict_columns: Sequence[str], organization_id: Optional[int] = None) -> None:
        """Insert ``data`` or update the row sharing ``conflict_columns``."""
        if not data:
            raise MissingDataError(table=self.schema.name)
        values = self._check_scope(self.schema.validate(data), organization_id)
        await self._check_references(values, organization_id)

        dialect = self.session.bind.dialect.name
        dialect_insert = DIALECT_INSERTS.get(dialect)
        if dialect_insert is None:
            raise DataAccessError(f"upsert is not supported on {dialect}", self.schema.name)

        statement = dialect_insert(self.table).values(**values)
        changed = {
            name: statement.excluded[name]
            for name in values
            if name not in conflict_columns
        }
        # Columns with an onupdate default are refreshed on conflict
        for column in self.table.c:
            if column.onupdate is None or column.key in changed or column.key in conflict_columns:
                continue
            default = column.onupdate
            changed[column.key] = default.arg(None) if default.is_callable else default.arg
        statement = statement.on_conflict_do_update(index_elements=list(conflict_columns), set_=changed)
        await self._execute(statement)

    async def commit(self) -> None:
        """Commit the session, classifying deferred constraint failures."""
        try:
            await self.session.commit()
        except IntegrityError as exc:
            raise classify_integrity_error(exc, self.schema.name) from exc
        except SQLAlchemyError as exc:
            raise DataAccessError(str(getattr(exc, "orig", None) or exc), self.schema.name) from exc
