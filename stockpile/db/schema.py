# stockpile/db/schema.py
"""
Schema descriptors for the generic repository.

A :class:`ResourceSchema` declares, for one table, which column endpoints use
as the key, how rows are tied to an organization, and which columns are never
returned. Payloads and path values are validated and converted against the
table's column types here, before any statement is built.
"""
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import Column, Table

from stockpile.db.errors import InvalidValueError, UnknownColumnsError

TRUE_VALUES = {"true", "1", "yes", "on"}
FALSE_VALUES = {"false", "0", "no", "off"}


@dataclass(frozen=True)
class Owner:
    """Parent row through which a join table reaches its organization."""
    table: Table
    column: str
    owner_column: str = "id"


class ResourceSchema:
    def __init__(
        self,
        table: Table,
        key: str = "id",
        scope_column: Optional[str] = "organization_id",
        owner: Optional[Owner] = None,
        hidden: Iterable[str] = (),
    ):
        self.table = table
        self.key = key
        self.scope_column = scope_column if scope_column and scope_column in table.c else None
        self.owner = owner
        self.hidden = frozenset(hidden)

        missing = {key, *self.hidden} - set(table.c.keys())
        if missing:
            raise ValueError(f"{table.name} has no columns {sorted(missing)}")
        if owner is not None and "organization_id" not in owner.table.c:
            raise ValueError(f"owner {owner.table.name} of {table.name} is not organization scoped")

    def __repr__(self) -> str:
        return f"ResourceSchema({self.name!r}, key={self.key!r})"

    @property
    def name(self) -> str:
        return self.table.name

    @property
    def scoped(self) -> bool:
        return self.scope_column is not None or self.owner is not None

    def column(self, name: str) -> Column:
        if name not in self.table.c:
            raise UnknownColumnsError([name], self.name)
        return self.table.c[name]

    def visible_columns(self) -> List[Column]:
        return [column for column in self.table.c if column.key not in self.hidden]

    def validate(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Check column names and convert values to their column types."""
        unknown = [name for name in data if name not in self.table.c]
        if unknown:
            raise UnknownColumnsError(unknown, self.name)
        return {name: self.coerce(name, value) for name, value in data.items()}

    def coerce(self, name: str, value: Any) -> Any:
        return coerce_value(self.column(name), value, self.name)


def coerce_value(column: Column, value: Any, table: Optional[str] = None) -> Any:
    if value is None:
        return None
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value

    try:
        if python_type is bool:
            return _to_bool(value)
        if python_type is int:
            return _to_int(value)
        if python_type is datetime:
            return _to_datetime(value)
        if python_type is date:
            return _to_date(value)
        if python_type is Decimal:
            return Decimal(str(value))
        if python_type is str:
            if isinstance(value, (dict, list, bool)):
                raise ValueError(value)
            return str(value)
    except (ValueError, TypeError, InvalidOperation):
        raise InvalidValueError(getattr(column, "key", None) or str(column), value, table) from None
    return value


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
    raise ValueError(value)


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(value)
        return int(value)
    return int(value)


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(value)
    # Stored as naive UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise TypeError(value)
