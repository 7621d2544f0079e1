# stockpile/api/filters.py
from typing import Any, Mapping

from sqlalchemy import not_

from stockpile.core.errors import BadRequestError
from stockpile.db.errors import InvalidValueError
from stockpile.db.query import QuerySpec
from stockpile.db.schema import coerce_value


def apply_filters(spec: QuerySpec, params: Mapping[str, str], filters: Mapping[str, Any]) -> QuerySpec:
    """Add an equality filter for each query parameter named in ``filters``.

    ``filters`` maps a query parameter to a column or boolean SQL expression.
    Boolean expressions are used directly (``?available=false`` negates).
    """
    for name, expression in filters.items():
        raw = params.get(name)
        if raw is None:
            continue
        try:
            value = coerce_value(expression, raw)
        except InvalidValueError:
            raise BadRequestError(f"invalid value for {name}: {raw}") from None
        if isinstance(value, bool) and getattr(expression, "table", None) is None:
            spec.where(expression if value else not_(expression))
        else:
            spec.where(expression == value)
    return spec
