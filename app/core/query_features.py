"""
Query feature pipeline for listing endpoints.

A listing request is turned into an immutable `QuerySpec` by five pure
stages. Each stage takes a spec and returns a new one:

    filter_stage       price[gte]=100&brand_id=...  -> filter conditions
    sort_stage         sort=price,-sold             -> order keys
    limit_fields_stage fields=title,price           -> projection
    search_stage       keyword=phone                -> ilike over search fields
    paginate_stage     page=2&limit=10              -> skip/limit + metadata

`apply_query_spec` compiles the spec onto a SQLModel `select`, and
`project` applies the projection to a serialized row.

Reserved parameters (page, limit, sort, fields, keyword) never become
filters. Pagination metadata is computed from a caller-supplied total,
which ResourceService counts with the nested-route filter only, so
query-string filters don't change the page count.
"""

import math
import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Iterable

import sqlalchemy as sa
from sqlmodel import SQLModel, or_

from app.core.errors import BadRequestError

RESERVED_PARAMS = frozenset({"page", "limit", "sort", "fields", "keyword"})
COMPARISON_OPERATORS = ("gt", "gte", "lt", "lte", "in")

_FILTER_KEY = re.compile(r"^(?P<field>[A-Za-z_][A-Za-z0-9_]*)(?:\[(?P<op>[A-Za-z]+)\])?$")
# Signed 64-bit range shared by SQLite INTEGER and Postgres BIGINT
SQL_INT_MIN = -(2**63)
SQL_INT_MAX = 2**63 - 1
_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no"}

QueryParams = Mapping[str, str | list[str]]


@dataclass(frozen=True)
class Condition:
    field: str
    op: str  # eq | gt | gte | lt | lte | in
    value: Any


@dataclass(frozen=True)
class Pagination:
    current_page: int
    limit: int
    number_of_pages: int
    next: int | None = None
    prev: int | None = None

    def as_dict(self) -> dict[str, int]:
        data = {
            "current_page": self.current_page,
            "limit": self.limit,
            "number_of_pages": self.number_of_pages,
        }
        if self.next is not None:
            data["next"] = self.next
        if self.prev is not None:
            data["prev"] = self.prev
        return data


@dataclass(frozen=True)
class QuerySpec:
    base_filter: tuple[Condition, ...] = ()
    filters: tuple[Condition, ...] = ()
    sort: tuple[tuple[str, bool], ...] = ()  # (field, descending)
    include_fields: tuple[str, ...] | None = None
    exclude_fields: tuple[str, ...] = ()
    keyword: str | None = None
    search_fields: tuple[str, ...] = ()
    skip: int = 0
    limit: int | None = None
    pagination: Pagination | None = None
    hidden_fields: frozenset[str] = field(default_factory=frozenset)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def query_params_to_dict(items: Iterable[tuple[str, str]]) -> dict[str, str | list[str]]:
    """
    Collapse multi-valued query items (e.g. request.query_params.multi_items())
    into a mapping where repeated keys become lists.
    """
    params: dict[str, str | list[str]] = {}
    for key, value in items:
        if key in params:
            existing = params[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                params[key] = [existing, value]
        else:
            params[key] = value
    return params


def _single(value: str | list[str] | None) -> str | None:
    if isinstance(value, list):
        return value[-1] if value else None
    return value


def _as_list(value: str | list[str]) -> list[str]:
    return value if isinstance(value, list) else [value]


def _positive_int(raw: str | None, default: int) -> int:
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        return default
    return value if 0 < value <= SQL_INT_MAX else default


def _column(model: type[SQLModel], name: str) -> sa.Column | None:
    return model.__table__.columns.get(name)


def _coerce(column: sa.Column, raw: str) -> Any:
    col_type = column.type
    # SQLModel's AutoString (and friends) wrap the real type
    if isinstance(col_type, sa.types.TypeDecorator):
        col_type = col_type.impl
    if isinstance(col_type, sa.JSON):
        raise BadRequestError(f"Cannot filter on field '{column.name}'")
    if isinstance(col_type, sa.String):
        return raw
    try:
        if isinstance(col_type, sa.Uuid):
            return uuid.UUID(raw)
        python_type = col_type.python_type
        if python_type is bool:
            lowered = raw.strip().lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
            raise ValueError(raw)
        if python_type is datetime:
            return datetime.fromisoformat(raw)
        if python_type is int:
            value = int(raw)
            if not SQL_INT_MIN <= value <= SQL_INT_MAX:
                raise ValueError(raw)
            return value
        if python_type is float:
            value = float(raw)
            if not math.isfinite(value):
                raise ValueError(raw)
            return value
        return python_type(raw)
    except (ValueError, TypeError, NotImplementedError):
        raise BadRequestError(f"Invalid value '{raw}' for field '{column.name}'")


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


def filter_stage(spec: QuerySpec, params: QueryParams, model: type[SQLModel]) -> QuerySpec:
    """
    Turn every non-reserved parameter into a filter condition.

    `price=10`          -> price == 10
    `price[gte]=10`     -> price >= 10
    `brand_id[in]=a,b`  -> brand_id IN (a, b)
    `color=red&color=x` -> color IN (red, x)

    Unknown fields, hidden fields, unknown operators and values that can't
    be coerced to the column type are rejected with 400.
    """
    conditions: list[Condition] = []
    for key, raw_value in params.items():
        if key in RESERVED_PARAMS:
            continue

        match = _FILTER_KEY.match(key)
        if match is None:
            raise BadRequestError(f"Invalid filter parameter '{key}'")

        name = match.group("field")
        op = match.group("op") or "eq"
        if op != "eq" and op not in COMPARISON_OPERATORS:
            raise BadRequestError(f"Unsupported filter operator '{op}'")

        column = _column(model, name)
        if column is None or name in spec.hidden_fields:
            raise BadRequestError(f"Unknown filter field '{name}'")

        values = _as_list(raw_value)
        if op == "in":
            tokens = [token for value in values for token in value.split(",") if token]
            if not tokens:
                raise BadRequestError(f"Empty 'in' filter for field '{name}'")
            conditions.append(
                Condition(name, "in", tuple(_coerce(column, t) for t in tokens))
            )
        elif op == "eq" and len(values) > 1:
            conditions.append(
                Condition(name, "in", tuple(_coerce(column, v) for v in values))
            )
        else:
            for value in values:
                conditions.append(Condition(name, op, _coerce(column, value)))

    return replace(spec, filters=spec.filters + tuple(conditions))


def sort_stage(spec: QuerySpec, params: QueryParams, model: type[SQLModel]) -> QuerySpec:
    """
    `sort=price,-sold` sorts by price ascending, then sold descending.
    Defaults to newest first.
    """
    raw = _single(params.get("sort"))
    if not raw:
        if _column(model, "created_at") is not None:
            return replace(spec, sort=(("created_at", True),))
        return replace(spec, sort=())

    keys: list[tuple[str, bool]] = []
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        descending = token.startswith("-")
        name = token.lstrip("-+")
        if _column(model, name) is None or name in spec.hidden_fields:
            raise BadRequestError(f"Unknown sort field '{name}'")
        keys.append((name, descending))
    return replace(spec, sort=tuple(keys))


def limit_fields_stage(spec: QuerySpec, params: QueryParams, model: type[SQLModel]) -> QuerySpec:
    """
    `fields=title,price` keeps only those fields (plus id);
    `fields=-description` drops description.
    Hidden fields are never returned.
    """
    raw = _single(params.get("fields"))
    hidden = tuple(sorted(spec.hidden_fields))
    if not raw:
        return replace(spec, include_fields=None, exclude_fields=hidden)

    tokens = [t.strip() for t in raw.split(",") if t.strip()]
    excludes = [t[1:] for t in tokens if t.startswith("-")]
    includes = [t for t in tokens if not t.startswith("-")]
    if excludes and includes:
        raise BadRequestError("Cannot mix included and excluded fields")

    known = set(model.__table__.columns.keys()) - spec.hidden_fields
    if includes:
        selected = ["id"] + [name for name in includes if name in known and name != "id"]
        return replace(spec, include_fields=tuple(selected), exclude_fields=hidden)
    return replace(
        spec,
        include_fields=None,
        exclude_fields=hidden + tuple(name for name in excludes if name in known),
    )


def search_fields_for(entity_type: str) -> tuple[str, ...]:
    if entity_type == "Product":
        return ("title", "description")
    return ("name",)


def search_stage(spec: QuerySpec, params: QueryParams, entity_type: str) -> QuerySpec:
    """
    Case-insensitive substring match of `keyword`: title OR description
    for products, name for every other entity type.
    """
    keyword = _single(params.get("keyword"))
    if not keyword:
        return replace(spec, keyword=None, search_fields=())
    return replace(spec, keyword=keyword, search_fields=search_fields_for(entity_type))


def paginate_stage(
    spec: QuerySpec,
    params: QueryParams,
    total_count: int,
    default_limit: int = 50,
) -> QuerySpec:
    page = _positive_int(_single(params.get("page")), 1)
    limit = _positive_int(_single(params.get("limit")), default_limit)
    if (page - 1) * limit > SQL_INT_MAX:
        page = 1
    skip = (page - 1) * limit

    pagination = Pagination(
        current_page=page,
        limit=limit,
        number_of_pages=math.ceil(total_count / limit),
        next=page + 1 if page * limit < total_count else None,
        prev=page - 1 if page > 1 else None,
    )
    return replace(spec, skip=skip, limit=limit, pagination=pagination)


def build_query_spec(
    params: QueryParams,
    model: type[SQLModel],
    *,
    total_count: int,
    base_filter: dict[str, Any] | None = None,
    entity_type: str = "",
    default_limit: int = 50,
    hidden_fields: Iterable[str] = (),
) -> QuerySpec:
    """Run all five stages over a fresh spec."""
    spec = QuerySpec(
        base_filter=tuple(Condition(k, "eq", v) for k, v in (base_filter or {}).items()),
        hidden_fields=frozenset(hidden_fields),
    )
    spec = paginate_stage(spec, params, total_count, default_limit)
    spec = filter_stage(spec, params, model)
    spec = search_stage(spec, params, entity_type)
    spec = limit_fields_stage(spec, params, model)
    spec = sort_stage(spec, params, model)
    return spec


# ---------------------------------------------------------------------------
# Compilation
# ---------------------------------------------------------------------------


def compile_conditions(model: type[SQLModel], conditions: Iterable[Condition]) -> list:
    clauses = []
    for cond in conditions:
        column = getattr(model, cond.field)
        if cond.op == "eq":
            clauses.append(column == cond.value)
        elif cond.op == "gt":
            clauses.append(column > cond.value)
        elif cond.op == "gte":
            clauses.append(column >= cond.value)
        elif cond.op == "lt":
            clauses.append(column < cond.value)
        elif cond.op == "lte":
            clauses.append(column <= cond.value)
        elif cond.op == "in":
            clauses.append(column.in_(cond.value))
        else:
            raise BadRequestError(f"Unsupported filter operator '{cond.op}'")
    return clauses


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def apply_query_spec(statement, model: type[SQLModel], spec: QuerySpec):
    """Compile a QuerySpec onto a `select(model)` statement."""
    clauses = compile_conditions(model, spec.base_filter + spec.filters)
    if clauses:
        statement = statement.where(*clauses)

    if spec.keyword:
        pattern = f"%{_escape_like(spec.keyword)}%"
        matches = [
            getattr(model, name).ilike(pattern, escape="\\")
            for name in spec.search_fields
            if _column(model, name) is not None
        ]
        statement = statement.where(or_(*matches) if matches else sa.false())

    for name, descending in spec.sort:
        column = getattr(model, name)
        statement = statement.order_by(column.desc() if descending else column.asc())

    if spec.skip:
        statement = statement.offset(spec.skip)
    if spec.limit is not None:
        statement = statement.limit(spec.limit)
    return statement


def project(data: dict[str, Any], spec: QuerySpec) -> dict[str, Any]:
    """Apply the field projection to one serialized row."""
    if spec.include_fields is not None:
        return {k: v for k, v in data.items() if k in spec.include_fields}
    return {k: v for k, v in data.items() if k not in spec.exclude_fields}
