"""
Search, filter, sort and paginate helpers shared by every listing endpoint.

A listing endpoint hands a tenant-scoped base query, its model and a list of
extra column declarations to :func:`table_query`.  Extra columns look like::

    {"field": "term_count", "relation": "terms", "aggregate": "count"}
    {"field": "session_name", "relation": "academic_session", "related_field": "name"}
    {"field": "status", "filter_type": "in", "options": ["pending", "active"]}

An extra column whose ``field`` matches a table column overrides it.
"""
import json
import re
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation

from flask import current_app
from sqlalchemy import Boolean, Date, DateTime, Enum, Float, Integer, Numeric, func, or_, select
from sqlalchemy.inspection import inspect as sa_inspect
from sqlalchemy.orm import aliased

HIDDEN_COLUMNS = {"school_id", "deleted", "deleted_at", "password_hash"}
FILTER_TYPES = {"text", "boolean", "numeric", "date", "in"}
TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}
TAG_RE = re.compile(r"<[^>]*>")
FILTER_KEY_RE = re.compile(r"^filters\[([^\]]+)\](\[\])?$")


def _positive_int(value, default, maximum=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if number < 1 or (maximum is not None and number > maximum):
        return default
    return number


def _as_bool(value):
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    return None


def _escape_like(term):
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class TableParams:
    """Normalized listing parameters. Malformed input falls back to defaults."""

    def __init__(self, search=None, sort_field="id", sort_order="asc", page=1,
                 per_page=20, filters=None, with_trashed=False, only_trashed=False):
        self.search = search
        self.sort_field = sort_field
        self.sort_order = sort_order
        self.page = page
        self.per_page = per_page
        self.filters = filters or {}
        self.with_trashed = with_trashed
        self.only_trashed = only_trashed

    @classmethod
    def from_request(cls, args, default_per_page=None, max_per_page=None):
        config = current_app.config
        default_per_page = default_per_page or config.get("TABLES_DEFAULT_PER_PAGE", 20)
        max_per_page = max_per_page or config.get("TABLES_MAX_PER_PAGE", 100)
        max_page = config.get("TABLES_MAX_PAGE", 100000)

        search = args.get("search")
        if search is not None:
            search = TAG_RE.sub("", search).strip() or None

        sort_order = (args.get("sortOrder") or args.get("sort_order") or "asc").lower()
        if sort_order not in ("asc", "desc"):
            sort_order = "asc"

        per_page = _positive_int(args.get("perPage") or args.get("per_page"), default_per_page)

        return cls(
            search=search,
            sort_field=(args.get("sortField") or args.get("sort") or "id").strip(),
            sort_order=sort_order,
            page=_positive_int(args.get("page"), 1, max_page),
            per_page=min(per_page, max_per_page),
            filters=cls._parse_filters(args),
            with_trashed=_as_bool(args.get("with_trashed", "")) is True,
            only_trashed=_as_bool(args.get("only_trashed", "")) is True,
        )

    @staticmethod
    def _parse_filters(args):
        filters = {}
        raw = args.get("filters")
        if raw:
            try:
                decoded = json.loads(raw)
            except (TypeError, ValueError):
                decoded = None
            if isinstance(decoded, dict):
                filters.update(decoded)

        for key in args.keys():
            match = FILTER_KEY_RE.match(key)
            if not match:
                continue
            values = args.getlist(key) if hasattr(args, "getlist") else [args.get(key)]
            if match.group(2) or len(values) > 1:
                filters[match.group(1)] = values
            else:
                filters[match.group(1)] = values[0]

        return {field: value for field, value in filters.items() if value not in (None, "", [])}


def _filter_type_for(sql_type):
    if isinstance(sql_type, Boolean):
        return "boolean"
    if isinstance(sql_type, Enum):
        return "in"
    if isinstance(sql_type, (Date, DateTime)):
        return "date"
    if isinstance(sql_type, (Integer, Float, Numeric)):
        return "numeric"
    return "text"


def _header(field):
    return field.replace("_", " ").title()


def _normalize_extra_fields(extra_fields):
    normalized = {}
    for entry in extra_fields or ():
        if isinstance(entry, str):
            entry = {"field": entry}
        entry = dict(entry)
        field = entry["field"]
        is_aggregate = bool(entry.get("aggregate"))
        entry.setdefault("header", _header(field))
        entry.setdefault("relation", None)
        entry.setdefault("related_field", None)
        entry.setdefault("aggregate", None)
        entry.setdefault("aggregate_field", None)
        entry.setdefault("sortable", True)
        entry.setdefault("filterable", not is_aggregate)
        entry.setdefault("filter_type", "numeric" if is_aggregate else None)
        entry.setdefault("options", None)
        normalized[field] = entry
    return normalized


def column_definitions(model, extra_fields=None):
    """Column metadata for a listing: table columns first, then declared extras."""
    hidden = HIDDEN_COLUMNS | set(getattr(model, "__hidden_table_columns__", ()))
    extras = _normalize_extra_fields(extra_fields)
    columns = []

    for column in model.__table__.columns:
        if column.key in hidden:
            continue
        definition = {
            "field": column.key,
            "header": _header(column.key),
            "relation": None,
            "related_field": None,
            "aggregate": None,
            "aggregate_field": None,
            "sortable": True,
            "filterable": True,
            "filter_type": _filter_type_for(column.type),
            "options": list(column.type.enums) if isinstance(column.type, Enum) else None,
        }
        if column.key in extras:
            override = extras.pop(column.key)
            definition.update({k: v for k, v in override.items() if v is not None})
        columns.append(definition)

    for field, entry in extras.items():
        if entry["filter_type"] is None:
            entry["filter_type"] = "text"
        columns.append(entry)

    return columns


def _relationship_chain(model, path):
    chain = []
    current = model
    for name in path.split("."):
        prop = sa_inspect(current).relationships.get(name)
        if prop is None:
            return None
        chain.append(prop)
        current = prop.mapper.class_
    return chain


def _through_relations(chain, criterion):
    for prop in reversed(chain):
        attribute = prop.class_attribute
        criterion = attribute.any(criterion) if prop.uselist else attribute.has(criterion)
    return criterion


def _coerce_date(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def _coerce_number(value):
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return int(number) if number == number.to_integral_value() else number


def _date_clause(column, value):
    is_datetime = isinstance(column.type, DateTime)
    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            return None
        start, end = _coerce_date(value[0]), _coerce_date(value[1])
        if start is None or end is None:
            return None
    else:
        start = end = _coerce_date(value)
        if start is None:
            return None
    if is_datetime:
        return column.between(datetime.combine(start, time.min), datetime.combine(end, time.max))
    if start == end:
        return column == start
    return column.between(start, end)


def _filter_clause(column, filter_type, value):
    if filter_type == "boolean":
        flag = _as_bool(value)
        return None if flag is None else column.is_(flag)
    if filter_type == "numeric":
        number = _coerce_number(value)
        return None if number is None else column == number
    if filter_type == "date":
        return _date_clause(column, value)
    if filter_type == "in":
        values = list(value) if isinstance(value, (list, tuple)) else [value]
        values = [item for item in values if isinstance(item, (str, int, float))]
        return column.in_(values) if values else None
    if isinstance(value, (list, tuple)):
        return None
    return column.ilike(f"%{_escape_like(str(value))}%", escape="\\")


class TableQuery:
    """Applies listing parameters to a base query for one model."""

    def __init__(self, query, model, params, extra_fields=None, modifiers=None):
        self.query = query
        self.model = model
        self.params = params
        self.columns = column_definitions(model, extra_fields)
        self.by_field = {column["field"]: column for column in self.columns}
        self.modifiers = modifiers or ()
        self.logger = current_app.logger

    def _target_column(self, definition):
        """Resolve a relation column to (relationship chain, target column)."""
        chain = _relationship_chain(self.model, definition["relation"])
        if not chain:
            self.logger.warning("Unknown relation '%s' on %s", definition["relation"], self.model.__name__)
            return None, None
        target = chain[-1].mapper.class_
        column = getattr(target, definition["related_field"] or "", None)
        if column is None:
            self.logger.warning("Unknown related field '%s' on %s", definition["related_field"], target.__name__)
            return None, None
        return chain, column

    def _aggregate_expression(self, definition):
        chain = _relationship_chain(self.model, definition["relation"])
        if not chain or len(chain) != 1 or not chain[0].uselist:
            self.logger.warning("Aggregate '%s' needs a direct to-many relation", definition["field"])
            return None
        prop = chain[0]
        target_table = prop.mapper.class_.__table__

        if definition["aggregate"] == "count":
            expression = func.count()
        elif definition["aggregate"] == "sum" and definition["aggregate_field"] in target_table.c:
            expression = func.coalesce(func.sum(target_table.c[definition["aggregate_field"]]), 0)
        else:
            self.logger.warning("Unsupported aggregate '%s'", definition["aggregate"])
            return None

        source = target_table
        if prop.secondary is not None:
            source = prop.secondary.join(target_table, prop.secondaryjoin)
        statement = select(expression).select_from(source).where(prop.primaryjoin)
        if "deleted" in target_table.c:
            statement = statement.where(target_table.c.deleted.is_(False))
        return statement.correlate(self.model.__table__).scalar_subquery()

    def _apply_trashed(self, query):
        if not hasattr(self.model, "deleted"):
            return query
        if self.params.only_trashed:
            return query.filter(self.model.deleted.is_(True))
        if self.params.with_trashed:
            return query
        return query.filter(self.model.deleted.is_(False))

    def _apply_search(self, query):
        term = self.params.search
        if not term:
            return query
        pattern = f"%{_escape_like(term)}%"
        clauses = []

        search_fields = getattr(self.model, "__search_fields__", None)
        for definition in self.columns:
            if definition["aggregate"] or definition["filter_type"] != "text":
                continue
            if definition["relation"]:
                if not definition["filterable"]:
                    continue
                chain, column = self._target_column(definition)
                if column is not None:
                    clauses.append(_through_relations(chain, column.ilike(pattern, escape="\\")))
            elif search_fields is None or definition["field"] in search_fields:
                column = getattr(self.model, definition["field"])
                clauses.append(column.ilike(pattern, escape="\\"))

        return query.filter(or_(*clauses)) if clauses else query

    def _apply_filters(self, query):
        for field, value in self.params.filters.items():
            definition = self.by_field.get(field)
            if not definition or not definition["filterable"] or definition["aggregate"]:
                continue
            filter_type = definition["filter_type"] if definition["filter_type"] in FILTER_TYPES else "text"

            if definition["relation"]:
                chain, column = self._target_column(definition)
                if column is None:
                    continue
                clause = _filter_clause(column, filter_type, value)
                if clause is not None:
                    query = query.filter(_through_relations(chain, clause))
            else:
                clause = _filter_clause(getattr(self.model, field), filter_type, value)
                if clause is not None:
                    query = query.filter(clause)
        return query

    def _apply_sort(self, query, aggregates):
        field = self.params.sort_field
        definition = self.by_field.get(field)
        if field != "id" and (definition is None or not definition["sortable"]):
            self.logger.warning(
                "Invalid sort field '%s' for %s, falling back to id", field, self.model.__name__
            )
            field, definition = "id", None

        expression = None
        if definition is None or field == "id":
            expression = self.model.id
        elif definition["aggregate"]:
            expression = aggregates.get(field)
        elif definition["relation"]:
            chain = _relationship_chain(self.model, definition["relation"])
            if chain and not any(prop.uselist for prop in chain):
                entity = self.model
                for prop in chain:
                    target = aliased(prop.mapper.class_)
                    query = query.outerjoin(getattr(entity, prop.key).of_type(target))
                    entity = target
                expression = getattr(entity, definition["related_field"] or "", None)
        else:
            expression = getattr(self.model, field)

        if expression is None:
            self.logger.warning("Cannot sort %s by '%s', falling back to id", self.model.__name__, field)
            expression = self.model.id

        ordering = expression.desc() if self.params.sort_order == "desc" else expression.asc()
        query = query.order_by(ordering)
        if expression is not self.model.id:
            query = query.order_by(self.model.id.asc())
        return query

    def build(self):
        query = self._apply_trashed(self.query)
        for modifier in self.modifiers:
            query = modifier(query, self.params)
        query = self._apply_search(query)
        query = self._apply_filters(query)

        aggregates = {}
        for definition in self.columns:
            if definition["aggregate"]:
                expression = self._aggregate_expression(definition)
                if expression is not None:
                    aggregates[definition["field"]] = expression

        query = self._apply_sort(query, aggregates)
        if aggregates:
            query = query.add_columns(*[expr.label(name) for name, expr in aggregates.items()])
        return query, list(aggregates)

    def paginate(self):
        query, aggregate_fields = self.build()
        pagination = query.paginate(
            page=self.params.page, per_page=self.params.per_page, error_out=False
        )

        if aggregate_fields:
            items = []
            for row in pagination.items:
                instance = row[0]
                for index, name in enumerate(aggregate_fields, start=1):
                    setattr(instance, name, row[index])
                items.append(instance)
            pagination.items = items

        return TablePage(pagination, self.columns)


class TablePage:
    """A Flask-SQLAlchemy ``Pagination`` plus the column metadata of its listing."""

    def __init__(self, pagination, columns):
        self.pagination = pagination
        self.columns = columns

    @property
    def items(self):
        return self.pagination.items

    def meta(self):
        page = self.pagination
        return {
            "total": page.total,
            "page": page.page,
            "per_page": page.per_page,
            "pages": page.pages,
            "from": page.first if page.items else None,
            "to": page.last if page.items else None,
        }

    def to_dict(self, presenter=None):
        presenter = presenter or (lambda item: item.to_dict())
        return {
            "data": [presenter(item) for item in self.items],
            "meta": self.meta(),
            "columns": self.columns,
        }


def table_query(query, model, args, extra_fields=None, modifiers=None):
    """Shape ``query`` from request ``args`` and return one :class:`TablePage`."""
    params = args if isinstance(args, TableParams) else TableParams.from_request(args)
    return TableQuery(query, model, params, extra_fields, modifiers).paginate()
