# app/services/queries.py
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Union

from sqlalchemy import and_, select

from app.exceptions import IndexMissingError, ValidationError
from app.models import SearchKeyword

# Sorts after any character a catalog field realistically contains
HIGH_SENTINEL = "\uf8ff"


# ---------------------------
# Predicates
# ---------------------------
@dataclass(frozen=True)
class Prefix:
    """Case-insensitive prefix match on one lowercase, ordered field."""

    field: str
    term: str

    def bounds(self):
        low = self.term.lower()
        return low, low + HIGH_SENTINEL

    def clause(self, spec):
        column = resolve_column(spec, self.field)
        low, high = self.bounds()
        return and_(column >= low, column < high)


@dataclass(frozen=True)
class Token:
    """Exact membership of one token in the record's keyword set."""

    term: str

    def clause(self, spec):
        matching = select(SearchKeyword.record_id).where(
            SearchKeyword.collection == spec.name,
            SearchKeyword.token == self.term.lower(),
        )
        return spec.model.id.in_(matching)


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any

    def clause(self, spec):
        return resolve_column(spec, self.field) == self.value


Predicate = Union[Prefix, Token, Equals]


@dataclass(frozen=True)
class QueryKey:
    """Identity of a query: shared subscriptions and cursors are bound to it."""

    collection: str
    order_by: str
    predicate: Optional[Predicate] = None


def prefix_query(field: str, term: Optional[str]) -> Optional[Prefix]:
    """Prefix range over ``field``; an empty term means no filter."""
    if not term:
        return None
    return Prefix(field, term.lower())


def token_query(term: Optional[str]) -> Optional[Token]:
    term = (term or "").strip().lower()
    if not term:
        return None
    return Token(term)


# ---------------------------
# Planning
# ---------------------------
def resolve_column(spec, wire_field: str):
    attribute = spec.model.attribute_for(wire_field)
    if attribute is None:
        raise ValidationError(f"Unknown field '{wire_field}' on {spec.name}.")
    return getattr(spec.model, attribute)


def _require_index(spec, wire_field: str):
    column = resolve_column(spec, wire_field)
    if not spec.model.is_indexed(column.key):
        raise IndexMissingError(
            f"No index on {spec.name}.{wire_field}; "
            f"provision an ascending index on '{wire_field}' before querying it."
        )
    return column


def ordered_select(spec, order_by: str, predicate: Optional[Predicate] = None):
    """
    SELECT over ``spec`` ordered by ``order_by`` (ties by id) and filtered by ``predicate``.

    Raises IndexMissingError when the combination has no supporting index:
    the ordered field must be indexed, equality filters must hit an index,
    and a prefix range is only served on the ordered field itself.
    Prefix ranges also require one of the collection's lowercase fields,
    since the range bounds are lowercased.
    """
    order_column = _require_index(spec, order_by)
    stmt = select(spec.model)
    if predicate is not None:
        if isinstance(predicate, Prefix) and predicate.field != order_by:
            raise IndexMissingError(
                f"Range filter on {spec.name}.{predicate.field} requires ordering by "
                f"'{predicate.field}', not '{order_by}'."
            )
        if isinstance(predicate, Prefix) and not spec.is_prefix_field(predicate.field):
            raise ValidationError(
                f"Prefix search on {spec.name}.{predicate.field} needs a lowercase field "
                f"({', '.join(lower for _, lower in spec.prefix_fields) or 'none'})."
            )
        if isinstance(predicate, Equals):
            _require_index(spec, predicate.field)
        stmt = stmt.where(predicate.clause(spec))
    return stmt.order_by(order_column.asc(), spec.model.id.asc()), order_column


def filter_prefix(records: Iterable[dict], fields: Sequence[str], term: Optional[str]) -> List[dict]:
    """In-memory prefix match on any of ``fields``, for joined views with no backing column."""
    term = (term or "").strip().lower()
    if not term:
        return list(records)
    return [
        record for record in records
        if any(str(record.get(name) or "").lower().startswith(term) for name in fields)
    ]
