# app/services/paginator.py
import base64
import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, List, Optional

from sqlalchemy import and_, or_

from app.exceptions import StaleCursorError, ValidationError
from app.services.queries import QueryKey, ordered_select
from app.settings import PAGE_SIZE


def _fingerprint(key: QueryKey) -> str:
    return hashlib.sha1(repr(key).encode("utf-8")).hexdigest()[:16]


@dataclass(frozen=True)
class Cursor:
    """Position after the last returned item of one specific query."""

    key: QueryKey
    value: Any
    id: str

    def encode(self) -> str:
        payload = json.dumps({"k": _fingerprint(self.key), "v": self.value, "id": self.id})
        return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")

    @classmethod
    def decode(cls, token: str, key: QueryKey) -> "Cursor":
        try:
            payload = json.loads(base64.urlsafe_b64decode(token.encode("ascii")))
            fingerprint, value, record_id = payload["k"], payload["v"], payload["id"]
        except (ValueError, KeyError, TypeError) as e:
            raise StaleCursorError("Malformed cursor token.", original_error=e)
        if fingerprint != _fingerprint(key):
            raise StaleCursorError("Cursor was issued for a different query; restart from the first page.")
        return cls(key, value, record_id)


@dataclass
class Page:
    items: List[dict] = field(default_factory=list)
    cursor: Optional[Cursor] = None
    has_more: bool = False

    def to_dict(self) -> dict:
        return {
            "items": self.items,
            "cursor": self.cursor.encode() if self.cursor else None,
            "hasMore": self.has_more,
        }


def first_page(session, spec, key: QueryKey, page_size: int = PAGE_SIZE) -> Page:
    stmt, _ = ordered_select(spec, key.order_by, key.predicate)
    return _fetch(session, stmt, key, page_size, previous=None)


def next_page(session, spec, key: QueryKey, cursor: Cursor, page_size: int = PAGE_SIZE) -> Page:
    """Items strictly after ``cursor`` under the same ordering and filter."""
    if cursor.key != key:
        raise StaleCursorError("Cursor was issued for a different query; restart from the first page.")
    stmt, order_column = ordered_select(spec, key.order_by, key.predicate)
    stmt = stmt.where(
        or_(
            order_column > cursor.value,
            and_(order_column == cursor.value, spec.model.id > cursor.id),
        )
    )
    return _fetch(session, stmt, key, page_size, previous=cursor)


def _fetch(session, stmt, key: QueryKey, page_size: int, previous: Optional[Cursor]) -> Page:
    if page_size < 1:
        raise ValidationError("page_size must be at least 1.")
    rows = session.execute(stmt.limit(page_size)).scalars().all()
    if not rows:
        return Page(items=[], cursor=previous, has_more=False)
    last = rows[-1]
    attribute = last.attribute_for(key.order_by)
    cursor = Cursor(key, getattr(last, attribute), last.id)
    # Approximation: an exactly full last page reports one more (empty) round
    return Page(items=[row.to_record() for row in rows], cursor=cursor, has_more=len(rows) == page_size)
