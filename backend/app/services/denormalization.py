# app/services/denormalization.py
"""
Parent -> child field copies (Operator -> Terminal).

Copies are value snapshots taken whenever the child is written. Parent edits
are NOT cascaded: a Terminal keeps the operator name it was written with until
it is written again (or explicitly reconciled). Readers pick exactly one
policy per view through ``ReadMode``:

* SNAPSHOT  - trust the stored copy (cheap, may be stale)
* LIVE_JOIN - re-resolve ``operatorId`` against current Operators, falling
  back to ``UNKNOWN_OPERATOR`` when the parent is gone
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic.alias_generators import to_camel

from app.exceptions import ReferenceNotFoundError

UNKNOWN_OPERATOR = "Unknown Operator"


class ReadMode(str, Enum):
    SNAPSHOT = "snapshot"
    LIVE_JOIN = "live"


@dataclass(frozen=True)
class DenormalizedReference:
    field: str                               # child attribute holding the parent id
    parent_model: type
    parent_collection: str
    copies: Tuple[Tuple[str, str], ...]      # (child attribute, parent attribute)
    display: Tuple[Tuple[str, str, Any], ...]  # (child wire field, parent wire field, fallback)

    @property
    def wire_field(self) -> str:
        return to_camel(self.field)


def materialize(session, reference: DenormalizedReference, draft: dict, parent_id: Optional[str] = None) -> dict:
    """
    Fill the copied parent fields of ``draft`` from the live parent.

    Raises ReferenceNotFoundError when the parent does not exist; the child
    must not be written in that case.
    """
    parent_id = parent_id or draft.get(reference.field)
    parent = session.get(reference.parent_model, parent_id) if parent_id else None
    if parent is None:
        raise ReferenceNotFoundError(reference.parent_collection, parent_id)
    draft[reference.field] = parent.id
    for child_attribute, parent_attribute in reference.copies:
        draft[child_attribute] = getattr(parent, parent_attribute)
    return draft


def resolve_display(
    records: Iterable[dict],
    reference: DenormalizedReference,
    mode: ReadMode,
    parents_by_id: Optional[Mapping[str, dict]] = None,
) -> List[dict]:
    """Display copies of child records under exactly one read policy."""
    resolved = []
    for record in records:
        view = dict(record)
        if mode == ReadMode.LIVE_JOIN:
            parent = (parents_by_id or {}).get(record.get(reference.wire_field))
            for child_field, parent_field, fallback in reference.display:
                view[child_field] = parent[parent_field] if parent else fallback
        else:
            for child_field, _, fallback in reference.display:
                if view.get(child_field) in (None, ""):
                    view[child_field] = fallback
        resolved.append(view)
    return resolved


def index_by_id(records: Iterable[dict]) -> Dict[str, dict]:
    return {record["id"]: record for record in records}
