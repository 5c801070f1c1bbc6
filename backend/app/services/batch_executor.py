# app/services/batch_executor.py
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Set, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError

from app.exceptions import BatchError, CatalogError, DatabaseError, RecordNotFoundError, ValidationError
from app.models import SearchKeyword, new_id
from app.services.collections import CollectionSpec, get_spec
from app.services.denormalization import materialize
from app.services.keyword_indexer import keywords_for
from app.settings import MAX_BATCH_SIZE

logger = logging.getLogger(__name__)


# ---------------------------
# Operations
# ---------------------------
@dataclass
class Insert:
    collection: str
    data: dict

    kind = "insert"


@dataclass
class Update:
    collection: str
    id: str
    patch: dict = field(default_factory=dict)
    upsert: bool = False

    kind = "update"


@dataclass
class Delete:
    collection: str
    id: str

    kind = "delete"


Op = Union[Insert, Update, Delete]


def partition(ops: Sequence[Op], size: int) -> List[List[Op]]:
    return [list(ops[start:start + size]) for start in range(0, len(ops), size)]


# ---------------------------
# Write preparation
# ---------------------------
def _describe(error: PydanticValidationError) -> List[dict]:
    return [
        {"field": ".".join(str(part) for part in item["loc"]), "message": item["msg"]}
        for item in error.errors()
    ]


def prepare(session, spec: CollectionSpec, data: dict) -> dict:
    """Validate ``data`` and derive every stored field: lowercase copies, parent snapshot, keywords."""
    try:
        parsed = spec.schema.model_validate(data)
    except PydanticValidationError as e:
        errors = _describe(e)
        summary = "; ".join(f"{item['field']}: {item['message']}" for item in errors)
        raise ValidationError(f"Invalid {spec.name} record: {summary}", errors=errors, original_error=e)

    values = parsed.model_dump()
    for target, source in spec.lowercase_fields:
        values[target] = values[source].lower()
    if spec.reference is not None:
        materialize(session, spec.reference, values)
    if spec.keyword_fields:
        values["keywords"] = keywords_for(values, spec.keyword_fields)
    return values


def _sync_keywords(session, spec: CollectionSpec, record_id: str, tokens: Iterable[str]):
    session.execute(
        delete(SearchKeyword).where(
            SearchKeyword.collection == spec.name,
            SearchKeyword.record_id == record_id,
        )
    )
    session.add_all(SearchKeyword(collection=spec.name, record_id=record_id, token=token) for token in tokens)
    session.flush()


# ---------------------------
# Executor
# ---------------------------
class BatchExecutor:
    """
    Applies Insert/Update/Delete operations inside one transaction.

    Either every operation of a call is committed or none is. Listeners are
    told which collections changed once the commit has succeeded.
    """

    def __init__(self, session_factory, max_batch_size: int = MAX_BATCH_SIZE):
        self._session_factory = session_factory
        self.max_batch_size = max_batch_size
        self._listeners: List[Callable[[Set[str]], None]] = []

    def add_listener(self, listener: Callable[[Set[str]], None]):
        self._listeners.append(listener)

    def mutate(self, op: Op) -> Optional[dict]:
        """Single operation; errors surface with their own kind."""
        return self._commit([op], wrap_errors=False)[0]

    def commit_batch(self, ops: Iterable[Op]) -> List[Optional[dict]]:
        ops = list(ops)
        if len(ops) > self.max_batch_size:
            raise BatchError(
                f"Batch of {len(ops)} operations exceeds the limit of {self.max_batch_size}; "
                f"split it into sequential batches."
            )
        if not ops:
            return []
        return self._commit(ops, wrap_errors=True)

    def commit_in_batches(self, ops: Sequence[Op]) -> List[Optional[dict]]:
        """Sequential batches of at most ``max_batch_size``; each one is atomic on its own."""
        results = []
        for chunk in partition(list(ops), self.max_batch_size):
            results.extend(self.commit_batch(chunk))
        return results

    def _commit(self, ops: List[Op], wrap_errors: bool) -> List[Optional[dict]]:
        session = self._session_factory()
        try:
            records = []
            for index, op in enumerate(ops):
                try:
                    records.append(self._apply(session, op))
                except CatalogError as e:
                    if not wrap_errors:
                        raise
                    raise BatchError(
                        f"Batch rolled back: operation {index} ({op.kind} on {op.collection}) failed: {e}",
                        index=index,
                        original_error=e,
                    ) from e
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            if wrap_errors:
                raise BatchError(f"Batch rolled back: {e}", original_error=e) from e
            raise DatabaseError(f"Write failed: {e}", original_error=e) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        touched = {op.collection for op in ops}
        logger.info(f"Committed {len(ops)} operation(s) on {sorted(touched)}")
        self._notify(touched)
        return records

    def _notify(self, touched: Set[str]):
        for listener in list(self._listeners):
            try:
                listener(touched)
            except Exception as e:
                # Already committed; listener failures are only logged
                logger.exception(f"⚠️ Change listener failed for {sorted(touched)}: {e}")

    # --- per-operation handlers ---
    def _apply(self, session, op: Op) -> Optional[dict]:
        spec = get_spec(op.collection)
        if isinstance(op, Insert):
            return self._insert(session, spec, op)
        if isinstance(op, Update):
            return self._update(session, spec, op)
        if isinstance(op, Delete):
            return self._delete(session, spec, op)
        raise ValidationError(f"Unsupported operation {op!r}.")

    def _insert(self, session, spec: CollectionSpec, op: Insert) -> dict:
        if spec.singleton_id:
            raise ValidationError(f"{spec.name} is a singleton; write it with an upsert update.")
        values = prepare(session, spec, op.data or {})
        row = spec.model(id=new_id(), **values)
        session.add(row)
        session.flush()
        if spec.keyword_fields:
            _sync_keywords(session, spec, row.id, row.keywords)
        return row.to_record()

    def _update(self, session, spec: CollectionSpec, op: Update) -> dict:
        if spec.singleton_id and op.id != spec.singleton_id:
            raise RecordNotFoundError(spec.name, op.id)
        patch = op.patch or {}
        unknown = sorted(set(patch) - set(spec.schema.wire_fields()))
        if unknown:
            raise ValidationError(f"Unknown {spec.name} field(s): {', '.join(unknown)}.")

        row = session.get(spec.model, op.id)
        if row is None:
            if not op.upsert:
                raise RecordNotFoundError(spec.name, op.id)
            row = spec.model(id=op.id)
            session.add(row)
            current = {}
        else:
            current = row.to_record()

        values = prepare(session, spec, {**current, **patch})
        for attribute, value in values.items():
            setattr(row, attribute, value)
        session.flush()
        if spec.keyword_fields:
            _sync_keywords(session, spec, row.id, row.keywords)
        return row.to_record()

    def _delete(self, session, spec: CollectionSpec, op: Delete) -> None:
        row = session.get(spec.model, op.id)
        if row is None:
            raise RecordNotFoundError(spec.name, op.id)
        session.delete(row)
        session.flush()
        if spec.keyword_fields:
            _sync_keywords(session, spec, op.id, ())
        return None
