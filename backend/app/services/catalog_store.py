# app/services/catalog_store.py
import logging
from typing import Callable, Dict, Iterable, List, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from app.exceptions import DatabaseError, RecordNotFoundError, ValidationError
from app.models import CONFIG_ID
from app.schemas import AppConfigIn
from app.services import paginator
from app.services.batch_executor import BatchExecutor, Delete, Insert, Op, Update
from app.services.collections import CONFIG, REGISTRY, TERMINAL_SEARCH_FIELDS, TERMINALS, CollectionSpec
from app.services.denormalization import ReadMode, index_by_id, resolve_display
from app.services.paginator import Cursor, Page
from app.services.queries import (
    Equals,
    Predicate,
    QueryKey,
    filter_prefix,
    ordered_select,
    prefix_query,
    token_query,
)
from app.services.subscription_hub import ErrorCallback, SnapshotCallback, Subscription, SubscriptionHub
from app.settings import MAX_BATCH_SIZE, PAGE_SIZE

logger = logging.getLogger(__name__)


class Collection:
    """Queries and mutations over one catalog collection."""

    def __init__(self, store: "CatalogStore", spec: CollectionSpec):
        self._store = store
        self.spec = spec

    @property
    def name(self) -> str:
        return self.spec.name

    # --- mutations ---
    def add(self, data: dict) -> dict:
        return self._store.mutate(Insert(self.name, data))

    def edit(self, record_id: str, patch: dict) -> dict:
        return self._store.mutate(Update(self.name, record_id, patch))

    def delete(self, record_id: str):
        self._store.mutate(Delete(self.name, record_id))

    def toggle(self, record_id: str, field: str) -> dict:
        if field not in self.spec.toggles:
            raise ValidationError(f"'{field}' cannot be toggled on {self.name}.")
        current = self.get(record_id)
        if current is None:
            raise RecordNotFoundError(self.name, record_id)
        return self.edit(record_id, {field: not current[field]})

    def bulk_delete(self, record_ids: Iterable[str]) -> int:
        ops = [Delete(self.name, record_id) for record_id in dict.fromkeys(record_ids)]
        self._store.executor.commit_in_batches(ops)
        logger.info(f"Bulk deleted {len(ops)} {self.name} record(s)")
        return len(ops)

    # --- queries ---
    def get(self, record_id: str) -> Optional[dict]:
        with self._store.session() as session:
            row = session.get(self.spec.model, record_id)
            return row.to_record() if row else None

    def list_all(self, order_by: Optional[str] = None, predicate: Optional[Predicate] = None) -> List[dict]:
        stmt, _ = ordered_select(self.spec, order_by or self.spec.default_order, predicate)
        with self._store.session() as session:
            try:
                rows = session.execute(stmt).scalars().all()
            except SQLAlchemyError as e:
                raise DatabaseError(f"Query on {self.name} failed: {e}", original_error=e)
            return [row.to_record() for row in rows]

    def subscribe_all(self, on_snapshot: SnapshotCallback, order_by: Optional[str] = None,
                      predicate: Optional[Predicate] = None,
                      on_error: Optional[ErrorCallback] = None) -> Subscription:
        return self._store.hub.subscribe(
            self.name, order_by or self.spec.default_order, on_snapshot,
            predicate=predicate, on_error=on_error,
        )

    def page(self, order_by: Optional[str] = None, predicate: Optional[Predicate] = None,
             cursor: Union[Cursor, str, None] = None, page_size: int = PAGE_SIZE) -> Page:
        key = QueryKey(self.name, order_by or self.spec.default_order, predicate)
        if isinstance(cursor, str):
            cursor = Cursor.decode(cursor, key)
        with self._store.session() as session:
            if cursor is None:
                return paginator.first_page(session, self.spec, key, page_size)
            return paginator.next_page(session, self.spec, key, cursor, page_size)

    def prefix_search(self, field: str, term: str) -> List[dict]:
        field = self.spec.search_field(field)
        return self.list_all(order_by=field, predicate=prefix_query(field, term))

    def token_search(self, term: str, order_by: Optional[str] = None) -> List[dict]:
        return self.list_all(order_by=order_by, predicate=token_query(term))

    def count(self) -> int:
        with self._store.session() as session:
            return session.execute(select(func.count()).select_from(self.spec.model)).scalar_one()


class ConfigDocument:
    """The singleton app-config record; writes merge into it."""

    def __init__(self, store: "CatalogStore"):
        self._store = store

    @staticmethod
    def defaults() -> dict:
        return {"id": CONFIG_ID, **AppConfigIn().model_dump(by_alias=True)}

    def get(self) -> dict:
        with self._store.session() as session:
            row = session.get(CONFIG.model, CONFIG_ID)
            return row.to_record() if row else self.defaults()

    def save(self, patch: dict) -> dict:
        return self._store.mutate(Update(CONFIG.name, CONFIG_ID, patch, upsert=True))

    def subscribe(self, on_snapshot: Callable[[dict], None],
                  on_error: Optional[ErrorCallback] = None) -> Subscription:
        def deliver(records):
            on_snapshot(records[0] if records else self.defaults())

        return self._store.hub.subscribe(CONFIG.name, CONFIG.default_order, deliver, on_error=on_error)


class JoinedSubscription:
    """Terminals re-joined against live Operators; re-emits when either side changes."""

    def __init__(self, store: "CatalogStore", on_snapshot: SnapshotCallback,
                 on_error: Optional[ErrorCallback] = None):
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._operators: Optional[List[dict]] = None
        self._terminals: Optional[List[dict]] = None
        self.active = True
        self._subscriptions = [
            store.operators.subscribe_all(self._operators_changed, on_error=self._failed),
            store.terminals.subscribe_all(self._terminals_changed, on_error=self._failed),
        ]
        if not self.active:
            self.cancel()

    def _operators_changed(self, records):
        self._operators = records
        self._emit()

    def _terminals_changed(self, records):
        self._terminals = records
        self._emit()

    def _emit(self):
        if not self.active or self._operators is None or self._terminals is None:
            return
        self._on_snapshot(resolve_display(
            self._terminals, TERMINALS.reference, ReadMode.LIVE_JOIN, index_by_id(self._operators),
        ))

    def _failed(self, error):
        if not self.active:
            return
        self.active = False
        if self._on_error is not None:
            self._on_error(error)

    def cancel(self):
        self.active = False
        for subscription in self._subscriptions:
            subscription.cancel()


def _searched(on_snapshot: SnapshotCallback, term: str) -> SnapshotCallback:
    def deliver(records):
        on_snapshot(filter_prefix(records, TERMINAL_SEARCH_FIELDS, term))

    return deliver


class CatalogStore:
    """
    Composition root: five collections sharing one batch executor and one
    subscription hub. Every commit notifies the hub with the collections
    it touched.
    """

    def __init__(self, session_factory, max_batch_size: int = MAX_BATCH_SIZE):
        self.session = session_factory
        self.executor = BatchExecutor(session_factory, max_batch_size)
        self.hub = SubscriptionHub(self._run_live_query)
        self.executor.add_listener(self.hub.notify)

        self.operators = Collection(self, REGISTRY["operators"])
        self.terminals = Collection(self, REGISTRY["terminals"])
        self.facilities = Collection(self, REGISTRY["facilities"])
        self.advertisements = Collection(self, REGISTRY["advertisements"])
        self.config = ConfigDocument(self)
        self._collections: Dict[str, Collection] = {
            c.name: c for c in (self.operators, self.terminals, self.facilities, self.advertisements)
        }

    def collection(self, name: str) -> Collection:
        try:
            return self._collections[name]
        except KeyError:
            raise ValidationError(f"Unknown collection '{name}'.")

    # --- mutation surface ---
    def mutate(self, op: Op) -> Optional[dict]:
        return self.executor.mutate(op)

    def commit_batch(self, ops: Iterable[Op]) -> List[Optional[dict]]:
        return self.executor.commit_batch(ops)

    # --- query surface ---
    def list_all(self, collection: str, order_by: Optional[str] = None,
                 predicate: Optional[Predicate] = None) -> List[dict]:
        return self.collection(collection).list_all(order_by, predicate)

    def subscribe_all(self, collection: str, on_snapshot: SnapshotCallback, order_by: Optional[str] = None,
                      predicate: Optional[Predicate] = None,
                      on_error: Optional[ErrorCallback] = None) -> Subscription:
        return self.collection(collection).subscribe_all(on_snapshot, order_by, predicate, on_error)

    def page(self, collection: str, order_by: Optional[str] = None, predicate: Optional[Predicate] = None,
             cursor: Union[Cursor, str, None] = None, page_size: int = PAGE_SIZE) -> Page:
        return self.collection(collection).page(order_by, predicate, cursor, page_size)

    def prefix_search(self, collection: str, field: str, term: str) -> List[dict]:
        return self.collection(collection).prefix_search(field, term)

    def token_search(self, collection: str, term: str) -> List[dict]:
        return self.collection(collection).token_search(term)

    def counts(self) -> Dict[str, int]:
        return {name: coll.count() for name, coll in self._collections.items()}

    # --- denormalized reads ---
    def terminal_view(self, mode: ReadMode = ReadMode.LIVE_JOIN, term: Optional[str] = None) -> List[dict]:
        """Terminals under ``mode``; ``term`` matches the start of operator name, city or address."""
        terminals = self.terminals.list_all()
        operators = index_by_id(self.operators.list_all()) if mode == ReadMode.LIVE_JOIN else None
        view = resolve_display(terminals, TERMINALS.reference, mode, operators)
        return filter_prefix(view, TERMINAL_SEARCH_FIELDS, term)

    def subscribe_terminal_view(self, on_snapshot: SnapshotCallback, mode: ReadMode = ReadMode.LIVE_JOIN,
                                on_error: Optional[ErrorCallback] = None, term: Optional[str] = None):
        if term:
            on_snapshot = _searched(on_snapshot, term)
        if mode == ReadMode.LIVE_JOIN:
            return JoinedSubscription(self, on_snapshot, on_error)

        def deliver(records):
            on_snapshot(resolve_display(records, TERMINALS.reference, ReadMode.SNAPSHOT))

        return self.terminals.subscribe_all(deliver, on_error=on_error)

    def reconcile_terminals(self, operator_id: str) -> int:
        """Re-snapshot the operator fields of every Terminal referencing ``operator_id``."""
        if self.operators.get(operator_id) is None:
            raise RecordNotFoundError("operators", operator_id)
        terminals = self.terminals.list_all(order_by="operatorId", predicate=Equals("operatorId", operator_id))
        self.executor.commit_in_batches([Update(TERMINALS.name, t["id"], {}) for t in terminals])
        logger.info(f"Reconciled {len(terminals)} terminal(s) of operator {operator_id}")
        return len(terminals)

    def _run_live_query(self, key: QueryKey) -> List[dict]:
        if key.collection == CONFIG.name:
            stmt, _ = ordered_select(CONFIG, key.order_by, key.predicate)
            with self.session() as session:
                return [row.to_record() for row in session.execute(stmt).scalars().all()]
        return self.list_all(key.collection, key.order_by, key.predicate)
