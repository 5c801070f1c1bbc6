# app/services/subscription_hub.py
import logging
from typing import Callable, Dict, Iterable, List, Optional

from app.exceptions import CatalogError
from app.services.queries import Predicate, QueryKey

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[List[dict]], None]
ErrorCallback = Callable[[CatalogError], None]


class Subscription:
    """Handle for one consumer of a live query. ``cancel()`` is idempotent."""

    def __init__(self, hub: "SubscriptionHub", key: QueryKey, on_snapshot: SnapshotCallback,
                 on_error: Optional[ErrorCallback] = None):
        self.key = key
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True
        self.error: Optional[CatalogError] = None
        self._hub = hub

    def cancel(self):
        if not self.active:
            return
        self.active = False
        self._hub._release(self)


class _LiveQuery:
    def __init__(self, key: QueryKey, snapshot: List[dict]):
        self.key = key
        self.snapshot = snapshot
        self.subscribers: List[Subscription] = []


class SubscriptionHub:
    """
    Shared, reference-counted live queries.

    One live query exists per (collection, ordering, predicate); every
    subscriber of that tuple receives the same full snapshot. The query is
    re-run when a commit touches its collection and dropped when its last
    subscriber cancels.
    """

    def __init__(self, runner: Callable[[QueryKey], List[dict]]):
        self._runner = runner
        self._queries: Dict[QueryKey, _LiveQuery] = {}

    def subscribe(self, collection: str, order_by: str, on_snapshot: SnapshotCallback,
                  predicate: Optional[Predicate] = None,
                  on_error: Optional[ErrorCallback] = None) -> Subscription:
        key = QueryKey(collection, order_by, predicate)
        subscription = Subscription(self, key, on_snapshot, on_error)

        live = self._queries.get(key)
        if live is None:
            try:
                snapshot = self._run(key)
            except CatalogError as e:
                logger.warning(f"⚠️ Subscription to {key} failed: {e}")
                subscription.active = False
                self._deliver_error(subscription, e)
                return subscription
            live = _LiveQuery(key, snapshot)
            self._queries[key] = live
            logger.info(f"✅ Live query opened: {key}")

        live.subscribers.append(subscription)
        self._deliver(subscription, live.snapshot)
        return subscription

    def notify(self, collections: Iterable[str]):
        """Re-evaluate every live query over ``collections`` and fan the snapshots out."""
        collections = set(collections)
        for live in [q for q in self._queries.values() if q.key.collection in collections]:
            try:
                live.snapshot = self._run(live.key)
            except CatalogError as e:
                self._fail(live, e)
                continue
            logger.info(f"📡 Pushing {len(live.snapshot)} records to {len(live.subscribers)} subscriber(s) of {live.key}")
            for subscription in list(live.subscribers):
                self._deliver(subscription, live.snapshot)

    def subscriber_count(self, key: QueryKey) -> int:
        live = self._queries.get(key)
        return len(live.subscribers) if live else 0

    @property
    def live_queries(self) -> List[QueryKey]:
        return list(self._queries)

    # --- internals ---
    def _run(self, key: QueryKey) -> List[dict]:
        seen = set()
        snapshot = []
        for record in self._runner(key):
            if record["id"] in seen:
                continue
            seen.add(record["id"])
            snapshot.append(record)
        return snapshot

    def _deliver(self, subscription: Subscription, snapshot: List[dict]):
        if not subscription.active:
            return
        try:
            subscription.on_snapshot([dict(record) for record in snapshot])
        except Exception as e:
            logger.warning(f"⚠️ Removed subscriber of {subscription.key} due to error: {e}")
            subscription.cancel()

    def _deliver_error(self, subscription: Subscription, error: CatalogError):
        subscription.error = error
        if subscription.on_error is None:
            return
        try:
            subscription.on_error(error)
        except Exception as e:
            logger.warning(f"⚠️ Error callback of {subscription.key} raised: {e}")

    def _fail(self, live: _LiveQuery, error: CatalogError):
        logger.warning(f"⚠️ Live query {live.key} failed terminally: {error}")
        self._queries.pop(live.key, None)
        for subscription in live.subscribers:
            subscription.active = False
            self._deliver_error(subscription, error)
        live.subscribers = []

    def _release(self, subscription: Subscription):
        live = self._queries.get(subscription.key)
        if live is None:
            return
        if subscription in live.subscribers:
            live.subscribers.remove(subscription)
        if not live.subscribers:
            del self._queries[subscription.key]
            logger.info(f"🔌 Live query closed: {subscription.key}")
