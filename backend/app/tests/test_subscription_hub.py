# tests/test_subscription_hub.py
from app.exceptions import DatabaseError, IndexMissingError
from app.services.queries import QueryKey
from app.services.subscription_hub import SubscriptionHub

OPERATORS_BY_NAME = QueryKey("operators", "nameLower")


def test_subscribers_share_one_live_query(store):
    first, second = [], []
    a = store.operators.subscribe_all(first.append)
    b = store.operators.subscribe_all(second.append)

    assert store.hub.live_queries == [OPERATORS_BY_NAME]
    assert store.hub.subscriber_count(OPERATORS_BY_NAME) == 2

    store.operators.add({"name": "Shwe"})
    assert len(first) == 2
    assert first[-1] == second[-1]
    assert [r["name"] for r in first[-1]] == ["Shwe"]

    a.cancel()
    a.cancel()
    assert store.hub.subscriber_count(OPERATORS_BY_NAME) == 1
    b.cancel()
    assert store.hub.live_queries == []


def test_late_subscriber_gets_cached_snapshot(store):
    store.operators.add({"name": "Shwe"})
    store.operators.subscribe_all(lambda records: None)
    late = []

    store.operators.subscribe_all(late.append)

    assert [r["name"] for r in late[0]] == ["Shwe"]


def test_snapshots_are_independent_copies(store):
    store.operators.add({"name": "Shwe"})
    first, second = [], []
    store.operators.subscribe_all(first.append)
    store.operators.subscribe_all(second.append)

    first[0][0]["name"] = "changed"

    assert second[0][0]["name"] == "Shwe"


def test_writes_to_other_collections_are_not_pushed(store):
    snapshots = []
    store.operators.subscribe_all(snapshots.append)

    store.facilities.add({"name": "Asia Royal", "type": "clinic", "city": "Yangon", "address": "Baho Road"})

    assert len(snapshots) == 1


def test_missing_index_ends_the_subscription(store):
    snapshots, errors = [], []

    subscription = store.operators.subscribe_all(snapshots.append, order_by="verified", on_error=errors.append)

    assert not subscription.active
    assert isinstance(subscription.error, IndexMissingError)
    assert isinstance(errors[0], IndexMissingError)
    assert snapshots == []
    assert store.hub.live_queries == []


def test_raising_callback_is_dropped(store):
    def broken(records):
        raise RuntimeError("boom")

    subscription = store.operators.subscribe_all(broken)
    store.operators.add({"name": "Shwe"})

    assert not subscription.active
    assert store.hub.live_queries == []


def test_failed_rerun_is_terminal_and_snapshots_are_deduplicated():
    state = {"fail": False}

    def runner(key):
        if state["fail"]:
            raise DatabaseError("connection lost")
        return [{"id": "1"}, {"id": "1"}, {"id": "2"}]

    hub = SubscriptionHub(runner)
    snapshots, errors = [], []
    subscription = hub.subscribe("operators", "nameLower", snapshots.append, on_error=errors.append)
    assert snapshots == [[{"id": "1"}, {"id": "2"}]]

    state["fail"] = True
    hub.notify(["operators"])

    assert not subscription.active
    assert isinstance(errors[0], DatabaseError)
    assert hub.live_queries == []
    hub.notify(["operators"])
    assert len(errors) == 1
