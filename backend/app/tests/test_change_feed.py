# tests/test_change_feed.py
import json
from unittest.mock import MagicMock

import redis

from app.services.catalog_store import CatalogStore
from app.services.change_feed import ChangeFeed, create_change_feed


def _message(origin, collections):
    return {"type": "message", "data": json.dumps({"origin": origin, "collections": collections})}


def test_publish_sends_origin_and_collections():
    client = MagicMock()
    feed = ChangeFeed(client, notify=MagicMock(), channel="changes", origin="me")

    feed.publish({"terminals", "operators"})

    client.publish.assert_called_once_with(
        "changes", json.dumps({"origin": "me", "collections": ["operators", "terminals"]})
    )


def test_publish_failure_is_not_raised():
    client = MagicMock()
    client.publish.side_effect = redis.ConnectionError("down")
    feed = ChangeFeed(client, notify=MagicMock(), origin="me")

    feed.publish({"operators"})


def test_only_remote_messages_notify():
    notify = MagicMock()
    feed = ChangeFeed(MagicMock(), notify, origin="me")

    assert feed.handle_message(_message("me", ["operators"])) is False
    assert feed.handle_message({"type": "message", "data": "not json"}) is False
    assert feed.handle_message(None) is False
    assert feed.handle_message(_message("other", ["operators"])) is True
    notify.assert_called_once_with({"operators"})


def test_remote_change_refreshes_local_subscribers(store, session_factory):
    snapshots = []
    store.operators.subscribe_all(snapshots.append)
    feed = ChangeFeed(MagicMock(), store.hub.notify, origin="me")

    # A second store stands in for another process writing to the same database
    CatalogStore(session_factory).operators.add({"name": "Shwe"})
    assert len(snapshots) == 1

    feed.handle_message(_message("other", ["operators"]))
    assert [r["name"] for r in snapshots[-1]] == ["Shwe"]


def test_create_change_feed_without_url(store):
    assert create_change_feed(store, None) is None


def test_create_change_feed_publishes_commits(store, monkeypatch):
    client = MagicMock()
    monkeypatch.setattr(redis.Redis, "from_url", lambda *args, **kwargs: client)

    feed = create_change_feed(store, "redis://localhost:6379/0")
    store.operators.add({"name": "Shwe"})

    assert feed is not None
    channel, payload = client.publish.call_args[0]
    assert channel == feed.channel
    assert json.loads(payload)["collections"] == ["operators"]
