# tests/test_catalog_store.py
import pytest

from app.exceptions import BatchError, ValidationError
from app.models import CONFIG_ID
from app.services.batch_executor import Insert


def _add_facilities(store):
    store.facilities.add({"name": "Asia Royal", "type": "clinic", "city": "Yangon", "address": "Baho Road"})
    store.facilities.add({"name": "Pun Hlaing", "type": "private_hospital", "city": "Yangon", "address": "Hlaing Tharyar"})
    store.facilities.add({"name": "Mandalay General", "type": "public_hospital", "city": "Mandalay", "address": "30th Street"})


def test_bulk_delete_removes_only_selected(store):
    ids = [store.operators.add({"name": f"Op {i}"})["id"] for i in range(5)]

    assert store.operators.bulk_delete(ids[:3]) == 3

    assert sorted(r["id"] for r in store.operators.list_all()) == sorted(ids[3:])


def test_bulk_delete_with_unknown_id_deletes_nothing(store):
    ids = [store.operators.add({"name": f"Op {i}"})["id"] for i in range(2)]

    with pytest.raises(BatchError):
        store.operators.bulk_delete(ids + ["missing"])

    assert store.operators.count() == 2


def test_toggle_flips_boolean_flags(store):
    operator = store.operators.add({"name": "Shwe"})
    ad = store.advertisements.add({"title": "Grand Opening", "contact": "09-1", "address": "Yangon"})

    assert store.operators.toggle(operator["id"], "verified")["verified"] is True
    assert store.operators.toggle(operator["id"], "verified")["verified"] is False
    assert store.advertisements.toggle(ad["id"], "enabled")["enabled"] is False


def test_toggle_rejects_non_flag_fields(store):
    operator = store.operators.add({"name": "Shwe"})

    with pytest.raises(ValidationError):
        store.operators.toggle(operator["id"], "name")


def test_advertisement_requires_contact(store):
    with pytest.raises(ValidationError) as exc:
        store.advertisements.add({"title": "Grand Opening", "contact": [], "address": "Yangon"})

    assert exc.value.errors[0]["field"] == "contact"
    assert store.advertisements.count() == 0


def test_token_search_matches_whole_words_only(store):
    _add_facilities(store)

    assert [r["name"] for r in store.facilities.token_search("Yangon")] == ["Asia Royal", "Pun Hlaing"]
    assert [r["name"] for r in store.facilities.token_search("royal")] == ["Asia Royal"]
    assert [r["name"] for r in store.facilities.token_search("pun hlaing")] == ["Pun Hlaing"]
    assert store.facilities.token_search("roy") == []


def test_list_by_secondary_index(store):
    _add_facilities(store)

    assert [r["city"] for r in store.list_all("facilities", order_by="city")] == ["Mandalay", "Yangon", "Yangon"]


def test_config_defaults_then_merges(store):
    assert store.config.get() == {
        "id": CONFIG_ID,
        "maintenanceOn": False,
        "maintenanceMessage": "",
        "welcomeMessage": "",
    }

    store.config.save({"maintenanceOn": True, "maintenanceMessage": "Back soon"})
    saved = store.config.save({"welcomeMessage": "Mingalaba"})

    assert saved["maintenanceOn"] is True
    assert saved["maintenanceMessage"] == "Back soon"
    assert saved["welcomeMessage"] == "Mingalaba"
    assert store.config.get() == saved


def test_config_subscription_sees_saves(store):
    snapshots = []
    store.config.subscribe(snapshots.append)

    store.config.save({"maintenanceOn": True})

    assert snapshots[0]["maintenanceOn"] is False
    assert snapshots[-1]["maintenanceOn"] is True


def test_config_cannot_be_inserted(store):
    with pytest.raises(ValidationError):
        store.mutate(Insert("config", {}))


def test_counts_and_lookups(store):
    operator = store.operators.add({"name": "Shwe"})
    _add_facilities(store)

    assert store.counts() == {"operators": 1, "terminals": 0, "facilities": 3, "advertisements": 0}
    assert store.operators.get(operator["id"])["name"] == "Shwe"
    assert store.operators.get("missing") is None


def test_unknown_collection(store):
    with pytest.raises(ValidationError):
        store.collection("routes")
