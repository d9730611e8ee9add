import pytest

from geolive.client import GeoClient
from geolive.domain.models import Document
from geolive.query.collection import CollectionRef
from geolive.store.query import Query


class RecordingStore:
    """Store stub that only records listeners; the test delivers snapshots by hand."""

    def __init__(self):
        self.listeners = []
        self.closed = []

    def listen(self, query, on_snapshot, on_error):
        entry = (query, on_snapshot, on_error)
        self.listeners.append(entry)
        return lambda: self.closed.append(entry)

    async def set_doc(self, collection, doc_id, fields):
        raise NotImplementedError

    async def delete(self, collection, doc_id, *, missing_ok=True):
        raise NotImplementedError


async def _seed_cities(store):
    await store.set_doc("cities", "austin", {"name": "Austin, TX"})
    await store.set_doc("cities", "hilo", {"name": "Hilo, HI"})
    await store.set_doc("cities", "paris", {"name": "Paris, FR"})


@pytest.mark.asyncio
async def test_data_streams_whole_collection(store, settle, settings):
    await _seed_cities(store)
    ref = GeoClient(store, settings=settings).collection("cities")

    seen = []
    ref.data().subscribe(seen.append)
    await settle()
    rows = [d.to_dict() for d in seen[-1]]
    assert {"id": "paris", "name": "Paris, FR"} in rows
    assert len(rows) == 3


@pytest.mark.asyncio
async def test_change_query_swaps_result_and_listener(store, settle, settings):
    await _seed_cities(store)
    ref = GeoClient(store, settings=settings).collection(
        "cities", lambda q: q.where("name", "==", "Austin, TX")
    )

    seen = []
    ref.data().subscribe(seen.append)
    await settle()
    assert [d.to_dict() for d in seen[-1]] == [{"id": "austin", "name": "Austin, TX"}]

    ref.change_query(lambda q: q.where("name", "==", "Hilo, HI"))
    assert ref.generation == 1
    await settle()
    assert [d.to_dict() for d in seen[-1]] == [{"id": "hilo", "name": "Hilo, HI"}]
    assert store.listener_count == 1

    late = []
    ref.data().subscribe(late.append)
    assert [d.id for d in late[0]] == ["hilo"]


def test_stale_generation_snapshots_are_dropped(settings):
    fake = RecordingStore()
    ref = CollectionRef(fake, "cities", settings=settings)
    seen = []
    ref.data().subscribe(seen.append)

    _, old_on_snapshot, _ = fake.listeners[0]
    ref.change_query(lambda q: q.where("name", "==", "Hilo, HI"))
    assert fake.closed == [fake.listeners[0]]
    new_query, new_on_snapshot, _ = fake.listeners[1]
    assert new_query == Query("cities").where("name", "==", "Hilo, HI")

    old_on_snapshot([Document(id="austin", fields={"name": "Austin, TX"})])
    assert seen == []
    new_on_snapshot([Document(id="hilo", fields={"name": "Hilo, HI"})])
    assert [d.id for d in seen[0]] == ["hilo"]


def test_change_query_must_stay_on_collection(settings):
    ref = CollectionRef(RecordingStore(), "cities", settings=settings)
    with pytest.raises(ValueError):
        ref.change_query(lambda q: Query("other"))
    with pytest.raises(TypeError):
        ref.change_query(lambda q: None)
    assert ref.generation == 0


def test_listener_detached_when_last_observer_leaves(settings):
    fake = RecordingStore()
    ref = CollectionRef(fake, "cities", settings=settings)
    a = ref.data().subscribe(lambda _: None)
    b = ref.data().subscribe(lambda _: None)
    assert len(fake.listeners) == 1
    a.cancel()
    assert fake.closed == []
    b.cancel()
    assert len(fake.closed) == 1


@pytest.mark.asyncio
async def test_writes_pass_through(store, settings):
    ref = CollectionRef(store, "cities", settings=settings)
    await ref.set_doc("austin", {"name": "Austin, TX"})
    new_id = await ref.add({"name": "Somewhere"})
    assert {d.id for d in store.snapshot(Query("cities"))} == {"austin", new_id}
    await ref.delete("austin")
    assert [d.id for d in store.snapshot(Query("cities"))] == [new_id]
