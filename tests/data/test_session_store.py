import threading

from llu_sync.data.session_store import InMemorySessionStore, SessionStore


def test_in_memory_store_satisfies_protocol():
    assert isinstance(InMemorySessionStore(), SessionStore)


def test_get_set_and_snapshot():
    store = InMemorySessionStore({"region": "eu"})

    store.set("token", "abc")
    store.update({"patientId": "p", "tokenExpirationDate": "1700000000"})

    assert store.get("token") == "abc"
    assert store.get("missing") is None
    assert store.snapshot() == {
        "region": "eu",
        "token": "abc",
        "patientId": "p",
        "tokenExpirationDate": "1700000000",
    }


def test_snapshot_is_a_copy():
    store = InMemorySessionStore()
    snapshot = store.snapshot()
    snapshot["token"] = "changed"

    assert store.get("token") is None


def test_concurrent_updates():
    store = InMemorySessionStore()

    def writer(n):
        for i in range(200):
            store.update({"token": f"t{n}-{i}", "patientId": f"p{n}-{i}"})

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    snapshot = store.snapshot()
    # Both keys come from the same update call
    assert snapshot["token"][1:] == snapshot["patientId"][1:]
