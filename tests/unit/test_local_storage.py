from src.adapters.local_storage import InMemoryKeyValueStore, JsonFileKeyValueStore


def test_in_memory_store():
    store = InMemoryKeyValueStore({"existing": "1"})
    assert store.get("existing") == "1"
    assert store.get("missing") is None
    store.set("k", "v")
    assert store.get("k") == "v"


class TestJsonFileKeyValueStore:
    """Device identifier persisted across instances."""

    def test_round_trip_across_instances(self, tmp_path) -> None:
        path = tmp_path / "profile" / "storage.json"
        JsonFileKeyValueStore(path).set("heatmagnet_browser_id", "browser_1_abc")
        assert JsonFileKeyValueStore(path).get("heatmagnet_browser_id") == "browser_1_abc"

    def test_missing_file_reads_empty(self, tmp_path) -> None:
        assert JsonFileKeyValueStore(tmp_path / "none.json").get("k") is None

    def test_corrupt_file_reads_empty(self, tmp_path) -> None:
        path = tmp_path / "storage.json"
        path.write_text("{not json")
        store = JsonFileKeyValueStore(path)
        assert store.get("k") is None
        store.set("k", "v")
        assert store.get("k") == "v"

    def test_keeps_other_keys(self, tmp_path) -> None:
        store = JsonFileKeyValueStore(tmp_path / "storage.json")
        store.set("a", "1")
        store.set("b", "2")
        assert store.get("a") == "1"
        assert store.get("b") == "2"
