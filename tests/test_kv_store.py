from proof_viewer.kv_store import JsonFileKeyValueStore, MemoryKeyValueStore


def test_memory_store_copies_values():
    kv = MemoryKeyValueStore()
    value = {"pages": {"1": []}}
    kv.set("k", value)
    value["pages"]["2"] = []
    assert kv.get("k") == {"pages": {"1": []}}
    assert kv.get("missing") is None


def test_file_store_round_trip(tmp_path):
    kv = JsonFileKeyValueStore(str(tmp_path / "viewer"))
    assert kv.get("bat-annotations::abc") is None
    kv.set("bat-annotations::abc", {"fileId": "abc"})
    assert JsonFileKeyValueStore(str(tmp_path / "viewer")).get("bat-annotations::abc") == {"fileId": "abc"}
    assert [p.name for p in (tmp_path / "viewer").iterdir()] == ["bat-annotations__abc.json"]


def test_file_store_leaves_no_temp_files(tmp_path):
    kv = JsonFileKeyValueStore(str(tmp_path))
    kv.set("k", {"v": 1})
    kv.set("k", {"v": 2})
    assert kv.get("k") == {"v": 2}
    assert [p.name for p in tmp_path.iterdir()] == ["k.json"]
