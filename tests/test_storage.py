import json

from shopscore.models import STATUS_COMPLETED, STATUS_FAILED, BatchResult, GeneratedContent
from shopscore.storage import KEY_BATCH_RESULTS, LocalStore, ResultStore


def test_absent_keys_are_tolerated(tmp_path):
    store = LocalStore(str(tmp_path / "missing" / "store.json"))
    assert store.get("role") is None
    assert store.get("api_key", "") == ""
    assert len(ResultStore(store)) == 0


def test_values_survive_reload(tmp_path):
    path = str(tmp_path / "store.json")
    store = LocalStore(path)
    store.set("role", "admin")
    store.set("avatar", "data:image/png;base64,AAAA")

    reloaded = LocalStore(path)
    assert reloaded.get("role") == "admin"
    assert reloaded.get("avatar").startswith("data:image/png")

    reloaded.remove("role")
    assert LocalStore(path).get("role") is None


def test_result_store_round_trip(tmp_path):
    path = str(tmp_path / "store.json")
    results = ResultStore(LocalStore(path))
    done = BatchResult(
        "p-0", "Lamp", STATUS_COMPLETED,
        content_en=GeneratedContent("T", "D", "S"),
        content_zh=GeneratedContent("标题", "详情", "脚本"),
    )
    results.put(done)
    results.put(BatchResult("p-1", "Mug", STATUS_FAILED, error_msg="生成失败"))

    reloaded = ResultStore(LocalStore(path))
    assert reloaded.get("p-0") == done
    assert reloaded.get("p-1").error_msg == "生成失败"
    assert "p-2" not in reloaded

    with open(path, encoding="utf-8") as f:
        assert "标题" in f.read()


def test_corrupt_file_and_records_are_ignored(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")
    assert LocalStore(str(path)).get("role") is None

    path.write_text(json.dumps({KEY_BATCH_RESULTS: {"bad": {"status": "completed"}}}), encoding="utf-8")
    assert len(ResultStore(LocalStore(str(path)))) == 0


def test_clear(store):
    results = ResultStore(store)
    results.put(BatchResult("p-0", "Lamp"))
    results.clear()
    assert len(results) == 0
    assert store.get(KEY_BATCH_RESULTS) == {}
