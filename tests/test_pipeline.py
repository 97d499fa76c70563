import asyncio

import pytest

from conftest import FakeClient, GenerationError, content_json, make_product

from shopscore.generation.client import MissingCredentialError
from shopscore.models import STATUS_COMPLETED, STATUS_FAILED, STATUS_PENDING, STATUS_PROCESSING, BatchResult
from shopscore.pipeline import FAILED_MESSAGE, BatchPipeline


def test_failure_does_not_halt_queue(products, result_store):
    client = FakeClient({"Shapewear": GenerationError("quota exceeded")})
    pipeline = BatchPipeline(client, result_store)
    pipeline.open(products)

    results = asyncio.run(pipeline.run_batch())

    assert [r.status for r in results] == [STATUS_COMPLETED, STATUS_FAILED, STATUS_COMPLETED]
    failed = results[1]
    assert failed.error_msg == FAILED_MESSAGE
    assert failed.content_en is None and failed.content_zh is None
    assert results[0].content_en.title == "Lamp EN title"
    assert results[0].content_zh.script == "Lamp 中文脚本"
    assert client.calls == ["Lamp", "Shapewear", "Printer"]
    # 每个任务结束即持久化
    assert result_store.get("p-1").status == STATUS_FAILED
    assert result_store.get("p-2").status == STATUS_COMPLETED


def test_bad_json_is_a_failure(products, result_store):
    client = FakeClient({
        "Lamp": "Sorry, I cannot help with that.",
        "Shapewear": '{"title_en": "only one key"}',
    })
    pipeline = BatchPipeline(client, result_store)
    pipeline.open(products)
    results = asyncio.run(pipeline.run_batch())
    assert [r.status for r in results] == [STATUS_FAILED, STATUS_FAILED, STATUS_COMPLETED]


def test_fenced_response_with_prose(products, result_store):
    client = FakeClient({"Lamp": "Here you go:\n```json\n" + content_json("Lamp") + "\n```"})
    pipeline = BatchPipeline(client, result_store)
    pipeline.open(products[:1])
    results = asyncio.run(pipeline.run_batch())
    assert results[0].status == STATUS_COMPLETED
    assert results[0].content_en.description == "Lamp EN description"


def test_second_run_skips_completed(products, result_store):
    client = FakeClient({"Shapewear": GenerationError("network down")})
    pipeline = BatchPipeline(client, result_store)
    pipeline.open(products)
    first = asyncio.run(pipeline.run_batch())

    client.responses = {}
    client.calls = []
    second = asyncio.run(pipeline.run_batch())

    assert client.calls == ["Shapewear"]
    assert second[0] == first[0]
    assert all(r.status == STATUS_COMPLETED for r in second)


def test_reopen_resumes_from_store(products, result_store):
    result_store.put(BatchResult("p-0", "Lamp", STATUS_PROCESSING))
    done = asyncio.run(BatchPipeline(FakeClient(), result_store).generate_one(BatchResult("p-1", "Shapewear")))
    result_store.put(done)

    client = FakeClient()
    pipeline = BatchPipeline(client, result_store)
    jobs = pipeline.open(products)
    # 残留的 processing 视为 pending
    assert [j.status for j in jobs] == [STATUS_PENDING, STATUS_COMPLETED, STATUS_PENDING]

    asyncio.run(pipeline.run_batch())
    assert client.calls == ["Lamp", "Printer"]


def test_regenerate_failed_job(products, result_store):
    client = FakeClient({"Shapewear": GenerationError("boom")})
    seen = []
    pipeline = BatchPipeline(client, result_store, on_update=lambda r: seen.append((r.product_id, r.status)))
    pipeline.open(products)
    asyncio.run(pipeline.run_batch())
    assert pipeline.get("p-1").status == STATUS_FAILED

    client.responses = {}
    seen.clear()
    result = asyncio.run(pipeline.regenerate("p-1"))

    assert result.status == STATUS_COMPLETED
    assert seen == [("p-1", STATUS_PROCESSING), ("p-1", STATUS_COMPLETED)]
    assert result_store.get("p-1") == result
    assert pipeline.get("p-1") == result


def test_regenerate_completed_job_overwrites(products, result_store):
    client = FakeClient()
    pipeline = BatchPipeline(client, result_store)
    pipeline.open(products[:1])
    asyncio.run(pipeline.run_batch())

    client.responses = {"Lamp": GenerationError("later failure")}
    result = asyncio.run(pipeline.regenerate("p-0"))
    assert result.status == STATUS_FAILED
    assert result_store.get("p-0").status == STATUS_FAILED


def test_regenerate_unknown_id(products, result_store):
    pipeline = BatchPipeline(FakeClient(), result_store)
    pipeline.open(products)
    with pytest.raises(KeyError):
        asyncio.run(pipeline.regenerate("nope"))


def test_store_never_sees_processing(products, result_store):
    snapshots = []

    class SpyClient(FakeClient):
        async def generate_text(self, prompt, temperature, on_chunk=None):
            snapshots.append({pid: r.status for pid, r in result_store.all().items()})
            return await super().generate_text(prompt, temperature, on_chunk)

    pipeline = BatchPipeline(SpyClient(), result_store)
    pipeline.open(products)
    asyncio.run(pipeline.run_batch())

    for snapshot in snapshots:
        assert STATUS_PROCESSING not in snapshot.values()


def test_missing_credential_aborts_before_start(products, result_store):
    client = FakeClient(api_key="")
    pipeline = BatchPipeline(client, result_store)
    pipeline.open(products)

    with pytest.raises(MissingCredentialError):
        asyncio.run(pipeline.run_batch())
    with pytest.raises(MissingCredentialError):
        asyncio.run(pipeline.regenerate("p-0"))
    assert client.calls == []
    assert len(result_store) == 0


def test_cancel_stops_before_next_job(products, result_store):
    pipeline = BatchPipeline(FakeClient(), result_store)
    pipeline.open(products)

    def progress(i, total, result):
        if i == 0:
            pipeline.cancel()

    results = asyncio.run(pipeline.run_batch(progress_callback=progress))
    assert [r.status for r in results] == [STATUS_COMPLETED, STATUS_PENDING, STATUS_PENDING]
    assert not pipeline.is_running

    # 取消后再次运行从第一个未完成的任务继续
    results = asyncio.run(pipeline.run_batch())
    assert all(r.status == STATUS_COMPLETED for r in results)


def test_same_id_generation_is_serialized(result_store):
    active = {"now": 0, "max": 0}

    class SlowClient(FakeClient):
        async def generate_text(self, prompt, temperature, on_chunk=None):
            active["now"] += 1
            active["max"] = max(active["max"], active["now"])
            await asyncio.sleep(0.01)
            active["now"] -= 1
            return await super().generate_text(prompt, temperature, on_chunk)

    client = SlowClient()
    pipeline = BatchPipeline(client, result_store)
    pipeline.open([make_product("p-0", "Lamp")])

    async def run_both():
        return await asyncio.gather(pipeline.run_batch(), pipeline.regenerate("p-0"))

    asyncio.run(run_both())
    assert active["max"] == 1
    assert pipeline.get("p-0").status == STATUS_COMPLETED


def test_batch_uses_fixed_temperature(products, result_store):
    client = FakeClient()
    pipeline = BatchPipeline(client, result_store)
    pipeline.open(products)
    asyncio.run(pipeline.run_batch())
    assert set(client.temperatures) == {0.85}


def test_update_callback_error_does_not_break_batch(products, result_store):
    def broken_callback(result):
        raise RuntimeError("widget gone")

    pipeline = BatchPipeline(FakeClient(), result_store, on_update=broken_callback)
    pipeline.open(products)
    results = asyncio.run(pipeline.run_batch())

    assert [r.status for r in results] == [STATUS_COMPLETED] * 3
    assert pipeline.is_running is False
    assert len(result_store) == 3
