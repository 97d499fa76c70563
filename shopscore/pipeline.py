"""
批量内容生成流水线。

队列按选中商品的顺序逐个执行 (不并发)，每个任务的状态流转为:
    pending -> processing -> completed | failed
completed / failed 可以通过重新生成再次进入 processing。

- 已完成的任务在 run_batch 中会被跳过，因此中断后再次运行即为续跑。
- 每个任务结束后立即写入结果存储，不等整批结束。
- 取消是协作式的：只在开始下一个任务前检查标志，不会中断正在进行的调用。
- 同一个商品 id 同一时间最多只有一个生成调用 (run_batch 与 regenerate 共用锁)。
"""
import asyncio
import logging
from typing import Callable, Dict, List, Optional, Sequence

from shopscore.generation.client import GenerationClient
from shopscore.generation.prompts import REQUIRED_KEYS, build_batch_prompt
from shopscore.json_extract import extract_json_object
from shopscore.models import (
    BatchResult, GeneratedContent, Product,
    STATUS_COMPLETED, STATUS_FAILED, STATUS_PENDING, STATUS_PROCESSING,
)
from shopscore.storage import ResultStore

logger = logging.getLogger(__name__)

FAILED_MESSAGE = "生成失败，请检查网络或重试"
DEFAULT_BATCH_TEMPERATURE = 0.85

UpdateCallback = Callable[[BatchResult], None]
ProgressCallback = Callable[[int, int, BatchResult], None]


class BatchPipeline:
    """
    用法:
        pipeline = BatchPipeline(client, result_store)
        pipeline.open(selected_products)
        await pipeline.run_batch()
        await pipeline.regenerate("p-3")
    """
    def __init__(
        self,
        client: GenerationClient,
        result_store: ResultStore,
        temperature: float = DEFAULT_BATCH_TEMPERATURE,
        on_update: Optional[UpdateCallback] = None
    ):
        self.client = client
        self.result_store = result_store
        self.temperature = temperature
        self.on_update = on_update

        self._jobs: Dict[str, BatchResult] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._cancelled = False
        self.is_running = False
        self.current_id: Optional[str] = None

    # ------------------------------------------------------------------
    # 队列
    # ------------------------------------------------------------------

    def open(self, products: Sequence[Product]) -> List[BatchResult]:
        """
        为每个选中商品建立任务。已有持久化结果的商品直接沿用结果 (续跑而非重来)。
        持久化中残留的 processing 记录视为 pending。
        """
        self._jobs = {}
        for product in products:
            saved = self.result_store.get(product.id)
            if saved is None or saved.status == STATUS_PROCESSING:
                saved = new_job(product)
            self._jobs[product.id] = saved
            self._locks.setdefault(product.id, asyncio.Lock())
        return self.results()

    def results(self) -> List[BatchResult]:
        """按队列顺序返回当前任务快照。"""
        return list(self._jobs.values())

    def get(self, product_id: str) -> Optional[BatchResult]:
        return self._jobs.get(product_id)

    @property
    def completed_count(self) -> int:
        return sum(1 for r in self._jobs.values() if r.status == STATUS_COMPLETED)

    def cancel(self):
        """请求停止：当前任务完成后不再开始新任务。"""
        if self.is_running:
            logger.info("批量生成收到取消请求")
        self._cancelled = True

    # ------------------------------------------------------------------
    # 执行
    # ------------------------------------------------------------------

    async def run_batch(self, progress_callback: Optional[ProgressCallback] = None) -> List[BatchResult]:
        """
        按顺序处理所有未完成的任务。单个任务失败不会中断队列。
        缺少 Key 时在开始前直接抛出 MissingCredentialError。
        """
        self.client.require_credential()

        self._cancelled = False
        self.is_running = True
        queue = list(self._jobs.keys())
        total = len(queue)
        pending = sum(1 for r in self._jobs.values() if r.status != STATUS_COMPLETED)
        logger.info("开始批量生成: 队列 %d 个, 待处理 %d 个", total, pending)

        try:
            for i, product_id in enumerate(queue):
                if self._cancelled:
                    logger.info("批量生成已取消，停止于第 %d/%d 个", i + 1, total)
                    break
                if self._jobs[product_id].status == STATUS_COMPLETED:
                    continue

                result = await self._process(product_id)
                if progress_callback and result is not None:
                    progress_callback(i, total, result)
        finally:
            self.is_running = False
            self.current_id = None

        logger.info("批量生成结束: 完成 %d/%d", self.completed_count, total)
        return self.results()

    async def regenerate(self, product_id: str) -> BatchResult:
        """重新生成单个商品，与队列位置及是否正在批量运行无关。"""
        self.client.require_credential()
        if product_id not in self._jobs:
            raise KeyError(f"商品 {product_id} 不在当前队列中")
        return await self._process(product_id, force=True)

    async def _process(self, product_id: str, force: bool = False) -> Optional[BatchResult]:
        lock = self._locks.setdefault(product_id, asyncio.Lock())
        async with lock:
            job = self._jobs[product_id]
            # 等锁期间可能已被重新生成完成
            if not force and job.status == STATUS_COMPLETED:
                return None

            self.current_id = product_id
            self._set(BatchResult(
                product_id=job.product_id,
                product_name=job.product_name,
                status=STATUS_PROCESSING,
            ))
            logger.info("正在生成: %s (%s)", job.product_name, product_id)

            result = await self.generate_one(job)

            self._set(result)
            self.result_store.put(result)
            return result

    async def generate_one(self, job: BatchResult) -> BatchResult:
        """
        为单个商品生成中英双语内容。
        永远返回终态结果：成功为 completed，任何异常 (网络、Key、JSON 解析) 都记为 failed。
        """
        try:
            text = await self.client.generate_structured(build_batch_prompt(job.product_name), self.temperature)
            parsed = extract_json_object(text)
            missing = [k for k in REQUIRED_KEYS if k not in parsed]
            if missing:
                raise KeyError(f"缺少字段: {', '.join(missing)}")

            return BatchResult(
                product_id=job.product_id,
                product_name=job.product_name,
                status=STATUS_COMPLETED,
                content_en=GeneratedContent(
                    title=str(parsed["title_en"]),
                    description=str(parsed["description_en"]),
                    script=str(parsed["script_en"]),
                ),
                content_zh=GeneratedContent(
                    title=str(parsed["title_zh"]),
                    description=str(parsed["description_zh"]),
                    script=str(parsed["script_zh"]),
                ),
            )
        except Exception as e:
            logger.warning("生成失败: %s (%s): %s", job.product_name, job.product_id, e)
            return BatchResult(
                product_id=job.product_id,
                product_name=job.product_name,
                status=STATUS_FAILED,
                error_msg=FAILED_MESSAGE,
            )

    def _set(self, result: BatchResult):
        self._jobs[result.product_id] = result
        if self.on_update:
            try:
                self.on_update(result)
            except Exception as e:
                # 界面回调出错不影响任务状态与队列
                logger.warning("状态回调出错: %s (%s): %s", result.product_name, result.product_id, e)


def new_job(product: Product) -> BatchResult:
    return BatchResult(product_id=product.id, product_name=product.title, status=STATUS_PENDING)
