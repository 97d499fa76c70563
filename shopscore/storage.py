"""
本地持久化模块。
以 JSON 文件作为键值存储，保存角色、Key、头像、批量生成结果和上次导入的指纹。
各键独立读写，缺失的键按默认值处理。
"""
import json
import logging
import os
import threading
from typing import Any, Dict, Optional

from shopscore.models import BatchResult

logger = logging.getLogger(__name__)

KEY_ROLE = "role"
KEY_API_KEY = "api_key"
KEY_AVATAR = "avatar"
KEY_BATCH_RESULTS = "batch_results"
KEY_IMPORT_FINGERPRINT = "import_fingerprint"


class LocalStore:
    """
    简单的键值存储。path 为 None 时只保存在内存中 (用于测试)。
    每次写入都整体落盘，先写临时文件再替换，避免读到半个文件。
    """
    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = self._load()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value
            self._flush()

    def remove(self, key: str) -> None:
        with self._lock:
            if self._data.pop(key, None) is not None:
                self._flush()

    def _load(self) -> Dict[str, Any]:
        if not self.path or not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("本地存储 %s 读取失败，按空存储处理: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _flush(self) -> None:
        if not self.path:
            return
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)


class ResultStore:
    """
    批量生成结果存储 (product_id -> BatchResult)。
    只接受整条记录替换，每次写入立即持久化。
    """
    def __init__(self, store: LocalStore):
        self._store = store
        self._results: Dict[str, BatchResult] = {}
        for product_id, raw in (store.get(KEY_BATCH_RESULTS) or {}).items():
            try:
                self._results[product_id] = BatchResult.from_dict(raw)
            except (KeyError, TypeError, AttributeError) as e:
                logger.warning("忽略无法解析的结果记录 %s: %s", product_id, e)

    def get(self, product_id: str) -> Optional[BatchResult]:
        return self._results.get(product_id)

    def all(self) -> Dict[str, BatchResult]:
        return dict(self._results)

    def put(self, result: BatchResult) -> None:
        self._results[result.product_id] = result
        self._persist()

    def clear(self) -> None:
        self._results = {}
        self._persist()

    def __contains__(self, product_id: str) -> bool:
        return product_id in self._results

    def __len__(self) -> int:
        return len(self._results)

    def _persist(self) -> None:
        self._store.set(KEY_BATCH_RESULTS, {pid: r.to_dict() for pid, r in self._results.items()})
