"""
业务服务层，遵循单一职责原则拆分为独立服务，并由 AppSession 统一持有会话状态。
"""
import base64
import logging
import mimetypes
from typing import Dict, List, Optional, Tuple

from shopscore.config import ROLE_ADMIN, ROLE_USER, Settings, resolve_api_key
from shopscore.exporter import export_to_excel, generate_excel_bytes
from shopscore.generation.client import GenerationClient, OpenAIGenerationClient, fetch_headline
from shopscore.importer import import_fingerprint, load_pending_import
from shopscore.mapper import DEFAULT_PRICE_RANGE, commit_mapping
from shopscore.models import AnalysisScore, BatchResult, PendingImport, PriceRange, Product
from shopscore.pipeline import BatchPipeline
from shopscore.scoring import (
    DEFAULT_MIN_SALES, cohort_maxima, filter_products, rank_products, summarize,
)
from shopscore.storage import (
    KEY_API_KEY, KEY_AVATAR, KEY_IMPORT_FINGERPRINT, KEY_ROLE, LocalStore, ResultStore,
)

logger = logging.getLogger(__name__)

DEMO_PRODUCTS = [
    Product(id="1", title="星空投影灯 (Galaxy Projector)", price=24.99, sales=12500, gmv=312375,
            image_url="https://picsum.photos/200/200?random=1"),
    Product(id="2", title="收腹塑身衣 (Shapewear)", price=18.50, sales=8900, gmv=164650,
            image_url="https://picsum.photos/200/200?random=2"),
    Product(id="3", title="磁吸充电宝 (Magnetic Power Bank)", price=12.99, sales=5400, gmv=70146,
            image_url="https://picsum.photos/200/200?random=3"),
    Product(id="4", title="便携热敏打印机 (Mini Printer)", price=29.99, sales=3200, gmv=95968,
            image_url="https://picsum.photos/200/200?random=4"),
    Product(id="5", title="落日氛围灯 (Sunset Lamp)", price=15.00, sales=2100, gmv=31500,
            image_url="https://picsum.photos/200/200?random=5"),
]


class ImportService:
    """
    导入服务：读取文件并确认列映射。
    纯内存操作。
    """
    def read_file(self, file_name: str, file_content: bytes) -> Optional[PendingImport]:
        return load_pending_import(file_name, file_content)

    def commit(self, pending: PendingImport) -> Tuple[List[Product], PriceRange]:
        return commit_mapping(pending.rows, pending.mapping)


class ScoringService:
    """
    评分服务：筛选 cohort 并在 cohort 内计算评分。
    每次筛选条件变化都要重新计算，最大值是相对 cohort 的。
    """
    def cohort(self, products: List[Product], price_range: PriceRange, min_sales: float) -> List[Product]:
        return filter_products(products, price_range, min_sales)

    def rank(self, cohort: List[Product]) -> List[Tuple[Product, AnalysisScore]]:
        return rank_products(cohort)

    def get_quick_report(self, cohort: List[Product]) -> Dict:
        return summarize(cohort)


class ExportService:
    """
    导出服务：专门负责将数据导出为文件或字节流。
    """
    def export_data(
        self,
        ranked: List[Tuple[Product, AnalysisScore]],
        results: Dict[str, BatchResult],
        output_path: str = "",
        base_name: str = ""
    ) -> str:
        return export_to_excel(ranked, results, output_path, base_name)

    def get_excel_bytes(
        self,
        ranked: List[Tuple[Product, AnalysisScore]],
        results: Dict[str, BatchResult],
        base_name: str = ""
    ) -> Tuple[bytes, str]:
        return generate_excel_bytes(ranked, results, base_name)


class AppSession:
    """
    会话控制器：持有商品列表、待确认导入、筛选条件、收藏和批量结果。
    """
    def __init__(self, settings: Settings, store: Optional[LocalStore] = None):
        self.settings = settings
        self.store = store if store is not None else LocalStore(settings.store_path)
        self.results = ResultStore(self.store)

        self.products: List[Product] = list(DEMO_PRODUCTS)
        self.price_range: PriceRange = DEFAULT_PRICE_RANGE
        self.import_price_range: PriceRange = DEFAULT_PRICE_RANGE  # 筛选滑块的边界
        self.min_sales: float = DEFAULT_MIN_SALES
        self.pending_import: Optional[PendingImport] = None
        self.import_file_name = ""
        self.favorites: List[str] = []

        self.import_service = ImportService()
        self.scoring_service = ScoringService()
        self.export_service = ExportService()

    # ---------------- 角色与 Key ----------------

    @property
    def role(self) -> str:
        return self.store.get(KEY_ROLE) or ROLE_USER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def api_key(self) -> str:
        return resolve_api_key(self.role, self.store.get(KEY_API_KEY) or "", self.settings)

    def login(self, role: str, api_key: str = ""):
        if role not in (ROLE_ADMIN, ROLE_USER):
            raise ValueError(f"未知角色: {role}")
        self.store.set(KEY_ROLE, role)
        if api_key:
            self.store.set(KEY_API_KEY, api_key)

    def set_api_key(self, api_key: str):
        self.store.set(KEY_API_KEY, api_key.strip())

    def logout(self):
        self.store.remove(KEY_ROLE)
        self.store.remove(KEY_API_KEY)

    @property
    def avatar(self) -> Optional[str]:
        return self.store.get(KEY_AVATAR)

    def set_avatar(self, data_url: str):
        self.store.set(KEY_AVATAR, data_url)

    def upload_avatar(self, file_name: str, file_content: bytes) -> str:
        """把上传的图片保存为 data URL 头像。"""
        mime = mimetypes.guess_type(file_name)[0] or ""
        if not mime.startswith("image/"):
            raise ValueError(f"头像必须是图片文件: {file_name}")
        data_url = f"data:{mime};base64,{base64.b64encode(file_content).decode('ascii')}"
        self.set_avatar(data_url)
        return data_url

    # ---------------- 导入 ----------------

    def begin_import(self, file_name: str, file_content: bytes) -> Optional[PendingImport]:
        """读取文件并保存为待确认导入，返回推断出的映射供用户修改。"""
        self.pending_import = self.import_service.read_file(file_name, file_content)
        return self.pending_import

    def update_mapping(self, **fields: str):
        if self.pending_import is None:
            raise RuntimeError("没有待确认的导入")
        for name, header in fields.items():
            if not hasattr(self.pending_import.mapping, name):
                raise AttributeError(f"未知映射字段: {name}")
            if header and header not in self.pending_import.headers:
                raise ValueError(f"列 {header} 不在表头中")
            setattr(self.pending_import.mapping, name, header)

    def commit_import(self) -> List[Product]:
        """
        按当前映射生成新商品列表并替换旧列表。
        商品 id 按行位置生成。导入内容与上次不同时，旧的批量结果随之失效并被清空；
        同一份数据重复导入时保留结果，批量生成从中断处继续。
        """
        if self.pending_import is None:
            raise RuntimeError("没有待确认的导入")

        fingerprint = import_fingerprint(self.pending_import)
        products, price_range = self.import_service.commit(self.pending_import)
        self.products = products
        self.price_range = price_range
        self.import_price_range = price_range
        self.import_file_name = self.pending_import.file_name
        self.pending_import = None

        self.favorites = []
        if fingerprint != self.store.get(KEY_IMPORT_FINGERPRINT):
            if len(self.results):
                logger.info("导入内容已变化，清空 %d 条旧的批量结果", len(self.results))
                self.results.clear()
            self.store.set(KEY_IMPORT_FINGERPRINT, fingerprint)
        elif len(self.results):
            logger.info("重复导入相同数据，保留 %d 条批量结果", len(self.results))
        return products

    def cancel_import(self):
        self.pending_import = None

    # ---------------- 筛选与评分 ----------------

    def cohort(self) -> List[Product]:
        return self.scoring_service.cohort(self.products, self.price_range, self.min_sales)

    def cohort_maxima(self) -> Tuple[float, float]:
        return cohort_maxima(self.cohort())

    def ranked(self) -> List[Tuple[Product, AnalysisScore]]:
        return self.scoring_service.rank(self.cohort())

    def report(self) -> Dict:
        return self.scoring_service.get_quick_report(self.cohort())

    def get_product(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.products if p.id == product_id), None)

    # ---------------- 收藏与批量生成 ----------------

    def toggle_favorite(self, product_id: str) -> bool:
        """切换收藏状态，返回切换后是否已收藏。"""
        if product_id in self.favorites:
            self.favorites.remove(product_id)
            return False
        if self.get_product(product_id) is None:
            raise KeyError(f"商品 {product_id} 不存在")
        self.favorites.append(product_id)
        return True

    def favorite_products(self) -> List[Product]:
        """按商品列表顺序返回收藏的商品 (即批量队列)。"""
        return [p for p in self.products if p.id in self.favorites]

    def make_client(self) -> GenerationClient:
        return OpenAIGenerationClient(
            api_key=self.api_key,
            model=self.settings.model,
            base_url=self.settings.base_url,
        )

    def open_batch(self, client: Optional[GenerationClient] = None, on_update=None) -> BatchPipeline:
        pipeline = BatchPipeline(
            client or self.make_client(),
            self.results,
            temperature=self.settings.batch_temperature,
            on_update=on_update,
        )
        pipeline.open(self.favorite_products())
        return pipeline

    async def fetch_headline(self, site_name: str, topic: str, client: Optional[GenerationClient] = None) -> str:
        return await fetch_headline(client or self.make_client(), site_name, topic, self.settings.news_temperature)

    # ---------------- 导出 ----------------

    def export_bytes(self) -> Tuple[bytes, str]:
        return self.export_service.get_excel_bytes(self.ranked(), self.results.all(), self.import_file_name)

    def export_file(self, output_path: str = "") -> str:
        return self.export_service.export_data(self.ranked(), self.results.all(), output_path, self.import_file_name)
