"""
数据模型定义模块。
定义了项目中使用的核心数据结构：Product、ColumnMapping、AnalysisScore、
GeneratedContent 和 BatchResult。
"""
from dataclasses import dataclass, field, asdict
from typing import List, Optional, Dict, Any, Tuple

# 批量任务状态
STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"

# 价格区间 (下限, 上限)
PriceRange = Tuple[float, float]


@dataclass(frozen=True)
class Product:
    """
    代表一个导入的商品。
    创建后不可变，重新导入时整体替换商品列表。
    """
    id: str
    title: str
    price: float = 0.0
    sales: float = 0.0
    gmv: float = 0.0               # price * sales
    image_url: Optional[str] = None
    original_data: Dict[str, Any] = field(default_factory=dict)  # 原始行数据


@dataclass
class ColumnMapping:
    """原始表头到目标字段的映射。空字符串表示未映射。"""
    title: str = ""
    price: str = ""
    sales: str = ""
    image: str = ""


@dataclass(frozen=True)
class AnalysisScore:
    grade: str          # S+ / S / A / B / C
    text: str
    color_class: str    # 展示提示
    label: Optional[str] = None


@dataclass(frozen=True)
class GeneratedContent:
    """单一语言的生成内容：标题、详情、视频脚本。"""
    title: str
    description: str
    script: str


@dataclass(frozen=True)
class BatchResult:
    """
    单个商品的批量生成结果。
    每次状态变化都以整条记录替换的方式写回，不做字段级修改。
    """
    product_id: str
    product_name: str
    status: str = STATUS_PENDING
    content_en: Optional[GeneratedContent] = None
    content_zh: Optional[GeneratedContent] = None
    error_msg: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BatchResult":
        def _content(raw):
            if not raw:
                return None
            return GeneratedContent(
                title=raw.get("title", ""),
                description=raw.get("description", ""),
                script=raw.get("script", ""),
            )

        return cls(
            product_id=str(data["product_id"]),
            product_name=data.get("product_name", ""),
            status=data.get("status", STATUS_PENDING),
            content_en=_content(data.get("content_en")),
            content_zh=_content(data.get("content_zh")),
            error_msg=data.get("error_msg"),
        )


@dataclass
class PendingImport:
    """
    已读取但尚未确认映射的导入数据。
    上传时创建，确认映射或取消时清除。
    """
    file_name: str
    headers: List[str]
    rows: List[Dict[str, Any]]
    mapping: ColumnMapping = field(default_factory=ColumnMapping)
