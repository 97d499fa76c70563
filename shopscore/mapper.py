"""
列映射模块。
根据表头名称推断标题/价格/销量/图片对应的列，并在用户确认后生成商品列表。
"""
import logging
import math
from typing import List, Dict, Any, Sequence, Tuple

from shopscore.models import ColumnMapping, Product, PriceRange
from shopscore.normalizer import clean_currency

logger = logging.getLogger(__name__)

# 目标字段 -> 表头关键词 (子串匹配，忽略大小写)
FIELD_KEYWORDS = {
    "title": ["title", "name", "名称", "标题", "商品"],
    "price": ["price", "价格", "单价"],
    "sales": ["sales", "sold", "销量", "订单"],
    "image": ["img", "pic", "cover", "图"],
}

DEFAULT_PRICE_RANGE: PriceRange = (0, 500)
UNTITLED = "Untitled"


def infer_mapping(headers: Sequence[str]) -> ColumnMapping:
    """
    按表头顺序为每个字段找第一个命中关键词的列。
    未命中时：标题取第 1 列，价格取第 2 列，销量取第 3 列，图片留空。
    """
    headers = list(headers)
    if not headers:
        return ColumnMapping()

    def _fallback(pos: int) -> str:
        return headers[pos] if len(headers) > pos else headers[0]

    return ColumnMapping(
        title=_find_header(headers, "title") or headers[0],
        price=_find_header(headers, "price") or _fallback(1),
        sales=_find_header(headers, "sales") or _fallback(2),
        image=_find_header(headers, "image"),
    )


def commit_mapping(rows: List[Dict[str, Any]], mapping: ColumnMapping) -> Tuple[List[Product], PriceRange]:
    """
    按映射把原始行转换为 Product 列表 (保持行顺序)，并返回新的价格筛选区间。
    """
    products = []
    for idx, row in enumerate(rows):
        price = clean_currency(row.get(mapping.price))
        sales = clean_currency(row.get(mapping.sales))
        title = row.get(mapping.title)
        image = row.get(mapping.image) if mapping.image else None

        products.append(Product(
            id=f"p-{idx}",
            title=str(title).strip() if title not in (None, "") else UNTITLED,
            price=price,
            sales=sales,
            gmv=price * sales,
            image_url=str(image) if image else None,
            original_data=dict(row),
        ))

    logger.info("映射确认: 生成 %d 个商品 (title=%s, price=%s, sales=%s, image=%s)",
                len(products), mapping.title, mapping.price, mapping.sales, mapping.image)
    return products, compute_price_range(products)


def compute_price_range(products: List[Product]) -> PriceRange:
    """[floor(最低价), ceil(最高价)]，空列表返回默认区间。"""
    if not products:
        return DEFAULT_PRICE_RANGE
    prices = [p.price for p in products]
    return math.floor(min(prices)), math.ceil(max(prices))


def _find_header(headers: List[str], field_name: str) -> str:
    keywords = FIELD_KEYWORDS[field_name]
    for header in headers:
        lowered = str(header).lower()
        if any(k in lowered for k in keywords):
            return header
    return ""
