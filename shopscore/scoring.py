"""
爆款评分模块。
基于销量与 GMV 相对于当前筛选结果 (cohort) 最大值的加权得分，给出等级与标签。
"""
from typing import Dict, List, Iterable, Tuple

from shopscore.models import AnalysisScore, Product, PriceRange

# 销量 (流量) 权重高于 GMV (营收)
SALES_WEIGHT = 0.6
GMV_WEIGHT = 0.4

DEFAULT_MIN_SALES = 100

_SCORE_NEW = AnalysisScore("C", "🌱 起步期", "bg-slate-100 text-slate-500", "New")
_SCORE_TOP = AnalysisScore("S+", "👑 头部爆款", "bg-gradient-to-r from-amber-100 to-orange-100 text-orange-800 border-orange-200", "Top Viral")
_SCORE_VOLUME = AnalysisScore("S", "🔥 流量爆款", "bg-rose-50 text-rose-600 border-rose-100", "High Volume")
_SCORE_TICKET = AnalysisScore("S", "💰 高利爆款", "bg-emerald-50 text-emerald-600 border-emerald-100", "High Ticket")
_SCORE_TRENDING = AnalysisScore("A", "🚀 潜力股", "bg-indigo-50 text-indigo-600 border-indigo-100", "Trending")
_SCORE_STABLE = AnalysisScore("B", "⚖️ 稳健款", "bg-blue-50 text-blue-500 border-blue-100", "Stable")
_SCORE_LOW = AnalysisScore("C", "💤 滞销/新品", "bg-slate-50 text-slate-400 border-slate-100", "Low")

GRADE_ORDER = ["C", "B", "A", "S", "S+"]


def composite_score(product: Product, max_gmv: float, max_sales: float) -> float:
    """综合得分 = 0.6 * 销量占比 + 0.4 * GMV 占比。任一最大值为 0 时返回 0。"""
    if max_gmv == 0 or max_sales == 0:
        return 0.0
    return SALES_WEIGHT * (product.sales / max_sales) + GMV_WEIGHT * (product.gmv / max_gmv)


def calculate_score(product: Product, max_gmv: float, max_sales: float) -> AnalysisScore:
    """
    计算单个商品的等级。纯函数，最大值必须来自同一个 cohort。

    阈值 (从高到低，先命中先返回):
    - >= 0.8  S+ 头部爆款
    - >= 0.5  S  (销量占比 > 0.7 为流量爆款，否则为高利爆款)
    - >= 0.25 A  潜力股
    - >= 0.1  B  稳健款
    - 其他    C  滞销/新品
    """
    # 空数据或全 0 数据，避免除零
    if max_gmv == 0 or max_sales == 0:
        return _SCORE_NEW

    sales_score = product.sales / max_sales
    score = composite_score(product, max_gmv, max_sales)

    if score >= 0.8:
        return _SCORE_TOP
    if score >= 0.5:
        return _SCORE_VOLUME if sales_score > 0.7 else _SCORE_TICKET
    if score >= 0.25:
        return _SCORE_TRENDING
    if score >= 0.1:
        return _SCORE_STABLE
    return _SCORE_LOW


def cohort_maxima(products: Iterable[Product]) -> Tuple[float, float]:
    """返回 (max_gmv, max_sales)，空集合为 (0, 0)。"""
    products = list(products)
    if not products:
        return 0.0, 0.0
    return max(p.gmv for p in products), max(p.sales for p in products)


def filter_products(
    products: List[Product],
    price_range: PriceRange,
    min_sales: float = DEFAULT_MIN_SALES
) -> List[Product]:
    """按价格区间 (含边界) 和最低销量筛选出 cohort。"""
    low, high = price_range
    return [p for p in products if low <= p.price <= high and p.sales >= min_sales]


def rank_products(products: List[Product]) -> List[Tuple[Product, AnalysisScore]]:
    """按 GMV 降序排列，并附上基于同一 cohort 计算的评分。"""
    max_gmv, max_sales = cohort_maxima(products)
    ranked = sorted(products, key=lambda p: p.gmv, reverse=True)
    return [(p, calculate_score(p, max_gmv, max_sales)) for p in ranked]


def top_by_gmv(products: List[Product], n: int = 3) -> List[Product]:
    return sorted(products, key=lambda p: p.gmv, reverse=True)[:n]


def top_by_sales(products: List[Product], n: int = 15) -> List[Product]:
    return sorted(products, key=lambda p: p.sales, reverse=True)[:n]


def summarize(products: List[Product]) -> Dict[str, float]:
    """生成简单的统计概览。"""
    count = len(products)
    return {
        "商品数": count,
        "平均价格": round(sum(p.price for p in products) / count, 2) if count else 0.0,
        "最高销量": max((p.sales for p in products), default=0.0),
        "总GMV": round(sum(p.gmv for p in products), 2),
    }
