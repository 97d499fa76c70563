"""
单品利润估算模块。
在缺少真实成本时，按售价比例估算成本，扣除运费与平台费后给出单件利润和利润率。
"""
from typing import Dict, Optional

from shopscore.models import Product

DEFAULT_COST_RATIO = 0.3       # 默认成本 = 售价 * 30%
DEFAULT_SHIPPING = 3.5
DEFAULT_PLATFORM_FEE_PCT = 0.05


def estimate_profit(
    product: Product,
    cost_price: Optional[float] = None,
    shipping: float = DEFAULT_SHIPPING,
    platform_fee_pct: float = DEFAULT_PLATFORM_FEE_PCT
) -> Dict[str, float]:
    """
    利润 = 售价 - 成本 - 运费 - 平台费
    利润率 = 利润 / 售价 * 100 (售价为 0 时记为 0)
    """
    price = product.price
    if cost_price is None:
        cost_price = price * DEFAULT_COST_RATIO

    platform_fee = price * platform_fee_pct
    profit = price - cost_price - shipping - platform_fee
    margin = (profit / price) * 100 if price > 0 else 0.0

    return {
        "price": price,
        "cost_price": round(cost_price, 2),
        "shipping": shipping,
        "platform_fee": round(platform_fee, 2),
        "profit": round(profit, 2),
        "margin_pct": round(margin, 1),
    }
