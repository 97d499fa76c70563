"""
数值清洗模块。
将表格中的金额/销量文本 (如 "$1,234"、"2.5k"、"3万") 统一解析为浮点数。
"""
import re
from typing import Any

import pandas as pd

_NUMBER_RE = re.compile(r"(\d+(\.\d+)?)")

# 量级后缀，按优先级检查，只取第一个命中的
_MAGNITUDES = (
    (("k",), 1_000),
    (("w", "万"), 10_000),
    (("m",), 1_000_000),
)


def clean_currency(val: Any) -> float:
    """
    宽松解析：无法识别的输入一律返回 0.0，从不抛异常。

    示例:
    - "1,234"  -> 1234.0
    - "2.5k"   -> 2500.0
    - "3万"    -> 30000.0
    - "1.2m"   -> 1200000.0
    - "abc"    -> 0.0
    """
    if val is None or isinstance(val, bool):
        return 0.0
    try:
        if pd.isna(val):
            return 0.0
    except (TypeError, ValueError):
        pass

    s = str(val).strip().lower().replace(",", "")
    if not s:
        return 0.0

    multiplier = 1
    for suffixes, factor in _MAGNITUDES:
        if any(suf in s for suf in suffixes):
            multiplier = factor
            for suf in suffixes:
                s = s.replace(suf, "", 1)
            break

    match = _NUMBER_RE.search(s)
    if not match:
        return 0.0
    return float(match.group(1)) * multiplier
