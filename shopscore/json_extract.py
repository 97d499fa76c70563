"""
从模型输出的自由文本中提取 JSON 对象。
模型经常在 JSON 前后附加说明文字或 ``` 代码块标记，这里统一处理。
"""
import json
import re
from typing import Any, Dict, Optional

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


class JSONExtractionError(ValueError):
    """文本中找不到可解析的 JSON 对象。"""


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def find_json_object(text: str) -> Optional[str]:
    """
    返回第一个括号平衡的 {...} 子串 (忽略字符串内的括号)。
    找不到平衡对象时退回到首个 '{' 与最后一个 '}' 之间的切片；都没有则返回 None。
    """
    first = text.find("{")
    if first == -1:
        return None

    end = _balanced_end(text, first)
    if end is not None:
        return text[first:end + 1]

    last = text.rfind("}")
    if last > first:
        return text[first:last + 1]
    return None


def extract_json_object(text: str) -> Dict[str, Any]:
    """去掉代码块标记，定位 JSON 对象并解析为 dict。"""
    if not text:
        raise JSONExtractionError("模型返回为空")

    candidate = find_json_object(strip_code_fences(text))
    if candidate is None:
        raise JSONExtractionError("返回内容中没有 JSON 对象")

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise JSONExtractionError(f"JSON 解析失败: {e}") from e

    if not isinstance(parsed, dict):
        raise JSONExtractionError("JSON 顶层不是对象")
    return parsed


def _balanced_end(text: str, start: int) -> Optional[int]:
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None
