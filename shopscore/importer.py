"""
数据导入模块。
负责解析上传的 CSV / Excel 文件，转换为待确认映射的原始行数据 (PendingImport)。
"""
import hashlib
import json
import logging
import os
from dataclasses import asdict
from io import BytesIO
from typing import List, Dict, Any, Optional, Tuple

import pandas as pd

from shopscore.mapper import FIELD_KEYWORDS, infer_mapping
from shopscore.models import PendingImport

logger = logging.getLogger(__name__)

CSV_ENCODINGS = ("utf-8-sig", "gbk")
EXCEL_EXTENSIONS = (".xlsx", ".xls")
MAX_LABEL_LENGTH = 12


class FileImportError(ValueError):
    """文件无法读取或格式不受支持。"""


def load_pending_import(file_name: str, file_content: bytes) -> Optional[PendingImport]:
    """
    读取上传文件，返回带推断映射的 PendingImport。
    文件中没有数据行时返回 None。
    """
    ext = os.path.splitext(file_name)[1].lower()
    if ext == ".csv":
        headers, rows = parse_csv(_decode_text(file_content))
    elif ext in EXCEL_EXTENSIONS:
        headers, rows = parse_excel(file_content)
    else:
        raise FileImportError(f"不支持的文件类型: {file_name}")

    if not rows:
        logger.info("文件 %s 中没有可用的数据行", file_name)
        return None

    logger.info("读取 %s: %d 列, %d 行", file_name, len(headers), len(rows))
    return PendingImport(
        file_name=file_name,
        headers=headers,
        rows=rows,
        mapping=infer_mapping(headers),
    )


def parse_csv(content: str) -> Tuple[List[str], List[Dict[str, Any]]]:
    """
    简易 CSV 解析：逗号分隔，去掉字段两端的双引号。
    字段数与表头数不一致的行直接丢弃。
    """
    lines = [line for line in content.splitlines() if line.strip()]
    if len(lines) < 2:
        return [], []

    headers = [_strip_quotes(h) for h in lines[0].split(",")]
    rows = []
    for line in lines[1:]:
        fields = line.split(",")
        if len(fields) != len(headers):
            continue
        rows.append({h: _strip_quotes(v) for h, v in zip(headers, fields)})
    return headers, rows


def parse_excel(file_content: bytes) -> Tuple[List[str], List[Dict[str, Any]]]:
    """
    解析工作簿的第一个工作表。
    支持自动探测表头行（不一定在第一行）。
    """
    try:
        # 先读取为非 header 模式，以便探测
        df_raw = pd.read_excel(BytesIO(file_content), sheet_name=0, header=None)
    except Exception as e:
        raise FileImportError(f"无法读取 Excel 文件: {e}") from e

    if df_raw.empty:
        return [], []

    header_row_index = _detect_header_row(df_raw)
    if header_row_index is None:
        header_row_index = 0

    headers = [_header_name(v, i) for i, v in enumerate(df_raw.iloc[header_row_index])]
    df = df_raw.iloc[header_row_index + 1:].copy()
    df.columns = headers
    df.dropna(how="all", inplace=True)

    rows = []
    for _, row in df.iterrows():
        rows.append({h: ("" if pd.isna(v) else v) for h, v in row.items()})
    return headers, rows


def _detect_header_row(df: pd.DataFrame, max_scan_rows: int = 20) -> Optional[int]:
    """
    探测哪一行是表头。
    返回行索引，如果没找到返回 None。
    只统计像表头的单元格 (短文本、非数字、非链接)，避免数据行里的商品标题或图片链接被误判。
    """
    keywords = {k.lower() for keys in FIELD_KEYWORDS.values() for k in keys}

    best_row_idx = None
    max_matches = 0

    scan_limit = min(len(df), max_scan_rows)
    for i in range(scan_limit):
        row_values = [str(v).lower().strip() for v in df.iloc[i] if pd.notna(v)]
        matches = 0
        for v in row_values:
            if v in keywords:
                matches += 1
            elif _looks_like_label(v) and any(k in v for k in keywords):
                matches += 1
        if matches > max_matches:
            max_matches = matches
            best_row_idx = i

    # 至少要匹配到 2 个特征才算找到 (例如 "标题" 和 "价格")
    if max_matches >= 2:
        return best_row_idx
    return None


def _looks_like_label(value: str) -> bool:
    if not value or len(value) > MAX_LABEL_LENGTH or "://" in value:
        return False
    try:
        float(value.replace(",", ""))
        return False
    except ValueError:
        return True


def _header_name(value: Any, index: int) -> str:
    if pd.isna(value) or str(value).strip() == "":
        return f"列{index + 1}"
    return str(value).strip()


def _strip_quotes(value: str) -> str:
    value = value.strip()
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value


def _decode_text(file_content: bytes) -> str:
    for encoding in CSV_ENCODINGS:
        try:
            return file_content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise FileImportError("无法识别 CSV 文件编码")


def import_fingerprint(pending: PendingImport) -> str:
    """
    导入内容的指纹 (文件名 + 表头 + 映射 + 行数据)。
    指纹相同说明商品 id 与商品一一对应，旧的批量结果仍然有效。
    """
    payload = json.dumps({
        "file": os.path.basename(pending.file_name),
        "headers": pending.headers,
        "mapping": asdict(pending.mapping),
        "rows": pending.rows,
    }, ensure_ascii=False, sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
