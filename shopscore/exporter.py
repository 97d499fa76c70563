"""
导出模块。
将商品评分排行与批量生成的中英文案导出为 Excel 文件（支持本地文件和内存流）。
"""
import os
import re
from datetime import datetime
from io import BytesIO
from typing import Dict, List, Optional, Tuple

import pandas as pd
from openpyxl import load_workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from shopscore.models import AnalysisScore, BatchResult, Product
from shopscore.profit import estimate_profit

SHEET_RANKING = "商品评分"
SHEET_CONTENT = "AI文案"

STATUS_LABELS = {
    "pending": "等待中",
    "processing": "生成中",
    "completed": "已完成",
    "failed": "失败",
}


def generate_excel_bytes(
    ranked: List[Tuple[Product, AnalysisScore]],
    results: Optional[Dict[str, BatchResult]] = None,
    base_name: str = ""
) -> Tuple[bytes, str]:
    """
    生成 Excel 文件的字节内容和建议文件名。
    """
    file_name = _generate_filename(ranked, base_name)
    buffer = BytesIO()
    _write_excel_data(ranked, results or {}, buffer)
    return _format_excel(buffer.getvalue()), file_name


def export_to_excel(
    ranked: List[Tuple[Product, AnalysisScore]],
    results: Optional[Dict[str, BatchResult]] = None,
    path: str = "",
    base_name: str = ""
) -> str:
    """
    导出为本地 Excel 文件。path 为空或为目录时自动生成文件名。
    """
    data, file_name = generate_excel_bytes(ranked, results, base_name)
    if not path:
        path = file_name
    elif path.endswith("/") or path.endswith("\\") or os.path.isdir(path):
        path = os.path.join(path, file_name)

    with open(path, "wb") as f:
        f.write(data)
    return path


# ==========================================
# 内部辅助函数
# ==========================================

def _generate_filename(ranked: List[Tuple[Product, AnalysisScore]], base_name: str = "") -> str:
    """根据导入文件名或首个商品标题生成文件名。"""
    file_name = ""
    if base_name:
        file_name = f"{os.path.splitext(base_name)[0]}_选品分析"
    elif ranked:
        file_name = ranked[0][0].title.strip()

    if not file_name:
        file_name = "选品分析"

    # 清理非法字符
    safe_filename = re.sub(r'[\\/:*?"<>|]', '_', file_name)
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    return f"{safe_filename}_{timestamp}.xlsx"


def _write_excel_data(
    ranked: List[Tuple[Product, AnalysisScore]],
    results: Dict[str, BatchResult],
    target: BytesIO
):
    ranking_rows = []
    for rank, (product, score) in enumerate(ranked, start=1):
        ranking_rows.append({
            "排名": rank,
            "商品标题": product.title,
            "价格": product.price,
            "销量": product.sales,
            "GMV": round(product.gmv, 2),
            "预估利润/单": estimate_profit(product)["profit"],
            "等级": score.grade,
            "评价": score.text,
            "标签": score.label or "",
            "图片": product.image_url or "",
        })

    content_rows = []
    for result in results.values():
        en, zh = result.content_en, result.content_zh
        content_rows.append({
            "商品标题": result.product_name,
            "状态": STATUS_LABELS.get(result.status, result.status),
            "Title (EN)": en.title if en else "",
            "Description (EN)": en.description if en else "",
            "Script (EN)": en.script if en else "",
            "标题 (中文)": zh.title if zh else "",
            "详情 (中文)": zh.description if zh else "",
            "脚本 (中文)": zh.script if zh else "",
            "错误信息": result.error_msg or "",
        })

    with pd.ExcelWriter(target, engine="openpyxl") as writer:
        pd.DataFrame(ranking_rows, columns=[
            "排名", "商品标题", "价格", "销量", "GMV", "预估利润/单", "等级", "评价", "标签", "图片"
        ]).to_excel(writer, index=False, sheet_name=SHEET_RANKING)
        if content_rows:
            pd.DataFrame(content_rows).to_excel(writer, index=False, sheet_name=SHEET_CONTENT)


def _format_excel(data: bytes) -> bytes:
    """对每个工作表进行美化格式化，返回新的字节内容。"""
    wb = load_workbook(BytesIO(data))

    # 样式定义
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF", size=11)
    border = Border(
        left=Side(style='thin'), right=Side(style='thin'),
        top=Side(style='thin'), bottom=Side(style='thin')
    )
    center_align = Alignment(horizontal="center", vertical="center", wrap_text=True)
    left_align = Alignment(horizontal="left", vertical="top", wrap_text=True)

    for ws in wb.worksheets:
        for cell in ws[1]:
            cell.fill = header_fill
            cell.font = header_font
            cell.alignment = center_align
            cell.border = border

        for row in ws.iter_rows(min_row=2, max_row=ws.max_row):
            for cell in row:
                cell.border = border
                cell.alignment = left_align

        # 自动调整列宽
        for column in ws.columns:
            column_letter = column[0].column_letter
            max_length = max((len(str(c.value)) for c in column if c.value is not None), default=0)
            ws.column_dimensions[column_letter].width = min(max_length + 2, 50)

        ws.freeze_panes = "A2"

    output = BytesIO()
    wb.save(output)
    return output.getvalue()
