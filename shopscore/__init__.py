"""电商选品评分与 AI 批量文案生成。"""

__version__ = "0.1.0"
