"""
提示词模块。
批量生成一次请求同时返回中英文的标题、详情和视频脚本。
"""

REQUIRED_KEYS = (
    "title_en", "title_zh",
    "description_en", "description_zh",
    "script_en", "script_zh",
)

_BATCH_TEMPLATE = """You are a top-tier TikTok Shop copywriter. I need you to act like a real, experienced human seller, not an AI.
Target Product: "{product_name}"

Guidelines:
1. Tone: Enthusiastic, authentic, urgent, and emotional. Use natural language (slang where appropriate for TikTok).
2. Logic: Focus on "Hook -> Pain Point -> Solution -> Social Proof -> Call to Action".
3. Formatting: strict JSON output. NO markdown code blocks. NO asterisks (**) or hashes (#). Use real Emojis.
4. Bilingual: Generate distinct, native-sounding versions for English and Chinese. Do not just translate literally.

Required JSON Structure:
{{
  "title_en": "Viral SEO Title (English, 1 emoji, max 80 chars, focus on benefit)",
  "title_zh": "爆款 SEO 标题 (中文, 1个表情, 突出痛点解决)",
  "description_en": "High-converting description (approx 200 words). \\n- Paragraph 1: Emotional Hook/Pain Point. \\n- Paragraph 2: Key Features using bullet points (use emojis as bullets). \\n- Paragraph 3: Urgency/CTA.",
  "description_zh": "高转化商品详情 (约200字). \\n- 第一段: 黄金3秒钩子/痛点直击. \\n- 第二段: 核心卖点列表 (用表情符号做列表头). \\n- 第三段: 促销紧迫感/引导下单.",
  "script_en": "30s Viral Video Script. \\nScene 1 (0-3s): Visual Hook. \\nScene 2 (3-15s): Demonstration/Problem Solving. \\nScene 3 (15-25s): Value Proposition. \\nScene 4 (25-30s): Strong CTA.",
  "script_zh": "30秒带货短视频脚本. \\n镜头1 (0-3s): 视觉冲击/矛盾冲突. \\n镜头2 (3-15s): 产品演示/解决问题. \\n镜头3 (15-25s): 价值升华/信任背书. \\n镜头4 (25-30s): 引导关注下单."
}}

Output ONLY the valid JSON object."""

_HEADLINE_TEMPLATE = """Find the single most recent and important news headline from the website "{site_name}" related to "{topic}".
Return ONLY the headline text in Simplified Chinese. Do not add quotes, dates, or intro text. Keep it concise (under 25 words)."""


def build_batch_prompt(product_name: str) -> str:
    return _BATCH_TEMPLATE.format(product_name=product_name.replace('"', "'"))


def build_headline_prompt(site_name: str, topic: str) -> str:
    return _HEADLINE_TEMPLATE.format(site_name=site_name, topic=topic)
