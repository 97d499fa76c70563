"""
文本生成客户端。
对外只暴露两种能力：普通文本生成 (流式) 和结构化 (JSON) 生成。
所有失败统一抛出 GenerationError；缺少 Key 时抛出 MissingCredentialError。
"""
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from openai import AsyncOpenAI, OpenAIError

from shopscore.config import DEFAULT_MODEL
from shopscore.generation.prompts import build_headline_prompt

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "缺少 API Key"
NEWS_EMPTY = "暂无最新动态"
NEWS_FALLBACK = "获取失败 (请检查网络/Key)"

ChunkCallback = Callable[[str], None]


class GenerationError(Exception):
    """生成调用失败 (网络、额度、返回异常等)。"""


class MissingCredentialError(GenerationError):
    """未配置 API Key。调用方应在发起生成前检查。"""

    def __init__(self, message: str = MISSING_KEY_MESSAGE):
        super().__init__(message)


class GenerationClient(ABC):
    """
    生成能力的抽象边界。
    generate_text 可以流式回调累计文本，但调用方只依赖最终返回的完整字符串。
    """
    def __init__(self, api_key: str = ""):
        self.api_key = api_key or ""

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)

    def require_credential(self):
        if not self.has_credential:
            raise MissingCredentialError()

    @abstractmethod
    async def generate_text(
        self,
        prompt: str,
        temperature: float,
        on_chunk: Optional[ChunkCallback] = None
    ) -> str:
        ...

    async def generate_structured(self, prompt: str, temperature: float) -> str:
        """返回应当包含一个 JSON 对象的文本 (可能夹带说明文字或代码块标记)。"""
        return await self.generate_text(prompt, temperature)


class OpenAIGenerationClient(GenerationClient):
    """基于 OpenAI 兼容接口 (chat.completions, stream=True) 的实现。"""

    def __init__(self, api_key: str = "", model: str = DEFAULT_MODEL, base_url: Optional[str] = None):
        super().__init__(api_key)
        self.model = model
        self.base_url = base_url
        self._client: Optional[AsyncOpenAI] = None

    def _get_client(self) -> AsyncOpenAI:
        self.require_credential()
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    async def generate_text(
        self,
        prompt: str,
        temperature: float,
        on_chunk: Optional[ChunkCallback] = None
    ) -> str:
        client = self._get_client()
        full_text = ""
        try:
            stream = await client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                text = chunk.choices[0].delta.content
                if text:
                    full_text += text
                    if on_chunk:
                        on_chunk(full_text)
        except OpenAIError as e:
            logger.error("AI 生成失败: %s", e)
            raise GenerationError(str(e) or "Unknown error occurred during AI generation") from e
        return full_text


async def fetch_headline(client: GenerationClient, site_name: str, topic: str, temperature: float = 0.3) -> str:
    """
    获取某站点与主题相关的一条最新标题。
    只读、低风险的调用：失败时返回固定提示语，不向上抛出。
    """
    client.require_credential()
    try:
        text = await client.generate_text(build_headline_prompt(site_name, topic), temperature)
    except GenerationError as e:
        logger.error("新闻获取失败 (%s / %s): %s", site_name, topic, e)
        return NEWS_FALLBACK
    text = (text or "").strip()
    return text or NEWS_EMPTY
