"""
配置模块。
从环境变量 (可选 .env 文件) 读取运行参数。
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_USER = "user"

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_STORE_PATH = os.path.join(os.path.expanduser("~"), ".shopscore", "store.json")


@dataclass(frozen=True)
class Settings:
    api_key: str = ""                      # 管理员使用的系统 Key
    base_url: Optional[str] = None         # OpenAI 兼容接口地址
    model: str = DEFAULT_MODEL
    batch_temperature: float = 0.85        # 批量生成固定使用较高温度
    news_temperature: float = 0.3
    store_path: str = DEFAULT_STORE_PATH
    log_level: str = "INFO"


def load_settings(env_file: Optional[str] = None) -> Settings:
    """读取 .env 与环境变量，构造 Settings。"""
    load_dotenv(env_file)

    return Settings(
        api_key=os.getenv("SHOPSCORE_API_KEY", "").strip(),
        base_url=os.getenv("SHOPSCORE_BASE_URL") or None,
        model=os.getenv("SHOPSCORE_MODEL") or DEFAULT_MODEL,
        batch_temperature=_env_float("SHOPSCORE_BATCH_TEMPERATURE", 0.85),
        news_temperature=_env_float("SHOPSCORE_NEWS_TEMPERATURE", 0.3),
        store_path=os.getenv("SHOPSCORE_STORE_PATH") or DEFAULT_STORE_PATH,
        log_level=(os.getenv("SHOPSCORE_LOG_LEVEL") or "INFO").upper(),
    )


def resolve_api_key(role: str, stored_key: str, settings: Settings) -> str:
    """管理员使用系统 Key；普通用户使用自己保存的 Key。"""
    if role == ROLE_ADMIN:
        if not settings.api_key:
            logger.warning("管理员登录，但未配置 SHOPSCORE_API_KEY")
        return settings.api_key
    return stored_key or ""


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("环境变量 %s=%r 不是有效数字，使用默认值 %s", name, raw, default)
        return default
