import asyncio

import pytest

from conftest import make_product

from shopscore.config import ROLE_ADMIN, ROLE_USER, Settings, load_settings, resolve_api_key
from shopscore.generation.client import MissingCredentialError, OpenAIGenerationClient
from shopscore.profit import estimate_profit


def test_default_profit_estimate():
    result = estimate_profit(make_product("1", "Lamp", price=20, sales=1))
    # 20 - 6 - 3.5 - 1
    assert result["profit"] == 9.5
    assert result["margin_pct"] == 47.5


def test_profit_with_zero_price():
    result = estimate_profit(make_product("1", "Free", price=0, sales=1))
    assert result["margin_pct"] == 0.0
    assert result["profit"] == -3.5


def test_custom_cost():
    result = estimate_profit(make_product("1", "Lamp", price=100, sales=1), cost_price=50, shipping=0)
    assert result["profit"] == 45.0


def test_load_settings_from_env(monkeypatch):
    monkeypatch.setenv("SHOPSCORE_API_KEY", " sk-test ")
    monkeypatch.setenv("SHOPSCORE_BATCH_TEMPERATURE", "not-a-number")
    monkeypatch.setenv("SHOPSCORE_NEWS_TEMPERATURE", "0.5")
    monkeypatch.setenv("SHOPSCORE_LOG_LEVEL", "debug")
    settings = load_settings()
    assert settings.api_key == "sk-test"
    assert settings.batch_temperature == 0.85
    assert settings.news_temperature == 0.5
    assert settings.log_level == "DEBUG"


def test_resolve_api_key():
    settings = Settings(api_key="system")
    assert resolve_api_key(ROLE_ADMIN, "mine", settings) == "system"
    assert resolve_api_key(ROLE_USER, "mine", settings) == "mine"
    assert resolve_api_key(ROLE_USER, "", settings) == ""


def test_openai_client_requires_key():
    client = OpenAIGenerationClient(api_key="")
    assert not client.has_credential
    with pytest.raises(MissingCredentialError) as exc:
        asyncio.run(client.generate_text("hi", 0.5))
    assert str(exc.value) == "缺少 API Key"
