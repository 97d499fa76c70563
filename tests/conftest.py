"""Pytest 配置与公共测试替身。"""
import json
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from shopscore.generation.client import GenerationClient, GenerationError
from shopscore.models import Product
from shopscore.storage import LocalStore, ResultStore


def content_json(name: str) -> str:
    return json.dumps({
        "title_en": f"{name} EN title",
        "title_zh": f"{name} 中文标题",
        "description_en": f"{name} EN description",
        "description_zh": f"{name} 中文详情",
        "script_en": f"{name} EN script",
        "script_zh": f"{name} 中文脚本",
    }, ensure_ascii=False)


class FakeClient(GenerationClient):
    """
    按提示词中出现的商品名返回预设结果。
    responses[name] 可以是字符串或异常实例；未配置的商品返回标准 JSON。
    """
    def __init__(self, responses=None, api_key="test-key"):
        super().__init__(api_key)
        self.responses = responses or {}
        self.calls = []
        self.temperatures = []

    async def generate_text(self, prompt, temperature, on_chunk=None):
        name = _product_name(prompt)
        self.calls.append(name)
        self.temperatures.append(temperature)
        response = self.responses.get(name, content_json(name))
        if isinstance(response, Exception):
            raise response
        if on_chunk:
            on_chunk(response)
        return response


def _product_name(prompt: str) -> str:
    marker = 'Target Product: "'
    start = prompt.find(marker)
    if start == -1:
        return prompt
    start += len(marker)
    return prompt[start:prompt.find('"', start)]


def make_product(pid, title, price=10.0, sales=100.0):
    return Product(id=pid, title=title, price=price, sales=sales, gmv=price * sales)


@pytest.fixture
def store():
    return LocalStore()


@pytest.fixture
def result_store(store):
    return ResultStore(store)


@pytest.fixture
def products():
    return [make_product("p-0", "Lamp"), make_product("p-1", "Shapewear"), make_product("p-2", "Printer")]


__all__ = ["FakeClient", "GenerationError", "content_json", "make_product"]
