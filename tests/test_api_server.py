import pytest
from fastapi.testclient import TestClient

import api_server
from shopscore.config import Settings


@pytest.fixture
def client(monkeypatch):
    # 服务端配置了系统 Key，但匿名请求不能借用
    monkeypatch.setattr(api_server, "settings", Settings(api_key="system-key"))
    return TestClient(api_server.app)


def test_score_ranks_by_gmv(client):
    resp = client.post("/score", json={"products": [
        {"id": "a", "title": "Mug", "price": 5, "sales": 100},
        {"id": "b", "title": "Lamp", "price": 20, "sales": 1000},
    ]})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [d["id"] for d in data] == ["b", "a"]
    assert data[0]["grade"] == "S+"


def test_generate_without_key_is_rejected(client):
    resp = client.post("/generate", json={"product": {"id": "a", "title": "Lamp"}})
    assert resp.status_code == 400


def test_headline_without_key_is_rejected(client):
    resp = client.post("/headline", json={"site_name": "36kr", "topic": "AI"})
    assert resp.status_code == 400


def test_caller_key_is_used_as_is(client):
    assert api_server._client("caller-key").api_key == "caller-key"
    assert api_server._client(None).api_key == ""
