"""
应用级接口测试：健康检查、根路径、统一错误格式
"""
import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "healthy"
    assert data["uptime"] >= 0
    assert data["environment"] == "development"


@pytest.mark.asyncio
async def test_root_index(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["data"]["endpoints"]["leads"] == "/api/leads"


@pytest.mark.asyncio
async def test_unknown_route_uses_envelope(client: AsyncClient):
    response = await client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.json()["success"] is False
