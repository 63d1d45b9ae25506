"""
Zalo 集成 API 测试
"""
import base64

import httpx
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.core.rate_limit import RateLimiter
from app.models import Lead
from app.services.zalo import ZaloClient
from tests.conftest import DataFactory


@pytest.mark.asyncio
async def test_validate_environment(client: AsyncClient):
    response = await client.get(
        "/api/zalo/validate",
        headers={"User-Agent": "Mozilla/5.0 Zalo/22.01 ZaloTheme/light"},
    )
    assert response.status_code == 200
    assert response.json()["data"]["isZaloEnvironment"] is True

    response = await client.get(
        "/api/zalo/validate",
        params={"userAgent": "Mozilla/5.0 Chrome/120", "url": "https://example.org"},
    )
    assert response.json()["data"]["isZaloEnvironment"] is False


@pytest.mark.asyncio
async def test_zalo_health_reports_configuration(client: AsyncClient, app):
    response = await client.get("/api/zalo/health")
    assert response.status_code == 200
    assert response.json()["data"]["configured"] is False

    app.state.zalo_client = ZaloClient(app_id="app", app_secret="secret")
    response = await client.get("/api/zalo/health")
    assert response.json()["data"]["configured"] is True


@pytest.mark.asyncio
async def test_user_info(client: AsyncClient, factory: DataFactory):
    # 1. 缺少数据
    response = await client.post("/api/zalo/user-info", json={})
    assert response.status_code == 400

    # 2. 没有手机号
    response = await client.post("/api/zalo/user-info", json={"zaloData": {"id": "z1", "name": "Lan"}})
    assert response.status_code == 400
    assert response.json()["data"]["availableFields"] == ["id", "name"]

    # 3. 嵌套字段中的手机号
    response = await client.post(
        "/api/zalo/user-info",
        json={"zaloData": {"id": "z1", "name": "Lan", "user": {"phoneNumber": "0977000111"}}},
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["phone"] == "0977000111"
    assert data["zaloUserId"] == "z1"
    assert data["additionalInfo"]["name"] == "Lan"

    # 4. 手机号已有线索
    lead = await factory.submit_lead(phone="0977000222")
    response = await client.post("/api/zalo/user-info", json={"zaloData": {"phoneNumber": "0977000222"}})
    assert response.status_code == 200
    assert response.json()["data"]["existingLead"]["id"] == lead["leadId"]


@pytest.mark.asyncio
async def test_process_token(client: AsyncClient, app):
    # 1. 缺少令牌
    response = await client.post("/api/zalo/process-token", json={})
    assert response.status_code == 400

    # 2. 令牌中直接包含手机号
    response = await client.post("/api/zalo/process-token", json={"token": "abcXYZ0912345678def"})
    assert response.status_code == 200
    assert response.json()["data"]["phone"] == "0912345678"

    # 3. base64 编码的令牌
    token = base64.b64encode(b'{"phone":"0987654321"}').decode()
    response = await client.post("/api/zalo/process-token", json={"token": token})
    assert response.json()["data"]["phone"] == "0987654321"

    # 4. 无法解析时仍返回成功
    response = await client.post("/api/zalo/process-token", json={"token": "opaque-token-without-phone"})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["phone"] is None


@pytest.mark.asyncio
async def test_process_token_uses_zalo_api(client: AsyncClient, app):
    """令牌本身没有手机号时调用 Zalo API"""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"data": {"phoneNumber": "0933444555"}})

    app.state.zalo_client = ZaloClient(
        app_id="app", app_secret="secret", transport=httpx.MockTransport(handler)
    )
    response = await client.post("/api/zalo/process-token", json={"token": "opaque-token"})
    assert response.status_code == 200
    assert response.json()["data"]["phone"] == "0933444555"
    assert len(calls) == 1
    assert calls[0].url.params["access_token"] == "opaque-token"


@pytest.mark.asyncio
async def test_create_lead_from_zalo(client: AsyncClient, factory: DataFactory, db_session):
    payload = factory.lead_payload(phone="0966777888")
    payload["zaloData"] = {"id": "zalo-42", "accessToken": "at-123", "name": "Lan"}

    response = await client.post("/api/zalo/create-lead", json=payload)
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert data["status"] == "new"
    assert data["zaloInfo"]["zaloUserId"] == "zalo-42"

    lead = (await db_session.execute(select(Lead).where(Lead.id == data["leadId"]))).scalar_one()
    assert lead.source == "zalo"
    assert lead.zalo_info["zaloAccessToken"] == "at-123"
    assert lead.zalo_info["phoneFromZalo"] == "0966777888"

    # 同一手机号再次提交
    response = await client.post("/api/zalo/create-lead", json={**payload, "email": "another@gmail.com"})
    assert response.status_code == 400
    assert response.json()["data"]["leadId"] == data["leadId"]


@pytest.mark.asyncio
async def test_lead_creation_is_rate_limited(client: AsyncClient, app, factory: DataFactory):
    """每个 IP 每分钟提交线索的次数有限"""
    app.state.rate_limiters["lead"] = RateLimiter(limit=2, window=60)

    for _ in range(2):
        response = await client.post("/api/leads", json=factory.lead_payload())
        assert response.status_code == 201

    response = await client.post("/api/zalo/create-lead", json=factory.lead_payload())
    assert response.status_code == 429
    assert response.json()["message"] == "Quá nhiều đăng ký từ IP này, vui lòng thử lại sau 1 phút"

    # 其他 IP 不受影响
    response = await client.post(
        "/api/leads", json=factory.lead_payload(), headers={"X-Forwarded-For": "198.51.100.9"}
    )
    assert response.status_code == 201
