"""
线索 API 测试

提交去重、列表筛选、状态流转、备注、转换
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from app.models import Lead, Role, User
from tests.conftest import DataFactory


async def _count(db_session, model) -> int:
    result = await db_session.execute(select(func.count()).select_from(model))
    return result.scalar()


@pytest.mark.asyncio
async def test_submit_lead_creates_new_lead(client: AsyncClient, factory: DataFactory, db_session):
    """公开提交：201，状态为 new，记录提交 IP"""

    # 1. 提交
    response = await client.post(
        "/api/leads",
        json=factory.lead_payload(),
        headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "User-Agent": "pytest-agent"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Tạo lead thành công"
    assert body["data"]["status"] == "new"
    assert body["data"]["leadId"]

    # 2. 数据库中恰好一条
    assert await _count(db_session, Lead) == 1
    lead = await db_session.get(Lead, body["data"]["leadId"])
    assert lead.ip_address == "203.0.113.7"
    assert lead.user_agent == "pytest-agent"
    assert lead.source == "website"


@pytest.mark.asyncio
async def test_resubmit_same_phone_returns_original_lead(client: AsyncClient, db_session):
    """An Nguyen 场景：同一手机号再次提交返回 400 和原线索 ID"""
    payload = {
        "name": "An Nguyen",
        "phone": "0912345678",
        "email": "an.nguyen@gmail.com",
        "birthYear": 1999,
        "qualification": "college",
        "country": "germany",
    }

    # 1. 首次提交
    first = await client.post("/api/leads", json=payload)
    assert first.status_code == 201
    lead_id = first.json()["data"]["leadId"]

    # 2. 换邮箱、同手机号
    second = await client.post("/api/leads", json={**payload, "email": "an.other@gmail.com"})
    assert second.status_code == 400
    body = second.json()
    assert body["success"] is False
    assert body["data"] == {"leadId": lead_id, "status": "new"}

    # 3. 没有新增记录
    assert await _count(db_session, Lead) == 1


@pytest.mark.asyncio
async def test_resubmit_same_email_is_rejected(client: AsyncClient, factory: DataFactory, db_session):
    lead = await factory.submit_lead(email="dup@gmail.com")

    # 邮箱不区分大小写
    response = await client.post("/api/leads", json=factory.lead_payload(email="DUP@gmail.com"))
    assert response.status_code == 400
    assert response.json()["data"]["leadId"] == lead["leadId"]
    assert await _count(db_session, Lead) == 1


@pytest.mark.asyncio
async def test_submit_lead_validation(client: AsyncClient, factory: DataFactory):
    """字段校验失败返回 400 和字段错误列表"""
    cases = [
        {"phone": "12345"},
        {"phone": "09abc45678"},
        {"email": "not-an-email"},
        {"birthYear": 1900},
        {"qualification": "phd"},
        {"country": "france"},
        {"name": "A"},
    ]
    for overrides in cases:
        response = await client.post("/api/leads", json=factory.lead_payload(**overrides))
        assert response.status_code == 400, overrides
        body = response.json()
        assert body["success"] is False
        assert body["data"]["errors"], overrides


@pytest.mark.asyncio
async def test_lead_endpoints_require_staff(client: AsyncClient, factory: DataFactory):
    """未登录 401 NO_TOKEN；候选人 403"""
    response = await client.get("/api/leads")
    assert response.status_code == 401
    assert response.json()["code"] == "NO_TOKEN"

    candidate = await factory.create_user(role=Role.CANDIDATE)
    response = await client.get("/api/leads", headers=factory.auth_headers(candidate))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_leads_filters_and_pagination(
    client: AsyncClient, factory: DataFactory, hr_headers: dict
):
    # 1. 准备数据
    await factory.submit_lead(name="Tran Thi Mai")
    await factory.submit_lead(name="Le Van Hung")
    await factory.submit_lead(name="Pham Thi Lan", email="lan.pham@gmail.com")

    # 2. 分页
    response = await client.get("/api/leads", params={"page": 1, "limit": 2}, headers=hr_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data["items"]) == 2
    assert data["pagination"] == {"current": 1, "pages": 2, "total": 3, "limit": 2}

    # 3. 搜索（不区分大小写）
    response = await client.get("/api/leads", params={"search": "THI"}, headers=hr_headers)
    names = {item["name"] for item in response.json()["data"]["items"]}
    assert names == {"Tran Thi Mai", "Pham Thi Lan"}

    response = await client.get("/api/leads", params={"search": "lan.pham"}, headers=hr_headers)
    assert response.json()["data"]["pagination"]["total"] == 1

    # 4. 状态筛选
    response = await client.get("/api/leads", params={"status": "contacted"}, headers=hr_headers)
    assert response.json()["data"]["pagination"]["total"] == 0

    # 5. 排序
    response = await client.get(
        "/api/leads", params={"sortBy": "name", "sortOrder": "asc"}, headers=hr_headers
    )
    names = [item["name"] for item in response.json()["data"]["items"]]
    assert names == sorted(names)


@pytest.mark.asyncio
async def test_lead_update_flow(client: AsyncClient, factory: DataFactory, hr: User, hr_headers: dict):
    """详情、更新、分配、状态流转"""
    lead = await factory.submit_lead()
    lead_id = lead["leadId"]

    # 1. 详情
    response = await client.get(f"/api/leads/{lead_id}", headers=hr_headers)
    assert response.status_code == 200
    assert response.json()["data"]["age"] is not None

    # 2. 更新状态、优先级、负责人、补充信息
    response = await client.put(
        f"/api/leads/{lead_id}",
        json={
            "status": "contacted",
            "priority": "high",
            "assignedTo": hr.id,
            "additionalInfo": {"experience": "3 năm", "skills": ["Welding"], "expectedSalary": 1500},
        },
        headers=hr_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "contacted"
    assert data["priority"] == "high"
    assert data["assignedTo"]["id"] == hr.id
    assert data["additionalInfo"]["skills"] == ["Welding"]

    # 3. 按负责人筛选
    response = await client.get("/api/leads", params={"assignedTo": hr.id}, headers=hr_headers)
    assert response.json()["data"]["pagination"]["total"] == 1

    # 4. 不能直接设置为 converted
    response = await client.put(f"/api/leads/{lead_id}", json={"status": "converted"}, headers=hr_headers)
    assert response.status_code == 400

    # 5. 不存在的线索
    response = await client.get("/api/leads/not-exist", headers=hr_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_lead_clears_nullable_fields(
    client: AsyncClient, factory: DataFactory, hr: User, hr_headers: dict, db_session
):
    """显式传 null 可以取消分配、清空留言；必填字段传 null 不生效"""
    lead = await factory.submit_lead()
    lead_id = lead["leadId"]

    # 1. 分配
    response = await client.put(f"/api/leads/{lead_id}", json={"assignedTo": hr.id}, headers=hr_headers)
    assert response.json()["data"]["assignedTo"]["id"] == hr.id

    # 2. 取消分配并清空留言
    response = await client.put(
        f"/api/leads/{lead_id}",
        json={"assignedTo": None, "message": None, "name": None},
        headers=hr_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["assignedTo"] is None
    assert data["message"] is None
    assert data["name"] == lead["name"]

    result = await db_session.execute(select(Lead.assigned_to_id).where(Lead.id == lead_id))
    assert result.scalar() is None


@pytest.mark.asyncio
async def test_update_lead_rejects_phone_of_other_lead(
    client: AsyncClient, factory: DataFactory, hr_headers: dict
):
    first = await factory.submit_lead(phone="0911111111")
    second = await factory.submit_lead()

    response = await client.put(
        f"/api/leads/{second['leadId']}", json={"phone": "0911111111"}, headers=hr_headers
    )
    assert response.status_code == 400

    response = await client.get(f"/api/leads/{first['leadId']}", headers=hr_headers)
    assert response.json()["data"]["phone"] == "0911111111"


@pytest.mark.asyncio
async def test_assign_to_candidate_is_rejected(client: AsyncClient, factory: DataFactory, hr_headers: dict):
    lead = await factory.submit_lead()
    candidate = await factory.create_user(role=Role.CANDIDATE)

    response = await client.put(
        f"/api/leads/{lead['leadId']}", json={"assignedTo": candidate.id}, headers=hr_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_add_note(client: AsyncClient, factory: DataFactory, hr: User, hr_headers: dict):
    lead = await factory.submit_lead()

    # 1. 添加备注
    response = await client.post(
        f"/api/leads/{lead['leadId']}/notes",
        json={"content": "Đã gọi điện, hẹn phỏng vấn"},
        headers=hr_headers,
    )
    assert response.status_code == 200
    notes = response.json()["data"]["notes"]
    assert len(notes) == 1
    assert notes[0]["content"] == "Đã gọi điện, hẹn phỏng vấn"
    assert notes[0]["author"]["id"] == hr.id
    # 备注不改变状态
    assert response.json()["data"]["status"] == "new"

    # 2. 空内容
    response = await client.post(
        f"/api/leads/{lead['leadId']}/notes", json={"content": "   "}, headers=hr_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_convert_lead(client: AsyncClient, factory: DataFactory, hr_headers: dict, db_session):
    """转换：创建候选人用户并标记线索；再次转换返回 400"""
    lead = await factory.submit_lead(email="convert.me@gmail.com")
    lead_id = lead["leadId"]

    # 1. 转换
    response = await client.post(f"/api/leads/{lead_id}/convert", headers=hr_headers)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["email"] == "convert.me@gmail.com"
    assert data["leadId"] == lead_id
    assert len(data["tempPassword"]) >= 6

    # 2. 线索已标记
    response = await client.get(f"/api/leads/{lead_id}", headers=hr_headers)
    detail = response.json()["data"]
    assert detail["status"] == "converted"
    assert detail["convertedToUser"]["id"] == data["userId"]
    assert detail["convertedAt"] is not None

    # 3. 新用户可以用临时密码登录
    await factory.login("convert.me@gmail.com", data["tempPassword"])

    # 4. 再次转换
    users_before = await _count(db_session, User)
    response = await client.post(f"/api/leads/{lead_id}/convert", headers=hr_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Lead đã được chuyển đổi thành user"
    assert await _count(db_session, User) == users_before

    # 5. 已转换线索状态不可再修改
    response = await client.put(f"/api/leads/{lead_id}", json={"status": "new"}, headers=hr_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_lead_admin_only(
    client: AsyncClient, factory: DataFactory, hr_headers: dict, admin_headers: dict
):
    lead = await factory.submit_lead()

    response = await client.delete(f"/api/leads/{lead['leadId']}", headers=hr_headers)
    assert response.status_code == 403

    response = await client.delete(f"/api/leads/{lead['leadId']}", headers=admin_headers)
    assert response.status_code == 200

    response = await client.get(f"/api/leads/{lead['leadId']}", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_lead_stats(client: AsyncClient, factory: DataFactory, hr_headers: dict):
    leads = [await factory.submit_lead() for _ in range(3)]
    await client.put(f"/api/leads/{leads[0]['leadId']}", json={"status": "qualified"}, headers=hr_headers)
    await client.post(f"/api/leads/{leads[1]['leadId']}/convert", headers=hr_headers)

    response = await client.get("/api/leads/stats", headers=hr_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["totalLeads"] == 3
    assert data["recentLeads"] == 3
    assert data["convertedLeads"] == 1
    assert data["byStatus"] == {
        "new": 1,
        "contacted": 0,
        "qualified": 1,
        "unqualified": 0,
        "converted": 1,
    }
