"""
测试配置文件

提供测试用的 fixtures：内存数据库、测试客户端、测试数据工厂等
"""
import os

# 必须在导入 app 之前设置，Settings 在导入时读取环境变量
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("API_RATE_LIMIT", "10000")
os.environ.setdefault("AUTH_RATE_LIMIT", "10000")
os.environ.setdefault("LEAD_RATE_LIMIT", "10000")
os.environ.setdefault("ZALO_APP_ID", "")
os.environ.setdefault("ZALO_APP_SECRET", "")

from typing import AsyncGenerator
from dataclasses import dataclass, field

import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, enable_sqlite_foreign_keys, get_db
from app.core.security import create_access_token, hash_password
from app.crud import user_crud
from app.main import create_app
from app.models.user import Role, User

DEFAULT_PASSWORD = "secret123"


# ========== 测试数据工厂 ==========

@dataclass
class DataFactory:
    """
    测试数据工厂类

    集中管理测试数据创建，避免各测试文件重复代码
    字段变更时只需修改此处
    """
    client: AsyncClient
    db: AsyncSession
    _counter: int = field(default=0, repr=False)

    def _next_id(self) -> str:
        """生成唯一后缀，避免数据冲突"""
        self._counter += 1
        return str(self._counter)

    def lead_payload(self, **overrides) -> dict:
        """公开表单提交的线索数据"""
        suffix = self._next_id()
        return {
            "name": f"Nguyen Van {suffix}",
            "phone": f"09{suffix.zfill(8)}",
            "email": f"candidate{suffix}@gmail.com",
            "birthYear": 1998,
            "qualification": "university",
            "country": "japan",
            "message": "Tôi muốn đi làm việc tại Nhật Bản",
            **overrides
        }

    async def submit_lead(self, **overrides) -> dict:
        """提交线索，返回响应中的 data"""
        resp = await self.client.post("/api/leads", json=self.lead_payload(**overrides))
        assert resp.status_code == 201, f"提交线索失败: {resp.text}"
        return resp.json()["data"]

    async def create_user(
        self,
        role: Role = Role.HR,
        password: str = DEFAULT_PASSWORD,
        is_active: bool = True,
        **overrides
    ) -> User:
        """直接写库创建用户（绕过仅管理员可用的注册接口）"""
        suffix = self._next_id()
        data = {
            "name": f"Staff {suffix}",
            "email": f"staff{suffix}@company.vn",
            "password_hash": hash_password(password),
            "role": role.value,
            "is_active": is_active,
            **overrides
        }
        user = await user_crud.create(self.db, obj_in=data)
        await self.db.commit()
        return user

    def auth_headers(self, user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    async def login(self, email: str, password: str = DEFAULT_PASSWORD) -> dict:
        """通过登录接口获取令牌，返回请求头"""
        resp = await self.client.post("/api/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, f"登录失败: {resp.text}"
        return {"Authorization": f"Bearer {resp.json()['data']['token']}"}


# 使用内存 SQLite 作为测试数据库（StaticPool 保证所有连接共享同一个库）
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(test_engine)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    为每个测试函数提供独立的数据库会话

    每个测试前创建表，测试后删除表，确保测试隔离
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def app(db_session: AsyncSession) -> AsyncGenerator[FastAPI, None]:
    """
    测试用应用实例

    覆盖 get_db 依赖，使用测试数据库；测试可替换 app.state 上的限流器和 Zalo 客户端
    """
    application = create_app()

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """提供测试用的 HTTP 客户端"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def factory(client: AsyncClient, db_session: AsyncSession) -> DataFactory:
    """提供测试数据工厂实例"""
    return DataFactory(client=client, db=db_session)


@pytest_asyncio.fixture
async def admin(factory: DataFactory) -> User:
    return await factory.create_user(role=Role.ADMIN, name="Admin")


@pytest_asyncio.fixture
async def hr(factory: DataFactory) -> User:
    return await factory.create_user(role=Role.HR, name="HR Staff")


@pytest_asyncio.fixture
async def admin_headers(factory: DataFactory, admin: User) -> dict:
    return factory.auth_headers(admin)


@pytest_asyncio.fixture
async def hr_headers(factory: DataFactory, hr: User) -> dict:
    return factory.auth_headers(hr)
