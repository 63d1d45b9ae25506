"""
数据库配置模块

使用 SQLAlchemy 2.0 异步模式，默认 SQLite (aiosqlite)
"""
from typing import AsyncGenerator

from loguru import logger
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from .config import BASE_DIR, settings


def enable_sqlite_foreign_keys(async_engine: AsyncEngine) -> None:
    """SQLite 默认不检查外键，每个连接打开 foreign_keys 以支持 ON DELETE"""
    if async_engine.dialect.name != "sqlite":
        return

    @event.listens_for(async_engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(settings.database_url, echo=False)
enable_sqlite_foreign_keys(engine)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """SQLAlchemy 模型基类"""
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    数据库会话依赖注入

    一个请求一个事务：正常结束时提交，出现异常时回滚，
    因此 service 层抛出的业务异常会撤销同一请求内的所有写入。
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db():
    """创建数据目录和所有表"""
    from app import models  # noqa: F401

    if engine.dialect.name == "sqlite":
        (BASE_DIR / "data").mkdir(parents=True, exist_ok=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.debug(f"数据表: {', '.join(sorted(Base.metadata.tables))}")


async def close_db():
    """关闭数据库连接"""
    await engine.dispose()
