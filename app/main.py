"""
FastAPI 主应用入口

海防招聘线索管理系统后端
"""
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.routing import APIRoute
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from loguru import logger
from starlette.exceptions import HTTPException

from app.core.config import settings
from app.core.cors import OriginMatcher
from app.core.database import init_db, close_db
from app.core.rate_limit import build_rate_limiters
from app.core.response import success_response, DictResponse
from app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    general_exception_handler,
)
from app.models.base import utcnow
from app.services.zalo import ZaloClient
from app.api import api_router

VERSION = "1.0.0"


def custom_generate_unique_id(route: APIRoute) -> str:
    """
    自定义 OpenAPI operationId 生成函数

    使用路由函数名作为 operationId，生成更简短的 API 名称
    """
    return route.name


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理

    启动时初始化数据库，关闭时释放连接
    """
    logger.info(f"启动应用: {settings.app_name}")
    logger.info(f"环境: {settings.app_env}")
    logger.info(f"Zalo 凭据: {'已配置' if settings.zalo_configured else '未配置'}")

    await init_db()
    logger.info("数据库初始化完成")

    yield

    await close_db()
    logger.info("应用已关闭")


async def log_requests(request: Request, call_next):
    """开发环境请求日志"""
    start = time.perf_counter()
    response = await call_next(request)
    elapsed = (time.perf_counter() - start) * 1000
    logger.debug(
        f"{request.method} {request.url.path} -> {response.status_code} ({elapsed:.1f}ms)"
    )
    return response


def create_app() -> FastAPI:
    """
    创建 FastAPI 应用实例

    限流器、Zalo 客户端和启动时间挂在 app.state 上，每个应用实例独立
    """
    app = FastAPI(
        title=settings.app_name,
        description="招聘线索收集、跟进与转换 API",
        version=VERSION,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        generate_unique_id_function=custom_generate_unique_id,
    )

    app.state.started_at = time.monotonic()
    app.state.rate_limiters = build_rate_limiters(settings) if settings.rate_limit_enabled else {}
    app.state.zalo_client = ZaloClient.from_settings(settings)

    # 注册异常处理器
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # 注册路由
    app.include_router(api_router, prefix="/api")

    # 健康检查
    @app.get("/health", tags=["系统"], response_model=DictResponse)
    async def health_check(request: Request):
        """健康检查接口"""
        return success_response(
            data={
                "status": "healthy",
                "uptime": round(time.monotonic() - request.app.state.started_at, 3),
                "timestamp": utcnow().isoformat(),
                "environment": settings.app_env,
            },
            message="Server is running"
        )

    # 根路径
    @app.get("/", tags=["系统"], response_model=DictResponse)
    async def root():
        """API 根路径"""
        return success_response(data={
            "name": settings.app_name,
            "version": VERSION,
            "docs": "/docs" if settings.debug else None,
            "endpoints": {
                "leads": "/api/leads",
                "users": "/api/users",
                "auth": "/api/auth",
                "zalo": "/api/zalo",
                "health": "/health",
            },
        })

    if settings.is_development:
        app.middleware("http")(log_requests)

    # 配置 CORS（必须放在最后添加，这样它会最先执行）
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=OriginMatcher(settings.allowed_origins).to_regex(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    return app


# 创建应用实例
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="127.0.0.1",
        port=8000,
        reload=settings.debug,
    )
