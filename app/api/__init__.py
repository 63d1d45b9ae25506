"""
API 路由模块
"""
from fastapi import APIRouter, Depends

from app.core.rate_limit import rate_limit
from .v1 import leads, users, auth, zalo

# 创建主路由（所有 /api 请求按 IP 计入通用限流）
api_router = APIRouter(
    dependencies=[Depends(rate_limit("api", "Quá nhiều yêu cầu từ IP này, vui lòng thử lại sau 15 phút"))]
)

# 注册各模块路由
api_router.include_router(
    leads.router,
    prefix="/leads",
    tags=["线索管理"]
)
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["用户管理"]
)
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["认证"]
)
api_router.include_router(
    zalo.router,
    prefix="/zalo",
    tags=["Zalo 集成"]
)
