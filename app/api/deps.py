"""
API 依赖模块

认证、角色校验、Zalo 手机号提取器
"""
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import ForbiddenException, UnauthorizedException
from app.core.security import decode_access_token, is_allowed
from app.crud import user_crud
from app.models.user import Role, User
from app.services.zalo import PhoneExtractor


def _extract_token(request: Request) -> Optional[str]:
    """优先读取 Authorization: Bearer，其次读取 token Cookie"""
    authorization = request.headers.get("Authorization", "")
    if authorization.startswith("Bearer "):
        token = authorization[len("Bearer "):].strip()
        if token:
            return token
    return request.cookies.get("token") or None


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    解析并校验访问令牌，返回当前用户

    Raises:
        UnauthorizedException: NO_TOKEN / TOKEN_EXPIRED / INVALID_TOKEN /
            USER_NOT_FOUND / USER_INACTIVE
    """
    token = _extract_token(request)
    if not token:
        raise UnauthorizedException(
            "Không có quyền truy cập, vui lòng đăng nhập", code="NO_TOKEN"
        )

    payload = decode_access_token(token)
    user = await user_crud.get(db, str(payload["id"]))
    if not user:
        raise UnauthorizedException(
            "Token không hợp lệ, user không tồn tại", code="USER_NOT_FOUND"
        )
    if not user.is_active:
        raise UnauthorizedException("Tài khoản đã bị vô hiệu hóa", code="USER_INACTIVE")
    return user


def require_roles(*roles: Role):
    """
    角色校验依赖工厂（先认证，再校验角色）

    使用方式:
        @router.get("", dependencies=[Depends(require_roles(Role.HR, Role.ADMIN))])
    """
    allowed = {r.value for r in roles}

    async def dependency(user: User = Depends(get_current_user)) -> User:
        if not is_allowed(user.role, allowed):
            raise ForbiddenException(
                f"User role {user.role} không có quyền truy cập tài nguyên này"
            )
        return user

    return dependency


require_staff = require_roles(Role.HR, Role.ADMIN)
require_admin = require_roles(Role.ADMIN)


def get_phone_extractor(request: Request) -> PhoneExtractor:
    """使用 app.state 上的 Zalo 客户端构造提取器"""
    return PhoneExtractor(request.app.state.zalo_client)
