"""
认证 API 路由
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, require_admin
from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import TooManyRequestsException, UnauthorizedException
from app.core.rate_limit import client_ip, get_limiter
from app.core.response import (
    success_response,
    ResponseModel,
    MessageResponse,
)
from app.models.user import User
from app.schemas.auth import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
)
from app.schemas.user import ProfileUpdate, UserResponse
from app.core.security import create_access_token
from app.services import auth as auth_service
from app.services import user as user_service

router = APIRouter()

LOGIN_LIMIT_MESSAGE = "Quá nhiều lần đăng nhập thất bại, vui lòng thử lại sau 15 phút"


@router.post("/register", summary="注册后台账号", status_code=201, response_model=ResponseModel[TokenResponse])
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    """创建 HR / 管理员账号（仅管理员）"""
    user = await auth_service.register(db, data)
    response = TokenResponse(
        token=create_access_token(user.id),
        user=UserResponse.model_validate(user),
    )
    return success_response(data=response.to_response(), message="Đăng ký thành công")


@router.post("/login", summary="登录", response_model=ResponseModel[TokenResponse])
async def login(
    data: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """
    邮箱密码登录

    同一 IP 在窗口期内失败次数超限后返回 429，成功登录不计数
    """
    limiter = get_limiter(request, "auth")
    key = client_ip(request)
    if limiter is not None and not limiter.check(key):
        raise TooManyRequestsException(LOGIN_LIMIT_MESSAGE, retry_after=limiter.retry_after(key))

    try:
        user, token = await auth_service.login(db, data.email, data.password)
    except UnauthorizedException:
        if limiter is not None:
            limiter.hit(key)
        raise

    response = TokenResponse(token=token, user=UserResponse.model_validate(user))
    return success_response(data=response.to_response(), message="Đăng nhập thành công")


@router.get("/profile", summary="获取个人资料", response_model=ResponseModel[UserResponse])
async def get_profile(current_user: User = Depends(get_current_user)):
    return success_response(data=UserResponse.model_validate(current_user).to_response())


@router.put("/profile", summary="更新个人资料", response_model=ResponseModel[UserResponse])
async def update_profile(
    data: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """更新个人资料（不能修改密码、角色和启用状态）"""
    user = await user_service.update_profile(db, current_user, data)
    return success_response(
        data=UserResponse.model_validate(user).to_response(),
        message="Cập nhật profile thành công"
    )


@router.put("/change-password", summary="修改密码", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await auth_service.change_password(db, current_user, data.current_password, data.new_password)
    return success_response(message="Đổi mật khẩu thành công")


@router.post("/forgot-password", summary="忘记密码", response_model=ResponseModel[ForgotPasswordResponse])
async def forgot_password(
    data: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    生成重置令牌

    邮箱是否存在都返回相同响应；开发环境下在 data.resetToken 中回显令牌
    """
    token = await auth_service.forgot_password(db, data.email)
    response = ForgotPasswordResponse(reset_token=token if settings.is_development else None)
    return success_response(
        data=response.to_response(),
        message="Nếu email tồn tại, mã reset mật khẩu đã được gửi đến email của bạn"
    )


@router.post("/reset-password", summary="重置密码", response_model=MessageResponse)
async def reset_password(
    data: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    await auth_service.reset_password(db, data.token, data.new_password)
    return success_response(message="Reset mật khẩu thành công")


@router.post("/logout", summary="登出", response_model=MessageResponse)
async def logout(_: User = Depends(get_current_user)):
    """令牌无服务端状态，客户端删除令牌即可"""
    return success_response(message="Đăng xuất thành công")
