"""
认证相关 Schema
"""
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from app.models.user import Role

from .base import BaseSchema, lower_email
from .user import MIN_PASSWORD_LENGTH, UserResponse


class LoginRequest(BaseSchema):
    """登录请求"""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return lower_email(v)


class RegisterRequest(BaseSchema):
    """注册请求（仅管理员可用，默认创建 HR 账号）"""

    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)
    role: Role = Role.HR

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return lower_email(v)


class ChangePasswordRequest(BaseSchema):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)


class ForgotPasswordRequest(BaseSchema):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return lower_email(v)


class ResetPasswordRequest(BaseSchema):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)


class TokenResponse(BaseSchema):
    """登录 / 注册成功响应"""

    token: str
    user: UserResponse


class ForgotPasswordResponse(BaseSchema):
    """开发环境下回显重置令牌"""

    reset_token: Optional[str] = None
