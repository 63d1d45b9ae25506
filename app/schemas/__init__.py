"""
Pydantic Schemas 模块

定义 API 请求/响应的数据验证模型
"""
from .base import BaseSchema, TimestampSchema
from .lead import (
    LanguageSkill,
    AdditionalInfo,
    LeadCreate,
    LeadUpdate,
    LeadNoteCreate,
    LeadResponse,
    LeadListResponse,
    LeadCreatedResponse,
    ConversionResponse,
    LeadStatsResponse,
    UserBrief,
)
from .user import (
    UserCreate,
    UserUpdate,
    ProfileUpdate,
    PasswordSet,
    UserResponse,
    UserCreatedResponse,
    LeadBrief,
    UserStatsResponse,
    UserWithLeadResponse,
)
from .auth import (
    LoginRequest,
    RegisterRequest,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    TokenResponse,
    ForgotPasswordResponse,
)
from .zalo import (
    ZaloUserInfoRequest,
    ZaloTokenRequest,
    ZaloLeadCreate,
    ExistingLeadBrief,
)

__all__ = [
    # Base
    "BaseSchema",
    "TimestampSchema",
    # Lead
    "LanguageSkill",
    "AdditionalInfo",
    "LeadCreate",
    "LeadUpdate",
    "LeadNoteCreate",
    "LeadResponse",
    "LeadListResponse",
    "LeadCreatedResponse",
    "ConversionResponse",
    "LeadStatsResponse",
    "UserBrief",
    # User
    "UserCreate",
    "UserUpdate",
    "ProfileUpdate",
    "PasswordSet",
    "UserResponse",
    "UserCreatedResponse",
    "LeadBrief",
    "UserStatsResponse",
    "UserWithLeadResponse",
    # Auth
    "LoginRequest",
    "RegisterRequest",
    "ChangePasswordRequest",
    "ForgotPasswordRequest",
    "ResetPasswordRequest",
    "TokenResponse",
    "ForgotPasswordResponse",
    # Zalo
    "ZaloUserInfoRequest",
    "ZaloTokenRequest",
    "ZaloLeadCreate",
    "ExistingLeadBrief",
]
