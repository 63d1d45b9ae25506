"""
用户相关 Schema

所有响应模型都不包含密码相关字段
"""
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import EmailStr, Field, field_validator

from app.models.lead import Country, Qualification
from app.models.user import Gender, Role

from .base import PHONE_PATTERN, BaseSchema, TimestampSchema, check_birth_year, lower_email
from .lead import LanguageSkill

MIN_PASSWORD_LENGTH = 6


class CandidateProfile(BaseSchema):
    """候选人档案字段"""

    qualification: Optional[Qualification] = None
    country: Optional[Country] = None
    experience: Optional[str] = Field(None, max_length=1000)
    skills: Optional[List[str]] = None
    expected_salary: Optional[int] = Field(None, ge=0)
    available_date: Optional[date] = None
    preferred_location: Optional[str] = Field(None, max_length=200)
    language_skills: Optional[List[LanguageSkill]] = None
    avatar: Optional[str] = Field(None, max_length=500)
    address: Optional[str] = Field(None, max_length=500)
    nationality: Optional[str] = Field(None, max_length=50)
    gender: Optional[Gender] = None


class UserCreate(CandidateProfile):
    """管理员创建用户请求"""

    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)
    phone: Optional[str] = Field(None, max_length=20, pattern=PHONE_PATTERN)
    birth_year: Optional[int] = None
    role: Role = Role.CANDIDATE
    lead_id: Optional[str] = Field(None, description="来源线索ID，提供时执行转换")

    @field_validator("birth_year")
    @classmethod
    def validate_birth_year(cls, v):
        return check_birth_year(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return lower_email(v)


class UserUpdate(CandidateProfile):
    """更新用户请求（不能修改密码）"""

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20, pattern=PHONE_PATTERN)
    birth_year: Optional[int] = None
    role: Optional[Role] = None
    is_active: Optional[bool] = None

    @field_validator("birth_year")
    @classmethod
    def validate_birth_year(cls, v):
        return check_birth_year(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return lower_email(v)


class ProfileUpdate(CandidateProfile):
    """个人资料更新（不能修改密码、角色和启用状态）"""

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, max_length=20, pattern=PHONE_PATTERN)
    birth_year: Optional[int] = None

    @field_validator("birth_year")
    @classmethod
    def validate_birth_year(cls, v):
        return check_birth_year(v)


class PasswordSet(BaseSchema):
    """管理员直接设置密码"""

    new_password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)


class LeadBrief(BaseSchema):
    """来源线索简要信息"""

    id: str
    name: str
    phone: str
    email: str
    status: str
    created_at: datetime


class UserResponse(TimestampSchema):
    """用户响应"""

    name: str
    email: str
    phone: Optional[str] = None
    birth_year: Optional[int] = None
    age: Optional[int] = None
    role: str
    is_active: bool
    qualification: Optional[str] = None
    country: Optional[str] = None
    experience: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    expected_salary: Optional[int] = None
    available_date: Optional[str] = None
    preferred_location: Optional[str] = None
    language_skills: List[LanguageSkill] = Field(default_factory=list)
    avatar: Optional[str] = None
    address: Optional[str] = None
    nationality: Optional[str] = None
    gender: Optional[str] = None
    lead_id: Optional[str] = None
    last_login: Optional[datetime] = None
    login_count: int = 0

    @field_validator("skills", "language_skills", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return v or []


class UserCreatedResponse(BaseSchema):
    """创建用户成功响应"""

    user_id: str
    name: str
    email: str
    role: str


class UserStatsResponse(BaseSchema):
    """用户统计"""

    total_users: int
    active_users: int
    recent_users: int = Field(..., description="近 30 天新增")
    by_role: Dict[str, int]


class UserWithLeadResponse(UserResponse):
    """带来源线索信息的用户响应"""

    lead: Optional[LeadBrief] = None
