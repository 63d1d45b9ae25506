"""
线索相关 Schema
"""
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import EmailStr, Field, field_validator

from app.models.lead import Country, LeadPriority, LeadSource, LeadStatus, Qualification
from app.models.user import LanguageLevel

from .base import PHONE_PATTERN, BaseSchema, TimestampSchema, check_birth_year, lower_email


class LanguageSkill(BaseSchema):
    """语言能力"""

    language: str = Field(..., min_length=1, max_length=50)
    level: LanguageLevel


class AdditionalInfo(BaseSchema):
    """HR 补充的候选人信息，转换时复制到用户档案"""

    experience: Optional[str] = Field(None, max_length=1000, description="工作经历")
    skills: List[str] = Field(default_factory=list, description="技能")
    expected_salary: Optional[int] = Field(None, ge=0, description="期望薪资")
    available_date: Optional[date] = Field(None, description="可入职日期")
    preferred_location: Optional[str] = Field(None, max_length=200, description="期望工作地点")
    language_skills: List[LanguageSkill] = Field(default_factory=list, description="语言能力")


class LeadBase(BaseSchema):
    """线索基础字段"""

    name: str = Field(..., min_length=2, max_length=100, description="姓名")
    phone: str = Field(..., min_length=10, max_length=15, pattern=PHONE_PATTERN, description="手机号")
    email: EmailStr = Field(..., description="邮箱")
    birth_year: Optional[int] = Field(None, description="出生年份")
    qualification: Qualification = Field(..., description="学历")
    country: Country = Field(..., description="意向国家")
    message: Optional[str] = Field(None, max_length=1000, description="留言")

    @field_validator("birth_year")
    @classmethod
    def validate_birth_year(cls, v):
        return check_birth_year(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return lower_email(v)


class LeadCreate(LeadBase):
    """公开表单提交线索"""

    source: LeadSource = Field(LeadSource.WEBSITE, description="来源渠道")
    zalo_info: Optional[dict] = Field(None, description="Zalo 数据")
    ip_address: Optional[str] = Field(None, max_length=64)
    user_agent: Optional[str] = Field(None, max_length=500)


class LeadUpdate(BaseSchema):
    """更新线索请求（仅应用提供的字段）"""

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, min_length=10, max_length=15, pattern=PHONE_PATTERN)
    email: Optional[EmailStr] = None
    birth_year: Optional[int] = None
    qualification: Optional[Qualification] = None
    country: Optional[Country] = None
    message: Optional[str] = Field(None, max_length=1000)
    source: Optional[LeadSource] = None
    status: Optional[LeadStatus] = None
    priority: Optional[LeadPriority] = None
    assigned_to: Optional[str] = Field(None, description="负责 HR 的用户ID")
    additional_info: Optional[AdditionalInfo] = None

    @field_validator("birth_year")
    @classmethod
    def validate_birth_year(cls, v):
        return check_birth_year(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return lower_email(v)


class LeadNoteCreate(BaseSchema):
    """添加备注请求"""

    content: str = Field(..., min_length=1, max_length=1000, description="备注内容")


class UserBrief(BaseSchema):
    """关联用户简要信息"""

    id: str
    name: str
    email: str


class LeadNoteResponse(BaseSchema):
    """备注响应"""

    id: str
    content: str
    created_at: datetime
    author: Optional[UserBrief] = None


class LeadResponse(TimestampSchema):
    """线索详情响应"""

    name: str
    phone: str
    email: str
    birth_year: Optional[int] = None
    age: Optional[int] = None
    qualification: str
    country: str
    message: Optional[str] = None
    source: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    zalo_info: Optional[dict] = None
    additional_info: Optional[AdditionalInfo] = None
    status: str
    priority: str
    assigned_to: Optional[UserBrief] = None
    converted_to_user: Optional[UserBrief] = None
    converted_at: Optional[datetime] = None
    notes: List[LeadNoteResponse] = Field(default_factory=list)


class LeadListResponse(TimestampSchema):
    """线索列表项响应（简化版）"""

    name: str
    phone: str
    email: str
    age: Optional[int] = None
    qualification: str
    country: str
    source: str
    status: str
    priority: str
    assigned_to: Optional[UserBrief] = None
    converted_to_user: Optional[UserBrief] = None


class LeadCreatedResponse(BaseSchema):
    """线索创建成功响应"""

    lead_id: str
    name: str
    phone: str
    email: str
    status: str
    created_at: datetime
    zalo_info: Optional[dict] = None


class ConversionResponse(BaseSchema):
    """线索转换结果"""

    user_id: str
    email: str
    temp_password: str
    lead_id: str


class LeadStatsResponse(BaseSchema):
    """线索统计"""

    total_leads: int
    recent_leads: int = Field(..., description="近 7 天新增")
    converted_leads: int
    by_status: Dict[str, int]
