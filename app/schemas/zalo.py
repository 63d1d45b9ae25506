"""
Zalo 集成相关 Schema
"""
from typing import Optional

from pydantic import Field

from .base import BaseSchema
from .lead import LeadBase


class ZaloUserInfoRequest(BaseSchema):
    """Zalo Mini App 获取到的用户数据"""

    zalo_data: Optional[dict] = None
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None


class ZaloTokenRequest(BaseSchema):
    """getPhoneNumber() 返回的令牌"""

    token: Optional[str] = None
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None


class ZaloLeadCreate(LeadBase):
    """从 Zalo Mini App 创建线索"""

    zalo_data: Optional[dict] = None
    user_agent: Optional[str] = Field(None, max_length=500)
    ip_address: Optional[str] = Field(None, max_length=64)


class ExistingLeadBrief(BaseSchema):
    id: str
    name: str
    email: str
    status: str
