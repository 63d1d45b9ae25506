"""
线索模型模块

Lead 是招聘表单提交的候选人线索，HR 跟进后可转换为用户账号
"""
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel

if TYPE_CHECKING:
    from .user import User


class LeadStatus(str, Enum):
    """线索状态枚举"""
    NEW = "new"                      # 新提交
    CONTACTED = "contacted"          # 已联系
    QUALIFIED = "qualified"          # 合格
    UNQUALIFIED = "unqualified"      # 不合格
    CONVERTED = "converted"          # 已转换为用户（终态）


class LeadPriority(str, Enum):
    """线索优先级枚举"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class LeadSource(str, Enum):
    """线索来源枚举"""
    WEBSITE = "website"
    ZALO = "zalo"
    FACEBOOK = "facebook"
    REFERRAL = "referral"
    OTHER = "other"


class Qualification(str, Enum):
    """学历枚举"""
    HIGH_SCHOOL = "high_school"
    COLLEGE = "college"
    UNIVERSITY = "university"
    POSTGRADUATE = "postgraduate"


class Country(str, Enum):
    """意向国家枚举"""
    VIETNAM = "vietnam"
    GERMANY = "germany"
    JAPAN = "japan"
    ALL = "all"


def can_transition(current: str, target: str) -> bool:
    """
    状态流转规则

    converted 只能通过转换操作进入，且进入后不可再变更；
    其余状态之间可以自由切换。
    """
    if current == LeadStatus.CONVERTED.value:
        return current == target
    return target != LeadStatus.CONVERTED.value


class Lead(BaseModel):
    """
    线索模型

    关联关系:
    - N:1 -> User (assigned_to, 负责的 HR)
    - 1:1 -> User (converted_to_user, 转换后的用户)
    - 1:N -> LeadNote (跟进备注)
    """
    __tablename__ = "leads"

    # ========== 基本信息 ==========
    name: Mapped[str] = mapped_column(String(100), nullable=False, comment="姓名")
    phone: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        index=True,
        comment="手机号"
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="邮箱（小写）"
    )
    birth_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="出生年份")
    qualification: Mapped[str] = mapped_column(String(20), nullable=False, comment="学历")
    country: Mapped[str] = mapped_column(String(20), nullable=False, comment="意向国家")
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="留言")

    # ========== 来源信息 ==========
    source: Mapped[str] = mapped_column(
        String(20),
        default=LeadSource.WEBSITE.value,
        index=True,
        comment="来源渠道"
    )
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, comment="提交IP")
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, comment="User-Agent")
    zalo_info: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True, comment="Zalo 原始数据与令牌")
    additional_info: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True, comment="HR 补充的候选人信息")

    # ========== 跟进状态 ==========
    status: Mapped[str] = mapped_column(
        String(20),
        default=LeadStatus.NEW.value,
        index=True,
        comment="线索状态"
    )
    priority: Mapped[str] = mapped_column(
        String(20),
        default=LeadPriority.MEDIUM.value,
        comment="优先级"
    )
    assigned_to_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="负责 HR 的用户ID"
    )

    # ========== 转换信息 ==========
    converted_to_user_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=True,
        unique=True,
        comment="转换后的用户ID"
    )
    converted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="转换时间"
    )

    # ========== 关联关系 ==========
    assigned_to: Mapped[Optional["User"]] = relationship(
        "User",
        foreign_keys=[assigned_to_id],
        lazy="selectin"
    )
    converted_to_user: Mapped[Optional["User"]] = relationship(
        "User",
        foreign_keys=[converted_to_user_id],
        lazy="selectin"
    )
    notes: Mapped[List["LeadNote"]] = relationship(
        "LeadNote",
        back_populates="lead",
        order_by="LeadNote.created_at",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    @property
    def is_converted(self) -> bool:
        """状态或关联任一表明已转换即视为已转换"""
        return self.status == LeadStatus.CONVERTED.value or self.converted_to_user_id is not None

    @property
    def age(self) -> Optional[int]:
        if self.birth_year:
            return datetime.now().year - self.birth_year
        return None

    def __repr__(self) -> str:
        return f"<Lead(id={self.id}, phone={self.phone}, status={self.status})>"


class LeadNote(BaseModel):
    """线索跟进备注（只追加）"""
    __tablename__ = "lead_notes"

    lead_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("leads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="线索ID"
    )
    content: Mapped[str] = mapped_column(Text, nullable=False, comment="备注内容")
    author_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="创建人ID"
    )

    lead: Mapped["Lead"] = relationship("Lead", back_populates="notes")
    author: Mapped[Optional["User"]] = relationship("User", lazy="selectin")

    def __repr__(self) -> str:
        return f"<LeadNote(id={self.id}, lead_id={self.lead_id})>"
