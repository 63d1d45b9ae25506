"""
用户模型模块

HR、管理员和由线索转换而来的候选人共用一张表，通过 role 区分
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel


class Role(str, Enum):
    """用户角色枚举"""
    ADMIN = "admin"
    HR = "hr"
    CANDIDATE = "candidate"


STAFF_ROLES = (Role.ADMIN.value, Role.HR.value)


class LanguageLevel(str, Enum):
    """语言水平枚举"""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    NATIVE = "native"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class User(BaseModel):
    """
    用户模型

    password_hash 只写不读，任何响应模型都不包含该字段
    """
    __tablename__ = "users"

    # ========== 基本信息 ==========
    name: Mapped[str] = mapped_column(String(100), nullable=False, comment="姓名")
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="邮箱（小写）"
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False, comment="bcrypt 密码哈希")
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, index=True, comment="手机号")
    birth_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="出生年份")

    # ========== 权限 ==========
    role: Mapped[str] = mapped_column(
        String(20),
        default=Role.CANDIDATE.value,
        index=True,
        comment="角色"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True, comment="是否启用")

    # ========== 候选人档案 ==========
    qualification: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment="学历")
    country: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment="意向国家")
    experience: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="工作经历")
    skills: Mapped[Optional[list]] = mapped_column(JSON, nullable=True, comment="技能列表")
    expected_salary: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="期望薪资")
    available_date: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment="可入职日期 (YYYY-MM-DD)")
    preferred_location: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, comment="期望工作地点")
    language_skills: Mapped[Optional[list]] = mapped_column(JSON, nullable=True, comment="语言能力 [{language, level}]")

    # ========== 补充信息 ==========
    avatar: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, comment="头像地址")
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, comment="地址")
    nationality: Mapped[Optional[str]] = mapped_column(String(50), default="Vietnamese", comment="国籍")
    gender: Mapped[Optional[str]] = mapped_column(String(10), nullable=True, comment="性别")

    # 来源线索（不建外键，避免 leads/users 循环依赖）
    lead_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True, comment="来源线索ID")

    # ========== 安全信息 ==========
    reset_password_token: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, index=True, comment="重置令牌 SHA-256"
    )
    reset_password_expires: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="重置令牌过期时间"
    )
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, comment="最后登录时间")
    login_count: Mapped[int] = mapped_column(Integer, default=0, comment="登录次数")

    @property
    def age(self) -> Optional[int]:
        if self.birth_year:
            return datetime.now().year - self.birth_year
        return None

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
