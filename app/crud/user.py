"""
用户 CRUD 操作
"""
from datetime import timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import utcnow
from app.models.lead import Lead
from app.models.user import Role, User
from .base import CRUDBase

SORT_FIELDS = {
    "createdAt": "created_at",
    "created_at": "created_at",
    "updatedAt": "updated_at",
    "updated_at": "updated_at",
    "name": "name",
    "email": "email",
    "role": "role",
    "lastLogin": "last_login",
    "last_login": "last_login",
}


class CRUDUser(CRUDBase[User]):
    """用户 CRUD 操作类"""

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        """根据邮箱查找（邮箱统一小写）"""
        result = await db.execute(
            select(self.model).where(self.model.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_by_reset_token(self, db: AsyncSession, token_hash: str) -> Optional[User]:
        """根据重置令牌哈希查找，过期令牌视为不存在"""
        result = await db.execute(
            select(self.model).where(
                self.model.reset_password_token == token_hash,
                self.model.reset_password_expires > utcnow(),
            )
        )
        return result.scalar_one_or_none()

    async def get_list(
        self,
        db: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 10,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc"
    ) -> Tuple[List[User], int]:
        """分页查询用户"""
        filters = []
        if role:
            filters.append(self.model.role == role)
        if is_active is not None:
            filters.append(self.model.is_active == is_active)
        if search:
            filters.append(or_(
                self.model.name.icontains(search, autoescape=True),
                self.model.email.icontains(search, autoescape=True),
                self.model.phone.icontains(search, autoescape=True),
            ))

        column = getattr(self.model, SORT_FIELDS.get(sort_by, "created_at"))
        order = column.asc() if sort_order == "asc" else column.desc()

        result = await db.execute(
            select(self.model).where(*filters).order_by(order).offset(skip).limit(limit)
        )
        items = list(result.scalars().all())
        total = await self.count(db, *filters)
        return items, total

    async def get_by_hr(
        self,
        db: AsyncSession,
        hr_id: str,
        *,
        skip: int = 0,
        limit: int = 10
    ) -> Tuple[List[User], int]:
        """查询由某 HR 负责的线索转换而来的用户"""
        lead_ids = select(Lead.id).where(Lead.assigned_to_id == hr_id)
        condition = self.model.lead_id.in_(lead_ids)

        result = await db.execute(
            select(self.model)
            .where(condition)
            .order_by(self.model.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        items = list(result.scalars().all())
        total = await self.count(db, condition)
        return items, total

    async def count_by_role(self, db: AsyncSession) -> Dict[str, int]:
        result = await db.execute(
            select(self.model.role, func.count()).group_by(self.model.role)
        )
        return {role: count for role, count in result.all()}

    async def get_stats(self, db: AsyncSession, *, days: int = 30) -> dict:
        """用户统计：总数、启用数、近 N 天新增、按角色分布"""
        by_role = await self.count_by_role(db)
        return {
            "total_users": sum(by_role.values()),
            "active_users": await self.count(db, self.model.is_active.is_(True)),
            "recent_users": await self.count(
                db, self.model.created_at >= utcnow() - timedelta(days=days)
            ),
            "by_role": {r.value: by_role.get(r.value, 0) for r in Role},
        }


user_crud = CRUDUser(User)
