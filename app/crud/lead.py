"""
线索 CRUD 操作
"""
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import utcnow
from app.models.lead import Lead, LeadNote, LeadStatus
from app.models.user import User
from .base import CRUDBase

# 允许排序的字段（同时接受 camelCase）
SORT_FIELDS = {
    "createdAt": "created_at",
    "created_at": "created_at",
    "updatedAt": "updated_at",
    "updated_at": "updated_at",
    "name": "name",
    "email": "email",
    "status": "status",
    "priority": "priority",
    "birthYear": "birth_year",
    "birth_year": "birth_year",
}


class CRUDLead(CRUDBase[Lead]):
    """线索 CRUD 操作类"""

    async def find_duplicate(
        self,
        db: AsyncSession,
        *,
        phone: str,
        email: str
    ) -> Optional[Lead]:
        """按手机号或邮箱查找已有线索"""
        result = await db.execute(
            select(self.model)
            .where(or_(self.model.phone == phone, self.model.email == email))
            .order_by(self.model.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_by_phone(self, db: AsyncSession, phone: str) -> Optional[Lead]:
        result = await db.execute(
            select(self.model).where(self.model.phone == phone)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[Lead]:
        result = await db.execute(
            select(self.model).where(self.model.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_list(
        self,
        db: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 10,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        assigned_to: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc"
    ) -> Tuple[List[Lead], int]:
        """
        分页查询线索

        search 对姓名、手机号、邮箱做不区分大小写的子串匹配
        """
        filters = []
        if status:
            filters.append(self.model.status == status)
        if priority:
            filters.append(self.model.priority == priority)
        if assigned_to:
            filters.append(self.model.assigned_to_id == assigned_to)
        if search:
            filters.append(or_(
                self.model.name.icontains(search, autoescape=True),
                self.model.phone.icontains(search, autoescape=True),
                self.model.email.icontains(search, autoescape=True),
            ))

        column = getattr(self.model, SORT_FIELDS.get(sort_by, "created_at"))
        order = column.asc() if sort_order == "asc" else column.desc()

        query = select(self.model).where(*filters).order_by(order).offset(skip).limit(limit)
        result = await db.execute(query)
        items = list(result.scalars().all())
        total = await self.count(db, *filters)
        return items, total

    async def add_note(
        self,
        db: AsyncSession,
        *,
        lead: Lead,
        content: str,
        author: Optional[User] = None
    ) -> LeadNote:
        """追加备注（不修改线索状态）"""
        note = LeadNote(content=content, author=author)
        lead.notes.append(note)
        await db.flush()
        await db.refresh(lead)
        return note

    async def mark_converted(
        self,
        db: AsyncSession,
        *,
        lead_id: str,
        user_id: str
    ) -> bool:
        """
        条件更新：仅当线索未转换（状态不是 converted 且 converted_to_user_id 为空）时标记

        Returns:
            是否更新成功（False 表示已被其他请求转换）
        """
        result = await db.execute(
            update(self.model)
            .where(
                self.model.id == lead_id,
                self.model.converted_to_user_id.is_(None),
                self.model.status != LeadStatus.CONVERTED.value,
            )
            .values(
                status=LeadStatus.CONVERTED.value,
                converted_to_user_id=user_id,
                converted_at=utcnow(),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def count_by_status(self, db: AsyncSession) -> Dict[str, int]:
        """按状态分组计数"""
        result = await db.execute(
            select(self.model.status, func.count())
            .group_by(self.model.status)
        )
        return {status: count for status, count in result.all()}

    async def count_since(self, db: AsyncSession, since: datetime) -> int:
        return await self.count(db, self.model.created_at >= since)

    async def get_stats(self, db: AsyncSession, *, days: int = 7) -> dict:
        """线索统计：总数、近 N 天新增、已转换、按状态分布"""
        by_status = await self.count_by_status(db)
        return {
            "total_leads": sum(by_status.values()),
            "recent_leads": await self.count_since(db, utcnow() - timedelta(days=days)),
            "converted_leads": by_status.get(LeadStatus.CONVERTED.value, 0),
            "by_status": {s.value: by_status.get(s.value, 0) for s in LeadStatus},
        }

    async def get_by_converted_user(self, db: AsyncSession, user_id: str) -> Optional[Lead]:
        result = await db.execute(
            select(self.model).where(self.model.converted_to_user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def unassign_user(self, db: AsyncSession, user_id: str) -> None:
        """用户删除前解除其负责的线索"""
        await db.execute(
            update(self.model)
            .where(self.model.assigned_to_id == user_id)
            .values(assigned_to_id=None)
        )


lead_crud = CRUDLead(Lead)
