"""
CRUD 基类模块

封装通用的增删改查，具体模型继承后补充业务查询
"""
from typing import Any, Dict, Generic, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel as PydanticModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import BaseModel

ModelType = TypeVar("ModelType", bound=BaseModel)


class CRUDBase(Generic[ModelType]):
    """
    CRUD 基类

    所有写操作只 flush 不 commit，事务由 get_db 依赖统一提交或回滚
    """

    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(self, db: AsyncSession, id: str) -> Optional[ModelType]:
        """根据 ID 获取单条记录"""
        result = await db.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def get_multi(
        self,
        db: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 100,
        order_by: Any = None
    ) -> List[ModelType]:
        """获取多条记录（分页）"""
        query = select(self.model)
        if order_by is not None:
            query = query.order_by(order_by)
        else:
            query = query.order_by(self.model.created_at.desc())
        query = query.offset(skip).limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def count(self, db: AsyncSession, *filters) -> int:
        """获取记录数（可带过滤条件）"""
        query = select(func.count()).select_from(self.model)
        if filters:
            query = query.where(*filters)
        result = await db.execute(query)
        return result.scalar() or 0

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: PydanticModel | Dict[str, Any]
    ) -> ModelType:
        """创建记录"""
        if isinstance(obj_in, dict):
            data = obj_in
        else:
            data = obj_in.model_dump(mode="json")

        db_obj = self.model(**data)
        db.add(db_obj)
        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: PydanticModel | Dict[str, Any],
        clear_fields: Iterable[str] = ()
    ) -> ModelType:
        """
        更新记录

        支持传入 Schema 或 dict，值为 None 的字段不更新；
        clear_fields 中的字段显式传入 None 时置空
        """
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            update_data = obj_in.model_dump(mode="json", exclude_unset=True)

        for field, value in update_data.items():
            if value is not None or field in clear_fields:
                setattr(db_obj, field, value)

        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def delete(self, db: AsyncSession, *, id: str) -> bool:
        """删除记录"""
        obj = await self.get(db, id)
        if obj:
            await db.delete(obj)
            await db.flush()
            return True
        return False
