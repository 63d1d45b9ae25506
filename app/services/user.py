"""
用户管理服务
"""
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AlreadyConvertedException,
    BadRequestException,
    ConflictException,
    DuplicateResourceException,
    ForbiddenException,
    NotFoundException,
)
from app.core.security import generate_password, hash_password
from app.crud import lead_crud, user_crud
from app.models.user import Role, User
from app.schemas.user import ProfileUpdate, UserCreate, UserUpdate
from .auth import set_password
from .lead import create_user_for_lead, ensure_not_converted, link_conversion


async def get_user_or_404(db: AsyncSession, user_id: str) -> User:
    user = await user_crud.get(db, user_id)
    if not user:
        raise NotFoundException("Không tìm thấy user")
    return user


async def create_user(db: AsyncSession, data: UserCreate) -> User:
    """
    管理员创建用户

    提供 lead_id 时同时完成线索转换（条件更新保护）
    """
    lead = None
    if data.lead_id:
        lead = await lead_crud.get(db, data.lead_id)
        if not lead:
            raise BadRequestException("Lead không tồn tại")
        if lead.is_converted:
            raise AlreadyConvertedException()

    if await user_crud.get_by_email(db, data.email):
        if lead is not None:
            await ensure_not_converted(db, lead)
        raise DuplicateResourceException("User đã tồn tại với email này")

    user_data = data.model_dump(mode="json", exclude={"password"}, exclude_none=True)
    user_data["password_hash"] = hash_password(data.password)
    if lead is not None:
        user = await create_user_for_lead(db, lead, user_data)
        await link_conversion(db, lead, user)
    else:
        user = await user_crud.create(db, obj_in=user_data)

    logger.info(f"创建 User: id={user.id}, role={user.role}, lead={data.lead_id}")
    return user


async def _check_email_free(db: AsyncSession, user: User, email: str):
    if email and email != user.email:
        other = await user_crud.get_by_email(db, email)
        if other and other.id != user.id:
            raise DuplicateResourceException("Email đã được sử dụng")


def _check_can_manage(actor: User, user: User):
    """非管理员不能修改管理员账号"""
    if user.role == Role.ADMIN.value and actor.role != Role.ADMIN.value:
        raise ForbiddenException("Chỉ admin mới có thể chỉnh sửa tài khoản admin")


async def update_user(db: AsyncSession, user: User, patch: UserUpdate, *, actor: User) -> User:
    """更新用户；只有管理员可以修改角色或管理员账号"""
    _check_can_manage(actor, user)
    data = patch.model_dump(mode="json", exclude_unset=True)

    if "role" in data and data["role"] is not None and data["role"] != user.role:
        if actor.role != Role.ADMIN.value:
            raise ForbiddenException("Chỉ admin mới có thể thay đổi vai trò")

    await _check_email_free(db, user, data.get("email"))
    user = await user_crud.update(db, db_obj=user, obj_in=data)
    logger.info(f"更新 User: id={user.id}, fields={sorted(data)}")
    return user


async def update_profile(db: AsyncSession, user: User, patch: ProfileUpdate) -> User:
    """更新个人资料（Schema 已排除密码、角色和启用状态）"""
    data = patch.model_dump(mode="json", exclude_unset=True)
    return await user_crud.update(db, db_obj=user, obj_in=data)


async def delete_user(db: AsyncSession, user: User) -> None:
    """删除用户：admin 账号和由线索转换而来的用户不可删除"""
    if user.role == Role.ADMIN.value:
        raise BadRequestException("Không thể xóa user admin")
    if await lead_crud.get_by_converted_user(db, user.id):
        raise ConflictException("Không thể xóa user đã được chuyển đổi từ lead")

    await lead_crud.unassign_user(db, user.id)
    await user_crud.delete(db, id=user.id)
    logger.info(f"删除 User: id={user.id}")


async def set_user_password(db: AsyncSession, user: User, new_password: str, *, actor: User) -> User:
    """后台直接设置用户密码"""
    _check_can_manage(actor, user)
    await set_password(db, user, new_password)
    logger.info(f"设置用户密码: user={user.id}, by={actor.id}")
    return user


async def reset_user_password(db: AsyncSession, user: User) -> str:
    """管理员重置密码，返回新生成的密码"""
    new_password = generate_password()
    await set_password(db, user, new_password)
    logger.info(f"管理员重置密码: user={user.id}")
    return new_password
