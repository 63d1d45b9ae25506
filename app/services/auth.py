"""
认证服务

登录、注册、修改密码、找回密码
"""
from datetime import timedelta
from typing import Optional, Tuple

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    AccountDisabledException,
    BadRequestException,
    DuplicateResourceException,
    InvalidCredentialsException,
)
from app.core.security import (
    create_access_token,
    dummy_verify,
    generate_reset_token,
    hash_password,
    hash_reset_token,
    verify_password,
)
from app.crud import user_crud
from app.models.base import utcnow
from app.models.user import User
from app.schemas.auth import RegisterRequest


async def login(db: AsyncSession, email: str, password: str) -> Tuple[User, str]:
    """
    校验邮箱和密码并签发令牌

    邮箱不存在与密码错误返回相同的异常；账号停用时无论密码是否正确都拒绝。

    Returns:
        (用户, JWT)
    """
    user = await user_crud.get_by_email(db, email)
    if not user:
        dummy_verify(password)
        raise InvalidCredentialsException()

    if not user.is_active:
        raise AccountDisabledException()

    if not verify_password(password, user.password_hash):
        raise InvalidCredentialsException()

    user.login_count = (user.login_count or 0) + 1
    user.last_login = utcnow()
    await db.flush()
    await db.refresh(user)

    logger.info(f"用户登录: id={user.id}, role={user.role}")
    return user, create_access_token(user.id)


async def register(db: AsyncSession, data: RegisterRequest) -> User:
    """创建后台账号（默认 HR）"""
    if await user_crud.get_by_email(db, data.email):
        raise DuplicateResourceException("User đã tồn tại với email này")

    user = await user_crud.create(db, obj_in={
        "name": data.name,
        "email": data.email,
        "password_hash": hash_password(data.password),
        "role": data.role.value,
    })
    logger.info(f"注册用户: id={user.id}, role={user.role}")
    return user


async def set_password(db: AsyncSession, user: User, new_password: str) -> User:
    user.password_hash = hash_password(new_password)
    user.reset_password_token = None
    user.reset_password_expires = None
    await db.flush()
    return user


async def change_password(
    db: AsyncSession,
    user: User,
    current_password: str,
    new_password: str
) -> User:
    """修改密码（需校验当前密码）"""
    if not verify_password(current_password, user.password_hash):
        raise BadRequestException("Mật khẩu hiện tại không đúng")
    await set_password(db, user, new_password)
    logger.info(f"用户修改密码: id={user.id}")
    return user


async def forgot_password(db: AsyncSession, email: str) -> Optional[str]:
    """
    生成一次性重置令牌

    数据库只保存令牌哈希；邮箱不存在时返回 None，调用方应返回相同的响应。
    """
    user = await user_crud.get_by_email(db, email)
    if not user:
        logger.info("忘记密码请求: 邮箱不存在")
        return None

    token = generate_reset_token()
    user.reset_password_token = hash_reset_token(token)
    user.reset_password_expires = utcnow() + timedelta(minutes=settings.reset_token_expire_minutes)
    await db.flush()

    logger.info(f"生成重置令牌: user={user.id}")
    return token


async def reset_password(db: AsyncSession, token: str, new_password: str) -> User:
    """使用重置令牌设置新密码，令牌使用后失效"""
    user = await user_crud.get_by_reset_token(db, hash_reset_token(token))
    if not user:
        raise BadRequestException("Token không hợp lệ hoặc đã hết hạn")

    await set_password(db, user, new_password)
    logger.info(f"重置密码成功: user={user.id}")
    return user
