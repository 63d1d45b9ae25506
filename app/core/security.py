"""
安全工具模块

密码哈希 (bcrypt)、JWT 签发与校验、重置令牌、角色判定
"""
import hashlib
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from .config import settings
from .exceptions import UnauthorizedException


# ========== 密码 ==========

def hash_password(password: str) -> str:
    """使用 bcrypt 生成带盐哈希"""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    """校验密码，哈希为空或格式错误时返回 False"""
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# 用户不存在时也执行一次 bcrypt 校验，避免通过响应时间枚举邮箱
_DUMMY_HASH = bcrypt.hashpw(b"dummy-password", bcrypt.gensalt(rounds=settings.bcrypt_rounds)).decode("utf-8")


def dummy_verify(password: str) -> None:
    verify_password(password, _DUMMY_HASH)


def generate_password(length: int = 10) -> str:
    """生成随机临时密码（字母 + 数字）"""
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


# ========== 重置密码令牌 ==========

def generate_reset_token() -> str:
    """生成一次性重置令牌（明文，仅返回给用户）"""
    return secrets.token_urlsafe(32)


def hash_reset_token(token: str) -> str:
    """数据库中只保存令牌的 SHA-256"""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


# ========== JWT ==========

def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """签发访问令牌，载荷包含用户 ID"""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=settings.jwt_expire_days)
    )
    payload = {"id": user_id, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    解析访问令牌

    Raises:
        UnauthorizedException: 令牌过期 (TOKEN_EXPIRED) 或无效 (INVALID_TOKEN)
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise UnauthorizedException(
            "Token đã hết hạn, vui lòng đăng nhập lại", code="TOKEN_EXPIRED"
        )
    except JWTError:
        raise UnauthorizedException("Token không hợp lệ", code="INVALID_TOKEN")

    if not payload.get("id"):
        raise UnauthorizedException("Token không hợp lệ", code="INVALID_TOKEN")
    return payload


# ========== 角色 ==========

def is_allowed(role: str, required: Iterable[str]) -> bool:
    """角色是否属于允许集合（接受枚举或字符串）"""
    role = getattr(role, "value", role)
    return role in {getattr(r, "value", r) for r in required}
