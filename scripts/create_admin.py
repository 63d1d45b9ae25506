"""
创建首个管理员账号

/api/auth/register 仅管理员可调用，新部署需要先用本脚本创建管理员。

用法：
    python scripts/create_admin.py --email admin@company.vn --name "Admin" --password secret123
"""
import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from app.core.database import AsyncSessionLocal, init_db, close_db
from app.core.security import hash_password
from app.crud import user_crud
from app.models.user import Role
from app.schemas.user import MIN_PASSWORD_LENGTH


def parse_args():
    parser = argparse.ArgumentParser(description="创建管理员账号")
    parser.add_argument("--email", required=True, help="管理员邮箱")
    parser.add_argument("--name", default="Administrator", help="显示名称")
    parser.add_argument("--password", required=True, help=f"密码（至少 {MIN_PASSWORD_LENGTH} 位）")
    return parser.parse_args()


async def create_admin(email: str, name: str, password: str) -> bool:
    """创建管理员，邮箱已存在时不做修改"""
    await init_db()
    try:
        async with AsyncSessionLocal() as db:
            if await user_crud.get_by_email(db, email):
                logger.warning(f"邮箱已存在: {email}")
                return False

            user = await user_crud.create(db, obj_in={
                "name": name,
                "email": email.lower(),
                "password_hash": hash_password(password),
                "role": Role.ADMIN.value,
                "is_active": True,
            })
            await db.commit()
            logger.info(f"管理员已创建: {user.email} ({user.id})")
            return True
    finally:
        await close_db()


def main():
    args = parse_args()
    if len(args.password) < MIN_PASSWORD_LENGTH:
        logger.error(f"密码至少 {MIN_PASSWORD_LENGTH} 位")
        sys.exit(1)
    ok = asyncio.run(create_admin(args.email.strip(), args.name.strip(), args.password))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
