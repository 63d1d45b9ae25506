"""
线索生命周期服务

提交去重、状态流转、备注、转换为用户
"""
from typing import Optional, Tuple, Union

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AlreadyConvertedException,
    BadRequestException,
    ConflictException,
    DuplicateLeadException,
    DuplicateResourceException,
    NotFoundException,
)
from app.core.security import generate_password, hash_password
from app.crud import lead_crud, user_crud
from app.models.lead import Lead, LeadSource, can_transition
from app.models.user import Role, STAFF_ROLES, User
from app.schemas.lead import LeadCreate, LeadUpdate
from app.schemas.zalo import ZaloLeadCreate

# 允许通过更新显式清空的字段
CLEARABLE_FIELDS = frozenset({"assigned_to_id", "message", "birth_year", "additional_info"})


async def get_lead_or_404(db: AsyncSession, lead_id: str) -> Lead:
    lead = await lead_crud.get(db, lead_id)
    if not lead:
        raise NotFoundException("Không tìm thấy lead")
    return lead


async def _raise_duplicate(db: AsyncSession, phone: str, email: str):
    existing = await lead_crud.find_duplicate(db, phone=phone, email=email)
    if existing:
        raise DuplicateLeadException(existing.id, existing.status)


async def submit_lead(
    db: AsyncSession,
    data: Union[LeadCreate, ZaloLeadCreate],
    *,
    source: Optional[str] = None,
    zalo_info: Optional[dict] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Lead:
    """
    提交线索

    手机号或邮箱已存在时抛出 DuplicateLeadException（携带已有线索的 ID 和状态），
    不创建新记录。并发插入触发唯一约束时同样转换为该异常。

    Args:
        source: 来源渠道，默认取请求中的 source，否则为 website
        ip_address / user_agent: 由请求上下文提供，优先于请求体
    """
    await _raise_duplicate(db, data.phone, data.email)

    payload = data.model_dump(
        mode="json",
        include={"name", "phone", "email", "birth_year", "qualification", "country", "message"},
    )
    payload["source"] = source or getattr(data, "source", None) or LeadSource.WEBSITE.value
    payload["zalo_info"] = zalo_info if zalo_info is not None else getattr(data, "zalo_info", None)
    payload["ip_address"] = ip_address or getattr(data, "ip_address", None)
    payload["user_agent"] = user_agent or getattr(data, "user_agent", None)
    if isinstance(payload["source"], LeadSource):
        payload["source"] = payload["source"].value

    try:
        lead = await lead_crud.create(db, obj_in=payload)
    except IntegrityError:
        # 并发提交：唯一索引兜底
        await db.rollback()
        logger.warning(f"Lead 唯一约束冲突: phone={data.phone}")
        await _raise_duplicate(db, data.phone, data.email)
        raise

    logger.info(f"创建 Lead: id={lead.id}, source={lead.source}")
    return lead


async def _check_assignee(db: AsyncSession, user_id: str) -> User:
    user = await user_crud.get(db, user_id)
    if not user or not user.is_active or user.role not in STAFF_ROLES:
        raise BadRequestException("Người được phân công phải là HR hoặc admin đang hoạt động")
    return user


async def update_lead(db: AsyncSession, lead: Lead, patch: LeadUpdate) -> Lead:
    """
    部分更新线索

    - 不能通过更新把状态设为 converted
    - 已转换的线索状态不可再修改
    - 手机号 / 邮箱不能与其他线索重复
    - assignedTo、message 等可选字段显式传 null 时清空
    """
    data = patch.model_dump(mode="json", exclude_unset=True)

    status = data.get("status")
    if status and not can_transition(lead.status, status):
        raise ConflictException(
            f"Không thể chuyển trạng thái từ '{lead.status}' sang '{status}'"
        )

    if data.get("phone") and data["phone"] != lead.phone:
        other = await lead_crud.get_by_phone(db, data["phone"])
        if other and other.id != lead.id:
            raise DuplicateResourceException("Số điện thoại đã được sử dụng bởi lead khác")
    if data.get("email") and data["email"] != lead.email:
        other = await lead_crud.get_by_email(db, data["email"])
        if other and other.id != lead.id:
            raise DuplicateResourceException("Email đã được sử dụng bởi lead khác")

    if "assigned_to" in data:
        assignee_id = data.pop("assigned_to")
        if assignee_id:
            await _check_assignee(db, assignee_id)
        data["assigned_to_id"] = assignee_id or None

    try:
        lead = await lead_crud.update(db, db_obj=lead, obj_in=data, clear_fields=CLEARABLE_FIELDS)
    except IntegrityError:
        await db.rollback()
        raise DuplicateResourceException("Số điện thoại hoặc email đã tồn tại")

    logger.info(f"更新 Lead: id={lead.id}, fields={sorted(data)}")
    return lead


async def add_note(db: AsyncSession, lead: Lead, content: str, author: Optional[User]) -> Lead:
    """追加备注，内容不能为空"""
    content = (content or "").strip()
    if not content:
        raise BadRequestException("Nội dung ghi chú không được để trống")
    await lead_crud.add_note(db, lead=lead, content=content, author=author)
    return lead


def _profile_from_lead(lead: Lead) -> dict:
    """从线索复制候选人档案"""
    info = lead.additional_info or {}
    return {
        "name": lead.name,
        "email": lead.email,
        "phone": lead.phone,
        "birth_year": lead.birth_year,
        "qualification": lead.qualification,
        "country": lead.country,
        "experience": info.get("experience") or "",
        "skills": info.get("skills") or [],
        "expected_salary": info.get("expected_salary"),
        "available_date": info.get("available_date"),
        "preferred_location": info.get("preferred_location"),
        "language_skills": info.get("language_skills") or [],
    }


async def link_conversion(db: AsyncSession, lead: Lead, user: User) -> Lead:
    """
    条件更新线索为已转换

    与用户插入处于同一事务；条件更新失败时抛出 AlreadyConvertedException，
    由调用方（get_db）回滚，用户记录不会留下。
    """
    if not await lead_crud.mark_converted(db, lead_id=lead.id, user_id=user.id):
        logger.warning(f"Lead 已被并发转换: id={lead.id}")
        raise AlreadyConvertedException()
    await db.refresh(lead)
    return lead


async def ensure_not_converted(db: AsyncSession, lead: Lead) -> None:
    """从数据库重新读取线索，已被转换时抛出 AlreadyConvertedException"""
    await db.refresh(lead)
    if lead.is_converted:
        logger.warning(f"Lead 已被并发转换: id={lead.id}")
        raise AlreadyConvertedException()


async def create_user_for_lead(db: AsyncSession, lead: Lead, user_data: dict) -> User:
    """
    插入转换产生的用户

    邮箱唯一约束冲突时回滚并重新读取线索：线索已转换说明输给了并发转换，
    抛出 AlreadyConvertedException，否则为普通的邮箱重复。
    """
    try:
        return await user_crud.create(db, obj_in=user_data)
    except IntegrityError:
        await db.rollback()
        await ensure_not_converted(db, lead)
        raise DuplicateResourceException("User đã tồn tại với email này")


async def convert_to_user(db: AsyncSession, lead: Lead) -> Tuple[User, str]:
    """
    将线索转换为候选人用户

    Returns:
        (新用户, 临时密码)
    """
    if lead.is_converted:
        raise AlreadyConvertedException()
    if await user_crud.get_by_email(db, lead.email):
        await ensure_not_converted(db, lead)
        raise DuplicateResourceException("User đã tồn tại với email này")

    temp_password = generate_password()
    user_data = _profile_from_lead(lead)
    user_data.update(
        password_hash=hash_password(temp_password),
        role=Role.CANDIDATE.value,
        lead_id=lead.id,
    )
    user = await create_user_for_lead(db, lead, user_data)
    await link_conversion(db, lead, user)

    logger.info(f"Lead 转换为 User: lead={lead.id}, user={user.id}")
    return user, temp_password


async def get_stats(db: AsyncSession) -> dict:
    """线索统计（近 7 天新增）"""
    return await lead_crud.get_stats(db, days=7)
