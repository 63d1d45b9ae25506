"""
用户管理 API 路由
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_admin, require_staff
from app.core.database import get_db
from app.core.response import (
    success_response,
    paged_response,
    ResponseModel,
    PagedResponseModel,
    MessageResponse,
    DictResponse,
)
from app.crud import lead_crud, user_crud
from app.models.user import Role, User
from app.schemas.user import (
    LeadBrief,
    PasswordSet,
    UserCreate,
    UserCreatedResponse,
    UserResponse,
    UserStatsResponse,
    UserUpdate,
    UserWithLeadResponse,
)
from app.services import user as user_service

router = APIRouter()


@router.get("", summary="获取用户列表", response_model=PagedResponseModel[UserResponse])
async def get_users(
    page: int = Query(1, ge=1, description="页码"),
    limit: int = Query(10, ge=1, le=100, description="每页数量"),
    role: Optional[Role] = Query(None, description="角色筛选"),
    is_active: Optional[bool] = Query(None, alias="isActive", description="启用状态筛选"),
    search: Optional[str] = Query(None, max_length=100, description="姓名 / 邮箱 / 手机号"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_staff),
):
    users, total = await user_crud.get_list(
        db,
        skip=(page - 1) * limit,
        limit=limit,
        role=role.value if role else None,
        is_active=is_active,
        search=search.strip() if search else None,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    items = [UserResponse.model_validate(u).to_response() for u in users]
    return paged_response(items, total, page, limit)


@router.get("/stats", summary="用户统计", response_model=ResponseModel[UserStatsResponse])
async def get_user_stats(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_staff),
):
    """总数、启用数、近 30 天新增、按角色分布"""
    stats = await user_crud.get_stats(db)
    return success_response(data=UserStatsResponse(**stats).to_response())


@router.get("/hr/{hr_id}", summary="获取 HR 负责的候选人", response_model=PagedResponseModel[UserWithLeadResponse])
async def get_users_by_hr(
    hr_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_staff),
):
    """由分配给该 HR 的线索转换而来的用户"""
    users, total = await user_crud.get_by_hr(db, hr_id, skip=(page - 1) * limit, limit=limit)

    items = []
    for u in users:
        item = UserWithLeadResponse.model_validate(u)
        if u.lead_id:
            lead = await lead_crud.get(db, u.lead_id)
            if lead:
                item.lead = LeadBrief.model_validate(lead)
        items.append(item.to_response())
    return paged_response(items, total, page, limit)


@router.get("/{user_id}", summary="获取用户详情", response_model=ResponseModel[UserResponse])
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_staff),
):
    user = await user_service.get_user_or_404(db, user_id)
    return success_response(data=UserResponse.model_validate(user).to_response())


@router.post("", summary="创建用户", status_code=201, response_model=ResponseModel[UserCreatedResponse])
async def create_user(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    """
    创建用户（仅管理员）

    提供 leadId 时同时把该线索标记为已转换
    """
    user = await user_service.create_user(db, data)
    response = UserCreatedResponse(user_id=user.id, name=user.name, email=user.email, role=user.role)
    return success_response(data=response.to_response(), message="Tạo user thành công")


@router.put("/{user_id}", summary="更新用户", response_model=ResponseModel[UserResponse])
async def update_user(
    user_id: str,
    data: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """更新用户信息；修改角色需要管理员权限"""
    user = await user_service.get_user_or_404(db, user_id)
    user = await user_service.update_user(db, user, data, actor=current_user)
    return success_response(
        data=UserResponse.model_validate(user).to_response(),
        message="Cập nhật user thành công"
    )


@router.delete("/{user_id}", summary="删除用户", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    """删除用户（仅管理员，admin 账号不可删除）"""
    user = await user_service.get_user_or_404(db, user_id)
    await user_service.delete_user(db, user)
    return success_response(message="Xóa user thành công")


@router.put("/{user_id}/password", summary="设置用户密码", response_model=MessageResponse)
async def change_user_password(
    user_id: str,
    data: PasswordSet,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """设置用户密码；管理员账号只能由管理员修改"""
    user = await user_service.get_user_or_404(db, user_id)
    await user_service.set_user_password(db, user, data.new_password, actor=current_user)
    return success_response(message="Đổi mật khẩu thành công")


@router.put("/{user_id}/reset-password", summary="重置用户密码", response_model=DictResponse)
async def reset_user_password(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    """生成新的随机密码并返回（仅管理员）"""
    user = await user_service.get_user_or_404(db, user_id)
    new_password = await user_service.reset_user_password(db, user)
    return success_response(
        data={"newPassword": new_password},
        message="Reset mật khẩu thành công"
    )
