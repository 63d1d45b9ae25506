"""
线索 API 路由
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_admin, require_staff
from app.core.database import get_db
from app.core.rate_limit import client_ip, rate_limit
from app.core.response import (
    success_response,
    paged_response,
    ResponseModel,
    PagedResponseModel,
    MessageResponse,
)
from app.crud import lead_crud
from app.models.lead import LeadPriority, LeadStatus
from app.models.user import User
from app.schemas.lead import (
    ConversionResponse,
    LeadCreate,
    LeadCreatedResponse,
    LeadListResponse,
    LeadNoteCreate,
    LeadResponse,
    LeadStatsResponse,
    LeadUpdate,
)
from app.services import lead as lead_service

router = APIRouter()


@router.post(
    "",
    summary="提交线索（公开表单）",
    status_code=201,
    response_model=ResponseModel[LeadCreatedResponse],
    dependencies=[Depends(rate_limit("lead", "Quá nhiều đăng ký từ IP này, vui lòng thử lại sau 1 phút"))],
)
async def create_lead(
    data: LeadCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """
    提交线索

    手机号或邮箱已存在时返回 400，并在 data 中给出已有线索的 leadId 和 status
    """
    lead = await lead_service.submit_lead(
        db,
        data,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    response = LeadCreatedResponse(
        lead_id=lead.id,
        name=lead.name,
        phone=lead.phone,
        email=lead.email,
        status=lead.status,
        created_at=lead.created_at,
    )
    return success_response(data=response.to_response(), message="Tạo lead thành công")


@router.get("", summary="获取线索列表", response_model=PagedResponseModel[LeadListResponse])
async def get_leads(
    page: int = Query(1, ge=1, description="页码"),
    limit: int = Query(10, ge=1, le=100, description="每页数量"),
    status: Optional[LeadStatus] = Query(None, description="状态筛选"),
    priority: Optional[LeadPriority] = Query(None, description="优先级筛选"),
    assigned_to: Optional[str] = Query(None, alias="assignedTo", description="负责 HR 筛选"),
    search: Optional[str] = Query(None, max_length=100, description="姓名 / 手机号 / 邮箱"),
    sort_by: str = Query("createdAt", alias="sortBy", description="排序字段"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$", description="排序方向"),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_staff),
):
    """获取线索列表，支持筛选、搜索和排序"""
    leads, total = await lead_crud.get_list(
        db,
        skip=(page - 1) * limit,
        limit=limit,
        status=status.value if status else None,
        priority=priority.value if priority else None,
        assigned_to=assigned_to,
        search=search.strip() if search else None,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    items = [LeadListResponse.model_validate(lead).to_response() for lead in leads]
    return paged_response(items, total, page, limit)


@router.get("/stats", summary="线索统计", response_model=ResponseModel[LeadStatsResponse])
async def get_lead_stats(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_staff),
):
    """按状态计数、近 7 天新增、已转换总数"""
    stats = await lead_service.get_stats(db)
    return success_response(data=LeadStatsResponse(**stats).to_response())


@router.get("/{lead_id}", summary="获取线索详情", response_model=ResponseModel[LeadResponse])
async def get_lead(
    lead_id: str,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_staff),
):
    lead = await lead_service.get_lead_or_404(db, lead_id)
    return success_response(data=LeadResponse.model_validate(lead).to_response())


@router.put("/{lead_id}", summary="更新线索", response_model=ResponseModel[LeadResponse])
async def update_lead(
    lead_id: str,
    data: LeadUpdate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_staff),
):
    """部分更新线索；不能通过此接口设置 converted 状态"""
    lead = await lead_service.get_lead_or_404(db, lead_id)
    lead = await lead_service.update_lead(db, lead, data)
    return success_response(
        data=LeadResponse.model_validate(lead).to_response(),
        message="Cập nhật lead thành công"
    )


@router.delete("/{lead_id}", summary="删除线索", response_model=MessageResponse)
async def delete_lead(
    lead_id: str,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    """删除线索（仅管理员）"""
    await lead_service.get_lead_or_404(db, lead_id)
    await lead_crud.delete(db, id=lead_id)
    return success_response(message="Xóa lead thành công")


@router.post(
    "/{lead_id}/convert",
    summary="线索转换为用户",
    status_code=201,
    response_model=ResponseModel[ConversionResponse],
)
async def convert_lead(
    lead_id: str,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_staff),
):
    """
    将线索转换为候选人账号

    已转换的线索返回 400，不会创建第二个用户
    """
    lead = await lead_service.get_lead_or_404(db, lead_id)
    user, temp_password = await lead_service.convert_to_user(db, lead)
    response = ConversionResponse(
        user_id=user.id,
        email=user.email,
        temp_password=temp_password,
        lead_id=lead.id,
    )
    return success_response(
        data=response.to_response(),
        message="Chuyển đổi lead thành user thành công"
    )


@router.post("/{lead_id}/notes", summary="添加备注", response_model=ResponseModel[LeadResponse])
async def add_note(
    lead_id: str,
    data: LeadNoteCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    lead = await lead_service.get_lead_or_404(db, lead_id)
    lead = await lead_service.add_note(db, lead, data.content, current_user)
    return success_response(
        data=LeadResponse.model_validate(lead).to_response(),
        message="Thêm ghi chú thành công"
    )
