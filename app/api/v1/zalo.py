"""
Zalo Mini App 集成 API 路由（公开接口）
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_phone_extractor
from app.core.database import get_db
from app.core.exceptions import BadRequestException
from app.core.rate_limit import client_ip, rate_limit
from app.core.response import success_response, ResponseModel, DictResponse
from app.crud import lead_crud
from app.models.base import utcnow
from app.models.lead import LeadSource
from app.schemas.lead import LeadCreatedResponse
from app.schemas.zalo import ExistingLeadBrief, ZaloLeadCreate, ZaloTokenRequest, ZaloUserInfoRequest
from app.services import lead as lead_service
from app.services.zalo import PhoneExtractor, mask_token, extract_phone_from_payload, is_zalo_environment

router = APIRouter()


async def _existing_lead_response(db: AsyncSession, phone: str) -> Optional[dict]:
    """手机号已有线索时返回提示数据"""
    lead = await lead_crud.get_by_phone(db, phone)
    if not lead:
        return None
    return success_response(
        data={
            "phone": phone,
            "existingLead": ExistingLeadBrief.model_validate(lead).to_response(),
        },
        message="Đã tìm thấy lead với số điện thoại này"
    )


@router.get("/validate", summary="检测 Zalo 运行环境", response_model=DictResponse)
async def validate_environment(
    request: Request,
    user_agent: Optional[str] = Query(None, alias="userAgent"),
    url: Optional[str] = Query(None),
):
    user_agent = user_agent or request.headers.get("user-agent")
    return success_response(data={
        "isZaloEnvironment": is_zalo_environment(user_agent, url),
        "userAgent": user_agent,
        "url": url,
        "timestamp": utcnow().isoformat(),
    })


@router.get("/health", summary="Zalo 集成状态", response_model=DictResponse)
async def zalo_health(request: Request):
    """报告 Zalo 凭据是否已配置"""
    return success_response(data=request.app.state.zalo_client.get_status())


@router.post("/user-info", summary="从 Zalo 用户数据提取手机号", response_model=DictResponse)
async def get_user_info(
    data: ZaloUserInfoRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    从 Zalo 用户数据中提取手机号，用于预填表单

    手机号已有线索时返回已有线索的简要信息
    """
    zalo_data = data.zalo_data
    if not zalo_data:
        raise BadRequestException("Dữ liệu Zalo không hợp lệ")

    phone = extract_phone_from_payload(zalo_data)
    if not phone:
        raise BadRequestException(
            "Không tìm thấy số điện thoại trong dữ liệu Zalo",
            data={"availableFields": list(zalo_data.keys())},
        )

    existing = await _existing_lead_response(db, phone)
    if existing:
        return existing

    return success_response(
        data={
            "phone": phone,
            "zaloUserId": zalo_data.get("id") or zalo_data.get("userId") or zalo_data.get("zaloUserId"),
            "additionalInfo": {
                "name": zalo_data.get("name") or zalo_data.get("displayName") or zalo_data.get("fullName"),
                "avatar": zalo_data.get("avatar") or zalo_data.get("picture") or zalo_data.get("photoURL"),
            },
        },
        message="Lấy thông tin Zalo thành công"
    )


@router.post("/process-token", summary="解析 Zalo 手机号令牌", response_model=DictResponse)
async def process_token(
    data: ZaloTokenRequest,
    db: AsyncSession = Depends(get_db),
    extractor: PhoneExtractor = Depends(get_phone_extractor),
):
    """
    解析 getPhoneNumber() 返回的令牌

    无法解析时仍返回成功，phone 为 null
    """
    if not data.token:
        raise BadRequestException("Token không được cung cấp")

    phone = await extractor.extract(data.token)
    timestamp = utcnow().isoformat()

    if not phone:
        return success_response(
            data={
                "phone": None,
                "token": mask_token(data.token),
                "timestamp": timestamp,
            },
            message="Token được nhận nhưng cần token Zalo hợp lệ để lấy số điện thoại"
        )

    existing = await _existing_lead_response(db, phone)
    if existing:
        return existing

    return success_response(
        data={
            "phone": phone,
            "token": mask_token(data.token),
            "timestamp": timestamp,
        },
        message="Xử lý token Zalo thành công"
    )


@router.post(
    "/create-lead",
    summary="从 Zalo 创建线索",
    status_code=201,
    response_model=ResponseModel[LeadCreatedResponse],
    dependencies=[Depends(rate_limit("lead", "Quá nhiều đăng ký từ IP này, vui lòng thử lại sau 1 phút"))],
)
async def create_lead_from_zalo(
    data: ZaloLeadCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """创建来源为 zalo 的线索，保存 Zalo 原始数据和令牌"""
    zalo_data = data.zalo_data or {}
    zalo_info = {
        "phoneFromZalo": data.phone,
        "zaloUserId": zalo_data.get("id") or zalo_data.get("userId") or zalo_data.get("zaloUserId"),
        "zaloAccessToken": zalo_data.get("accessToken"),
        "zaloRefreshToken": zalo_data.get("refreshToken"),
        "zaloData": zalo_data,
    }
    lead = await lead_service.submit_lead(
        db,
        data,
        source=LeadSource.ZALO.value,
        zalo_info=zalo_info,
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
        zalo_info=lead.zalo_info,
    )
    return success_response(data=response.to_response(), message="Tạo lead từ Zalo thành công")
