"""
统一响应模块

定义标准 API 响应格式
"""
from typing import Any, Generic, Optional, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class ResponseModel(BaseModel, Generic[T]):
    """
    统一响应模型

    示例:
        {
            "success": true,
            "message": "Thành công",
            "data": {...}
        }
    """
    success: bool = True
    message: str = "Thành công"
    data: Optional[T] = None


class Pagination(BaseModel):
    """分页信息"""
    current: int
    pages: int
    total: int
    limit: int


class PagedData(BaseModel, Generic[T]):
    """分页数据模型"""
    items: list[T]
    pagination: Pagination


class PagedResponseModel(ResponseModel[PagedData[T]], Generic[T]):
    """分页响应模型"""
    pass


class MessageResponse(BaseModel):
    """仅包含消息的响应"""
    success: bool = True
    message: str


DictResponse = ResponseModel[dict]


def success_response(
    data: Any = None,
    message: str = "Thành công",
) -> dict:
    """成功响应"""
    content = {
        "success": True,
        "message": message,
    }
    if data is not None:
        content["data"] = data
    return content


def error_response(
    message: str = "Thao tác thất bại",
    data: Any = None,
    error: Optional[str] = None,
    code: Optional[str] = None,
) -> dict:
    """
    错误响应

    code 为机器可读的错误码（如 TOKEN_EXPIRED），error 为调试信息（仅开发环境）
    """
    content = {
        "success": False,
        "message": message,
    }
    if data is not None:
        content["data"] = data
    if error is not None:
        content["error"] = error
    if code is not None:
        content["code"] = code
    return content


def paged_response(
    items: list,
    total: int,
    page: int,
    limit: int,
    message: str = "Thành công"
) -> dict:
    """分页响应"""
    pages = (total + limit - 1) // limit if limit > 0 else 0
    return success_response(
        data={
            "items": items,
            "pagination": {
                "current": page,
                "pages": pages,
                "total": total,
                "limit": limit,
            }
        },
        message=message
    )
