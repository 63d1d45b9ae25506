"""
异常处理模块

定义业务异常和全局异常处理器
"""
from typing import Optional

from fastapi import Request
from starlette.exceptions import HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from loguru import logger

from .config import settings
from .response import error_response


class AppException(Exception):
    """应用基础异常"""

    def __init__(
        self,
        message: str = "Lỗi máy chủ nội bộ",
        status_code: int = 500,
        data: dict = None,
        code: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.data = data
        self.code = code
        super().__init__(self.message)


class NotFoundException(AppException):
    """资源不存在异常"""

    def __init__(self, message: str = "Không tìm thấy tài nguyên"):
        super().__init__(message=message, status_code=404)


class BadRequestException(AppException):
    """请求参数错误异常"""

    def __init__(self, message: str = "Dữ liệu không hợp lệ", data: dict = None):
        super().__init__(message=message, status_code=400, data=data)


class DuplicateResourceException(BadRequestException):
    """资源重复异常（手机号 / 邮箱冲突）"""

    def __init__(self, message: str = "Dữ liệu đã tồn tại", data: dict = None):
        super().__init__(message=message, data=data)


class DuplicateLeadException(DuplicateResourceException):
    """线索已存在：返回已有线索的 ID 和状态"""

    def __init__(self, lead_id: str, status: str):
        super().__init__(
            message="Lead đã tồn tại với số điện thoại hoặc email này",
            data={"leadId": lead_id, "status": status},
        )


class ConflictException(BadRequestException):
    """状态冲突异常"""

    def __init__(self, message: str = "Xung đột trạng thái"):
        super().__init__(message=message)


class AlreadyConvertedException(ConflictException):
    """线索已转换为用户"""

    def __init__(self):
        super().__init__("Lead đã được chuyển đổi thành user")


class UnauthorizedException(AppException):
    """
    未认证异常

    code 区分原因: NO_TOKEN / TOKEN_EXPIRED / INVALID_TOKEN /
    USER_NOT_FOUND / USER_INACTIVE
    """

    def __init__(self, message: str = "Không có quyền truy cập, vui lòng đăng nhập", code: Optional[str] = None):
        super().__init__(message=message, status_code=401, code=code)


class InvalidCredentialsException(UnauthorizedException):
    """邮箱或密码错误（两种情况使用相同消息）"""

    def __init__(self):
        super().__init__("Email hoặc mật khẩu không đúng")


class AccountDisabledException(UnauthorizedException):
    """账号已停用"""

    def __init__(self):
        super().__init__("Tài khoản đã bị vô hiệu hóa", code="USER_INACTIVE")


class ForbiddenException(AppException):
    """无权限异常"""

    def __init__(self, message: str = "Không có quyền truy cập tài nguyên này"):
        super().__init__(message=message, status_code=403)


class TooManyRequestsException(AppException):
    """请求过于频繁"""

    def __init__(self, message: str = "Quá nhiều yêu cầu, vui lòng thử lại sau", retry_after: int = 0):
        super().__init__(message=message, status_code=429)
        self.retry_after = retry_after


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """应用异常处理器"""
    logger.warning(f"AppException: {exc.message} | Path: {request.url.path}")
    headers = None
    if isinstance(exc, TooManyRequestsException) and exc.retry_after:
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message=exc.message, data=exc.data, code=exc.code),
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """HTTP 异常处理器"""
    logger.warning(f"HTTPException: {exc.detail} | Path: {request.url.path}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message=str(exc.detail))
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """请求验证异常处理器"""
    errors = []
    for error in exc.errors():
        loc = [str(l) for l in error["loc"] if l != "body"]
        errors.append({
            "field": ".".join(loc),
            "message": error["msg"],
        })

    message = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
    logger.warning(f"ValidationError: {message} | Path: {request.url.path}")

    return JSONResponse(
        status_code=400,
        content=error_response(
            message="Dữ liệu không hợp lệ",
            data={"errors": errors}
        )
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """通用异常处理器（仅开发环境返回错误详情）"""
    logger.exception(f"Unhandled Exception: {exc} | Path: {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=error_response(
            message="Lỗi máy chủ nội bộ",
            error=str(exc) if settings.is_development else "Internal Server Error",
        )
    )
