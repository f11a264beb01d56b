"""
Error Handlers - 全局异常处理和统一错误响应

提供统一的错误响应格式和全局异常捕获。
"""

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

from mailcode.core.errors import (
    AuthenticationError,
    ConfigurationError,
    MailConnectionError,
    ParseError,
    ReceiverError,
    ReceiverTimeoutError,
    RetrievalError,
)

logger = logging.getLogger(__name__)


class ErrorResponse:
    """统一错误响应格式"""

    def __init__(
        self,
        error_code: str,
        message: str,
        status_code: int,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        初始化错误响应

        Args:
            error_code: 错误代码（例如：AUTHENTICATION_FAILED, CONNECTION_FAILED）
            message: 用户友好的错误消息
            status_code: HTTP 状态码
            details: 可选的详细信息
        """
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        response = {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "status": self.status_code,
            }
        }

        if self.details:
            response["error"]["details"] = self.details

        return response


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    处理 HTTPException 异常

    Args:
        request: FastAPI 请求对象
        exc: 异常实例

    Returns:
        JSONResponse: 统一格式的错误响应
    """
    status_code = getattr(exc, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR)
    detail = getattr(exc, "detail", str(exc))

    # 根据状态码映射错误代码
    error_code_map = {
        400: "INVALID_REQUEST",
        401: "AUTHENTICATION_FAILED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        409: "CONFLICT",
        500: "INTERNAL_SERVER_ERROR",
        503: "SERVICE_UNAVAILABLE",
    }

    error_code = error_code_map.get(status_code, "UNKNOWN_ERROR")

    if status_code >= 500:
        logger.error(
            f"HTTP {status_code} error: {detail}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": status_code,
            },
        )
    else:
        logger.warning(
            f"HTTP {status_code} error: {detail}",
            extra={
                "path": request.url.path,
                "method": request.method,
            },
        )

    error_response = ErrorResponse(
        error_code=error_code,
        message=detail,
        status_code=status_code,
    )

    return JSONResponse(
        status_code=status_code,
        content=error_response.to_dict(),
    )


async def receiver_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    处理邮件接收器异常（配置、连接、登录、收取失败）

    Args:
        request: FastAPI 请求对象
        exc: ReceiverError 异常实例

    Returns:
        JSONResponse: 统一格式的错误响应
    """
    details: Dict[str, Any] = {"exception_type": type(exc).__name__}

    if isinstance(exc, ConfigurationError):
        # 不允许的端口等配置错误
        error_code = "CONFIGURATION_ERROR"
        final_status = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, AuthenticationError):
        # 邮箱登录被拒绝（不返回密码）
        error_code = "AUTHENTICATION_FAILED"
        final_status = status.HTTP_401_UNAUTHORIZED
        details["email"] = exc.email
    elif isinstance(exc, MailConnectionError):
        # 网络 / DNS / TLS 错误
        error_code = "CONNECTION_FAILED"
        final_status = status.HTTP_502_BAD_GATEWAY
        details["server"] = exc.server
        details["port"] = exc.port
    elif isinstance(exc, ReceiverTimeoutError):
        error_code = "CONNECTION_TIMEOUT"
        final_status = status.HTTP_504_GATEWAY_TIMEOUT
    elif isinstance(exc, RetrievalError):
        error_code = "RETRIEVAL_FAILED"
        final_status = status.HTTP_502_BAD_GATEWAY
    elif isinstance(exc, ParseError):
        error_code = "PARSE_ERROR"
        final_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        error_code = "RECEIVER_ERROR"
        final_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    logger.warning(
        f"Receiver error: {exc}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__,
        },
    )

    error_response = ErrorResponse(
        error_code=error_code,
        message=str(exc),
        status_code=final_status,
        details=details,
    )

    return JSONResponse(
        status_code=final_status,
        content=error_response.to_dict(),
    )


async def storage_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    处理账号文件读写异常

    Args:
        request: FastAPI 请求对象
        exc: StorageError 异常实例

    Returns:
        JSONResponse: 统一格式的错误响应
    """
    logger.error(
        f"Storage error: {exc}",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    error_response = ErrorResponse(
        error_code="STORAGE_ERROR",
        message=str(exc),
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.to_dict(),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    处理未预期的一般异常

    Args:
        request: FastAPI 请求对象
        exc: 异常实例

    Returns:
        JSONResponse: 统一格式的错误响应
    """
    exc_traceback = "".join(
        traceback.format_exception(type(exc), exc, exc.__traceback__)
    )

    logger.error(
        f"Unhandled exception: {exc}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__,
            "traceback": exc_traceback,
        },
    )

    # 不暴露内部错误细节
    error_response = ErrorResponse(
        error_code="INTERNAL_SERVER_ERROR",
        message="An unexpected error occurred. Please try again later.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        details={
            "exception_type": type(exc).__name__,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.to_dict(),
    )


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    处理 Pydantic 验证异常

    Args:
        request: FastAPI 请求对象
        exc: ValidationError 异常

    Returns:
        JSONResponse: 统一格式的错误响应
    """
    errors = []
    if hasattr(exc, "errors"):
        for error in exc.errors():
            errors.append(
                {
                    "field": ".".join(str(loc) for loc in error["loc"]),
                    "message": error["msg"],
                    "type": error["type"],
                }
            )

    logger.warning(
        f"Validation error: {errors}",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    error_response = ErrorResponse(
        error_code="VALIDATION_ERROR",
        message="Request validation failed",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        details={"errors": errors},
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response.to_dict(),
    )
