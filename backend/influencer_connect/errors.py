"""
错误类型模块
定义服务层使用的错误分类，以及数据库异常到错误分类的映射
"""

from enum import Enum
from typing import Optional

from sqlalchemy.exc import DisconnectionError, IntegrityError, InterfaceError, OperationalError


class ErrorKind(str, Enum):
    """错误分类枚举"""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONNECTIVITY = "connectivity"
    CONFLICT = "conflict"
    UNKNOWN = "unknown"


class ChatAppError(Exception):
    """所有业务错误的基类"""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class ValidationError(ChatAppError):
    """输入不合法（空内容、缺少 ID 等），调用方不应重试"""
    kind = ErrorKind.VALIDATION


class NotFoundError(ChatAppError):
    """会话或用户不存在"""
    kind = ErrorKind.NOT_FOUND


class ConnectivityError(ChatAppError):
    """存储不可达，可提示用户重试"""
    kind = ErrorKind.CONNECTIVITY


class ConflictError(ChatAppError):
    """唯一约束冲突（重复用户名、并发创建同一会话等）"""
    kind = ErrorKind.CONFLICT


def classify_db_error(exc: BaseException) -> ChatAppError:
    """
    将底层异常转换为业务错误

    已经是 ChatAppError 的异常原样返回

    Args:
        exc: 捕获到的异常

    Returns:
        对应分类的 ChatAppError
    """
    if isinstance(exc, ChatAppError):
        return exc
    if isinstance(exc, IntegrityError):
        return ConflictError(f"Integrity constraint violated: {exc.orig}", cause=exc)
    if isinstance(exc, (OperationalError, InterfaceError, DisconnectionError)):
        return ConnectivityError(f"Data store unavailable: {exc}", cause=exc)
    return ChatAppError(str(exc) or exc.__class__.__name__, cause=exc)
