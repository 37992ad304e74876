"""
数据库模型模块
导出所有表模型和枚举类型
"""

# 用户域模型
from .user import User, UserRole

# 会话域模型
from .chat import Chat, canonical_pair
from .message import Message

# 基础模型
from .base import TimestampModel, CreatedAtModel, utc_now

# 定义导出的内容
__all__ = [
    # 用户域
    "User", "UserRole",
    # 会话域
    "Chat", "canonical_pair",
    "Message",
    # 基础模型
    "TimestampModel", "CreatedAtModel", "utc_now"
]
