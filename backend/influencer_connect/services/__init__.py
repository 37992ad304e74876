"""
服务层模块
提供业务逻辑的抽象层：用户搜索、会话解析、消息收发与订阅
"""

from .search_service import UserSearchService, score_user
from .chat_service import ChatResolutionService
from .message_service import MessageService, MessageSubscription, SubscriptionMode, SubscriptionState
from .user_service import UserService
from .results import (
    ChatResolution,
    ChatSummary,
    MessageListResult,
    MessageView,
    RankedUser,
    SearchResult,
    SendResult,
    SenderInfo,
)

__all__ = [
    "UserSearchService",
    "score_user",
    "ChatResolutionService",
    "MessageService",
    "MessageSubscription",
    "SubscriptionMode",
    "SubscriptionState",
    "UserService",
    "ChatResolution",
    "ChatSummary",
    "MessageListResult",
    "MessageView",
    "RankedUser",
    "SearchResult",
    "SendResult",
    "SenderInfo"
]
