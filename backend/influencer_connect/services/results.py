"""
服务层返回结构
写操作返回显式的成功/失败结构，读操作在结果中带上错误信息，
让调用方能区分“没有数据”和“查询失败”
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, InstanceOf

from influencer_connect.errors import ChatAppError, ErrorKind
from influencer_connect.models.chat import Chat
from influencer_connect.models.message import Message
from influencer_connect.models.user import User

UNKNOWN_SENDER_NAME = "Unknown User"


class SenderInfo(BaseModel):
    """消息发送者的展示信息"""
    id: int
    username: str = UNKNOWN_SENDER_NAME
    avatar: Optional[str] = None


class MessageView(BaseModel):
    """带发送者信息的消息"""
    id: int
    chat_id: int
    sender_id: int
    content: str
    created_at: datetime
    is_read: bool = False
    sender: SenderInfo

    @classmethod
    def from_message(cls, message: Message, sender: Optional[User] = None) -> "MessageView":
        if sender is not None:
            sender_info = SenderInfo(id=message.sender_id, username=sender.username, avatar=sender.avatar)
        else:
            sender_info = SenderInfo(id=message.sender_id)
        return cls(
            id=message.id,
            chat_id=message.chat_id,
            sender_id=message.sender_id,
            content=message.content,
            created_at=message.created_at,
            is_read=message.is_read,
            sender=sender_info
        )


class PublicUser(BaseModel):
    """会话列表中展示的对方用户信息（不含邮箱）"""
    id: int
    username: str
    avatar: Optional[str] = None
    bio: Optional[str] = None
    role: str

    @classmethod
    def from_user(cls, user: User) -> "PublicUser":
        return cls(
            id=user.id,
            username=user.username,
            avatar=user.avatar,
            bio=user.bio,
            role=getattr(user.role, "value", user.role)
        )


class ChatSummary(BaseModel):
    """会话列表项"""
    chat_id: int
    participants: List[int]
    other_user: PublicUser
    last_message: Optional[MessageView] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_chat(
        cls,
        chat: Chat,
        other_user: User,
        last_message: Optional[MessageView] = None
    ) -> "ChatSummary":
        return cls(
            chat_id=chat.id,
            participants=list(chat.participants),
            other_user=PublicUser.from_user(other_user),
            last_message=last_message,
            created_at=chat.created_at,
            updated_at=chat.updated_at
        )


class ServiceResult(BaseModel):
    """所有结果结构的公共错误字段"""
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @classmethod
    def failure(cls, exc: ChatAppError, **fields):
        return cls(error=exc.message, error_kind=exc.kind, **fields)


class SendResult(ServiceResult):
    """发送消息的结果：{success, message?, error?}"""
    success: bool = False
    message: Optional[MessageView] = None

    @classmethod
    def failure(cls, exc: ChatAppError, **fields):
        return super().failure(exc, success=False, **fields)


class RankedUser(BaseModel):
    """搜索命中的用户及其相关度得分"""
    user: InstanceOf[User]
    score: int = 0


class SearchResult(ServiceResult):
    """用户搜索结果"""
    term: str = ""
    items: List[RankedUser] = Field(default_factory=list)

    @property
    def users(self) -> List[User]:
        return [item.user for item in self.items]


class ChatResolution(ServiceResult):
    """查找或创建会话的结果"""
    chat_id: Optional[int] = None
    created: bool = False


class MessageListResult(ServiceResult):
    """拉取会话消息的结果"""
    messages: List[MessageView] = Field(default_factory=list)
