"""
会话域模型 - 消息流水表
只追加，创建后不再修改
"""

from typing import Optional

from sqlmodel import Field

from .base import CreatedAtModel


class Message(CreatedAtModel, table=True):
    """
    消息流水表
    按 created_at 正序（同一时间按 id）组成会话的消息列表
    """
    __tablename__ = "messages"

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    # 外键：所属会话，查询热点（加载会话的全部消息）
    # 会话删除时级联删除消息
    chat_id: int = Field(foreign_key="chats.id", ondelete="CASCADE", index=True, nullable=False)

    sender_id: int = Field(index=True, nullable=False)

    # 去除首尾空白后的消息内容，不能为空
    content: str = Field(nullable=False)

    # 已读标记：目前没有任何流程会把它置为 True
    is_read: bool = Field(default=False, nullable=False)
