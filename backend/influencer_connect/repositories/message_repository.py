"""
消息 Repository
提供 messages 表的追加和查询操作
"""

from typing import List, Optional

from sqlalchemy import func
from sqlmodel import Session, select, col

from influencer_connect.models.base import utc_now
from influencer_connect.models.message import Message


class MessageRepository:
    """
    消息数据访问对象
    消息只追加，不提供修改接口
    """

    def __init__(self, session: Session):
        """
        初始化 Repository

        Args:
            session: SQLModel 数据库会话
        """
        self.session = session

    def create(self, chat_id: int, sender_id: int, content: str) -> Message:
        """
        追加一条消息

        Args:
            chat_id: 会话 ID
            sender_id: 发送者 ID
            content: 消息内容（调用方负责校验和去除空白）

        Returns:
            创建的 Message 对象
        """
        message = Message(
            chat_id=chat_id,
            sender_id=sender_id,
            content=content,
            is_read=False,
            created_at=utc_now()
        )
        self.session.add(message)
        self.session.commit()
        self.session.refresh(message)
        return message

    def get_by_id(self, message_id: int) -> Optional[Message]:
        return self.session.get(Message, message_id)

    def get_by_chat(
        self,
        chat_id: int,
        after_id: Optional[int] = None,
        limit: Optional[int] = None
    ) -> List[Message]:
        """
        获取会话的消息（按创建时间正序，同一时间按 ID）

        Args:
            chat_id: 会话 ID
            after_id: 只返回 ID 大于该值的消息（增量拉取）
            limit: 限制返回数量（可选）

        Returns:
            Message 对象列表
        """
        statement = select(Message).where(Message.chat_id == chat_id)
        if after_id is not None:
            statement = statement.where(Message.id > after_id)

        statement = statement.order_by(col(Message.created_at).asc(), col(Message.id).asc())

        if limit:
            statement = statement.limit(limit)

        return list(self.session.exec(statement).all())

    def get_latest(self, chat_id: int) -> Optional[Message]:
        """获取会话的最后一条消息"""
        statement = select(Message).where(
            Message.chat_id == chat_id
        ).order_by(col(Message.created_at).desc(), col(Message.id).desc()).limit(1)
        return self.session.exec(statement).first()

    def count_by_chat(self, chat_id: int) -> int:
        statement = select(func.count()).select_from(Message).where(Message.chat_id == chat_id)
        return self.session.exec(statement).one()
