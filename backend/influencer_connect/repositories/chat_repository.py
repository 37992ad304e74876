"""
会话管理 Repository
提供 chats 表的增删改查操作
"""

from typing import List, Optional

from sqlalchemy import or_
from sqlmodel import Session, select, col

from influencer_connect.models.base import utc_now
from influencer_connect.models.chat import Chat, canonical_pair


class ChatRepository:
    """
    会话数据访问对象
    封装所有与 chats 表相关的数据库操作
    """

    def __init__(self, session: Session):
        """
        初始化 Repository

        Args:
            session: SQLModel 数据库会话
        """
        self.session = session

    def get_by_id(self, chat_id: int) -> Optional[Chat]:
        """
        根据 ID 获取会话

        Args:
            chat_id: 会话 ID

        Returns:
            Chat 对象，不存在则返回 None
        """
        return self.session.get(Chat, chat_id)

    def find_by_participants(self, user_a: int, user_b: int) -> Optional[Chat]:
        """
        查找两位用户之间的会话（与参数顺序无关）

        Returns:
            Chat 对象，不存在则返回 None
        """
        low, high = canonical_pair(user_a, user_b)
        statement = select(Chat).where(
            Chat.participant_low_id == low,
            Chat.participant_high_id == high
        )
        return self.session.exec(statement).first()

    def create(self, user_a: int, user_b: int) -> Chat:
        """
        创建新会话

        同一对用户已存在会话时，提交会因唯一约束抛出 IntegrityError，
        由调用方决定如何处理

        Returns:
            创建的 Chat 对象
        """
        low, high = canonical_pair(user_a, user_b)
        now = utc_now()
        chat = Chat(
            participant_low_id=low,
            participant_high_id=high,
            created_at=now,
            updated_at=now
        )
        self.session.add(chat)
        self.session.commit()
        self.session.refresh(chat)
        return chat

    def touch(self, chat_id: int) -> Optional[Chat]:
        """
        刷新会话的 updated_at 时间戳

        每次有新消息时调用，确保会话列表按最新活动时间排序正确

        Returns:
            更新后的 Chat 对象，不存在则返回 None
        """
        chat = self.get_by_id(chat_id)
        if chat:
            chat.updated_at = utc_now()
            self.session.add(chat)
            self.session.commit()
            self.session.refresh(chat)
        return chat

    def list_for_user(self, user_id: int, limit: Optional[int] = None) -> List[Chat]:
        """
        获取用户参与的所有会话（按更新时间倒序）

        Args:
            user_id: 用户 ID
            limit: 限制返回数量（可选）

        Returns:
            Chat 对象列表，按 updated_at 倒序排列
        """
        statement = select(Chat).where(
            or_(Chat.participant_low_id == user_id, Chat.participant_high_id == user_id)
        ).order_by(col(Chat.updated_at).desc(), col(Chat.id).desc())

        if limit:
            statement = statement.limit(limit)

        return list(self.session.exec(statement).all())

    def delete(self, chat_id: int) -> bool:
        """
        删除会话（数据库级联删除关联的消息）

        Returns:
            删除成功返回 True，会话不存在返回 False
        """
        chat = self.get_by_id(chat_id)
        if chat:
            self.session.delete(chat)
            self.session.commit()
            return True
        return False
