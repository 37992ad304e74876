"""
会话解析服务

封装私聊会话的查找与创建，包括：
1. 参与者规范化：两个用户 ID 排序后查询，与参数顺序无关
2. 宽松的用户校验：只要有一位用户存在即可创建会话
3. 唯一约束兜底：并发创建同一对用户的会话时，冲突视为成功并重新读取已有会话
4. 会话列表：用户参与的会话，附带对方信息和最后一条消息
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from influencer_connect.db.database import Database
from influencer_connect.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    classify_db_error,
)
from influencer_connect.models.chat import Chat, canonical_pair
from influencer_connect.repositories.chat_repository import ChatRepository
from influencer_connect.repositories.message_repository import MessageRepository
from influencer_connect.repositories.user_repository import UserRepository
from influencer_connect.services.results import ChatResolution, ChatSummary, MessageView

logger = logging.getLogger(__name__)


class ChatResolutionService:
    """
    会话解析服务类

    使用示例：
        service = ChatResolutionService(database)
        chat_id = service.get_or_create_chat(alice.id, bob.id)
    """

    def __init__(self, database: Database):
        self.database = database

    def get_or_create_chat(self, user_a: Optional[int], user_b: Optional[int]) -> Optional[int]:
        """
        获取或创建两位用户之间的会话

        Returns:
            会话 ID，失败时返回 None（失败原因请使用 resolve() 获取）
        """
        return self.resolve(user_a, user_b).chat_id

    def resolve(self, user_a: Optional[int], user_b: Optional[int]) -> ChatResolution:
        """
        获取或创建两位用户之间的会话

        流程：
        1. 校验参数
        2. 按规范化的参与者对查询已有会话，存在则直接返回
        3. 校验用户存在（至少一位）
        4. 插入新会话；唯一约束冲突时回滚并重新读取

        Args:
            user_a: 用户 ID
            user_b: 用户 ID

        Returns:
            ChatResolution，成功时 chat_id 非空，created 表示是否新建
        """
        try:
            self._validate_pair(user_a, user_b)
            with self.database.session() as session:
                return self._resolve_in_session(session, user_a, user_b)
        except Exception as exc:
            error = classify_db_error(exc)
            logger.error(
                "[ChatResolutionService] could not resolve chat for users %s and %s: %s",
                user_a, user_b, error.message
            )
            return ChatResolution.failure(error)

    def _validate_pair(self, user_a: Optional[int], user_b: Optional[int]) -> None:
        if user_a is None or user_b is None or user_a == "" or user_b == "":
            raise ValidationError("Both user IDs are required to create a chat")
        if user_a == user_b:
            raise ValidationError("A chat needs two different participants")

    def _resolve_in_session(self, session, user_a: int, user_b: int) -> ChatResolution:
        chat_repo = ChatRepository(session)

        existing = chat_repo.find_by_participants(user_a, user_b)
        if existing:
            logger.debug("[ChatResolutionService] found existing chat %s", existing.id)
            return ChatResolution(chat_id=existing.id, created=False)

        self._verify_users(session, user_a, user_b)

        try:
            chat = chat_repo.create(user_a, user_b)
        except IntegrityError as exc:
            # 另一个请求刚刚创建了同一对用户的会话
            session.rollback()
            existing = chat_repo.find_by_participants(user_a, user_b)
            if existing is None:
                raise ConflictError("Chat insert conflicted but no existing chat was found", cause=exc)
            logger.info("[ChatResolutionService] concurrent create detected, using chat %s", existing.id)
            return ChatResolution(chat_id=existing.id, created=False)

        logger.info(
            "[ChatResolutionService] created chat %s for users %s",
            chat.id, chat.participants
        )
        return ChatResolution(chat_id=chat.id, created=True)

    def _verify_users(self, session, user_a: int, user_b: int) -> None:
        """
        宽松校验：两位用户都不存在时报错，只有一位存在时记录警告后继续
        """
        expected = canonical_pair(user_a, user_b)
        found = {user.id for user in UserRepository(session).get_many(expected)}

        if not found:
            raise NotFoundError(f"Could not verify users exist: {list(expected)}")
        if len(found) != 2:
            logger.warning(
                "[ChatResolutionService] creating chat with only some users verified: expected %s, found %s",
                list(expected), sorted(found)
            )

    def get_chat(self, chat_id: int) -> Optional[Chat]:
        """根据 ID 获取会话"""
        with self.database.session() as session:
            return ChatRepository(session).get_by_id(chat_id)

    def list_user_chats(self, user_id: int) -> List[ChatSummary]:
        """
        获取用户的会话列表（按最近活动时间倒序）

        对方用户已不存在的会话会被跳过；查询失败时返回空列表

        Args:
            user_id: 当前用户 ID

        Returns:
            ChatSummary 列表
        """
        try:
            with self.database.session() as session:
                chats = ChatRepository(session).list_for_user(user_id)
                others = {chat.id: chat.other_participant(user_id) for chat in chats}
                users = {user.id: user for user in UserRepository(session).get_many(others.values())}
                message_repo = MessageRepository(session)

                summaries = []
                for chat in chats:
                    other_user = users.get(others[chat.id])
                    if other_user is None:
                        logger.warning(
                            "[ChatResolutionService] skipping chat %s: user %s not found",
                            chat.id, others[chat.id]
                        )
                        continue

                    latest = message_repo.get_latest(chat.id)
                    last_message = None
                    if latest is not None:
                        sender = other_user if latest.sender_id == other_user.id else users.get(latest.sender_id)
                        if sender is None:
                            sender = UserRepository(session).get_by_id(latest.sender_id)
                        last_message = MessageView.from_message(latest, sender)

                    summaries.append(ChatSummary.from_chat(chat, other_user, last_message))
        except Exception as exc:
            error = classify_db_error(exc)
            logger.error("[ChatResolutionService] listing chats for user %s failed: %s", user_id, error.message)
            return []

        return summaries
