"""
消息服务层

封装消息业务逻辑，包括：
1. 发送消息：校验 -> 确认会话存在 -> 写入消息 -> 刷新会话时间（尽力而为）
2. 拉取消息：按时间正序返回，附带发送者的用户名和头像
3. 订阅消息：注册会话的变更通知，每次有新消息时重新拉取并回调
"""

import logging
import threading
from enum import Enum
from typing import Callable, List, Optional

from influencer_connect.db.change_feed import ListenerHandle, MessageInserted
from influencer_connect.db.database import Database
from influencer_connect.errors import (
    NotFoundError,
    ValidationError,
    classify_db_error,
)
from influencer_connect.repositories.chat_repository import ChatRepository
from influencer_connect.repositories.message_repository import MessageRepository
from influencer_connect.repositories.user_repository import UserRepository
from influencer_connect.services.results import MessageListResult, MessageView, SendResult

logger = logging.getLogger(__name__)

OnUpdate = Callable[[List[MessageView]], None]
OnError = Callable[[MessageListResult], None]


class SubscriptionMode(str, Enum):
    """订阅投递方式"""
    # 每次通知都投递完整的消息列表
    SNAPSHOT = "snapshot"
    # 只投递上次投递之后的新消息
    DELTA = "delta"


class SubscriptionState(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class MessageSubscription:
    """
    会话消息订阅

    状态只有 ACTIVE -> CANCELLED 一个方向；cancel() 可重复调用，
    返回后不会再有任何 on_update 回调（包括已经在进行中的刷新）
    """

    def __init__(
        self,
        service: "MessageService",
        chat_id: int,
        on_update: OnUpdate,
        on_error: Optional[OnError] = None,
        mode: SubscriptionMode = SubscriptionMode.SNAPSHOT
    ):
        self.service = service
        self.chat_id = chat_id
        self.mode = mode
        self._on_update = on_update
        self._on_error = on_error
        self._state = SubscriptionState.ACTIVE
        # 串行化刷新和取消，保证 cancel() 返回后不再投递
        self._lock = threading.RLock()
        self._last_message_id: Optional[int] = None
        self._handle: Optional[ListenerHandle] = None

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state is SubscriptionState.ACTIVE

    def start(self) -> "MessageSubscription":
        """
        先注册变更通知，再投递首次的完整列表

        先注册后拉取，避免两步之间插入的消息被漏掉（可能多投递一次，属于允许的重复）。
        首次投递抛出异常时订阅直接取消，异常继续抛给调用方
        """
        self._handle = self.service.database.change_feed.listen(self.chat_id, self._on_change)
        try:
            self.refresh(initial=True)
        except Exception:
            self.cancel()
            raise
        return self

    def _on_change(self, change: MessageInserted) -> None:
        logger.debug(
            "[MessageSubscription] chat %s received message %s",
            change.chat_id, change.message_id
        )
        self.refresh()

    def refresh(self, initial: bool = False) -> None:
        """重新拉取消息并回调；查询失败时投递空列表，订阅保持有效"""
        with self._lock:
            if not self.active:
                return

            after_id = None
            if self.mode is SubscriptionMode.DELTA and not initial:
                after_id = self._last_message_id

            result = self.service.fetch_messages(self.chat_id, after_id=after_id)

            if not result.ok:
                if self._on_error is not None:
                    self._on_error(result)
                if self.mode is SubscriptionMode.DELTA and not initial:
                    return
                self._on_update([])
                return

            messages = result.messages
            if messages:
                self._last_message_id = max(
                    messages[-1].id, self._last_message_id or 0
                )
            elif self.mode is SubscriptionMode.DELTA and not initial:
                # 增量模式下没有新消息时不投递
                return

            self._on_update(messages)

    def cancel(self) -> None:
        """取消订阅，可重复调用"""
        with self._lock:
            if not self.active:
                return
            self._state = SubscriptionState.CANCELLED
            if self._handle is not None:
                self._handle.remove()
        logger.debug("[MessageSubscription] unsubscribed from chat %s", self.chat_id)

    # 与 subscribeToMessages 返回值保持一致的名字
    unsubscribe = cancel


class MessageService:
    """
    消息服务类

    使用示例：
        service = MessageService(database)
        result = service.send_message(chat_id, alice.id, "hi")
        subscription = service.subscribe(chat_id, render_messages)
        ...
        subscription.unsubscribe()
    """

    def __init__(self, database: Database):
        self.database = database

    # ==================== 发送 ====================

    def send_message(self, chat_id: Optional[int], sender_id: Optional[int], content: Optional[str]) -> SendResult:
        """
        发送消息

        流程：
        1. 校验 chat_id、sender_id 和去除空白后的 content
        2. 确认会话存在
        3. 写入消息（is_read = False）
        4. 刷新会话 updated_at（失败只记录日志，消息已经写入）

        Args:
            chat_id: 会话 ID
            sender_id: 发送者 ID
            content: 消息内容

        Returns:
            SendResult，成功时 message 为写入的消息
        """
        try:
            text = self._validate(chat_id, sender_id, content)

            with self.database.session() as session:
                if ChatRepository(session).get_by_id(chat_id) is None:
                    raise NotFoundError(f"Chat with ID {chat_id} does not exist")

                message = MessageRepository(session).create(chat_id=chat_id, sender_id=sender_id, content=text)
                sender = UserRepository(session).get_by_id(sender_id)
                view = MessageView.from_message(message, sender)
        except Exception as exc:
            error = classify_db_error(exc)
            logger.error("[MessageService] send to chat %s failed: %s", chat_id, error.message)
            return SendResult.failure(error)

        self._touch_chat(chat_id)
        logger.info("[MessageService] message %s stored in chat %s", view.id, chat_id)
        return SendResult(success=True, message=view)

    def _validate(self, chat_id, sender_id, content) -> str:
        if chat_id is None or chat_id == "" or sender_id is None or sender_id == "":
            raise ValidationError("Missing required message data (chatId, senderId, or content)")
        text = (content or "").strip()
        if not text:
            raise ValidationError("Missing required message data (chatId, senderId, or content)")
        return text

    def _touch_chat(self, chat_id: int) -> None:
        """
        更新会话的 updated_at 时间戳

        尽力而为：失败不回滚消息，也不改变发送结果
        """
        try:
            with self.database.session() as session:
                ChatRepository(session).touch(chat_id)
        except Exception as exc:
            logger.warning(
                "[MessageService] could not update timestamp of chat %s: %s",
                chat_id, classify_db_error(exc).message
            )

    # ==================== 拉取 ====================

    def fetch_messages(self, chat_id: Optional[int], after_id: Optional[int] = None) -> MessageListResult:
        """
        拉取会话消息，附带发送者信息

        Args:
            chat_id: 会话 ID
            after_id: 只返回 ID 大于该值的消息（可选）

        Returns:
            MessageListResult，查询失败时 messages 为空且 error_kind 非空
        """
        if chat_id is None or chat_id == "":
            return MessageListResult.failure(ValidationError("Invalid chat ID for fetching messages"))

        try:
            with self.database.session() as session:
                messages = MessageRepository(session).get_by_chat(chat_id, after_id=after_id)
                senders = {
                    user.id: user
                    for user in UserRepository(session).get_many(m.sender_id for m in messages)
                }
                views = [MessageView.from_message(m, senders.get(m.sender_id)) for m in messages]
        except Exception as exc:
            error = classify_db_error(exc)
            logger.error("[MessageService] fetching messages of chat %s failed: %s", chat_id, error.message)
            return MessageListResult.failure(error)

        return MessageListResult(messages=views)

    def get_messages(self, chat_id: Optional[int]) -> List[MessageView]:
        """
        拉取会话的全部消息（按时间正序）

        查询失败时返回空列表，需要区分失败的调用方请使用 fetch_messages()
        """
        return self.fetch_messages(chat_id).messages

    # ==================== 订阅 ====================

    def subscribe(
        self,
        chat_id: int,
        on_update: OnUpdate,
        on_error: Optional[OnError] = None,
        mode: SubscriptionMode = SubscriptionMode.SNAPSHOT
    ) -> MessageSubscription:
        """
        订阅会话消息

        订阅后立即回调一次完整列表，之后每次该会话有新消息提交时再次回调

        Args:
            chat_id: 会话 ID
            on_update: 回调，参数为按时间正序的消息列表
            on_error: 刷新失败时的回调，参数为带错误信息的 MessageListResult（可选）
            mode: SNAPSHOT 每次投递完整列表，DELTA 只投递新消息

        Returns:
            MessageSubscription，调用 cancel()/unsubscribe() 取消
        """
        if chat_id is None or chat_id == "":
            raise ValidationError("Invalid chat ID for subscription")

        logger.debug("[MessageService] subscribing to chat %s (%s)", chat_id, mode.value)
        return MessageSubscription(self, chat_id, on_update, on_error=on_error, mode=mode).start()
