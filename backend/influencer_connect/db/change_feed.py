"""
变更通知模块

进程内的变更订阅通道：通过 SQLAlchemy 会话事件捕获消息表的插入，
事务提交后按会话 ID 通知监听者。

事件流程：
1. after_flush：把本次 flush 中新插入的 Message 记录到 session.info
2. after_commit：事务提交成功后逐条发布 MessageInserted
3. after_rollback：丢弃未提交的事件，回滚的插入不会产生通知
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List

from sqlalchemy import event
from sqlmodel import Session

from influencer_connect.models.message import Message

logger = logging.getLogger(__name__)

PENDING_KEY = "change_feed.pending"


@dataclass(frozen=True)
class MessageInserted:
    """一条消息已提交"""
    chat_id: int
    message_id: int


Listener = Callable[[MessageInserted], None]


class ListenerHandle:
    """监听注册句柄，remove() 可重复调用"""

    def __init__(self, feed: "ChangeFeed", chat_id: int, listener: Listener):
        self._feed = feed
        self.chat_id = chat_id
        self.listener = listener
        self._removed = False

    @property
    def active(self) -> bool:
        return not self._removed

    def remove(self) -> None:
        if self._removed:
            return
        self._removed = True
        self._feed._remove(self)


class ChangeFeed:
    """
    按会话 ID 分发的消息插入通知

    使用示例：
        feed = ChangeFeed()
        feed.bind(session_factory)
        handle = feed.listen(chat_id, lambda change: print(change.message_id))
        ...
        handle.remove()
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: Dict[int, List[ListenerHandle]] = {}
        self._bound = []

    # ==================== 会话事件绑定 ====================

    def bind(self, target) -> None:
        """
        在 sessionmaker（或 Session 类）上注册会话事件

        Args:
            target: SQLAlchemy 会话事件目标
        """
        event.listen(target, "after_flush", self._after_flush)
        event.listen(target, "after_commit", self._after_commit)
        event.listen(target, "after_rollback", self._after_rollback)
        self._bound.append(target)

    def unbind(self) -> None:
        """解除所有会话事件绑定"""
        for target in self._bound:
            event.remove(target, "after_flush", self._after_flush)
            event.remove(target, "after_commit", self._after_commit)
            event.remove(target, "after_rollback", self._after_rollback)
        self._bound = []

    def _after_flush(self, session: Session, flush_context) -> None:
        # after_flush 时 session.new 仍是 flush 前的状态，主键已经分配
        inserted = [obj for obj in session.new if isinstance(obj, Message)]
        if inserted:
            pending = session.info.setdefault(PENDING_KEY, [])
            pending.extend(MessageInserted(chat_id=m.chat_id, message_id=m.id) for m in inserted)

    def _after_commit(self, session: Session) -> None:
        pending = session.info.pop(PENDING_KEY, None)
        for change in pending or []:
            self.publish(change)

    def _after_rollback(self, session: Session) -> None:
        session.info.pop(PENDING_KEY, None)

    # ==================== 监听与发布 ====================

    def listen(self, chat_id: int, listener: Listener) -> ListenerHandle:
        """
        注册某个会话的消息插入监听

        Args:
            chat_id: 会话 ID
            listener: 回调，参数为 MessageInserted

        Returns:
            ListenerHandle，调用 remove() 取消监听
        """
        handle = ListenerHandle(self, chat_id, listener)
        with self._lock:
            self._listeners.setdefault(chat_id, []).append(handle)
        return handle

    def _remove(self, handle: ListenerHandle) -> None:
        with self._lock:
            handles = self._listeners.get(handle.chat_id)
            if not handles:
                return
            if handle in handles:
                handles.remove(handle)
            if not handles:
                del self._listeners[handle.chat_id]

    def listener_count(self, chat_id: int) -> int:
        with self._lock:
            return len(self._listeners.get(chat_id, []))

    def publish(self, change: MessageInserted) -> None:
        """
        通知某个会话的所有监听者

        单个监听者抛出的异常只记录日志，不影响其他监听者和触发写入的事务
        """
        with self._lock:
            handles = list(self._listeners.get(change.chat_id, []))

        for handle in handles:
            if not handle.active:
                continue
            try:
                handle.listener(change)
            except Exception:
                logger.exception(
                    "[ChangeFeed] listener failed for chat %s (message %s)",
                    change.chat_id, change.message_id
                )

    def close(self) -> None:
        """移除所有监听者并解除事件绑定"""
        with self._lock:
            handles = [h for hs in self._listeners.values() for h in hs]
            self._listeners = {}
        for handle in handles:
            handle._removed = True
        self.unbind()
