"""
ChatResolutionService 单元测试

测试会话解析的核心功能：
1. 查找或创建会话（幂等、与参数顺序无关）
2. 宽松的用户校验
3. 并发创建时唯一约束冲突视为成功
4. 会话列表
"""

import pytest
from unittest.mock import patch
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel import select

from influencer_connect.errors import ErrorKind
from influencer_connect.models.chat import Chat
from influencer_connect.repositories.chat_repository import ChatRepository


class TestGetOrCreateChat:
    """测试查找或创建会话"""

    def test_creates_chat(self, chat_service, alice, bob):
        """测试首次调用创建会话"""
        resolution = chat_service.resolve(alice.id, bob.id)

        assert resolution.ok
        assert resolution.created is True
        assert resolution.chat_id is not None

        chat = chat_service.get_chat(resolution.chat_id)
        assert chat.participants == (min(alice.id, bob.id), max(alice.id, bob.id))

    def test_idempotent(self, chat_service, alice, bob):
        """测试重复调用返回同一个会话"""
        first = chat_service.get_or_create_chat(alice.id, bob.id)
        second = chat_service.get_or_create_chat(alice.id, bob.id)

        assert first is not None
        assert first == second

    def test_order_independent(self, chat_service, alice, bob):
        """测试交换参数顺序返回同一个会话"""
        first = chat_service.get_or_create_chat(alice.id, bob.id)
        swapped = chat_service.resolve(bob.id, alice.id)

        assert swapped.chat_id == first
        assert swapped.created is False

    @pytest.mark.parametrize("user_a, user_b", [(None, 1), (1, None), ("", 1)])
    def test_missing_ids(self, chat_service, user_a, user_b):
        """测试缺少用户 ID 时返回校验错误"""
        resolution = chat_service.resolve(user_a, user_b)

        assert resolution.chat_id is None
        assert resolution.error_kind == ErrorKind.VALIDATION
        assert chat_service.get_or_create_chat(user_a, user_b) is None

    def test_same_user_twice(self, chat_service, alice):
        """测试不能和自己创建会话"""
        resolution = chat_service.resolve(alice.id, alice.id)

        assert resolution.chat_id is None
        assert resolution.error_kind == ErrorKind.VALIDATION

    def test_one_unknown_user_is_allowed(self, chat_service, alice):
        """测试只有一位用户存在时仍然创建会话"""
        resolution = chat_service.resolve(alice.id, 999)

        assert resolution.ok
        assert resolution.created is True

    def test_both_unknown_users(self, chat_service):
        """测试两位用户都不存在时返回未找到"""
        resolution = chat_service.resolve(998, 999)

        assert resolution.chat_id is None
        assert resolution.error_kind == ErrorKind.NOT_FOUND


class TestConcurrentCreate:
    """测试并发创建时的冲突处理"""

    def test_conflict_is_treated_as_existing_chat(self, chat_service, test_db, alice, bob):
        """测试插入冲突时回滚并使用已存在的会话"""
        # 模拟另一个请求在本次查询之后、插入之前创建了会话
        with test_db.session() as session:
            winner = ChatRepository(session).create(alice.id, bob.id)

        original_find = ChatRepository.find_by_participants
        calls = {"count": 0}

        def stale_first_lookup(self, user_a, user_b):
            calls["count"] += 1
            if calls["count"] == 1:
                return None
            return original_find(self, user_a, user_b)

        with patch.object(ChatRepository, "find_by_participants", stale_first_lookup):
            resolution = chat_service.resolve(bob.id, alice.id)

        assert resolution.ok
        assert resolution.chat_id == winner.id
        assert resolution.created is False
        with test_db.session() as session:
            assert len(session.exec(select(Chat)).all()) == 1

    def test_conflict_without_existing_row(self, chat_service, alice, bob):
        """测试冲突后仍查不到会话时返回冲突错误"""
        error = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
        with patch.object(ChatRepository, "create", side_effect=error):
            resolution = chat_service.resolve(alice.id, bob.id)

        assert resolution.chat_id is None
        assert resolution.error_kind == ErrorKind.CONFLICT

    def test_store_unavailable(self, chat_service, alice, bob):
        """测试存储不可用时返回连接错误而不是抛出异常"""
        error = OperationalError("SELECT", {}, Exception("unable to open database file"))
        with patch.object(ChatRepository, "find_by_participants", side_effect=error):
            resolution = chat_service.resolve(alice.id, bob.id)

        assert resolution.chat_id is None
        assert resolution.error_kind == ErrorKind.CONNECTIVITY


class TestListUserChats:
    """测试会话列表"""

    def test_lists_chats_with_other_user_and_last_message(
        self, chat_service, message_service, user_factory, alice, bob
    ):
        """测试会话列表包含对方信息和最后一条消息，按最近活动排序"""
        carol = user_factory("carol", avatar="https://img.example.com/carol.png")
        with_bob = chat_service.get_or_create_chat(alice.id, bob.id)
        with_carol = chat_service.get_or_create_chat(alice.id, carol.id)

        message_service.send_message(with_carol, carol.id, "hey alice")
        message_service.send_message(with_bob, alice.id, "hi bob")

        summaries = chat_service.list_user_chats(alice.id)

        assert [s.chat_id for s in summaries] == [with_bob, with_carol]
        assert summaries[0].other_user.username == "bob"
        assert summaries[0].last_message.content == "hi bob"
        assert summaries[0].last_message.sender.username == "alice"
        assert summaries[1].other_user.avatar == "https://img.example.com/carol.png"
        assert summaries[1].last_message.sender.username == "carol"

    def test_chat_without_messages(self, chat_service, alice, bob):
        """测试没有消息的会话 last_message 为空"""
        chat_service.get_or_create_chat(alice.id, bob.id)

        summaries = chat_service.list_user_chats(bob.id)

        assert len(summaries) == 1
        assert summaries[0].other_user.id == alice.id
        assert summaries[0].last_message is None

    def test_skips_chat_with_missing_user(self, chat_service, alice):
        """测试对方用户不存在的会话被跳过"""
        chat_service.get_or_create_chat(alice.id, 999)

        assert chat_service.list_user_chats(alice.id) == []

    def test_store_error_returns_empty(self, chat_service, alice):
        """测试查询失败时返回空列表"""
        error = OperationalError("SELECT", {}, Exception("disk I/O error"))
        with patch.object(ChatRepository, "list_for_user", side_effect=error):
            assert chat_service.list_user_chats(alice.id) == []
