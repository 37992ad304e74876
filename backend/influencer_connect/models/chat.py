"""
会话域模型 - 私聊会话表
每对用户最多一个会话
"""

from typing import Optional, Tuple

from sqlalchemy import CheckConstraint, UniqueConstraint
from sqlmodel import Field

from .base import TimestampModel


def canonical_pair(user_a: int, user_b: int) -> Tuple[int, int]:
    """将两个参与者 ID 排序，使查询与参数顺序无关"""
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


class Chat(TimestampModel, table=True):
    """
    私聊会话表
    参与者按升序存放在两列中，复合唯一约束保证同一对用户只有一个会话
    """
    __tablename__ = "chats"

    __table_args__ = (
        UniqueConstraint("participant_low_id", "participant_high_id", name="uix_chat_participants"),
        CheckConstraint("participant_low_id < participant_high_id", name="ck_chat_distinct_participants"),
    )

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    # 较小的参与者 ID
    participant_low_id: int = Field(index=True, nullable=False)

    # 较大的参与者 ID
    participant_high_id: int = Field(index=True, nullable=False)

    # updated_at 在每条新消息后刷新，用于会话列表排序

    @property
    def participants(self) -> Tuple[int, int]:
        return (self.participant_low_id, self.participant_high_id)

    def other_participant(self, user_id: int) -> Optional[int]:
        """返回另一位参与者的 ID，user_id 不在会话中时返回 None"""
        if user_id == self.participant_low_id:
            return self.participant_high_id
        if user_id == self.participant_high_id:
            return self.participant_low_id
        return None
