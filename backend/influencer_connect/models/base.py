"""
基础模型模块
提供所有表模型共用的时间戳字段
"""

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import SQLModel, Field


def utc_now() -> datetime:
    """返回 timezone-aware 的当前 UTC 时间"""
    return datetime.now(timezone.utc)


class CreatedAtModel(SQLModel):
    """只记录创建时间的基类（消息表只追加，不需要 updated_at）"""
    created_at: Optional[datetime] = Field(
        default_factory=utc_now,
        nullable=False,
        index=True
    )


class TimestampModel(CreatedAtModel):
    """时间戳基类，为用户表和会话表提供 created_at 和 updated_at 字段"""
    updated_at: Optional[datetime] = Field(
        default_factory=utc_now,
        nullable=False,
        sa_column_kwargs={"onupdate": utc_now}
    )
