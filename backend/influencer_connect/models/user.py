"""
用户域模型 - 用户目录表
可被搜索的用户资料，is_visible 决定是否出现在目录和搜索结果中
"""

from enum import Enum
from typing import Dict, List, Optional

from sqlmodel import Field, Column, JSON

from .base import TimestampModel


class UserRole(str, Enum):
    """用户角色枚举"""
    USER = "user"
    INFLUENCER = "influencer"


class User(TimestampModel, table=True):
    """
    用户目录表
    用户名和邮箱均全局唯一，由数据库唯一约束保证
    """
    __tablename__ = "users"

    # 主键
    id: Optional[int] = Field(default=None, primary_key=True)

    # 外部认证系统的用户标识（可选）
    auth_id: Optional[str] = Field(default=None, unique=True)

    # 唯一用户名，搜索热点
    username: str = Field(unique=True, index=True, nullable=False)

    email: str = Field(unique=True, nullable=False)

    bio: Optional[str] = Field(default=None)

    # 头像 URL
    avatar: Optional[str] = Field(default=None)

    role: UserRole = Field(default=UserRole.USER, nullable=False)

    followers: int = Field(default=0, ge=0, nullable=False)
    following: int = Field(default=0, ge=0, nullable=False)

    # 平台名 -> 账号，例如 {"instagram": "@alice"}
    social_links: Dict[str, str] = Field(default_factory=dict, sa_column=Column(JSON))

    # 兴趣标签，例如 ["tech", "travel"]
    interests: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    location: Optional[str] = Field(default=None)

    # 控制目录和搜索可见性
    is_visible: bool = Field(default=True, nullable=False, index=True)
