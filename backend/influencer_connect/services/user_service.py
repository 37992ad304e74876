"""
用户目录服务
注册用户、编辑资料和浏览目录
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from influencer_connect.db.database import Database
from influencer_connect.errors import ConflictError, NotFoundError, ValidationError, classify_db_error
from influencer_connect.models.user import User, UserRole
from influencer_connect.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

# 允许通过资料编辑修改的字段
PROFILE_FIELDS = frozenset({
    "bio",
    "avatar",
    "role",
    "location",
    "social_links",
    "interests",
    "is_visible",
    "followers",
    "following",
})


def _clean_profile(fields: dict) -> dict:
    """校验资料字段，返回可以写入数据库的值"""
    unknown = set(fields) - PROFILE_FIELDS - {"auth_id"}
    if unknown:
        raise ValidationError(f"Unknown profile fields: {sorted(unknown)}")

    cleaned = dict(fields)
    if "role" in cleaned:
        try:
            cleaned["role"] = UserRole(cleaned["role"])
        except ValueError:
            raise ValidationError(f"Invalid role: {cleaned['role']!r}")
    for counter in ("followers", "following"):
        if counter in cleaned:
            value = cleaned[counter]
            # bool 是 int 的子类，需要单独排除
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValidationError(f"{counter} must be a non-negative integer")
    if "is_visible" in cleaned and not isinstance(cleaned["is_visible"], bool):
        raise ValidationError("is_visible must be true or false")
    for text_field in ("bio", "avatar", "location", "auth_id"):
        if text_field in cleaned and cleaned[text_field] is not None and not isinstance(cleaned[text_field], str):
            raise ValidationError(f"{text_field} must be a string")
    if "interests" in cleaned:
        interests = cleaned["interests"] or []
        if isinstance(interests, str) or not isinstance(interests, (list, tuple, set)):
            raise ValidationError("interests must be a list of strings")
        if not all(isinstance(interest, str) for interest in interests):
            raise ValidationError("interests must be a list of strings")
        cleaned["interests"] = list(interests)
    if "social_links" in cleaned:
        social_links = cleaned["social_links"] or {}
        if not isinstance(social_links, dict):
            raise ValidationError("social_links must be a mapping of platform to handle")
        cleaned["social_links"] = dict(social_links)
    return cleaned


class UserService:
    """
    用户目录服务类

    与只读的搜索服务不同，这里的写操作直接抛出 ChatAppError 子类
    """

    def __init__(self, database: Database):
        self.database = database

    def register_user(self, username: str, email: str, **profile) -> User:
        """
        注册新用户

        Args:
            username: 用户名（必须唯一）
            email: 邮箱（必须唯一）
            **profile: 其余资料字段

        Returns:
            创建的 User 对象

        Raises:
            ValidationError: 用户名/邮箱为空或资料字段不合法
            ConflictError: 用户名或邮箱已存在
        """
        username = (username or "").strip()
        email = (email or "").strip()
        if not username or not email:
            raise ValidationError("Username and email are required")
        profile = _clean_profile(profile)

        with self.database.session() as session:
            repo = UserRepository(session)
            if repo.find_by_username_or_email(username, email):
                raise ConflictError("Username or email already exists")
            try:
                user = repo.create(username=username, email=email, **profile)
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("Username or email already exists", cause=exc)

        logger.info("[UserService] registered user '%s' (ID: %s)", user.username, user.id)
        return user

    def update_profile(self, user_id: int, **fields) -> User:
        """
        编辑用户资料

        Raises:
            ValidationError: 字段不合法
            NotFoundError: 用户不存在
        """
        cleaned = _clean_profile(fields)

        try:
            with self.database.session() as session:
                user = UserRepository(session).update(user_id, **cleaned)
        except IntegrityError as exc:
            raise classify_db_error(exc)

        if user is None:
            raise NotFoundError(f"User {user_id} does not exist")
        return user

    def get_user(self, user_id: int) -> Optional[User]:
        with self.database.session() as session:
            return UserRepository(session).get_by_id(user_id)

    def list_users(self, exclude_user_id: Optional[int] = None) -> List[User]:
        """获取除当前用户外的所有用户（最新注册的在前）"""
        with self.database.session() as session:
            return UserRepository(session).list_users(exclude_user_id=exclude_user_id, visible_only=False)
