"""
用户目录 Repository
提供 users 表的增删改查操作
"""

from typing import Iterable, List, Optional

from sqlalchemy import String, cast, or_
from sqlmodel import Session, select, col

from influencer_connect.models.user import User

LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    """转义 LIKE 通配符，让关键词按字面匹配"""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


class UserRepository:
    """
    用户数据访问对象
    封装所有与 users 表相关的数据库操作
    """

    def __init__(self, session: Session):
        """
        初始化 Repository

        Args:
            session: SQLModel 数据库会话
        """
        self.session = session

    def get_by_id(self, user_id: int) -> Optional[User]:
        """
        根据 ID 获取用户

        Args:
            user_id: 用户 ID

        Returns:
            User 对象，不存在则返回 None
        """
        return self.session.get(User, user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        """
        根据用户名获取用户

        Args:
            username: 用户名

        Returns:
            User 对象，不存在则返回 None
        """
        statement = select(User).where(User.username == username)
        return self.session.exec(statement).first()

    def find_by_username_or_email(self, username: str, email: str) -> Optional[User]:
        """
        查找用户名或邮箱已被占用的用户（注册前的重复检查）

        Returns:
            任一字段冲突的 User 对象，没有冲突则返回 None
        """
        statement = select(User).where(or_(User.username == username, User.email == email))
        return self.session.exec(statement).first()

    def get_many(self, user_ids: Iterable[int]) -> List[User]:
        """
        批量获取用户（顺序不保证）

        Args:
            user_ids: 用户 ID 集合

        Returns:
            存在的 User 对象列表
        """
        ids = list(set(user_ids))
        if not ids:
            return []
        statement = select(User).where(col(User.id).in_(ids))
        return list(self.session.exec(statement).all())

    def list_users(
        self,
        exclude_user_id: Optional[int] = None,
        visible_only: bool = True,
        limit: Optional[int] = None
    ) -> List[User]:
        """
        获取用户列表（按创建时间倒序）

        Args:
            exclude_user_id: 需要排除的用户 ID（通常是当前用户）
            visible_only: 是否只返回 is_visible 为 True 的用户
            limit: 限制返回数量（可选）

        Returns:
            User 对象列表，最新注册的在前
        """
        statement = select(User)
        if exclude_user_id is not None:
            statement = statement.where(User.id != exclude_user_id)
        if visible_only:
            statement = statement.where(col(User.is_visible).is_(True))

        statement = statement.order_by(col(User.created_at).desc(), col(User.id).desc())

        if limit:
            statement = statement.limit(limit)

        return list(self.session.exec(statement).all())

    def search_candidates(self, term: str, exclude_user_id: Optional[int] = None) -> List[User]:
        """
        按关键词查找可见用户（按创建时间倒序）

        用户名、简介、角色不区分大小写地包含关键词即命中。兴趣列按 JSON 文本做
        粗匹配，结果可能多于实际命中，由调用方逐条确认

        Args:
            term: 关键词
            exclude_user_id: 需要排除的用户 ID（通常是当前用户）

        Returns:
            候选 User 对象列表，最新注册的在前
        """
        pattern = f"%{escape_like(term)}%"
        statement = select(User).where(
            col(User.is_visible).is_(True),
            or_(
                col(User.username).ilike(pattern, escape=LIKE_ESCAPE),
                col(User.bio).ilike(pattern, escape=LIKE_ESCAPE),
                cast(User.role, String).ilike(pattern, escape=LIKE_ESCAPE),
                cast(User.interests, String).ilike(pattern, escape=LIKE_ESCAPE),
            )
        )
        if exclude_user_id is not None:
            statement = statement.where(User.id != exclude_user_id)

        statement = statement.order_by(col(User.created_at).desc(), col(User.id).desc())
        return list(self.session.exec(statement).all())

    def create(self, username: str, email: str, **profile) -> User:
        """
        创建新用户

        Args:
            username: 用户名（必须唯一）
            email: 邮箱（必须唯一）
            **profile: 其余资料字段（bio、avatar、role、interests 等）

        Returns:
            创建的 User 对象
        """
        user = User(username=username, email=email, **profile)
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def update(self, user_id: int, **fields) -> Optional[User]:
        """
        更新用户资料字段

        Args:
            user_id: 用户 ID
            **fields: 需要更新的字段

        Returns:
            更新后的 User 对象，不存在则返回 None
        """
        user = self.get_by_id(user_id)
        if user:
            for name, value in fields.items():
                setattr(user, name, value)
            self.session.add(user)
            self.session.commit()
            self.session.refresh(user)
        return user
