"""
用户搜索服务

对用户目录做关键词过滤和相关度打分：
- 空关键词：返回最新注册的可见用户
- 非空关键词：用户名、简介、角色、兴趣任一字段包含关键词（不区分大小写）即命中，
  按相关度得分降序排列
"""

import logging
from typing import List, Optional

from influencer_connect.config import Settings
from influencer_connect.db.database import Database
from influencer_connect.errors import classify_db_error
from influencer_connect.models.user import User
from influencer_connect.repositories.user_repository import UserRepository
from influencer_connect.services.results import RankedUser, SearchResult

logger = logging.getLogger(__name__)

# 相关度权重（用户名三档互斥，其余字段累加）
SCORE_USERNAME_EXACT = 100
SCORE_USERNAME_PREFIX = 50
SCORE_USERNAME_CONTAINS = 25
SCORE_BIO = 10
SCORE_ROLE = 15
SCORE_INTEREST = 20


def score_user(user: User, term: str) -> int:
    """
    计算用户对关键词的相关度得分

    Args:
        user: 候选用户
        term: 已转为小写并去除空白的关键词

    Returns:
        得分，0 表示没有任何字段命中
    """
    score = 0

    username = (user.username or "").lower()
    if username == term:
        score += SCORE_USERNAME_EXACT
    elif username.startswith(term):
        score += SCORE_USERNAME_PREFIX
    elif term in username:
        score += SCORE_USERNAME_CONTAINS

    if user.bio and term in user.bio.lower():
        score += SCORE_BIO

    role = getattr(user.role, "value", user.role)
    if role and term in str(role).lower():
        score += SCORE_ROLE

    if any(term in str(interest).lower() for interest in (user.interests or [])):
        score += SCORE_INTEREST

    return score


class UserSearchService:
    """
    用户搜索服务

    使用示例：
        service = UserSearchService(database)
        users = service.search_users("tech", exclude_user_id=current_user.id)
    """

    def __init__(self, database: Database, settings: Optional[Settings] = None):
        self.database = database
        self.settings = settings or Settings()

    @property
    def limit(self) -> int:
        return self.settings.search_result_limit

    def search(self, term: Optional[str], exclude_user_id: Optional[int] = None) -> SearchResult:
        """
        搜索用户

        Args:
            term: 搜索关键词，None 或空白表示浏览最新用户
            exclude_user_id: 需要排除的用户 ID（通常是当前用户）

        Returns:
            SearchResult；查询失败时 items 为空且 error_kind 非空
        """
        normalized = (term or "").strip().lower()

        try:
            with self.database.session() as session:
                repo = UserRepository(session)
                if not normalized:
                    items = self._browse(repo, exclude_user_id)
                else:
                    items = self._rank(repo, normalized, exclude_user_id)
        except Exception as exc:
            error = classify_db_error(exc)
            logger.error("[UserSearchService] search failed for term %r: %s", term, error.message)
            return SearchResult.failure(error, term=normalized)

        logger.debug("[UserSearchService] term %r returned %d users", normalized, len(items))
        return SearchResult(term=normalized, items=items)

    def search_users(self, term: Optional[str], exclude_user_id: Optional[int] = None) -> List[User]:
        """
        搜索用户，只返回用户列表

        查询失败时返回空列表，需要区分失败的调用方请使用 search()
        """
        return self.search(term, exclude_user_id).users

    def _browse(self, repo: UserRepository, exclude_user_id: Optional[int]) -> List[RankedUser]:
        users = repo.list_users(exclude_user_id=exclude_user_id, visible_only=True, limit=self.limit)

        if not users and self.settings.search_fallback_to_all_users:
            logger.warning("[UserSearchService] no visible users, falling back to all users")
            users = repo.list_users(exclude_user_id=exclude_user_id, visible_only=False, limit=self.limit)

        return [RankedUser(user=user) for user in users]

    def _rank(self, repo: UserRepository, term: str, exclude_user_id: Optional[int]) -> List[RankedUser]:
        candidates = repo.search_candidates(term, exclude_user_id=exclude_user_id)

        ranked = []
        for user in candidates:
            score = score_user(user, term)
            # 兴趣列是 JSON 文本粗匹配，得分为 0 的候选不是真正命中
            if score > 0:
                ranked.append(RankedUser(user=user, score=score))

        # sort 是稳定的：同分时保持最新注册在前
        ranked.sort(key=lambda item: item.score, reverse=True)
        return ranked[:self.limit]
