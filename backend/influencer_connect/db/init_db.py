"""
数据库初始化脚本
负责创建数据库表结构和默认演示用户
"""

import logging
from typing import Optional

from sqlmodel import Session, select

from influencer_connect.config import Settings, configure_logging
from influencer_connect.db.database import Database
from influencer_connect.models.user import User

logger = logging.getLogger(__name__)

# 默认演示用户
DEFAULT_USERNAME = "testuser"
DEFAULT_EMAIL = "test@example.com"


def get_database_url(settings: Optional[Settings] = None) -> str:
    """
    获取数据库连接 URL
    优先使用 DATABASE_URL，否则使用 DATABASE_PATH 指向的 SQLite 文件
    """
    settings = settings or Settings()
    return settings.resolved_database_url()


def create_default_user(session: Session) -> User:
    """
    创建默认演示用户 'testuser'
    如果用户已存在，则返回现有用户
    """
    statement = select(User).where(User.username == DEFAULT_USERNAME)
    result = session.exec(statement).first()

    if result:
        logger.info("[init_db] default user '%s' already exists (ID: %s)", DEFAULT_USERNAME, result.id)
        return result

    default_user = User(
        username=DEFAULT_USERNAME,
        email=DEFAULT_EMAIL,
        bio="Demo account created at startup"
    )
    session.add(default_user)
    session.commit()
    session.refresh(default_user)
    logger.info("[init_db] created default user '%s' (ID: %s)", DEFAULT_USERNAME, default_user.id)
    return default_user


def create_default_data(session: Session) -> None:
    """
    创建所有默认数据
    """
    create_default_user(session)


def init_db(settings: Optional[Settings] = None) -> Database:
    """
    完整的数据库初始化流程
    1. 构造 Database（引擎、会话工厂、变更通道）
    2. 创建所有表结构
    3. 创建默认数据

    Returns:
        已就绪的 Database，调用方负责 dispose()
    """
    settings = settings or Settings()
    database = Database(get_database_url(settings), echo=settings.sql_echo)
    database.create_tables()

    with database.session() as session:
        create_default_data(session)

    return database


if __name__ == "__main__":
    # 直接运行此脚本时，执行数据库初始化
    current_settings = Settings()
    configure_logging(current_settings)
    init_db(current_settings).dispose()
