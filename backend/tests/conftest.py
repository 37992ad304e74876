"""
Pytest 测试配置
提供内存数据库、测试用户、服务实例等测试基础设施
"""

import sys
from pathlib import Path
from typing import Generator

import pytest
from sqlmodel import Session

# 添加项目根目录到 sys.path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from influencer_connect.config import Settings
from influencer_connect.db.database import Database
from influencer_connect.models import User, UserRole, Chat


# ==================== 数据库 Fixtures ====================

@pytest.fixture(scope="function")
def test_db() -> Generator[Database, None, None]:
    """
    创建测试用的内存数据库
    每个测试函数都会获得一个全新的数据库
    """
    database = Database("sqlite:///:memory:")
    database.create_tables()

    yield database

    # 测试结束后释放引擎（内存数据库随之销毁）
    database.dispose()


@pytest.fixture(scope="function")
def test_db_session(test_db: Database) -> Generator[Session, None, None]:
    """
    创建测试用的数据库会话
    """
    with test_db.session() as session:
        yield session


@pytest.fixture(scope="function")
def test_settings() -> Settings:
    """
    测试用配置（不读取环境变量）
    """
    return Settings(database_url="sqlite:///:memory:")


# ==================== 测试数据 Fixtures ====================

def make_user(session: Session, username: str, **fields) -> User:
    """在测试会话中直接写入一个用户"""
    fields.setdefault("email", f"{username}@example.com")
    user = User(username=username, **fields)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(scope="function")
def user_factory(test_db_session: Session):
    """
    返回在测试会话中创建用户的函数
    """
    def factory(username: str, **fields) -> User:
        return make_user(test_db_session, username, **fields)
    return factory


@pytest.fixture(scope="function")
def alice(test_db_session: Session) -> User:
    """
    创建测试用户 alice
    """
    return make_user(test_db_session, "alice", bio="Coffee and code")


@pytest.fixture(scope="function")
def bob(test_db_session: Session) -> User:
    """
    创建测试用户 bob
    """
    return make_user(test_db_session, "bob", bio="Travel vlogger", role=UserRole.INFLUENCER)


@pytest.fixture(scope="function")
def test_chat(test_db_session: Session, alice: User, bob: User) -> Chat:
    """
    创建 alice 与 bob 之间的会话
    """
    from influencer_connect.repositories.chat_repository import ChatRepository
    return ChatRepository(test_db_session).create(alice.id, bob.id)


# ==================== Repository / Service Fixtures ====================

@pytest.fixture(scope="function")
def user_repository(test_db_session: Session):
    """
    创建 UserRepository 实例
    """
    from influencer_connect.repositories.user_repository import UserRepository
    return UserRepository(test_db_session)


@pytest.fixture(scope="function")
def chat_repository(test_db_session: Session):
    """
    创建 ChatRepository 实例
    """
    from influencer_connect.repositories.chat_repository import ChatRepository
    return ChatRepository(test_db_session)


@pytest.fixture(scope="function")
def message_repository(test_db_session: Session):
    """
    创建 MessageRepository 实例
    """
    from influencer_connect.repositories.message_repository import MessageRepository
    return MessageRepository(test_db_session)


@pytest.fixture(scope="function")
def search_service(test_db: Database, test_settings: Settings):
    from influencer_connect.services.search_service import UserSearchService
    return UserSearchService(test_db, test_settings)


@pytest.fixture(scope="function")
def chat_service(test_db: Database):
    from influencer_connect.services.chat_service import ChatResolutionService
    return ChatResolutionService(test_db)


@pytest.fixture(scope="function")
def message_service(test_db: Database):
    from influencer_connect.services.message_service import MessageService
    return MessageService(test_db)


@pytest.fixture(scope="function")
def user_service(test_db: Database):
    from influencer_connect.services.user_service import UserService
    return UserService(test_db)


# ==================== Pytest 配置 ====================

def pytest_configure(config):
    """
    Pytest 初始化配置
    """
    # 标记测试分类
    config.addinivalue_line(
        "markers", "unit: Unit tests"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests"
    )
