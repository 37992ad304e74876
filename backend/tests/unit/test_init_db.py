"""
数据库初始化单元测试
验证数据库表的创建、默认用户和 Database 生命周期
"""

import pytest
from sqlmodel import Session, select

from influencer_connect.config import Settings
from influencer_connect.db.database import Database, build_engine, create_tables
from influencer_connect.db.init_db import (
    DEFAULT_USERNAME,
    create_default_data,
    create_default_user,
    get_database_url,
    init_db,
)
from influencer_connect.models.user import User


class TestDatabaseInit:
    """测试数据库初始化"""

    def test_create_tables(self):
        """测试创建所有表"""
        engine = build_engine("sqlite:///:memory:")

        create_tables(engine)

        # 验证表已创建（尝试查询应该不会报错）
        with Session(engine) as session:
            result = session.exec(select(User)).all()
            assert list(result) == []

    def test_create_tables_is_idempotent(self, test_db, user_factory):
        """测试重复建表不影响已有数据，数据库包只暴露一个建表入口"""
        import influencer_connect.db as db_package

        user_factory("keeper")

        test_db.create_tables()
        create_tables(test_db.engine)

        assert db_package.create_tables is create_tables
        assert not hasattr(db_package, "get_engine")
        with test_db.session() as session:
            assert [u.username for u in session.exec(select(User)).all()] == ["keeper"]

    def test_create_default_user(self, test_db_session):
        """测试创建默认用户"""
        user = create_default_user(test_db_session)

        assert user.id is not None
        assert user.username == DEFAULT_USERNAME

        # 再次调用应该返回已存在的用户
        assert create_default_user(test_db_session).id == user.id

    def test_create_default_data(self, test_db_session):
        """测试创建所有默认数据"""
        create_default_data(test_db_session)

        users = test_db_session.exec(select(User)).all()
        assert [u.username for u in users] == [DEFAULT_USERNAME]

    def test_get_database_url(self):
        """测试从配置获取连接 URL"""
        assert get_database_url(Settings(database_url="sqlite:///:memory:")) == "sqlite:///:memory:"

    def test_init_db_complete_flow(self):
        """测试完整的初始化流程"""
        database = init_db(Settings(database_url="sqlite:///:memory:"))
        try:
            with database.session() as session:
                user = session.exec(select(User).where(User.username == DEFAULT_USERNAME)).first()
                assert user is not None
        finally:
            database.dispose()


class TestDatabaseLifecycle:
    """测试 Database 生命周期"""

    def test_sessions_share_memory_database(self):
        """测试内存库的多个会话看到同一份数据"""
        with Database("sqlite:///:memory:") as database:
            database.create_tables()
            with database.session() as session:
                session.add(User(username="shared", email="shared@example.com"))
                session.commit()

            with database.session() as session:
                assert session.exec(select(User)).first().username == "shared"

    def test_dispose_is_idempotent(self):
        """测试重复释放无副作用，释放后不能再创建会话"""
        database = Database("sqlite:///:memory:")

        database.dispose()
        database.dispose()

        with pytest.raises(RuntimeError):
            database.session()

    def test_file_database(self, tmp_path):
        """测试 SQLite 文件数据库"""
        url = f"sqlite:///{tmp_path / 'chat.db'}"
        database = Database(url)
        try:
            database.create_tables()
            with database.session() as session:
                create_default_user(session)
        finally:
            database.dispose()

        assert (tmp_path / "chat.db").exists()
