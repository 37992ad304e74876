"""
数据库句柄
显式构造、显式释放的数据库依赖，持有引擎、会话工厂和变更通知通道
"""

import json
import logging
from typing import Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from influencer_connect.db.change_feed import ChangeFeed

logger = logging.getLogger(__name__)


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _is_sqlite_memory(url: str) -> bool:
    return _is_sqlite(url) and (":memory:" in url or url.rstrip("/") == "sqlite:")


def _json_serializer(value) -> str:
    # 保留非 ASCII 字符原样存储，JSON 列按文本匹配关键词时才能命中
    return json.dumps(value, ensure_ascii=False)


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    根据连接 URL 创建引擎

    SQLite 内存库使用 StaticPool，保证所有会话看到同一个数据库
    """
    kwargs = {"echo": echo, "json_serializer": _json_serializer}
    if _is_sqlite(database_url):
        # SQLite 特有配置
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_sqlite_memory(database_url):
            kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **kwargs)

    if _is_sqlite(database_url):
        @event.listens_for(engine, "connect")
        def _configure_sqlite_connection(dbapi_connection, connection_record):
            # SQLite 默认不执行外键约束，ON DELETE CASCADE 需要显式打开
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
            # 内置 lower() 只处理 ASCII，ILIKE 需要与 Python 的 str.lower 一致
            dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)

    return engine


def create_tables(engine: Engine) -> None:
    """
    创建所有数据库表
    SQLModel 会自动根据模型创建表结构，已存在的表不受影响
    """
    # 确保所有表模型已注册到 metadata
    import influencer_connect.models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("[Database] tables ready at %s", engine.url.render_as_string(hide_password=True))


class Database:
    """
    数据库依赖

    进程启动时构造，关闭时调用 dispose()。服务层通过构造参数接收它，
    不使用模块级的全局客户端。

    使用示例：
        db = Database("sqlite:///:memory:")
        db.create_tables()
        with db.session() as session:
            ...
        db.dispose()
    """

    def __init__(self, database_url: str, echo: bool = False, engine: Optional[Engine] = None):
        self.database_url = database_url
        self.engine = engine if engine is not None else build_engine(database_url, echo=echo)
        # expire_on_commit=False：会话关闭后返回的模型对象仍可读取
        self.session_factory = sessionmaker(
            bind=self.engine,
            class_=Session,
            expire_on_commit=False
        )
        self.change_feed = ChangeFeed()
        self.change_feed.bind(self.session_factory)
        self._disposed = False

    def session(self) -> Session:
        """创建新的数据库会话，支持 with 语句"""
        if self._disposed:
            raise RuntimeError("Database has been disposed")
        return self.session_factory()

    def create_tables(self) -> None:
        """根据模型创建所有表"""
        create_tables(self.engine)

    def dispose(self) -> None:
        """关闭变更通道并释放连接池，可重复调用"""
        if self._disposed:
            return
        self._disposed = True
        self.change_feed.close()
        self.engine.dispose()
        logger.info("[Database] disposed")

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()
