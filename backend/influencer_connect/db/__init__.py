"""
数据库模块
提供数据库连接、初始化、生命周期管理和变更通知
"""

from .database import Database, build_engine, create_tables
from .change_feed import ChangeFeed, MessageInserted, ListenerHandle
from .init_db import init_db, get_database_url, create_default_data

__all__ = [
    "Database",
    "build_engine",
    "ChangeFeed",
    "MessageInserted",
    "ListenerHandle",
    "init_db",
    "get_database_url",
    "create_tables",
    "create_default_data"
]
