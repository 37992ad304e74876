"""
配置模块
从系统环境变量构建运行配置，并负责日志初始化

遵循安全协议：从不读取 .env 文件，只从系统环境变量获取配置。
"""

import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# 后端根目录（相对数据库路径从这里解析）
BACKEND_ROOT = Path(__file__).parent.parent

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


class Settings(BaseSettings):
    """
    运行配置

    字段名即环境变量名（不区分大小写），例如 DATABASE_URL、SEARCH_RESULT_LIMIT
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=None,
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
    )

    # 完整的 SQLAlchemy 连接串，设置后优先于 database_path
    database_url: Optional[str] = None

    # SQLite 文件路径，相对路径从后端根目录解析
    database_path: str = "database.db"

    # 是否打印 SQL 语句
    sql_echo: bool = False

    # 搜索结果上限
    search_result_limit: int = Field(default=20, ge=1)

    # 没有可见用户时是否退回到全部用户（默认关闭，见 DESIGN.md）
    search_fallback_to_all_users: bool = False

    log_level: str = "INFO"

    @field_validator("database_url", mode="before")
    @classmethod
    def _blank_url_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @field_validator("database_path", "log_level", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    def resolved_database_url(self) -> str:
        """返回最终使用的数据库连接 URL"""
        if self.database_url:
            return self.database_url

        db_path = self.database_path
        if db_path == ":memory:":
            return "sqlite:///:memory:"
        if not os.path.isabs(db_path):
            db_path = str(BACKEND_ROOT / db_path)
        return f"sqlite:///{db_path}"


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    初始化根日志记录器

    已经配置过 handler 时不会重复添加，只调整级别
    """
    settings = settings or Settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    root_logger.setLevel(level)
