"""配置管理模块"""
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # 表格配置（字段名即环境变量名，忽略大小写）
    tables_dir: Path = Field(Path("tables"))
    require_frontmatter: bool = Field(False)
    inline_dice: bool = Field(True)

    # 日志配置
    log_level: str = Field("INFO")
    log_path: Path = Field(Path("logs"))
    log_to_file: bool = Field(False)

    # 骰点配置
    max_attempts: int = Field(100, ge=1)
    unique_attempt_factor: int = Field(10, ge=1)
    default_session: str = Field("default")
    history_limit: int = Field(500, ge=1)  # 每个会话保留的历史条数

    def safe_dict(self) -> dict:
        """返回可直接写入日志的配置字典"""
        return {key: str(value) for key, value in self.model_dump().items()}

    def __repr__(self) -> str:
        items = ", ".join(f"{k}={v!r}" for k, v in self.safe_dict().items())
        return f"Settings({items})"

    def __str__(self) -> str:
        return self.__repr__()


settings = Settings()
