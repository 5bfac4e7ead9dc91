import os
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "reqdeck"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"

    # "sql" | "file" | "memory"
    STORAGE_BACKEND: str = "sql"
    DATABASE_URL: str = "sqlite:///./data/reqdeck.db"
    DATA_DIR: str = "./data"

    HISTORY_LIMIT: int = 100
    MAX_REDIRECTS: int = 10

    LOG_FILE: str | None = None

    model_config = {"env_file": ".env", "extra": "ignore"}


def load_settings() -> Settings:
    settings = Settings()

    _data_dir = os.getenv("REQDECK_DATA_DIR")
    if _data_dir:
        data_dir = Path(_data_dir).expanduser().resolve()
        data_dir.mkdir(parents=True, exist_ok=True)
        settings.DATA_DIR = data_dir.as_posix()
        settings.DATABASE_URL = f"sqlite:///{(data_dir / 'reqdeck.db').as_posix()}"

    _db_path = os.getenv("REQDECK_DB_PATH")
    if _db_path:
        db_path = Path(_db_path).expanduser().resolve()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        settings.DATABASE_URL = f"sqlite:///{db_path.as_posix()}"

    _log_file = os.getenv("REQDECK_LOG_FILE")
    if _log_file:
        settings.LOG_FILE = _log_file

    return settings

