import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

DATA_DIR = Path(__file__).resolve().parent / "data"


class Settings(BaseSettings):
    stats_path: Path = Field(DATA_DIR / "user_stats.json", alias="PHENOM_STATS_PATH")
    database_url: Optional[str] = Field(None, alias="PHENOM_DATABASE_URL")
    database_pool_size: int = Field(5, alias="PHENOM_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(5, alias="PHENOM_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="PHENOM_DATABASE_ECHO")
    persistence_mode: Literal["local", "hybrid"] = Field("hybrid", alias="PHENOM_PERSISTENCE_MODE")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    @property
    def remote_enabled(self) -> bool:
        return self.persistence_mode == "hybrid" and bool(self.database_url)


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[arg-type]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
