import os
from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class Settings(BaseModel):
    app_env: str = "development"
    log_level: str = "info"
    cors_origins: List[str] = []
    host: str = "0.0.0.0"
    port: int = 3001
    tick_interval_s: float = Field(default=1.0, gt=0)
    default_nickname_prefix: str = "User"


@lru_cache
def get_settings() -> Settings:
    # Load .env if present (noop if already loaded)
    load_dotenv()
    origins = os.getenv("CORS_ORIGINS", "")
    origins_list = [o.strip() for o in origins.split(",") if o.strip()]
    return Settings(
        app_env=os.getenv("APP_ENV", "development"),
        log_level=os.getenv("LOG_LEVEL", "info"),
        cors_origins=origins_list,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3001")),
        tick_interval_s=float(os.getenv("TICK_INTERVAL_S", "1.0")),
        default_nickname_prefix=os.getenv("DEFAULT_NICKNAME_PREFIX", "User"),
    )
