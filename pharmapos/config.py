import sys
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings


# Find .env even in frozen or packaged mode
POSSIBLE_ENV_PATHS = [
    Path(__file__).resolve().parent.parent / ".env",        # source checkout
    Path(sys.executable).resolve().parent / ".env",         # frozen exe
    Path.cwd() / ".env",                                    # runtime cwd
]

for env_path in POSSIBLE_ENV_PATHS:
    if env_path.exists():
        load_dotenv(env_path, override=False)
        break


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./pharmacy.db"

    # Server
    HOST: str = "127.0.0.1"
    PORT: int = 5000
    TIMEZONE: str = "UTC"
    CORS_ORIGINS: List[str] = ["*"]

    # Logging
    LOG_FILE: str = "app.log"
    LOG_LEVEL: str = "DEBUG"

    # Product update stream
    SSE_KEEPALIVE_SECONDS: float = 15.0
    SSE_QUEUE_SIZE: int = 100

    # Dashboard thresholds
    LOW_STOCK_THRESHOLD: int = 5
    EXPIRY_WARNING_DAYS: int = 30

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
