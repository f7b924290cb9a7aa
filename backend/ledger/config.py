# ledger/config.py - environment-driven settings for the API and database
import os
from typing import List
from urllib.parse import quote_plus

from dotenv import load_dotenv

# Merge variables from a local .env file, if any, without overriding the real environment
load_dotenv()

DEFAULT_ALLOWED_ORIGINS = "http://165.22.139.71:8080,http://localhost:8080,http://127.0.0.1:8080"


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


class Settings:
    def __init__(self):
        self.db_host = os.getenv("DB_HOST", "localhost")
        self.db_port = os.getenv("DB_PORT", "5432")
        self.db_user = os.getenv("DB_USER", "postgres")
        self.db_password = os.getenv("DB_PASSWORD", "")
        self.db_name = os.getenv("DB_NAME", "postgres")
        # full SQLAlchemy URL wins over the DB_* parts (handy for sqlite in dev)
        self.database_url_override = os.getenv("DATABASE_URL") or None

        self.api_host = os.getenv("API_HOST", "0.0.0.0")
        self.api_port = int(os.getenv("API_PORT") or "3000")

        self.allowed_origins = _split_origins(os.getenv("CORS_ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS))

        self.db_connect_attempts = int(os.getenv("DB_CONNECT_ATTEMPTS", "10"))
        self.db_connect_delay = float(os.getenv("DB_CONNECT_DELAY", "5"))

        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+psycopg2://{quote_plus(self.db_user)}:{quote_plus(self.db_password)}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}?sslmode=disable"
        )


settings = Settings()
