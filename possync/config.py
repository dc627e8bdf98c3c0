# possync/config.py
import logging
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

DEFAULT_SALES_QUERY = (
    "SELECT * FROM vw_SalesTransactions "
    "WHERE ImportDate BETWEEN @StartDate AND @EndDate"
)

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./possync.db"
    SQL_ECHO: bool = False

    # Token untuk endpoint admin (manual sync, history). Kosong = tanpa auth.
    ADMIN_API_TOKEN: Optional[str] = None

    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]
    ALLOWED_HOSTS: List[str] = ["*"]

    SCHEDULER_ENABLED: bool = True
    SCHEDULER_TICK_SECONDS: int = 60
    SCHEDULER_TIMEZONE: str = "UTC"

    POS_REQUEST_TIMEOUT: int = 30
    POS_SALES_QUERY: str = DEFAULT_SALES_QUERY

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding='utf-8', extra='ignore')

def setup_logging(level: str = None):
    """Konfigurasi root logger sekali saat startup."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

settings = Settings()
