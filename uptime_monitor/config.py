import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    UPTIME_DB_PATH: str = os.getenv("UPTIME_DB_PATH", "/data/monitoring.db")
    UPTIME_SERVICES_FILE: str | None = os.getenv("UPTIME_SERVICES_FILE") or None
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info")
    SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
    SERVER_PORT: int = int(os.getenv("SERVER_PORT", 8080))
    DEFAULT_CHECK_INTERVAL: int = int(os.getenv("DEFAULT_CHECK_INTERVAL", 60))
    DEFAULT_TIMEOUT_S: float = float(os.getenv("DEFAULT_TIMEOUT_S", "10"))
    DEFAULT_SSL_WARNING_DAYS: int = int(os.getenv("DEFAULT_SSL_WARNING_DAYS", 30))
    MAX_MEMORY_RESULTS: int = int(os.getenv("MAX_MEMORY_RESULTS", 10000))


settings = Settings()
