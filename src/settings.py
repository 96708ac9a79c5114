import os

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./tournaments.db")
SQL_ECHO = _flag("SQL_ECHO", "false")

LOCAL_CACHE_DIR = os.getenv("LOCAL_CACHE_DIR", "./.tournament_cache")
LOCAL_CACHE_KEY = os.getenv("LOCAL_CACHE_KEY", "tournaments")

REPAIR_ON_LOAD = _flag("REPAIR_ON_LOAD", "true")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
