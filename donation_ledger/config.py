import os
from pathlib import Path
from dotenv import load_dotenv

# Force-load .env (Windows-safe, reload-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")


def get_database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set. Check your .env file.")
    return url


def get_jwt_secret() -> str:
    return os.getenv("JWT_SECRET", "")


def get_callback_secret() -> str:
    return os.getenv("PAYMENT_CALLBACK_SECRET", "")


def get_max_page_size() -> int:
    return int(os.getenv("MAX_PAGE_SIZE", "100"))


def get_default_page_size() -> int:
    return int(os.getenv("DEFAULT_PAGE_SIZE", "10"))


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")
