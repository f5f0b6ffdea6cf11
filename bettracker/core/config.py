import os
from dotenv import load_dotenv
load_dotenv()


def _mysql_dsn() -> str:
    return (
        f"mysql+aiomysql://{os.getenv('MYSQL_USER','root')}:{os.getenv('MYSQL_PASSWORD','123456')}"
        f"@{os.getenv('MYSQL_HOST','127.0.0.1')}:{os.getenv('MYSQL_PORT','3306')}/{os.getenv('MYSQL_DB','bettracker')}?charset=utf8mb4"
    )


class Settings:
    APP_NAME = os.getenv("APP_NAME", "bettracker-api")
    APP_VERSION = os.getenv("APP_VERSION", "0.1.0")
    APP_ENV = os.getenv("APP_ENV", "dev")
    APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
    APP_PORT = int(os.getenv("APP_PORT", "8000"))
    TZ = os.getenv("TZ", "UTC")

    # DATABASE_URL wins over the MYSQL_* pieces
    DATABASE_URL = os.getenv("DATABASE_URL") or _mysql_dsn()

    JWT_SECRET = os.getenv("JWT_SECRET", "change_me")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE") or None

    MATCH_WINDOW_DAYS = int(os.getenv("MATCH_WINDOW_DAYS", "30"))
    MATCH_MIN_CONFIDENCE = int(os.getenv("MATCH_MIN_CONFIDENCE", "60"))
    MATCH_MAX_RESULTS = int(os.getenv("MATCH_MAX_RESULTS", "5"))

    EXTRACTOR_URL = os.getenv("EXTRACTOR_URL", "")
    EXTRACTOR_API_KEY = os.getenv("EXTRACTOR_API_KEY", "")
    EXTRACTOR_TIMEOUT_SECONDS = float(os.getenv("EXTRACTOR_TIMEOUT_SECONDS", "60"))

settings = Settings()
