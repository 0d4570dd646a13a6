# soulseer/core/config.py
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DEPLOY_PHASE: str = "local"
    SKIP_AUTH: bool = False
    LOG_LEVEL: str = "INFO"
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./soulseer.db"
    SQL_ECHO: bool = False

    # Local JWT (email/password accounts)
    JWT_SECRET: str = "change-me-please"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Firebase ID token verification
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[Path] = None

    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ]

    # Money
    TAX_RATE: Decimal = Decimal("0.08")
    READER_SHARE: Decimal = Decimal("0.70")
    GIFT_EARNINGS_RATE: Decimal = Decimal("0.70")
    COINS_PER_UNIT: int = 100
    CURRENCY: str = "USD"

    # Scheduling
    BOOKING_SLOT_STEP_MINUTES: int = 15
    AVAILABILITY_CONFLICT_HORIZON_DAYS: int = 84
    MIN_SESSION_MINUTES: int = 15
    MAX_SESSION_MINUTES: int = 180

    # Background jobs
    ENABLE_REMINDER_SCHEDULER: bool = True
    REMINDER_LEAD_MINUTES: int = 15
    REMINDER_POLL_SECONDS: float = 60.0
    SEED_ON_STARTUP: bool = True
    SEED_ADMIN_EMAIL: str = "admin@soulseer.app"
    SEED_ADMIN_PASSWORD: str = "soulseer-admin-1!"

    @property
    def firebase_enabled(self) -> bool:
        return bool(self.FIREBASE_PROJECT_ID or self.FIREBASE_CREDENTIALS_PATH)


settings = Settings()
