from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: Optional[str] = None
    PGHOST: Optional[str] = None
    PGDATABASE: Optional[str] = None
    PGUSER: Optional[str] = None
    PGPASSWORD: Optional[str] = None
    PGSSLMODE: str = "require"

    # Application
    PROJECT_NAME: str = "Ferry Booking Engine"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Time policy
    OPERATING_TIMEZONE: str = "Asia/Manila"
    BOOKING_CUTOFF_MINUTES: int = 30
    RESCHEDULE_CUTOFF_HOURS: int = 24

    # Fares (all money in centavos)
    DEFAULT_BASE_FARE_CENTS: int = 55000
    DEFAULT_SENIOR_DISCOUNT_PERCENT: int = 20
    DEFAULT_PWD_DISCOUNT_PERCENT: int = 20
    DEFAULT_STUDENT_DISCOUNT_PERCENT: int = 20
    DEFAULT_CHILD_DISCOUNT_PERCENT: int = 50
    DEFAULT_INFANT_MAX_AGE: int = 2
    DEFAULT_CHILD_MIN_AGE: int = 3
    DEFAULT_CHILD_MAX_AGE: int = 10
    DEFAULT_SENIOR_MIN_AGE: int = 60
    PLATFORM_FEE_CENTS_PER_PASSENGER: int = 2000
    PROCESSING_FEE_CENTS: int = 1500
    PLATFORM_FEE_APPLIES_WALK_IN: bool = True

    # Reschedule
    RESCHEDULE_FEE_PERCENT: int = 10
    RESCHEDULE_PROCESSING_FEE_CENTS: int = 1500

    # Booking limits
    MAX_PASSENGERS_PER_BOOKING: int = 20

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.PGHOST:
            return f"postgresql://{self.PGUSER}:{self.PGPASSWORD}@{self.PGHOST}/{self.PGDATABASE}?sslmode={self.PGSSLMODE}"
        return "sqlite:///./ferry.db"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
