from decimal import Decimal
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./ride_booking.db"

    # Security
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"

    # Application
    PROJECT_NAME: str = "Ride Booking Engine"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Booking rules
    CURRENCY: str = "USD"
    MAX_SEATS_PER_BOOKING: int = 1
    SEAT_HOLD_TTL_MINUTES: int = 10
    SESSION_TTL_MINUTES: int = 30
    EXPIRY_SWEEP_INTERVAL_SECONDS: int = 30
    PAYMENT_TIMEOUT_SECONDS: float = 30.0

    # Fares
    SERVICE_FEE_RATE: Decimal = Decimal("0.10")
    DOORSTEP_PICKUP_FEE: Decimal = Decimal("5.00")
    CONFIRMATION_CODE_PREFIX: str = "GG"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


settings = Settings()
