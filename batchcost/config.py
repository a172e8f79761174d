from typing import List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

ALLOWED_DEFAULT_METHODS = {"FIFO", "LIFO", "WEIGHTED_AVG"}


class Settings(BaseSettings):
    # Service
    APP_NAME: str = "BatchCost"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    # Persistence
    DATABASE_URL: str = "sqlite:///./batchcost.db"
    AUTO_CREATE_TABLES: bool = True
    SQL_ECHO: bool = False
    READINESS_CHECK_DATABASE: bool = True

    # Observability
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    ENABLE_REQUEST_ID: bool = True
    ENABLE_REQUEST_LOGGING: bool = True

    # Costing & allocation
    DEFAULT_CURRENCY: str = "USD"
    DEFAULT_ALLOCATION_METHOD: str = "FIFO"
    NUMBER_SEQUENCE_WIDTH: int = Field(4, ge=1, le=9)

    class Config:
        env_file = ".env"
        extra = "ignore"

    @field_validator("DEFAULT_CURRENCY")
    @classmethod
    def normalize_currency(cls, value: str) -> str:
        value = value.strip().upper()
        if len(value) != 3 or not value.isalpha():
            raise ValueError("DEFAULT_CURRENCY must be a 3-letter ISO currency code.")
        return value

    @field_validator("DEFAULT_ALLOCATION_METHOD")
    @classmethod
    def normalize_allocation_method(cls, value: str) -> str:
        value = value.strip().upper()
        # SPECIFIC needs caller-chosen batches, so it cannot be a default
        if value not in ALLOWED_DEFAULT_METHODS:
            raise ValueError(
                f"DEFAULT_ALLOCATION_METHOD must be one of {', '.join(sorted(ALLOWED_DEFAULT_METHODS))}."
            )
        return value

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() in {"prod", "production"}

    @model_validator(mode="after")
    def validate_production_safety(self):
        if not self.is_production:
            return self

        problems = []
        if self.DATABASE_URL.lower().startswith("sqlite"):
            problems.append("SQLite is not allowed when ENVIRONMENT is production")
        if self.AUTO_CREATE_TABLES:
            problems.append("AUTO_CREATE_TABLES must be false in production; use Alembic migrations")
        if self.DEBUG:
            problems.append("DEBUG must be false in production")
        if problems:
            raise ValueError("; ".join(problems) + ".")
        return self


settings = Settings()
