from functools import lru_cache
import os
from pydantic import BaseModel, Field


class Settings(BaseModel):
    env: str = Field(default="dev", alias="ENV")
    timezone: str = Field(default="UTC", alias="TIMEZONE")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    database_url: str = Field(default="", alias="DATABASE_URL")
    postgres_db: str = Field(default="courtbook", alias="POSTGRES_DB")
    postgres_user: str = Field(default="courtbook", alias="POSTGRES_USER")
    postgres_password: str = Field(default="courtbook", alias="POSTGRES_PASSWORD")
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")

    payment_provider: str = Field(default="stub", alias="PAYMENT_PROVIDER")
    payment_service_url: str = Field(default="http://localhost:8081", alias="PAYMENT_SERVICE_URL")
    payment_api_key: str = Field(default="", alias="PAYMENT_API_KEY")
    payment_currency: str = Field(default="USD", alias="PAYMENT_CURRENCY")

    pending_hold_timeout_min: int = Field(default=30, alias="PENDING_HOLD_TIMEOUT_MIN")
    scheduler_enabled: bool = Field(default=False, alias="SCHEDULER_ENABLED")

    class Config:
        populate_by_name = True

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(**os.environ)
