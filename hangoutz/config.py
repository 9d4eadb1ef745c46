from typing import List, Optional

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    environment: str = "development"
    log_level: str = "INFO"

    # Database. database_url wins over the individual parts when set.
    database_url: Optional[str] = None
    host: str = "localhost"
    port: int = 5432
    db_username: str = "hangoutz"
    db_password: SecretStr = SecretStr("hangoutz")
    database: str = "hangoutz"

    # Credentials
    jwt_secret: SecretStr = SecretStr("change-me-in-production")
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 30

    # OTP
    otp_ttl_seconds: int = 300
    otp_length: int = 6
    otp_dev_code: Optional[str] = "123456"

    # Realtime
    ws_heartbeat_interval: float = 30

    # Events
    event_duration_hours: int = 4
    event_cancellation_sticky: bool = False

    # AI assistant
    ai_provider: str = "groq"
    groq_api_key: Optional[SecretStr] = None
    openai_api_key: Optional[SecretStr] = None

    cors_origins: List[str] = ["*"]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, v):
        return str(v).strip().lower()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def sqlalchemy_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg://{self.db_username}:{self.db_password.get_secret_value()}"
            f"@{self.host}:{self.port}/{self.database}"
        )


settings = Settings()
