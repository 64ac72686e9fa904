from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App settings
    PROJECT_NAME: str = "FinanceTracker"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-west-1", validation_alias="DYNAMO_REGION")
    DYNAMO_ENDPOINT_URL: Optional[str] = Field(default=None, validation_alias="DYNAMO_ENDPOINT_URL")
    DYNAMO_USERS_TABLE: str = Field(default="finance-tracker-users", validation_alias="DYNAMO_TABLE_USERS")
    DYNAMO_EXPENSES_TABLE: str = Field(default="finance-tracker-expenses", validation_alias="DYNAMO_TABLE_EXPENSES")
    DYNAMO_GOALS_TABLE: str = Field(default="finance-tracker-savings-goals", validation_alias="DYNAMO_TABLE_GOALS")
    DYNAMO_CREATE_TABLES: bool = Field(default=False)
    GOAL_UPDATE_MAX_RETRIES: int = 5

    # JWT Authentication
    JWT_SECRET_KEY: str = Field(default="change-me-finance-tracker-secret", validation_alias="JWT_SECRET")
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 15  # 15 days
    OAUTH_STATE_EXPIRE_MINUTES: int = 10
    PASSWORD_MIN_LENGTH: int = 6

    # Frontend / CORS
    FRONTEND_URL: str = Field(default="http://localhost:5173", validation_alias="FRONTEND_URL")
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Google OAuth
    GOOGLE_CLIENT_ID: Optional[str] = Field(default=None, validation_alias="GOOGLE_CLIENT_ID")
    GOOGLE_CLIENT_SECRET: Optional[str] = Field(default=None, validation_alias="GOOGLE_CLIENT_SECRET")
    GOOGLE_CALLBACK_URL: str = Field(
        default="http://localhost:8000/api/auth/google/callback",
        validation_alias="GOOGLE_CALLBACK_URL",
    )
    HTTP_TIMEOUT_SECONDS: float = 10.0

    @property
    def google_enabled(self) -> bool:
        return bool(self.GOOGLE_CLIENT_ID and self.GOOGLE_CLIENT_SECRET)


settings = Settings()
