"""
Application configuration.

Uses pydantic-settings to read environment variables, optionally from a .env file.
"""

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    database_url: str = Field(default="mongodb://localhost:27017", description="MongoDB connection URL")
    database_name: str = Field(default="smartform", description="MongoDB database name")

    firebase_service_account_json: Optional[str] = Field(
        default=None,
        description="Firebase service account, as a JSON document or a path to one",
    )

    public_base_url: str = Field(default="http://localhost:3000", description="Base of share links")

    cors_origins: str = Field(default="*", description="Comma-separated list of allowed CORS origins")

    submission_policy: Literal["per_field", "count"] = Field(
        default="per_field",
        description="Validation policy applied to every submission",
    )

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()

    @computed_field
    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
