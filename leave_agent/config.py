"""
Configuration management using Pydantic Settings.
Reads from environment variables.
"""

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    model_config = ConfigDict(env_file=".env", case_sensitive=False, populate_by_name=True)

    # LLM Configuration
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    litellm_model: str = Field(default="gpt-4o-mini", alias="LITELLM_MODEL")
    llm_timeout_seconds: float = Field(default=30.0, alias="LLM_TIMEOUT_SECONDS")
    leave_parse_temperature: float = Field(default=0.1, alias="LEAVE_PARSE_TEMPERATURE")
    query_parse_temperature: float = Field(default=0.3, alias="QUERY_PARSE_TEMPERATURE")

    # Organization calendar
    org_timezone: str = Field(default="Asia/Kolkata", alias="ORG_TIMEZONE")
    org_timezone_label: str = Field(default="Asia/Kolkata (IST)", alias="ORG_TIMEZONE_LABEL")
    max_advance_days: int = Field(default=30, alias="MAX_ADVANCE_DAYS")
    workday_start: str = Field(default="09:00", alias="WORKDAY_START")
    workday_end: str = Field(default="18:00", alias="WORKDAY_END")

    # Slack Configuration
    slack_bot_token: str = Field(default="", alias="SLACK_BOT_TOKEN")
    slack_app_token: str = Field(default="", alias="SLACK_APP_TOKEN")
    slack_signing_secret: str = Field(default="", alias="SLACK_SIGNING_SECRET")
    query_command: str = Field(default="/query", alias="QUERY_COMMAND")

    # Snowflake Configuration
    snowflake_account: str = Field(default="", alias="SNOWFLAKE_ACCOUNT")
    snowflake_user: str = Field(default="", alias="SNOWFLAKE_USER")
    snowflake_password: str = Field(default="", alias="SNOWFLAKE_PASSWORD")
    snowflake_warehouse: str = Field(default="", alias="SNOWFLAKE_WAREHOUSE")
    snowflake_database: str = Field(default="", alias="SNOWFLAKE_DATABASE")
    snowflake_schema: str = Field(default="", alias="SNOWFLAKE_SCHEMA")
    snowflake_leaves_table: str = Field(default="LEAVES", alias="SNOWFLAKE_LEAVES_TABLE")

    # Application Configuration
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Circuit Breaker Configuration
    circuit_breaker_failure_threshold: int = Field(
        default=5, alias="CIRCUIT_BREAKER_FAILURE_THRESHOLD"
    )
    circuit_breaker_timeout: int = Field(default=60, alias="CIRCUIT_BREAKER_TIMEOUT")

    @property
    def slack_enabled(self) -> bool:
        return bool(self.slack_bot_token and self.slack_app_token)


# Global settings instance
settings = Settings()
