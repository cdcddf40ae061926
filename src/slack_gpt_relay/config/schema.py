"""Pydantic models for configuration schema."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CHAT_MODEL = "gpt-3.5-turbo"
DEFAULT_MAX_HISTORY_TURNS = 13


class SlackConfig(BaseModel):
    """Slack-specific configuration."""

    bot_token: str
    signing_secret: str | None = None
    app_token: str | None = None
    mode: Literal["socket", "lambda"] = "socket"

    @field_validator("bot_token")
    @classmethod
    def validate_bot_token(cls, v: str) -> str:
        """Validate Slack bot token format."""
        if not v.startswith("xoxb-"):
            raise ValueError("Bot token must start with xoxb-")
        return v

    @field_validator("app_token")
    @classmethod
    def validate_app_token(cls, v: str | None) -> str | None:
        """Validate Slack app token format."""
        if v is not None and not v.startswith("xapp-"):
            raise ValueError("App token must start with xapp-")
        return v


class OpenAIConfig(BaseModel):
    """OpenAI-specific configuration."""

    api_key: str
    model: str = DEFAULT_CHAT_MODEL
    timeout: float = Field(120.0, gt=0)
    temperature: float | None = Field(None, ge=0.0, le=2.0)


class AnthropicConfig(BaseModel):
    """Anthropic-specific configuration."""

    api_key: str
    model: str = "claude-3-5-sonnet-20241022"
    max_tokens: int = Field(1024, ge=1)
    timeout: float = Field(120.0, gt=0)


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: Literal["openai", "anthropic"] = "openai"
    openai: OpenAIConfig | None = None
    anthropic: AnthropicConfig | None = None


class ConversationConfig(BaseModel):
    """Transcript handling configuration."""

    max_history_turns: int = Field(
        DEFAULT_MAX_HISTORY_TURNS,
        ge=1,
        description="Most recent non-system turns forwarded to the model",
    )
    timeout_retry_reason: str = "http_timeout"


class FileLoggingConfig(BaseModel):
    """File logging configuration."""

    enabled: bool = False
    path: Path = Path("/var/log/slack-gpt-relay/relay.log")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "json"
    file: FileLoggingConfig = FileLoggingConfig()


class RelayConfig(BaseSettings):
    """Root configuration for Slack GPT Relay."""

    slack: SlackConfig
    llm: LLMConfig
    conversation: ConversationConfig = ConversationConfig()
    logging: LoggingConfig = LoggingConfig()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
    )

    def secret_values(self) -> list[str]:
        """Return every configured credential, for log redaction."""
        values: list[str | None] = [
            self.slack.bot_token,
            self.slack.signing_secret,
            self.slack.app_token,
        ]
        if self.llm.openai:
            values.append(self.llm.openai.api_key)
        if self.llm.anthropic:
            values.append(self.llm.anthropic.api_key)
        return [v for v in values if v]
