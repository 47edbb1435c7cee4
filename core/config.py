import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "local"
DEFAULT_TIMEOUT = 120

# --- Environment-based Settings ---

class AppSettings(BaseSettings):
    """
    Connector settings loaded from AI_* environment variables.
    The .env file is loaded automatically by pydantic-settings.
    """
    model_config = SettingsConfigDict(
        env_prefix='AI_', env_file='.env', env_file_encoding='utf-8', extra='ignore'
    )

    # --- General & Core ---
    PROVIDER: str = Field(DEFAULT_PROVIDER, description="Backend used when --provider is not given.")
    TIMEOUT: int = Field(DEFAULT_TIMEOUT, gt=0, description="Request timeout in seconds.")
    LOG_LEVEL: str = Field("WARNING", description="Log level for the connector (e.g., DEBUG, INFO, WARNING).")
    LOG_FILE: Optional[str] = Field(None, description="Optional: Path of a rotating JSON log file.")

    # --- Ollama / Local LLMs ---
    OLLAMA_HOST: str = Field("http://localhost:11434", description="The full URL of your Ollama server.")

    # --- Hosted APIs ---
    OPENAI_API_KEY: Optional[str] = Field(None)
    OPENAI_API_BASE: str = Field("https://api.openai.com/v1")
    ANTHROPIC_API_KEY: Optional[str] = Field(None)
    ANTHROPIC_API_BASE: str = Field("https://api.anthropic.com/v1")

    # --- External CLI ---
    CLAUDE_COMMAND: str = Field("claude", description="Executable used by the claude provider.")


def _describe_validation_error(e: ValidationError) -> str:
    fields = [".".join(str(part) for part in err["loc"]) or "value" for err in e.errors()]
    return ", ".join(fields)


def load_settings(**overrides) -> AppSettings:
    """
    Builds the settings object once per invocation.

    Keyword overrides take precedence over the environment and the .env file.
    """
    try:
        return AppSettings(**overrides)
    except ValidationError as e:
        logger.debug("Settings validation failed: %s", e)
        raise ConfigError(f"Invalid configuration: {_describe_validation_error(e)}") from e

# --- Per-invocation request ---

class RequestConfig(BaseModel):
    """A fully resolved, immutable request for a single dispatch."""
    model_config = ConfigDict(frozen=True)

    provider: str = DEFAULT_PROVIDER
    model: Optional[str] = None
    prompt: str = Field(..., min_length=1)
    timeout_seconds: int = Field(DEFAULT_TIMEOUT, gt=0)
    want_usage: bool = False


def build_request_config(
    settings: AppSettings,
    prompt: Optional[str],
    *,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    timeout_seconds: Optional[int] = None,
    want_usage: bool = False,
) -> RequestConfig:
    """Resolves CLI values against settings defaults and validates the result."""
    if not prompt:
        raise ConfigError("Empty prompt")

    try:
        return RequestConfig(
            provider=provider or settings.PROVIDER,
            model=model or None,
            prompt=prompt,
            timeout_seconds=settings.TIMEOUT if timeout_seconds is None else timeout_seconds,
            want_usage=want_usage,
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid request: {_describe_validation_error(e)}") from e
