"""AI Provider Adapters for the supported text-generation backends."""
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from core.config import AppSettings, RequestConfig
from core.errors import ConfigError

from .normalizer import (
    UsageRecord,
    estimate_tokens,
    number_field,
    reason_field,
    text_field,
    tokens_per_second,
)
from .transport import CommandRunner, HttpTransport, ProviderRequest, SubprocessRunner, Transport

ANTHROPIC_VERSION = "2023-06-01"
ANTHROPIC_MAX_TOKENS = 4096


class ProviderName(str, Enum):
    """Canonical provider names."""
    LOCAL = "local"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    CLAUDE = "claude"


PROVIDER_ALIASES: Dict[str, ProviderName] = {
    "ollama": ProviderName.LOCAL,
    "claude_code": ProviderName.CLAUDE,
}


def resolve_provider_name(name: str) -> ProviderName:
    """Map a user-supplied provider name (or alias) to its canonical name."""
    key = (name or "").strip().lower()
    if key in PROVIDER_ALIASES:
        return PROVIDER_ALIASES[key]
    try:
        return ProviderName(key)
    except ValueError:
        valid = ", ".join(p.value for p in ProviderName)
        raise ConfigError(f"Unknown provider: {name} (valid: {valid})") from None


def _user_messages(prompt: str) -> List[Dict[str, str]]:
    return [{"role": "user", "content": prompt}]


class BaseProvider(ABC):
    """Base class for AI providers."""

    name: ProviderName
    default_model: Optional[str] = None

    @classmethod
    @abstractmethod
    def from_settings(
        cls,
        settings: AppSettings,
        transport: Optional[Transport] = None,
        runner: Optional[CommandRunner] = None,
    ) -> "BaseProvider":
        """Build the provider from connector settings."""
        pass

    def resolve_model(self, config: RequestConfig) -> Optional[str]:
        return config.model or self.default_model

    def preflight(self) -> None:
        """Raise ConfigError when the provider cannot be used. Runs before any I/O."""

    @abstractmethod
    def invoke(self, config: RequestConfig) -> Any:
        """Perform the single backend call and return the raw payload."""
        pass

    @abstractmethod
    def extract_text(self, payload: Any) -> str:
        """Generated text, or an empty string when the payload lacks it."""
        pass

    @abstractmethod
    def extract_usage(self, payload: Any, config: RequestConfig) -> UsageRecord:
        """Token accounting the backend reported; absent fields stay None."""
        pass


class HttpProvider(BaseProvider):
    """Provider reached through a JSON POST."""

    endpoint: str = ""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        transport: Optional[Transport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.transport = transport or HttpTransport()

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.endpoint}"

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def _require_api_key(self, env_var: str) -> None:
        if not self.api_key:
            raise ConfigError(f"{env_var} required")

    @abstractmethod
    def build_request(self, config: RequestConfig) -> ProviderRequest:
        """Build the provider-specific request for this config."""
        pass

    def invoke(self, config: RequestConfig) -> Any:
        request = self.build_request(config)
        return self.transport.post_json(request, timeout=config.timeout_seconds)


class OllamaProvider(HttpProvider):
    """Ollama local model provider (/api/generate, non-streaming)."""

    name = ProviderName.LOCAL
    default_model = "gemma3:4b"
    endpoint = "/api/generate"

    @classmethod
    def from_settings(cls, settings, transport=None, runner=None):
        return cls(settings.OLLAMA_HOST, transport=transport)

    def build_request(self, config: RequestConfig) -> ProviderRequest:
        return ProviderRequest(
            url=self.url,
            headers=self._headers(),
            body={
                "model": self.resolve_model(config),
                "prompt": config.prompt,
                "stream": False,
            },
        )

    def extract_text(self, payload: Any) -> str:
        return text_field(payload, "response")

    def extract_usage(self, payload: Any, config: RequestConfig) -> UsageRecord:
        output_tokens = number_field(payload, "eval_count")
        return UsageRecord(
            input_tokens=number_field(payload, "prompt_eval_count"),
            output_tokens=output_tokens,
            tokens_per_second=tokens_per_second(output_tokens, number_field(payload, "eval_duration")),
        )


class OpenAIProvider(HttpProvider):
    """OpenAI chat completions provider."""

    name = ProviderName.OPENAI
    default_model = "gpt-4o"
    endpoint = "/chat/completions"

    @classmethod
    def from_settings(cls, settings, transport=None, runner=None):
        return cls(settings.OPENAI_API_BASE, api_key=settings.OPENAI_API_KEY, transport=transport)

    def preflight(self) -> None:
        self._require_api_key("AI_OPENAI_API_KEY")

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def build_request(self, config: RequestConfig) -> ProviderRequest:
        return ProviderRequest(
            url=self.url,
            headers=self._headers(),
            body={
                "model": self.resolve_model(config),
                "messages": _user_messages(config.prompt),
            },
        )

    def extract_text(self, payload: Any) -> str:
        return text_field(payload, "choices", 0, "message", "content")

    def extract_usage(self, payload: Any, config: RequestConfig) -> UsageRecord:
        return UsageRecord(
            input_tokens=number_field(payload, "usage", "prompt_tokens"),
            output_tokens=number_field(payload, "usage", "completion_tokens"),
            stop_reason=reason_field(payload, "choices", 0, "finish_reason"),
        )


class AnthropicProvider(HttpProvider):
    """Anthropic messages API provider."""

    name = ProviderName.ANTHROPIC
    default_model = "claude-sonnet-4-20250514"
    endpoint = "/messages"

    @classmethod
    def from_settings(cls, settings, transport=None, runner=None):
        return cls(settings.ANTHROPIC_API_BASE, api_key=settings.ANTHROPIC_API_KEY, transport=transport)

    def preflight(self) -> None:
        self._require_api_key("AI_ANTHROPIC_API_KEY")

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["x-api-key"] = self.api_key or ""
        headers["anthropic-version"] = ANTHROPIC_VERSION
        return headers

    def build_request(self, config: RequestConfig) -> ProviderRequest:
        return ProviderRequest(
            url=self.url,
            headers=self._headers(),
            body={
                "model": self.resolve_model(config),
                "max_tokens": ANTHROPIC_MAX_TOKENS,
                "messages": _user_messages(config.prompt),
            },
        )

    def extract_text(self, payload: Any) -> str:
        return text_field(payload, "content", 0, "text")

    def extract_usage(self, payload: Any, config: RequestConfig) -> UsageRecord:
        return UsageRecord(
            input_tokens=number_field(payload, "usage", "input_tokens"),
            output_tokens=number_field(payload, "usage", "output_tokens"),
            stop_reason=reason_field(payload, "stop_reason"),
        )


class ClaudeCLIProvider(BaseProvider):
    """Claude Code CLI provider; the prompt is piped to `claude -p`."""

    name = ProviderName.CLAUDE

    def __init__(self, command: str = "claude", runner: Optional[CommandRunner] = None):
        self.command = command
        self.runner = runner or SubprocessRunner()

    @classmethod
    def from_settings(cls, settings, transport=None, runner=None):
        return cls(settings.CLAUDE_COMMAND, runner=runner)

    def preflight(self) -> None:
        if not self.runner.which(self.command):
            raise ConfigError(f"{self.command} CLI not found")

    def build_command(self, config: RequestConfig) -> List[str]:
        argv = [self.command, "-p"]
        if config.model:
            argv += ["--model", config.model]
        return argv

    def invoke(self, config: RequestConfig) -> str:
        return self.runner.run(self.build_command(config), config.prompt, timeout=config.timeout_seconds)

    def extract_text(self, payload: Any) -> str:
        return payload if isinstance(payload, str) else ""

    def extract_usage(self, payload: Any, config: RequestConfig) -> UsageRecord:
        return UsageRecord(
            input_tokens=estimate_tokens(config.prompt),
            output_tokens=estimate_tokens(self.extract_text(payload).rstrip("\n")),
            estimated=True,
        )


# Provider factory
PROVIDERS: Dict[ProviderName, Type[BaseProvider]] = {
    ProviderName.LOCAL: OllamaProvider,
    ProviderName.OPENAI: OpenAIProvider,
    ProviderName.ANTHROPIC: AnthropicProvider,
    ProviderName.CLAUDE: ClaudeCLIProvider,
}


def create_provider(
    provider_type: str,
    settings: AppSettings,
    transport: Optional[Transport] = None,
    runner: Optional[CommandRunner] = None,
) -> BaseProvider:
    """Create a provider instance by (possibly aliased) name."""
    name = resolve_provider_name(provider_type)
    return PROVIDERS[name].from_settings(settings, transport=transport, runner=runner)
