"""Adapters layer providing provider abstraction, transport and normalization.

The sub-modules are designed to be **plug-compatible**: adding a backend means
adding one provider class and one registry entry.
"""

from __future__ import annotations

from .dispatcher import Dispatcher, DispatchState
from .normalizer import NormalizedResult, UsageRecord, format_usage, normalize, render
from .providers import (
    AnthropicProvider,
    BaseProvider,
    ClaudeCLIProvider,
    HttpProvider,
    OllamaProvider,
    OpenAIProvider,
    PROVIDERS,
    ProviderName,
    create_provider,
    resolve_provider_name,
)
from .transport import CommandRunner, HttpTransport, ProviderRequest, SubprocessRunner, Transport

__all__ = [
    "AnthropicProvider",
    "BaseProvider",
    "ClaudeCLIProvider",
    "CommandRunner",
    "DispatchState",
    "Dispatcher",
    "HttpProvider",
    "HttpTransport",
    "NormalizedResult",
    "OllamaProvider",
    "OpenAIProvider",
    "PROVIDERS",
    "ProviderName",
    "ProviderRequest",
    "SubprocessRunner",
    "Transport",
    "UsageRecord",
    "create_provider",
    "format_usage",
    "normalize",
    "render",
    "resolve_provider_name",
]
