"""Unified AI connector: one prompt, any backend."""

from ai.adapters import Dispatcher, NormalizedResult, UsageRecord

__all__ = ["Dispatcher", "NormalizedResult", "UsageRecord", "ask"]

__version__ = "0.1.0"


# Quick entry point for scripts
def ask(prompt: str, provider: str = None, model: str = None, settings=None, **kwargs):
    """
    Send one prompt and return the normalized result.

    Args:
        prompt: The prompt text
        provider: Provider name or alias (defaults to AI_PROVIDER)
        model: Optional model override
        settings: Optional pre-built AppSettings
        **kwargs: Extra RequestConfig fields (timeout_seconds, want_usage)

    Returns:
        NormalizedResult with text and optional usage
    """
    from core.config import build_request_config, load_settings

    settings = settings or load_settings()
    config = build_request_config(settings, prompt, provider=provider, model=model, **kwargs)
    return Dispatcher(settings).dispatch(config)
