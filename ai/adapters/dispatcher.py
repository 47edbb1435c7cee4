"""Single-shot provider dispatcher.

One dispatch resolves the provider, runs its preflight checks, performs
exactly one backend call and hands the payload to the normalizer. There is
no retry and no fallback between providers: any failure is terminal.

States per dispatch::

    IDLE -> CONFIG_RESOLVED -> DISPATCHING -> SUCCEEDED -> NORMALIZING -> RENDERED
                                           \\-> FAILED
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Optional

from core.config import AppSettings, RequestConfig
from core.errors import AIError

from .normalizer import NormalizedResult, normalize, render, with_duration
from .providers import BaseProvider, create_provider
from .transport import CommandRunner, Transport

logger = logging.getLogger(__name__)

__all__ = ["DispatchState", "Dispatcher"]


class DispatchState(str, Enum):
    IDLE = "idle"
    CONFIG_RESOLVED = "config_resolved"
    DISPATCHING = "dispatching"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    NORMALIZING = "normalizing"
    RENDERED = "rendered"


class Dispatcher:
    """Routes one RequestConfig to its provider and normalizes the reply."""

    def __init__(
        self,
        settings: AppSettings,
        transport: Optional[Transport] = None,
        runner: Optional[CommandRunner] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._runner = runner
        self._clock = clock
        self.state = DispatchState.IDLE

    def _transition(self, state: DispatchState) -> None:
        logger.debug(f"dispatch state {self.state.value} -> {state.value}")
        self.state = state

    def resolve(self, config: RequestConfig) -> BaseProvider:
        """Select the provider and run its preflight checks. No I/O happens here."""
        try:
            provider = create_provider(
                config.provider,
                self._settings,
                transport=self._transport,
                runner=self._runner,
            )
            provider.preflight()
        except AIError:
            self._transition(DispatchState.FAILED)
            raise
        self._transition(DispatchState.CONFIG_RESOLVED)
        return provider

    def dispatch(self, config: RequestConfig) -> NormalizedResult:
        self.state = DispatchState.IDLE
        provider = self.resolve(config)

        start = self._clock() if config.want_usage else None
        self._transition(DispatchState.DISPATCHING)
        logger.info(
            f"Dispatching to {provider.name.value} "
            f"(model={provider.resolve_model(config) or 'default'}, timeout={config.timeout_seconds}s)"
        )
        try:
            payload = provider.invoke(config)
        except AIError as e:
            self._transition(DispatchState.FAILED)
            logger.debug(f"{provider.name.value} call failed: {e}")
            raise
        self._transition(DispatchState.SUCCEEDED)

        self._transition(DispatchState.NORMALIZING)
        result = normalize(provider, payload, config)
        if config.want_usage:
            result = with_duration(result, int(self._clock() - start))
        return result

    def render(self, result: NormalizedResult) -> str:
        output = render(result)
        self._transition(DispatchState.RENDERED)
        return output
