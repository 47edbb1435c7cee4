"""Transport capabilities used by the providers.

Two seams are exposed so the dispatcher never touches sockets or processes
directly:

* :class:`HttpTransport` posts a :class:`ProviderRequest` as JSON and returns
  the decoded body.
* :class:`SubprocessRunner` resolves and runs an external CLI, returning its
  captured standard output.

Every failure mode (HTTP status, connection error, timeout, undecodable body,
non-zero exit) is collapsed into :class:`~core.errors.TransportError`.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Protocol

import httpx

from core.errors import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderRequest:
    """Provider-specific HTTP request. Never mutated after construction."""
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        object.__setattr__(self, "body", MappingProxyType(dict(self.body)))


class Transport(Protocol):
    def post_json(self, request: ProviderRequest, timeout: float) -> Any:
        """POST the request and return the decoded JSON body."""
        ...


class CommandRunner(Protocol):
    def which(self, command: str) -> Optional[str]:
        """Return the resolved executable path, or None when not on PATH."""
        ...

    def run(self, argv: List[str], stdin_text: str, timeout: float) -> str:
        """Run argv with stdin_text on standard input and return stdout."""
        ...


class HttpTransport:
    """Synchronous JSON-over-HTTP transport backed by httpx."""

    def __init__(self, client: Optional[httpx.Client] = None):
        self._client = client

    def post_json(self, request: ProviderRequest, timeout: float) -> Any:
        client = self._client or httpx.Client()
        try:
            response = client.post(
                request.url,
                headers=dict(request.headers),
                json=_plain(request.body),
                timeout=timeout,
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"POST {request.url} failed: {type(e).__name__}: {e}")
            raise TransportError() from e
        finally:
            if self._client is None:
                client.close()


class SubprocessRunner:
    """Runs external CLIs with the prompt piped on stdin."""

    def which(self, command: str) -> Optional[str]:
        return shutil.which(command)

    def run(self, argv: List[str], stdin_text: str, timeout: float) -> str:
        logger.debug(f"Executing: {' '.join(argv)}")
        try:
            result = subprocess.run(
                argv,
                input=stdin_text,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
                check=False,
            )
        except (subprocess.SubprocessError, OSError) as e:
            logger.debug(f"{argv[0]} could not be run: {e}")
            raise TransportError() from e

        if result.returncode != 0:
            logger.debug(f"{argv[0]} exited with {result.returncode}. Stderr: {result.stderr}")
            raise TransportError()
        return result.stdout


def _plain(value: Any) -> Any:
    """Unwrap read-only mappings so the body can be JSON encoded."""
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


__all__ = [
    "CommandRunner",
    "HttpTransport",
    "ProviderRequest",
    "SubprocessRunner",
    "Transport",
]
