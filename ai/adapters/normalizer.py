"""Response normalization into the uniform ``{text, usage}`` result.

Backends disagree on where the generated text and the token accounting live.
Providers describe *where* to look; this module does the tolerant field
access, assembles the :class:`NormalizedResult` and renders the usage line.
A missing field is never an error here: the transport already succeeded.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Optional, Union

if TYPE_CHECKING:
    from core.config import RequestConfig

    from .providers import BaseProvider

MISSING = "n/a"
USAGE_SEPARATOR = "---"

Number = Union[int, float]


@dataclass(frozen=True)
class UsageRecord:
    """Metrics for one exchange. Every field except the duration is optional."""
    duration_seconds: int = 0
    input_tokens: Optional[Number] = None
    output_tokens: Optional[Number] = None
    tokens_per_second: Optional[Number] = None
    stop_reason: Optional[str] = None
    estimated: bool = False


@dataclass(frozen=True)
class NormalizedResult:
    text: str = ""
    usage: Optional[UsageRecord] = None


def dig(payload: Any, *path: Union[str, int]) -> Any:
    """Walk dict keys / list indexes, returning None as soon as a step is missing."""
    current = payload
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, list) or not -len(current) <= step < len(current):
                return None
            current = current[step]
        else:
            if not isinstance(current, dict):
                return None
            current = current.get(step)
    return current


def text_field(payload: Any, *path: Union[str, int]) -> str:
    value = dig(payload, *path)
    return value if isinstance(value, str) else ""


def number_field(payload: Any, *path: Union[str, int]) -> Optional[Number]:
    # Numeric strings are not coerced; the documented backends send JSON numbers.
    value = dig(payload, *path)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def reason_field(payload: Any, *path: Union[str, int]) -> Optional[str]:
    value = dig(payload, *path)
    if isinstance(value, str) and value:
        return value
    return None


def tokens_per_second(output_tokens: Optional[Number], duration_ns: Optional[Number]) -> Optional[int]:
    """Generation throughput from a nanosecond duration; None unless computable."""
    if output_tokens is None or duration_ns is None or duration_ns <= 0:
        return None
    return int(output_tokens * 1_000_000_000 // duration_ns)


def estimate_tokens(text: str) -> int:
    """Rough token estimate for backends without accounting (4 chars per token)."""
    return len(text) // 4


def normalize(
    provider: "BaseProvider",
    payload: Any,
    config: "RequestConfig",
) -> NormalizedResult:
    """Maps a raw provider payload to text and, when requested, usage.

    The duration is left at zero; the dispatcher owns the clock and fills it
    in with :func:`with_duration` once normalization is done.
    """
    text = provider.extract_text(payload)
    if not config.want_usage:
        return NormalizedResult(text=text)
    return NormalizedResult(text=text, usage=provider.extract_usage(payload, config))


def with_duration(result: NormalizedResult, duration_seconds: int) -> NormalizedResult:
    if result.usage is None:
        return result
    return replace(result, usage=replace(result.usage, duration_seconds=duration_seconds))


def _format_count(value: Optional[Number], estimated: bool) -> str:
    if value is None:
        return MISSING
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"~{value}" if estimated else str(value)


def format_usage(usage: UsageRecord) -> str:
    """Renders ``time: Ns | in: X | out: Y[ | tok/s: Z][ | stop: R]``."""
    parts = [
        f"time: {usage.duration_seconds}s",
        f"in: {_format_count(usage.input_tokens, usage.estimated)}",
        f"out: {_format_count(usage.output_tokens, usage.estimated)}",
    ]
    if usage.tokens_per_second is not None:
        parts.append(f"tok/s: {usage.tokens_per_second}")
    if usage.stop_reason:
        parts.append(f"stop: {usage.stop_reason}")
    return " | ".join(parts)


def render(result: NormalizedResult) -> str:
    """Full stdout rendering: text, then the separator and usage line when present."""
    lines = []
    if result.text:
        lines.append(result.text.rstrip("\n"))
    if result.usage is not None:
        lines.append(USAGE_SEPARATOR)
        lines.append(format_usage(result.usage))
    return "\n".join(lines) + "\n" if lines else ""


__all__ = [
    "MISSING",
    "NormalizedResult",
    "UsageRecord",
    "dig",
    "estimate_tokens",
    "format_usage",
    "normalize",
    "number_field",
    "reason_field",
    "render",
    "text_field",
    "tokens_per_second",
    "with_duration",
]
