"""Command-line entry point: ``ai --provider openai --prompt "..." --usage``."""
import argparse
import io
import logging
import select
import sys
from typing import Optional, Sequence, TextIO

from ai.adapters import Dispatcher
from core.config import build_request_config, load_settings
from core.errors import AIError, ConfigError
from core.logging import setup_logging

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1


class ConnectorArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors as ConfigError instead of exiting with 2."""

    def error(self, message):
        raise ConfigError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = ConnectorArgumentParser(
        prog="ai",
        description="Unified AI CLI connector",
        epilog=(
            "Environment: AI_PROVIDER, AI_TIMEOUT, AI_OLLAMA_HOST, "
            "AI_OPENAI_API_KEY, AI_OPENAI_API_BASE, "
            "AI_ANTHROPIC_API_KEY, AI_ANTHROPIC_API_BASE"
        ),
    )
    parser.add_argument('--provider',
                        help='local, openai, anthropic, claude (default: $AI_PROVIDER or local)')
    parser.add_argument('--model', help='Model name (provider-specific default if omitted)')
    parser.add_argument('--prompt', help='Prompt text (or pipe to stdin)')
    parser.add_argument('--timeout', type=int, help='Request timeout in seconds (default: 120)')
    parser.add_argument('--usage', action='store_true',
                        help='Show usage stats (tokens, duration, speed)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging')
    return parser


def read_prompt(stream: TextIO, timeout: Optional[float] = None) -> str:
    """
    Reads the prompt from a piped stream.

    A terminal is refused outright; a pipe that stays silent past the timeout
    is treated as no prompt at all. Trailing newlines are dropped.
    """
    if stream.isatty():
        raise ConfigError("No prompt provided")

    if timeout is not None:
        try:
            ready, _, _ = select.select([stream], [], [], timeout)
        except (AttributeError, io.UnsupportedOperation, OSError, ValueError):
            ready = [stream]
        if not ready:
            raise ConfigError("No prompt provided")

    prompt = stream.read().rstrip("\n")
    if not prompt:
        raise ConfigError("Empty prompt")
    return prompt


def main(
    argv: Optional[Sequence[str]] = None,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
    dispatcher: Optional[Dispatcher] = None,
) -> int:
    """CLI entry point for the connector."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr

    try:
        args = build_parser().parse_args(argv)
        settings = load_settings()
        setup_logging("DEBUG" if args.verbose else settings.LOG_LEVEL, settings.LOG_FILE)

        timeout = settings.TIMEOUT if args.timeout is None else args.timeout
        if timeout <= 0:
            raise ConfigError(f"Invalid timeout: {timeout} (must be a positive number of seconds)")
        prompt = args.prompt
        if not prompt:
            prompt = read_prompt(stdin, timeout=timeout)

        config = build_request_config(
            settings,
            prompt,
            provider=args.provider,
            model=args.model,
            timeout_seconds=timeout,
            want_usage=args.usage,
        )
        dispatcher = dispatcher or Dispatcher(settings)
        result = dispatcher.dispatch(config)
        stdout.write(dispatcher.render(result))
        stdout.flush()
        return 0

    except AIError as e:
        print(f"error: {e}", file=stderr)
        return EXIT_FAILURE


if __name__ == '__main__':
    sys.exit(main())
