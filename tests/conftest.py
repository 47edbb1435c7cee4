"""Shared fixtures: isolated settings and recording stand-ins for the transports."""
import logging
import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from core.config import RequestConfig, load_settings
from core.logging import LOGGER_NAMESPACES


class RecordingTransport:
    """HTTP transport stub that records every call and returns a canned payload."""

    def __init__(self, payload=None, error=None):
        self.payload = payload if payload is not None else {}
        self.error = error
        self.calls = []

    def post_json(self, request, timeout):
        self.calls.append((request, timeout))
        if self.error is not None:
            raise self.error
        return self.payload


class FakeRunner:
    """Subprocess runner stub; `path=None` simulates a CLI missing from PATH."""

    def __init__(self, stdout="", path="/usr/local/bin/claude", error=None):
        self.stdout = stdout
        self.path = path
        self.error = error
        self.which_calls = []
        self.calls = []

    def which(self, command):
        self.which_calls.append(command)
        return self.path

    def run(self, argv, stdin_text, timeout):
        self.calls.append((argv, stdin_text, timeout))
        if self.error is not None:
            raise self.error
        return self.stdout


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep host AI_* variables and any local .env out of the tests."""
    for key in list(os.environ):
        if key.startswith("AI_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo handlers installed by setup_logging so they never outlive a test's streams."""
    yield
    for name in LOGGER_NAMESPACES:
        package_logger = logging.getLogger(name)
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)
            handler.close()
        package_logger.setLevel(logging.NOTSET)
        package_logger.propagate = True


@pytest.fixture
def settings():
    return load_settings(
        OPENAI_API_KEY="sk-test",
        ANTHROPIC_API_KEY="ak-test",
    )


@pytest.fixture
def make_config():
    def _make(provider="local", prompt="Hello there", **kwargs):
        return RequestConfig(provider=provider, prompt=prompt, **kwargs)
    return _make


@pytest.fixture
def make_transport():
    return RecordingTransport


@pytest.fixture
def make_runner():
    return FakeRunner


# Representative success payloads per backend.
OLLAMA_PAYLOAD = {
    "model": "gemma3:4b",
    "response": "Local model response",
    "done": True,
    "prompt_eval_count": 12,
    "eval_count": 20,
    "eval_duration": 1_000_000_000,
}

OPENAI_PAYLOAD = {
    "choices": [{
        "index": 0,
        "message": {"role": "assistant", "content": "OpenAI response"},
        "finish_reason": "stop",
    }],
    "usage": {"prompt_tokens": 9, "completion_tokens": 3, "total_tokens": 12},
}

ANTHROPIC_PAYLOAD = {
    "content": [{"type": "text", "text": "Claude response"}],
    "stop_reason": "end_turn",
    "usage": {"input_tokens": 10, "output_tokens": 4},
}


@pytest.fixture
def payloads():
    return {
        "local": OLLAMA_PAYLOAD,
        "ollama": OLLAMA_PAYLOAD,
        "openai": OPENAI_PAYLOAD,
        "anthropic": ANTHROPIC_PAYLOAD,
    }
