"""Tests for the HTTP and subprocess transports."""
import json
import subprocess
import sys
from unittest.mock import MagicMock, patch

import httpx
import pytest

from ai.adapters.transport import HttpTransport, ProviderRequest, SubprocessRunner
from core.errors import TransportError


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def request_obj():
    return ProviderRequest(
        url="http://localhost:11434/api/generate",
        headers={"Content-Type": "application/json"},
        body={"model": "gemma3:4b", "prompt": "hi", "stream": False},
    )


class TestHttpTransport:
    """JSON POST over httpx."""

    def test_posts_json_and_decodes_body(self, request_obj):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["content_type"] = request.headers["content-type"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": "ok"})

        payload = HttpTransport(_client(handler)).post_json(request_obj, timeout=30)

        assert payload == {"response": "ok"}
        assert seen == {
            "method": "POST",
            "url": "http://localhost:11434/api/generate",
            "content_type": "application/json",
            "body": {"model": "gemma3:4b", "prompt": "hi", "stream": False},
        }

    def test_nested_body_is_encoded(self):
        request = ProviderRequest(
            url="https://api.openai.com/v1/chat/completions",
            body={"model": "gpt-4o", "messages": [{"role": "user", "content": "hi"}]},
        )
        captured = []

        def handler(req):
            captured.append(json.loads(req.content))
            return httpx.Response(200, json={})

        HttpTransport(_client(handler)).post_json(request, timeout=5)
        assert captured == [{"model": "gpt-4o", "messages": [{"role": "user", "content": "hi"}]}]

    def test_timeout_passed_to_client(self, request_obj):
        client = MagicMock(spec=httpx.Client)
        client.post.return_value.json.return_value = {}

        HttpTransport(client).post_json(request_obj, timeout=42)

        assert client.post.call_args.kwargs["timeout"] == 42

    @pytest.mark.parametrize("handler", [
        lambda request: httpx.Response(401, json={"error": "unauthorized"}),
        lambda request: httpx.Response(503, text="unavailable"),
        lambda request: httpx.Response(200, text="<html>not json</html>"),
    ], ids=["http-401", "http-503", "invalid-json"])
    def test_bad_responses_raise_request_failed(self, request_obj, handler):
        with pytest.raises(TransportError, match="^Request failed$"):
            HttpTransport(_client(handler)).post_json(request_obj, timeout=5)

    @pytest.mark.parametrize("exc_class", [httpx.ConnectError, httpx.ReadTimeout, httpx.ConnectTimeout])
    def test_network_errors_raise_request_failed(self, request_obj, exc_class):
        def handler(request):
            raise exc_class("boom", request=request)

        with pytest.raises(TransportError, match="^Request failed$") as exc_info:
            HttpTransport(_client(handler)).post_json(request_obj, timeout=5)
        assert isinstance(exc_info.value.__cause__, exc_class)

    def test_owns_and_closes_default_client(self, request_obj):
        with patch("ai.adapters.transport.httpx.Client") as mock_client:
            instance = mock_client.return_value
            instance.post.return_value.json.return_value = {"ok": True}

            assert HttpTransport().post_json(request_obj, timeout=1) == {"ok": True}
            instance.close.assert_called_once()


class TestSubprocessRunner:
    """External CLI invocation."""

    def test_which_delegates_to_shutil(self):
        with patch("ai.adapters.transport.shutil.which", return_value="/usr/bin/claude") as mock_which:
            assert SubprocessRunner().which("claude") == "/usr/bin/claude"
        mock_which.assert_called_once_with("claude")

    def test_run_returns_stdout_verbatim(self):
        completed = subprocess.CompletedProcess(["claude", "-p"], 0, stdout="answer\n\n", stderr="")
        with patch("ai.adapters.transport.subprocess.run", return_value=completed) as mock_run:
            output = SubprocessRunner().run(["claude", "-p"], "prompt text", timeout=9)

        assert output == "answer\n\n"
        kwargs = mock_run.call_args.kwargs
        assert mock_run.call_args.args[0] == ["claude", "-p"]
        assert kwargs["input"] == "prompt text"
        assert kwargs["timeout"] == 9
        assert kwargs["capture_output"] is True

    def test_undecodable_output_is_replaced_not_raised(self):
        script = "import sys; sys.stdout.buffer.write(b'ok \\xff\\xfe')"
        output = SubprocessRunner().run([sys.executable, "-c", script], "", timeout=30)
        assert output == "ok \ufffd\ufffd"

    def test_run_decodes_with_replacement(self):
        completed = subprocess.CompletedProcess(["claude", "-p"], 0, stdout="ok", stderr="")
        with patch("ai.adapters.transport.subprocess.run", return_value=completed) as mock_run:
            SubprocessRunner().run(["claude", "-p"], "x", timeout=1)
        assert mock_run.call_args.kwargs["errors"] == "replace"

    def test_non_zero_exit_raises_request_failed(self):
        completed = subprocess.CompletedProcess(["claude", "-p"], 2, stdout="", stderr="bad flag")
        with patch("ai.adapters.transport.subprocess.run", return_value=completed):
            with pytest.raises(TransportError, match="Request failed"):
                SubprocessRunner().run(["claude", "-p"], "x", timeout=1)

    @pytest.mark.parametrize("error", [
        subprocess.TimeoutExpired(["claude"], 1),
        FileNotFoundError("claude"),
    ])
    def test_timeout_or_missing_binary_raise_request_failed(self, error):
        with patch("ai.adapters.transport.subprocess.run", side_effect=error):
            with pytest.raises(TransportError, match="Request failed"):
                SubprocessRunner().run(["claude", "-p"], "x", timeout=1)
