"""Tests for solver_client.py - remote problem solver."""

from types import SimpleNamespace

import openai
import pytest

from stepcalc.config import SolverConfig
from stepcalc.errors import ServiceError
from stepcalc.solver_client import (
    IMAGE_PROMPT,
    SYSTEM_PROMPT,
    SolveRequest,
    SolverClient,
    build_messages,
    parse_solution,
)


class FakeCompletions:
    """Records create() calls and returns a canned completion."""

    def __init__(self, content="The answer is 4", error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))],
            usage=SimpleNamespace(prompt_tokens=12, completion_tokens=5),
        )


def fake_client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


class TestBuildMessages:
    """Tests for build_messages function."""

    def test_text_prompt(self):
        """Test a text problem becomes one user message."""
        messages = build_messages(SolveRequest(prompt="2 + 2"))
        assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert "Problem: 2 + 2" in messages[1]["content"]

    def test_image_prompt(self):
        """Test an image problem carries a data URL part."""
        messages = build_messages(SolveRequest(image_base64="aGVsbG8="))
        parts = messages[1]["content"]
        assert parts[0]["image_url"]["url"] == "data:image/jpeg;base64,aGVsbG8="
        assert parts[1] == {"type": "text", "text": IMAGE_PROMPT}


class TestParseSolution:
    """Tests for parse_solution function."""

    def test_embedded_json(self):
        """Test JSON inside surrounding prose is extracted."""
        text = 'Sure!\n{"problem": "2 + 2", "steps": ["add"], "result": "4"}\nDone.'
        assert parse_solution(text)["result"] == "4"

    def test_no_json(self):
        """Test prose without JSON gives an empty dict."""
        assert parse_solution("just text") == {}
        assert parse_solution("{not json}") == {}
        assert parse_solution(None) == {}


class TestSolverClient:
    """Tests for SolverClient."""

    def test_solve(self):
        """Test a successful request."""
        completions = FakeCompletions()
        client = SolverClient(SolverConfig(model="m", max_tokens=99), client=fake_client(completions))

        response = client.solve(SolveRequest(prompt="2 + 2"))
        assert response.text == "The answer is 4"
        assert response.usage == {"input_tokens": 12, "output_tokens": 5}
        assert completions.calls[0]["model"] == "m"
        assert completions.calls[0]["max_tokens"] == 99

    def test_request_token_budget_wins(self):
        """Test a per-request token budget overrides the config."""
        completions = FakeCompletions()
        client = SolverClient(client=fake_client(completions))
        client.extract_problem("aGVsbG8=")
        assert completions.calls[0]["max_tokens"] == 2000

    def test_empty_request(self):
        """Test a request needs a prompt or an image."""
        client = SolverClient(client=fake_client(FakeCompletions()))
        with pytest.raises(ValueError):
            client.solve(SolveRequest())

    def test_service_failure(self):
        """Test service errors surface once as ServiceError."""
        completions = FakeCompletions(error=openai.OpenAIError("unreachable"))
        client = SolverClient(client=fake_client(completions))
        with pytest.raises(ServiceError, match="unreachable"):
            client.solve(SolveRequest(prompt="2 + 2"))
        assert len(completions.calls) == 1

    def test_missing_api_key(self, monkeypatch):
        """Test a missing key is reported as ServiceError."""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.delenv("STEPCALC_TEST_KEY", raising=False)
        client = SolverClient(SolverConfig(api_key_env="STEPCALC_TEST_KEY"))
        with pytest.raises(ServiceError):
            client.client
