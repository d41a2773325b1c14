"""Tests for the OpenAI interpretation adapter."""

from datetime import date
from unittest.mock import MagicMock

import pytest
import requests

from dreem.adapters.openai_api import OpenAIInterpreter, build_interpretation_prompt
from dreem.adapters.stored_credentials import StoredCredential
from dreem.config import Config
from dreem.core.records import Message, Role
from dreem.ports.interpreter import InterpretationError, MissingCredentialError, RateLimitError


def response(status=200, payload=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.text = text
    resp.json.return_value = payload
    return resp


def completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def credentials(store, monkeypatch):
    monkeypatch.delenv("DREEM_OPENAI_API_KEY", raising=False)
    creds = StoredCredential(store)
    creds.set("sk-test")
    return creds


@pytest.fixture
def interpreter(credentials):
    service = OpenAIInterpreter(credentials, Config(ai_timeout=5))
    service._session = MagicMock()
    return service


class TestInterpret:
    def test_returns_stripped_content(self, interpreter):
        interpreter._session.request.return_value = response(payload=completion("  Themes of freedom.  "))

        result = interpreter.interpret("I was flying", date(2024, 3, 1), "Full")

        assert result == "Themes of freedom."

    def test_sends_model_prompt_and_key(self, interpreter):
        interpreter._session.request.return_value = response(payload=completion("ok"))

        interpreter.interpret("I was flying", date(2024, 3, 1), "Full")

        method, url = interpreter._session.request.call_args.args
        kwargs = interpreter._session.request.call_args.kwargs
        assert method == "POST"
        assert url == "https://api.openai.com/v1/chat/completions"
        assert kwargs["headers"] == {"Authorization": "Bearer sk-test"}
        assert kwargs["timeout"] == 5
        body = kwargs["json"]
        assert body["model"] == "gpt-4o-mini"
        assert body["temperature"] == 0.7
        assert body["max_tokens"] == 400
        assert body["messages"][0]["role"] == "system"
        assert "I was flying" in body["messages"][1]["content"]
        assert "Moon phase: Full" in body["messages"][1]["content"]

    def test_rate_limit_distinguished(self, interpreter):
        interpreter._session.request.return_value = response(status=429, text="slow down")

        with pytest.raises(RateLimitError, match="Rate limit exceeded"):
            interpreter.interpret("x", date(2024, 3, 1), "Full")

    def test_other_http_errors(self, interpreter):
        interpreter._session.request.return_value = response(status=401, text="bad key")

        with pytest.raises(InterpretationError, match="API error: 401 bad key") as exc_info:
            interpreter.interpret("x", date(2024, 3, 1), "Full")
        assert not isinstance(exc_info.value, RateLimitError)

    def test_empty_content(self, interpreter):
        interpreter._session.request.return_value = response(payload=completion("   "))

        with pytest.raises(InterpretationError, match="Empty response from AI"):
            interpreter.interpret("x", date(2024, 3, 1), "Full")

    def test_malformed_payload(self, interpreter):
        interpreter._session.request.return_value = response(payload={"choices": []})

        with pytest.raises(InterpretationError, match="Empty response"):
            interpreter.interpret("x", date(2024, 3, 1), "Full")

    def test_network_error_wrapped(self, interpreter):
        interpreter._session.request.side_effect = requests.ConnectionError("no route")

        with pytest.raises(InterpretationError, match="AI request failed"):
            interpreter.interpret("x", date(2024, 3, 1), "Full")

    def test_timeout_wrapped(self, interpreter):
        interpreter._session.request.side_effect = requests.Timeout()

        with pytest.raises(InterpretationError, match="timed out after 5s"):
            interpreter.interpret("x", date(2024, 3, 1), "Full")

    def test_missing_key(self, store, monkeypatch):
        monkeypatch.delenv("DREEM_OPENAI_API_KEY", raising=False)
        service = OpenAIInterpreter(StoredCredential(store))
        service._session = MagicMock()

        with pytest.raises(MissingCredentialError, match="API key"):
            service.interpret("x", date(2024, 3, 1), "Full")
        service._session.request.assert_not_called()

    def test_not_retried(self, interpreter):
        interpreter._session.request.return_value = response(status=500, text="boom")

        with pytest.raises(InterpretationError):
            interpreter.interpret("x", date(2024, 3, 1), "Full")
        assert interpreter._session.request.call_count == 1


class TestConverse:
    def test_sends_history(self, interpreter):
        interpreter._session.request.return_value = response(payload=completion("reply"))
        history = [
            Message("1", Role.USER, "hi", "2024-03-01T00:00:00.000Z"),
            Message("2", Role.ASSISTANT, "hello", "2024-03-01T00:00:01.000Z"),
            Message("3", Role.USER, "flying?", "2024-03-01T00:00:02.000Z"),
        ]

        assert interpreter.converse(history) == "reply"

        sent = interpreter._session.request.call_args.kwargs["json"]["messages"]
        assert [m["role"] for m in sent] == ["system", "user", "assistant", "user"]
        assert sent[-1]["content"] == "flying?"


class TestVerifyCredential:
    def test_valid(self, interpreter):
        interpreter._session.request.return_value = response(payload={"data": []})

        assert interpreter.verify_credential() is True
        method, url = interpreter._session.request.call_args.args
        assert (method, url) == ("GET", "https://api.openai.com/v1/models")

    def test_invalid(self, interpreter):
        interpreter._session.request.return_value = response(status=401, text="invalid")

        with pytest.raises(InterpretationError, match="Validation failed: 401"):
            interpreter.verify_credential()

    def test_no_key(self, store, monkeypatch):
        monkeypatch.delenv("DREEM_OPENAI_API_KEY", raising=False)
        with pytest.raises(MissingCredentialError, match="No API key saved"):
            OpenAIInterpreter(StoredCredential(store)).verify_credential()


class TestStoredCredential:
    def test_get_missing(self, store, monkeypatch):
        monkeypatch.delenv("DREEM_OPENAI_API_KEY", raising=False)
        assert StoredCredential(store).get() is None

    def test_stored_under_namespace(self, store, credentials):
        assert store.get_item("OPENAI_API_KEY") == "sk-test"
        assert credentials.get() == "sk-test"

    def test_env_takes_precedence(self, credentials, monkeypatch):
        monkeypatch.setenv("DREEM_OPENAI_API_KEY", "sk-env")
        assert credentials.get() == "sk-env"


def test_prompt_includes_date():
    prompt = build_interpretation_prompt("dream", date(2024, 3, 1), "Full")
    assert prompt.startswith("Dream date: Fri Mar 01 2024")
