"""OpenAI API adapter - HTTP client for dream interpretation."""

import logging
from datetime import date

import requests

from dreem.config import Config
from dreem.core.records import Message
from dreem.ports.credential_store import CredentialStore
from dreem.ports.interpreter import InterpretationError, MissingCredentialError, RateLimitError

logger = logging.getLogger(__name__)

INTERPRETER_PROMPT = (
    "You are a thoughtful dream interpreter. Offer gentle, non-judgmental insights, "
    "patterns, and questions. Avoid medical or legal advice."
)


def build_interpretation_prompt(text: str, target_date: date, moon_phase: str) -> str:
    """User prompt for a single entry interpretation."""
    return (
        f"Dream date: {target_date.strftime('%a %b %d %Y')}\n"
        f"Moon phase: {moon_phase}\n\n"
        f"Dream:\n{text}\n\n"
        "Provide a concise interpretation (150-250 words), noting themes, emotions, "
        "symbols, and possible real-life connections."
    )


class OpenAIInterpreter:
    """
    OpenAI chat-completions adapter.

    Implements InterpretationService protocol. Handles the credential and
    HTTP calls. No retries: failures surface to the caller once.
    """

    def __init__(self, credentials: CredentialStore, config: Config | None = None):
        self.credentials = credentials
        self.config = config or Config()
        self._session = requests.Session()

    def _api_key(self, missing_message: str) -> str:
        api_key = self.credentials.get()
        if not api_key:
            raise MissingCredentialError(missing_message)
        return api_key

    def _request(self, method: str, endpoint: str, api_key: str, **kwargs) -> requests.Response:
        """Make authenticated API request."""
        try:
            return self._session.request(
                method,
                f"{self.config.openai_base_url}{endpoint}",
                headers={"Authorization": f"Bearer {api_key}"},
                timeout=self.config.ai_timeout,
                **kwargs,
            )
        except requests.Timeout:
            raise InterpretationError(f"AI request timed out after {self.config.ai_timeout}s")
        except requests.RequestException as e:
            logger.error(f"AI request failed: {e}")
            raise InterpretationError(f"AI request failed: {e}")

    def _complete(self, messages: list[dict]) -> str:
        api_key = self._api_key("Please set your OpenAI API key in Settings.")
        resp = self._request(
            "POST",
            "/chat/completions",
            api_key,
            json={
                "model": self.config.openai_model,
                "messages": messages,
                "temperature": self.config.ai_temperature,
                "max_tokens": self.config.ai_max_tokens,
            },
        )

        if not resp.ok:
            if resp.status_code == 429:
                raise RateLimitError("Rate limit exceeded. Please wait a moment before trying again.")
            logger.error(f"AI API error {resp.status_code}: {resp.text}")
            raise InterpretationError(f"API error: {resp.status_code} {resp.text}")

        try:
            data = resp.json()
            content = (data["choices"][0]["message"]["content"] or "").strip()
        except (ValueError, KeyError, IndexError, TypeError, AttributeError):
            content = ""
        if not content:
            raise InterpretationError("Empty response from AI")
        return content

    def interpret(self, text: str, target_date: date, moon_phase: str) -> str:
        """Interpret an entry. Returns the interpretation text."""
        return self._complete(
            [
                {"role": "system", "content": INTERPRETER_PROMPT},
                {"role": "user", "content": build_interpretation_prompt(text, target_date, moon_phase)},
            ]
        )

    def converse(self, messages: list[Message]) -> str:
        """Reply to a chat history. Returns the assistant's answer."""
        history = [{"role": "system", "content": INTERPRETER_PROMPT}]
        history.extend({"role": m.role.value, "content": m.content} for m in messages)
        return self._complete(history)

    def verify_credential(self) -> bool:
        """Check that the stored credential is accepted by the service."""
        api_key = self._api_key("No API key saved. Add it in Settings.")
        resp = self._request("GET", "/models", api_key)
        if not resp.ok:
            raise InterpretationError(f"Validation failed: {resp.status_code} {resp.text}")
        return True
