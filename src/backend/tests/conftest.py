"""
Shared fixtures for the backend test suite.

Nothing here talks to a provider: agents run in mock mode or against LangChain fake chat models.
"""

import sys
from pathlib import Path

# backend/ on sys.path so bare imports (config, netlist, workflows ...) resolve like they do at runtime
_backend_dir = str(Path(__file__).resolve().parent.parent)
if _backend_dir not in sys.path:
    sys.path.insert(0, _backend_dir)

import pytest
from config import PROVIDER_API_KEY_ENV
from utils.types import ModelAnswer, ProviderName


@pytest.fixture
def no_api_keys(monkeypatch):
    """Clears every provider key from the environment."""
    for env_name in PROVIDER_API_KEY_ENV.values():
        monkeypatch.delenv(env_name, raising=False)


def make_answer(provider, text="", error=None, model="test-model"):
    return ModelAnswer(provider=ProviderName(provider), model=model, text=text, error=error)


class RecordingAgent:
    """Stands in for ProviderAgent; replies from a fixed map and remembers every call."""

    def __init__(self, replies=None, errors=None):
        self.replies = replies or {}
        self.errors = errors or {}
        self.calls = []

    async def run(self, provider, model, prompt, image=None, max_tokens=None):
        provider = ProviderName(provider)
        self.calls.append(
            {"provider": provider, "model": model, "prompt": prompt, "image": image, "max_tokens": max_tokens}
        )
        if provider in self.errors:
            return ModelAnswer(provider=provider, model=model, error=self.errors[provider])
        return ModelAnswer(provider=provider, model=model, text=self.replies.get(provider, f"{provider.value} says hi"))
