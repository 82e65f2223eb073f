"""Tests for ProviderAgent: one provider, one prompt, never raises."""

import asyncio

from agents.ProviderAgent import ProviderAgent
from config import MOCK_ANSWER, MOCK_ENSEMBLE_RESPONSE, TAG_SPICE_OPEN
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import HumanMessage
from openai import OpenAIError
from utils.types import ProviderName


class FakeWrapper:
    def __init__(self, llm=None, error=None):
        self.llm = llm
        self.error = error
        self.built = []

    def getModel(self):
        if self.error is not None:
            raise self.error
        return self.llm

    def buildMessages(self, prompt, image=None):
        self.built.append((prompt, image))
        return [HumanMessage(content=prompt)]


def _patchWrapper(monkeypatch, wrapper, seen=None):
    def fakeGetModel(provider, model_name, max_tokens=None):
        if seen is not None:
            seen.append((provider, model_name, max_tokens))
        return wrapper

    monkeypatch.setattr("agents.ProviderAgent.getModel", fakeGetModel)


class TestProviderAgent:
    def test_returns_trimmed_text(self, monkeypatch):
        seen = []
        wrapper = FakeWrapper(llm=FakeListChatModel(responses=["  Use a snubber.  \n"]))
        _patchWrapper(monkeypatch, wrapper, seen)

        answer = asyncio.run(
            ProviderAgent(use_mock=False).run(ProviderName.ANTHROPIC, "claude-test", "q?", max_tokens=1200)
        )

        assert answer.text == "Use a snubber."
        assert answer.error is None
        assert answer.provider == ProviderName.ANTHROPIC
        assert answer.model == "claude-test"
        assert seen == [(ProviderName.ANTHROPIC, "claude-test", 1200)]
        assert wrapper.built == [("q?", None)]

    def test_provider_name_as_string(self, monkeypatch):
        _patchWrapper(monkeypatch, FakeWrapper(llm=FakeListChatModel(responses=["ok"])))
        answer = asyncio.run(ProviderAgent(use_mock=False).run("google", "gem", "q?"))
        assert answer.provider == ProviderName.GOOGLE

    def test_generic_failure_is_captured(self, monkeypatch):
        _patchWrapper(monkeypatch, FakeWrapper(error=RuntimeError("connection reset")))
        answer = asyncio.run(ProviderAgent(use_mock=False).run(ProviderName.XAI, "grok", "q?"))
        assert answer.text == ""
        assert answer.error == "connection reset"

    def test_openai_error_is_captured(self, monkeypatch):
        _patchWrapper(monkeypatch, FakeWrapper(error=OpenAIError("invalid api key")))
        answer = asyncio.run(ProviderAgent(use_mock=False).run(ProviderName.OPENAI, "gpt", "q?"))
        assert answer.error == "Encountered API error with message invalid api key"

    def test_wrapper_construction_failure_is_captured(self, monkeypatch):
        def boom(provider, model_name, max_tokens=None):
            raise ValueError("missing key")

        monkeypatch.setattr("agents.ProviderAgent.getModel", boom)
        answer = asyncio.run(ProviderAgent(use_mock=False).run(ProviderName.OPENAI, "gpt", "q?"))
        assert answer.error == "missing key"


class TestMockMode:
    def test_fanout_prompt_gets_plain_answer(self):
        answer = asyncio.run(ProviderAgent(use_mock=True).run(ProviderName.OPENAI, "gpt", "What now?"))
        assert answer.text == MOCK_ANSWER
        assert answer.meta == {"mock": True}

    def test_ensemble_prompt_gets_tagged_reply(self):
        prompt = f"Please answer with {TAG_SPICE_OPEN} blocks"
        answer = asyncio.run(ProviderAgent(use_mock=True).run(ProviderName.ANTHROPIC, "claude", prompt))
        assert answer.text == MOCK_ENSEMBLE_RESPONSE

    def test_mock_never_builds_a_model(self, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("no model in mock mode")

        monkeypatch.setattr("agents.ProviderAgent.getModel", fail)
        answer = asyncio.run(ProviderAgent(use_mock=True).run(ProviderName.XAI, "grok", "q?"))
        assert answer.error is None
