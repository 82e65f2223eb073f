"""Tests for provider selection and model wrappers."""

import pytest
from config import DEFAULT_MAX_TOKENS, DEFAULT_MODELS
from models.AnthropicModel import AnthropicModel
from models.OpenAIModel import OpenAIModel
from models.registry import (
    ALL_PROVIDERS,
    getModel,
    hasApiKey,
    modelForProvider,
    normalizeEnabledProviders,
    pickEnsembleProvider,
)
from models.XAIModel import XAIModel
from utils.types import InputImage, ProviderName

IMAGE = InputImage(mime_type="image/png", base64="iVBORw0KGgo=", filename="s.png")


class TestProviderSelection:
    def test_default_is_every_provider_with_a_key(self, no_api_keys, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        monkeypatch.setenv("XAI_API_KEY", "xai-test")
        assert normalizeEnabledProviders() == [ProviderName.XAI, ProviderName.ANTHROPIC]

    def test_no_keys_no_providers(self, no_api_keys):
        assert normalizeEnabledProviders(None) == []
        assert not hasApiKey(ProviderName.OPENAI)

    def test_explicit_list_is_normalized(self, no_api_keys):
        enabled = normalizeEnabledProviders(["OpenAI", "bogus", " openai ", "google"])
        assert enabled == [ProviderName.OPENAI, ProviderName.GOOGLE]

    def test_explicit_empty_list(self):
        assert normalizeEnabledProviders([]) == []

    def test_claude_ensembles_when_enabled(self):
        assert pickEnsembleProvider([ProviderName.OPENAI, ProviderName.ANTHROPIC]) == ProviderName.ANTHROPIC

    def test_first_enabled_ensembles_otherwise(self):
        assert pickEnsembleProvider([ProviderName.GOOGLE, ProviderName.OPENAI]) == ProviderName.GOOGLE

    def test_modelForProvider(self):
        assert modelForProvider(ProviderName.XAI) == DEFAULT_MODELS["xai"]
        assert modelForProvider(ProviderName.XAI, {"xai": "grok-x"}) == "grok-x"
        assert modelForProvider("google", {"google": None}) == DEFAULT_MODELS["google"]

    def test_all_providers(self):
        assert [p.value for p in ALL_PROVIDERS] == ["openai", "xai", "google", "anthropic"]


class TestModelWrappers:
    def test_getModel_picks_wrapper(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        wrapper = getModel(ProviderName.OPENAI, "gpt-test")
        assert isinstance(wrapper, OpenAIModel)
        assert wrapper.model_name == "gpt-test"

    def test_text_only_message(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        messages = OpenAIModel("gpt-test").buildMessages("hello")
        assert len(messages) == 1
        assert messages[0].content == "hello"

    def test_image_rides_along_as_data_url(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        content = OpenAIModel("gpt-test").buildMessages("hello", IMAGE)[0].content
        assert content[0] == {"type": "text", "text": "hello"}
        assert content[1]["image_url"]["url"] == "data:image/png;base64,iVBORw0KGgo="

    def test_xai_drops_images(self, monkeypatch):
        monkeypatch.setenv("XAI_API_KEY", "xai-test")
        assert XAIModel("grok-test").buildMessages("hello", IMAGE)[0].content == "hello"

    def test_anthropic_always_has_max_tokens(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        assert AnthropicModel("claude-test", max_tokens=None).max_tokens == DEFAULT_MAX_TOKENS
        assert AnthropicModel("claude-test", max_tokens=1200).max_tokens == 1200

    def test_temperature_is_only_sent_when_set(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert "temperature" not in OpenAIModel("gpt-test")._optionalParams()
        assert OpenAIModel("gpt-test", temperature=0.2)._optionalParams()["temperature"] == 0.2

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            getModel("mistral", "m")
