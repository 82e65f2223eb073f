import os
from typing import Dict, List, Optional, Type

from config import DEFAULT_MODELS, PROVIDER_API_KEY_ENV
from models.AnthropicModel import AnthropicModel
from models.BaseModel import BaseModel
from models.GeminiModel import GeminiModel
from models.OpenAIModel import OpenAIModel
from models.XAIModel import XAIModel
from utils.types import ProviderName

# one model wrapper per provider; agents only ever see the BaseModel interface
PROVIDER_MODELS: Dict[ProviderName, Type[BaseModel]] = {
    ProviderName.OPENAI: OpenAIModel,
    ProviderName.XAI: XAIModel,
    ProviderName.GOOGLE: GeminiModel,
    ProviderName.ANTHROPIC: AnthropicModel,
}

ALL_PROVIDERS: List[ProviderName] = list(PROVIDER_MODELS)


def getModel(provider: ProviderName, model_name: str, max_tokens: Optional[int] = None) -> BaseModel:
    return PROVIDER_MODELS[ProviderName(provider)](model_name=model_name, max_tokens=max_tokens)


def hasApiKey(provider: ProviderName) -> bool:
    return bool(os.getenv(PROVIDER_API_KEY_ENV[ProviderName(provider).value]))


def providersWithApiKeys() -> List[ProviderName]:
    return [p for p in ALL_PROVIDERS if hasApiKey(p)]


def normalizeEnabledProviders(enabled: Optional[List[str]] = None) -> List[ProviderName]:
    """
    No explicit choice means "every provider that has a key". Unknown names are dropped, duplicates collapsed.
    """
    if enabled is None:
        return providersWithApiKeys()
    out: List[ProviderName] = []
    for name in enabled:
        try:
            provider = ProviderName(str(name).strip().lower())
        except ValueError:
            continue
        if provider not in out:
            out.append(provider)
    return out


def pickEnsembleProvider(enabled: List[ProviderName]) -> ProviderName:
    # Claude ensembles when it's available, otherwise whoever was enabled first
    if ProviderName.ANTHROPIC in enabled:
        return ProviderName.ANTHROPIC
    return enabled[0]


def modelForProvider(provider: ProviderName, overrides: Optional[Dict[str, Optional[str]]] = None) -> str:
    key = ProviderName(provider).value
    chosen = (overrides or {}).get(key)
    return chosen or DEFAULT_MODELS[key]
