from langchain_anthropic import ChatAnthropic

from config import DEFAULT_MAX_TOKENS, DEFAULT_MODELS
from models.BaseModel import BaseModel
from utils.types import ProviderName


class AnthropicModel(BaseModel):
    """
    Claude via langchain_anthropic. The messages API requires max_tokens, so it always gets one.
    """

    provider = ProviderName.ANTHROPIC

    def __init__(self, model_name=DEFAULT_MODELS["anthropic"], temperature=None, max_tokens=DEFAULT_MAX_TOKENS):
        super().__init__(model_name, temperature, max_tokens or DEFAULT_MAX_TOKENS)
        self.llm = ChatAnthropic(model=self.model_name, **self._optionalParams())

    def getModel(self):
        return self.llm
