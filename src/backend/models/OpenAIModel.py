from langchain_openai import ChatOpenAI

from config import DEFAULT_MODELS
from models.BaseModel import BaseModel
from utils.types import ProviderName


class OpenAIModel(BaseModel):
    """
    Implementation of BaseModel for OpenAI LLMs using langchain_openai.ChatOpenAI.
    """

    provider = ProviderName.OPENAI

    def __init__(self, model_name=DEFAULT_MODELS["openai"], temperature=None, max_tokens=None):
        super().__init__(model_name, temperature, max_tokens)
        self.llm = ChatOpenAI(model=self.model_name, **self._optionalParams())

    def getModel(self):
        return self.llm
