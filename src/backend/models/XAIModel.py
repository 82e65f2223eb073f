import os

from langchain_openai import ChatOpenAI

from config import DEFAULT_MODELS, PROVIDER_API_KEY_ENV, XAI_BASE_URL
from models.BaseModel import BaseModel
from utils.types import ProviderName


class XAIModel(BaseModel):
    """
    Grok through xAI's OpenAI-compatible endpoint. Images are not forwarded.
    """

    provider = ProviderName.XAI
    supports_images = False

    def __init__(self, model_name=DEFAULT_MODELS["xai"], temperature=None, max_tokens=None):
        super().__init__(model_name, temperature, max_tokens)
        self.llm = ChatOpenAI(
            model=self.model_name,
            base_url=XAI_BASE_URL,
            api_key=os.getenv(PROVIDER_API_KEY_ENV["xai"]),
            **self._optionalParams(),
        )

    def getModel(self):
        return self.llm
