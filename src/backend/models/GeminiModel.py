import os

from langchain_google_genai import ChatGoogleGenerativeAI

from config import DEFAULT_MODELS, PROVIDER_API_KEY_ENV
from models.BaseModel import BaseModel
from utils.types import ProviderName


class GeminiModel(BaseModel):
    provider = ProviderName.GOOGLE

    def __init__(self, model_name=DEFAULT_MODELS["google"], temperature=None, max_tokens=None):
        super().__init__(model_name, temperature, max_tokens)
        self.llm = ChatGoogleGenerativeAI(
            model=self.model_name,
            google_api_key=os.getenv(PROVIDER_API_KEY_ENV["google"]),
            **self._optionalParams(max_tokens_key="max_output_tokens"),
        )

    def getModel(self):
        return self.llm
