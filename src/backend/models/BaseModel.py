from abc import ABC as AbstractBaseClass
from abc import abstractmethod
from typing import List, Optional

from langchain_core.messages import HumanMessage

from utils.types import InputImage, ProviderName


class BaseModel(AbstractBaseClass):
    """
    Abstract base class for LLM models.
    """

    provider: ProviderName
    supports_images = True

    def __init__(self, model_name, temperature=None, max_tokens=None):
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens

    @abstractmethod
    def getModel(self):
        """
        Should return a BaseChatModel that you can call like so:

        ```python
        model = DerivedModel(model_name)
        llm = model.getModel()
        llm.invoke(model.buildMessages(prompt))
        ```
        """
        pass

    def buildMessages(self, prompt: str, image: Optional[InputImage] = None) -> List[HumanMessage]:
        """
        Single user turn; the image (if any, and if the provider accepts images) rides along as a data URL.
        """
        if image is None or not self.supports_images:
            return [HumanMessage(content=prompt)]
        return [
            HumanMessage(
                content=[
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": image.toDataUrl()}},
                ]
            )
        ]

    def _optionalParams(self, max_tokens_key: str = "max_tokens") -> dict:
        params = {}
        if self.temperature is not None:
            params["temperature"] = self.temperature
        if self.max_tokens is not None:
            params[max_tokens_key] = self.max_tokens
        return params
