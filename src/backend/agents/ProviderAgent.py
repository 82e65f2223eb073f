import asyncio
import logging
from typing import Optional

from config import MOCK_ANSWER, MOCK_ENSEMBLE_RESPONSE, TAG_SPICE_OPEN, USE_MOCK_LLM
from langchain_core.output_parsers import StrOutputParser
from models.registry import getModel
from openai import OpenAIError, RateLimitError
from utils.types import InputImage, ModelAnswer, ProviderName

from agents.BaseAgent import BaseAgent

logger = logging.getLogger(__name__)


class ProviderAgent(BaseAgent):
    """
    Asks one provider one question. Whatever goes wrong (missing key, quota, network, a broken model)
    ends up in ModelAnswer.error; this agent never raises, so a fanout always gets one answer per provider.
    """

    def __init__(self, use_mock: bool = USE_MOCK_LLM):
        self.use_mock = use_mock

    def _mock(self, prompt: str) -> str:
        # the ensemble prompt is the only one that asks for tagged blocks
        return MOCK_ENSEMBLE_RESPONSE if TAG_SPICE_OPEN in prompt else MOCK_ANSWER

    async def run(
        self,
        provider: ProviderName,
        model: str,
        prompt: str,
        image: Optional[InputImage] = None,
        max_tokens: Optional[int] = None,
    ) -> ModelAnswer:
        provider = ProviderName(provider)
        if self.use_mock:
            return ModelAnswer(provider=provider, model=model, text=self._mock(prompt), meta={"mock": True})

        try:
            wrapper = getModel(provider, model, max_tokens=max_tokens)
            chain = wrapper.getModel() | StrOutputParser()
            text = await asyncio.to_thread(chain.invoke, wrapper.buildMessages(prompt, image))
        except RateLimitError as e:
            logger.warning(f"{provider.value} rate limited: {e}")
            return ModelAnswer(provider=provider, model=model, error=f"Quota exceeded with message: {e}")
        except OpenAIError as e:
            logger.warning(f"{provider.value} API error: {e}")
            return ModelAnswer(provider=provider, model=model, error=f"Encountered API error with message {e}")
        except Exception as e:
            logger.warning(f"{provider.value} call failed: {e}")
            return ModelAnswer(provider=provider, model=model, error=str(e) or type(e).__name__)

        return ModelAnswer(provider=provider, model=model, text=(text or "").strip())
