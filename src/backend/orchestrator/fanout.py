import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from agents.ProviderAgent import ProviderAgent
from config import FANOUT_MAX_TOKENS
from models.registry import modelForProvider
from utils.types import InputImage, ModelAnswer, ProviderName

logger = logging.getLogger(__name__)


class FanoutCoordinator:
    """
    Sends the same prompt to every enabled provider at once and waits for all of them.
    Each call owns its result slot and reports its own failure, so the join never aborts early.
    """

    def __init__(self, agent: Optional[ProviderAgent] = None):
        self.agent = agent or ProviderAgent()

    async def fanout(
        self,
        prompt: str,
        providers: Sequence[ProviderName],
        models: Optional[Dict[str, Optional[str]]] = None,
        image: Optional[InputImage] = None,
    ) -> List[ModelAnswer]:
        jobs = []
        for provider in providers:
            provider = ProviderName(provider)
            # only Claude takes an explicit output budget during fanout
            max_tokens = FANOUT_MAX_TOKENS if provider == ProviderName.ANTHROPIC else None
            jobs.append(
                self.agent.run(
                    provider=provider,
                    model=modelForProvider(provider, models),
                    prompt=prompt,
                    image=image,
                    max_tokens=max_tokens,
                )
            )

        answers = await asyncio.gather(*jobs)

        failed = [a.provider.value for a in answers if a.error]
        if failed:
            logger.warning(f"{len(failed)}/{len(answers)} providers failed: {', '.join(failed)}")
        return list(answers)
