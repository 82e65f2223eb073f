from abc import ABC as AbstractBaseClass, abstractmethod
from typing import Any


class BaseAgent(AbstractBaseClass):
    @abstractmethod
    def _mock(self, prompt: str) -> str:
        """
        Canned reply used when USE_MOCK_LLM is on, shaped like a real reply to the same prompt
        so every downstream workflow still has something to parse and write.
        """
        pass

    @abstractmethod
    async def run(self, *args, **kwargs) -> Any:
        """
        Sends the prompt to the language model and returns the agent's result.
        Agents report failures in their result instead of raising, so one bad call never takes a batch down.
        """
        pass
