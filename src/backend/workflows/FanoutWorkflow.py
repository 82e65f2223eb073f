import logging
import os
from typing import List, Optional

from ensemble.prompt import buildFanoutPrompt
from models.registry import hasApiKey
from orchestrator.fanout import FanoutCoordinator
from utils.helpers import safeFilename, writeJson, writeText
from utils.runConfig import RunConfig
from utils.types import EventCallback, ModelAnswer, ProviderName, RunOutputs, Status, WorkflowState
from workflows.BaseWorkflow import BaseWorkflow

logger = logging.getLogger(__name__)


def formatAnswerMarkdown(answer: ModelAnswer) -> str:
    body = f"# ERROR\n\n{answer.error}" if answer.error else answer.text
    return f"# {answer.provider.value} | {answer.model}\n\n{body}\n"


class FanoutWorkflow(BaseWorkflow):
    """
    Asks every enabled provider the question and archives each answer verbatim.
    """

    name = "fanout"

    def __init__(self, coordinator: Optional[FanoutCoordinator] = None):
        self.coordinator = coordinator or FanoutCoordinator()

    async def run(self, state: WorkflowState, updateCallback: EventCallback) -> WorkflowState:
        question = state.context.get("question")
        if not question:
            return self._fail(state, "missing 'question' field in state.context")

        options: RunConfig = state.memory["options"]
        providers: List[ProviderName] = state.memory.get("providers") or []
        outputs: RunOutputs = state.context["outputs"]
        if not providers:
            return self._fail(state, "no providers enabled")

        image = state.context.get("baseline_image")
        prompt = buildFanoutPrompt(
            question,
            baseline_netlist=state.context.get("baseline_netlist"),
            has_image=image is not None,
        )

        await self._substage(updateCallback, state, "substage_started", "query", 1)
        logger.info("Querying models...")
        if not state.memory.get("use_mock"):
            for provider in providers:
                if not hasApiKey(provider):
                    logger.warning(f"Warning: no API key set for {provider.value}. Its calls will fail.")

        answers = await self.coordinator.fanout(
            prompt, providers, models=options.providerModels(), image=image
        )
        await self._substage(
            updateCallback,
            state,
            "substage_completed",
            "query",
            1,
            meta={"answered": sum(1 for a in answers if not a.error), "failed": sum(1 for a in answers if a.error)},
        )

        await self._substage(updateCallback, state, "substage_started", "archive", 2)
        outputs.answers_json = writeJson(os.path.join(outputs.run_dir, "answers.json"), [a.toDict() for a in answers])
        for answer in answers:
            fname = f"{answer.provider.value}_{safeFilename(answer.model)}.md"
            writeText(os.path.join(outputs.run_dir, "answers", fname), formatAnswerMarkdown(answer))
        await self._substage(updateCallback, state, "substage_completed", "archive", 2)

        state.context["answers"] = answers
        state.context[f"{self.name}_result"] = {"answers": [a.toDict() for a in answers]}
        state.status = Status.SUCCESS
        return state
