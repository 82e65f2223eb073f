import logging
from typing import Dict, Optional

from agents.ProviderAgent import ProviderAgent
from config import DEFAULT_OUTDIR, MAX_RETRIES, USE_MOCK_LLM
from models.registry import normalizeEnabledProviders
from orchestrator.fanout import FanoutCoordinator
from orchestrator.orchestrator import WorkflowOrchestrator
from utils.helpers import makeRunDir, readTextIfExists
from utils.runConfig import RunConfig
from utils.types import EventCallback, RunOutputs, Status, WorkflowState
from workflows.BaseWorkflow import BaseWorkflow
from workflows.EnsembleWorkflow import EnsembleWorkflow
from workflows.FanoutWorkflow import FanoutWorkflow
from workflows.InputsWorkflow import InputsWorkflow
from workflows.SchematicWorkflow import SchematicWorkflow

logger = logging.getLogger(__name__)


class NoProvidersError(ValueError):
    pass


class MissingQuestionError(ValueError):
    pass


class RunFailedError(RuntimeError):
    def __init__(self, message: str, state: WorkflowState):
        super().__init__(message)
        self.state = state


def buildWorkflows(use_mock: bool = USE_MOCK_LLM) -> Dict[str, BaseWorkflow]:
    agent = ProviderAgent(use_mock=use_mock)
    workflows = [
        InputsWorkflow(),
        FanoutWorkflow(FanoutCoordinator(agent)),
        EnsembleWorkflow(agent),
        SchematicWorkflow(),
    ]
    return {w.name: w for w in workflows}


async def _logEvent(event_type: str, payload: Dict) -> None:
    if event_type == "workflow_failed":
        logger.error(f"[{payload.get('workflow')}] failed: {payload.get('error')}")
    elif event_type in ("workflow_started", "workflow_succeeded"):
        logger.info(f"[{payload.get('workflow')}] {event_type.split('_', 1)[1]}")
    else:
        logger.debug(f"{event_type}: {payload}")


class Executor:
    def __init__(self, state: WorkflowState, workflows: Dict[str, BaseWorkflow]):
        self.state = state
        self.workflows = workflows

    async def run(self, updateCallback: Optional[EventCallback], max_retries: int = MAX_RETRIES):
        orchestrator = WorkflowOrchestrator(
            self.workflows,
            max_retries=max_retries,
        )

        self.state = await orchestrator.runWorkflows(updateCallback or _logEvent, self.state)
        return self.state

    def display(self):
        outputs: Optional[RunOutputs] = self.state.context.get("outputs")
        logger.info(f"Final Status: {self.state.status.value}")
        if self.state.err_message:
            logger.info(f"Final Error Message: {self.state.err_message}")
        for name, ctx in self.state.workflows_context.items():
            duration_ms = (ctx.duration_ns or 0) / 1_000_000
            logger.info(f"{name}: {ctx.total_tokens} tokens, ${ctx.cost:.5f}, {duration_ms:.1f} ms")
        if outputs is None:
            return
        logger.info(f"Outputs in {outputs.run_dir}:")
        for label, path in (
            ("final", outputs.final_md),
            ("netlist", outputs.final_cir),
            ("circuit json", outputs.final_json),
            ("schematic", outputs.schematic_png or outputs.schematic_dot),
            ("baseline image", outputs.baseline_image),
        ):
            if path:
                logger.info(f"- {label}: {path}")


def buildInitialState(options: RunConfig, run_dir: str, providers, use_mock: bool = USE_MOCK_LLM) -> WorkflowState:
    return WorkflowState(
        current_workflow=None,
        current_stage=None,
        context={"outputs": RunOutputs(run_dir=run_dir)},
        memory={"options": options, "providers": providers, "use_mock": use_mock},
        status=Status.PENDING,
    )


async def runBatch(
    options: RunConfig,
    updateCallback: Optional[EventCallback] = None,
    workflows: Optional[Dict[str, BaseWorkflow]] = None,
    use_mock: bool = USE_MOCK_LLM,
) -> WorkflowState:
    """
    One full run: inputs -> fanout -> ensemble -> schematic, all artifacts under a fresh run folder.
    Raises before touching disk when there is nothing to ask or nobody to ask, and RunFailedError when a
    workflow fails (an ensemble error or empty ensemble reply ends up here).
    """
    providers = normalizeEnabledProviders(options.enabled_providers)
    if not providers:
        if options.enabled_providers is None:
            raise NoProvidersError(
                "No providers enabled (no API keys detected). Set OPENAI_API_KEY/XAI_API_KEY/GEMINI_API_KEY/ANTHROPIC_API_KEY, or explicitly set enabledProviders."
            )
        raise NoProvidersError("No providers enabled. Select at least one provider.")

    if not (options.question_text or "").strip() and not options.question_path:
        raise MissingQuestionError("Missing required question input (provide questionPath or questionText)")
    if not (options.question_text or "").strip() and not (readTextIfExists(options.question_path) or "").strip():
        raise MissingQuestionError(f"Could not read question file: {options.question_path}")

    run_dir = makeRunDir(options.outdir or DEFAULT_OUTDIR)
    logger.info(f"Run directory: {run_dir}")

    state = buildInitialState(options, run_dir, providers, use_mock=use_mock)
    executor = Executor(state, workflows or buildWorkflows(use_mock=use_mock))
    state = await executor.run(updateCallback)
    executor.display()

    if state.status != Status.SUCCESS:
        raise RunFailedError(state.err_message or "Run failed", state)
    return state
