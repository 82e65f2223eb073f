import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from config import MAX_RETRIES, MAX_RUN_COST
from langchain_community.callbacks import get_openai_callback
from utils.types import EventCallback, Status, WorkflowContext, WorkflowState
from workflows.BaseWorkflow import BaseWorkflow

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class WorkflowOrchestrator:
    """
    Runs workflows one after another against a shared WorkflowState, reporting progress through
    updateCallback. The first workflow that still fails after its attempts ends the run.
    """

    def __init__(
        self,
        workflows: Dict[str, BaseWorkflow],
        max_retries: int = MAX_RETRIES,
        max_run_cost: Optional[float] = MAX_RUN_COST,
    ):
        """
        workflows: workflow name -> workflow, in execution order
        max_retries: attempts per retryable workflow
        max_run_cost: spend limit in USD across the run (OpenAI-priced usage only), None disables it
        """
        self.workflows = workflows
        self.max_retries = max(1, max_retries)
        self.max_run_cost = max_run_cost

    def _totalSpend(self, state: WorkflowState) -> float:
        return round(sum(float(ctx.cost or 0.0) for ctx in state.workflows_context.values()), 6)

    def _totalTokens(self, state: WorkflowState) -> int:
        return sum(ctx.total_tokens for ctx in state.workflows_context.values())

    def _overBudget(self, state: WorkflowState, inclusive: bool) -> bool:
        if self.max_run_cost is None:
            return False
        spend = self._totalSpend(state)
        return spend >= self.max_run_cost if inclusive else spend > self.max_run_cost

    async def _emit(self, updateCallback: EventCallback, event_type: str, **payload: Any) -> None:
        await updateCallback(event_type, {"type": event_type, **payload, "ts": _now()})

    @staticmethod
    def _recordUsage(ctx: WorkflowContext, callback) -> None:
        ctx.input_tokens += int(getattr(callback, "prompt_tokens", 0) or 0)
        ctx.output_tokens += int(getattr(callback, "completion_tokens", 0) or 0)
        ctx.total_tokens += int(getattr(callback, "total_tokens", 0) or 0)
        ctx.cost += float(getattr(callback, "total_cost", 0.0) or 0.0)

    @staticmethod
    def _stopClock(ctx: WorkflowContext) -> None:
        ctx.end_time_ns = time.perf_counter_ns()
        ctx.duration_ns = int(ctx.end_time_ns - (ctx.start_time_ns or ctx.end_time_ns))

    async def _attempt(
        self, name: str, workflow: BaseWorkflow, state: WorkflowState, updateCallback: EventCallback
    ) -> Tuple[WorkflowState, Optional[str]]:
        """One try of a workflow. Returns the state and, if the workflow raised, a message for it."""
        state.status = Status.RUNNING
        state.err_message = ""
        ctx = state.workflows_context[name]

        crash: Optional[Exception] = None
        # token/cost accounting for everything the workflow sends through LangChain
        with get_openai_callback() as callback:
            try:
                state = await workflow.run(state, updateCallback)
            except Exception as e:
                crash = e
        self._recordUsage(ctx, callback)

        if crash is None:
            return state, None
        state.status = Status.ERROR
        logger.error(f"Unhandled exception in workflow '{name}'", exc_info=crash)
        return state, f"Unhandled exception in '{name}': {crash}"

    async def runWorkflows(self, updateCallback: EventCallback, workflow_state: WorkflowState) -> WorkflowState:
        state = workflow_state
        await self._emit(updateCallback, "run_started", total_workflows=len(self.workflows))

        for name, workflow in self.workflows.items():
            if self._overBudget(state, inclusive=True):
                state.status = Status.ERROR
                state.err_message = (
                    f"Cost limit reached: ${self._totalSpend(state):.6f} for {self._totalTokens(state)} tokens "
                    f"(limit: ${self.max_run_cost:.6f})"
                )
                return state

            state.current_workflow = name
            state.status = Status.PENDING
            ctx = WorkflowContext(start_time_ns=time.perf_counter_ns())
            state.workflows_context[name] = ctx

            # once per workflow, not per attempt
            await self._emit(updateCallback, "workflow_started", workflow=name, attempt=1)

            max_attempts = self.max_retries if workflow.retryable else 1
            crash_message: Optional[str] = None
            attempt = 0
            while attempt < max_attempts:
                attempt += 1
                state, crash_message = await self._attempt(name, workflow, state, updateCallback)

                if self._overBudget(state, inclusive=False):
                    state.status = Status.ERROR
                    state.err_message = (
                        f"Cost limit exceeded: ${self._totalSpend(state):.6f} (limit: ${self.max_run_cost:.6f})"
                    )
                    break

                if state.status == Status.SUCCESS:
                    break

                if not state.err_message:
                    state.err_message = crash_message or f"Workflow '{name}' failed after {attempt} attempt(s)."

            self._stopClock(ctx)

            if state.status != Status.SUCCESS:
                await self._emit(
                    updateCallback,
                    "workflow_failed",
                    workflow=name,
                    attempt=attempt,
                    error=state.err_message or crash_message or "Unknown error",
                    context={"total_tokens": ctx.total_tokens, "cost": ctx.cost, "duration_ns": ctx.duration_ns},
                )
                return state

            await self._emit(
                updateCallback,
                "workflow_succeeded",
                workflow=name,
                result=state.context.get(f"{name}_result") or state.context.get(name) or {},
                context={
                    "input_tokens": ctx.input_tokens,
                    "output_tokens": ctx.output_tokens,
                    "total_tokens": ctx.total_tokens,
                    "cost": ctx.cost,
                    "duration_ns": ctx.duration_ns,
                },
            )

        state.status = Status.SUCCESS
        state.err_message = ""
        await self._emit(
            updateCallback,
            "run_succeeded",
            summary={"total_tokens": self._totalTokens(state), "cost": self._totalSpend(state)},
        )
        return state
