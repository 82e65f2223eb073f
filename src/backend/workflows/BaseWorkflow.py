from abc import ABC as AbstractBaseClass
from abc import abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from utils.types import EventCallback, Status, WorkflowState


class BaseWorkflow(AbstractBaseClass):
    name = "workflow"
    # False runs the workflow once regardless of the orchestrator's max_retries
    retryable = True

    @abstractmethod
    async def run(self, state: WorkflowState, updateCallback: EventCallback) -> WorkflowState:
        """
        Runs the end-to-end workflow while updating the upstream workflow orchestrator.
        Args:
            state: WorkflowState represents the stored memory provided by the orchestrator, your workflow will edit the state and return it
            updateCallback: this is the method that is used to update the orchestrator with what is currently happening (e.g. "I am still running")
        """
        pass

    def _fail(self, state: WorkflowState, message: str) -> WorkflowState:
        state.status = Status.ERROR
        state.err_message = f"Error during workflow {state.current_workflow or self.name}: {message}"
        return state

    async def _substage(
        self,
        updateCallback: EventCallback,
        state: WorkflowState,
        event_type: str,
        substage: str,
        step_index: int,
        meta: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Emits substage_started / substage_completed for the current workflow."""
        if event_type == "substage_started":
            state.current_stage = substage
            state.status = Status.RUNNING
        payload = {
            "type": event_type,
            "workflow": state.current_workflow or self.name,
            "substage": substage,
            "step_index": step_index,
            "ts": datetime.now(timezone.utc).isoformat(),
        }
        if event_type == "substage_completed":
            payload["meta"] = meta or {}
        await updateCallback(event_type, payload)
