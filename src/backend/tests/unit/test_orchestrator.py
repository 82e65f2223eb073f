"""Tests for WorkflowOrchestrator event flow and failure handling."""

import asyncio

from orchestrator.orchestrator import WorkflowOrchestrator
from utils.types import Status, WorkflowState
from workflows.BaseWorkflow import BaseWorkflow


class StepWorkflow(BaseWorkflow):
    def __init__(self, name, outcome="ok"):
        self.name = name
        self.outcome = outcome
        self.runs = 0

    async def run(self, state, updateCallback):
        self.runs += 1
        if self.outcome == "raise":
            raise RuntimeError("boom")
        if self.outcome == "fail":
            return self._fail(state, "nope")
        state.context[f"{self.name}_result"] = {"done": True}
        state.status = Status.SUCCESS
        return state


def _state():
    return WorkflowState(current_workflow=None, current_stage=None, context={}, memory={}, status=Status.PENDING)


def _run(workflows, **kwargs):
    events = []

    async def collect(event_type, payload):
        events.append((event_type, payload))

    orchestrator = WorkflowOrchestrator({w.name: w for w in workflows}, **kwargs)
    state = asyncio.run(orchestrator.runWorkflows(collect, _state()))
    return state, events


class TestWorkflowOrchestrator:
    def test_all_succeed(self):
        state, events = _run([StepWorkflow("a"), StepWorkflow("b")])
        assert state.status == Status.SUCCESS
        types = [t for t, _ in events]
        assert types[0] == "run_started"
        assert types[-1] == "run_succeeded"
        assert types.count("workflow_succeeded") == 2
        assert events[2][1]["result"] == {"done": True}

    def test_failure_stops_the_run(self):
        later = StepWorkflow("c")
        state, events = _run([StepWorkflow("a"), StepWorkflow("b", outcome="fail"), later])
        assert state.status == Status.ERROR
        assert state.err_message == "Error during workflow b: nope"
        assert later.runs == 0
        assert events[-1][0] == "workflow_failed"
        assert events[-1][1]["workflow"] == "b"

    def test_unhandled_exception_becomes_error(self):
        state, events = _run([StepWorkflow("a", outcome="raise")])
        assert state.status == Status.ERROR
        assert state.err_message == "Unhandled exception in 'a': boom"
        assert events[-1][0] == "workflow_failed"

    def test_retries(self):
        flaky = StepWorkflow("a", outcome="fail")
        state, _ = _run([flaky], max_retries=3)
        assert flaky.runs == 3
        assert state.status == Status.ERROR

    def test_non_retryable_workflow_runs_once(self):
        once = StepWorkflow("a", outcome="fail")
        once.retryable = False
        _run([once], max_retries=3)
        assert once.runs == 1

    def test_exhausted_spend_limit_runs_nothing(self):
        first = StepWorkflow("a")
        orchestrator = WorkflowOrchestrator({"a": first}, max_run_cost=0.0)

        async def ignore(event_type, payload):
            pass

        state = asyncio.run(orchestrator.runWorkflows(ignore, _state()))
        assert state.status == Status.ERROR
        assert state.err_message.startswith("Cost limit reached")
        assert first.runs == 0

    def test_workflow_contexts_are_recorded(self):
        state, _ = _run([StepWorkflow("a"), StepWorkflow("b")])
        assert set(state.workflows_context) == {"a", "b"}
        assert state.workflows_context["a"].duration_ns >= 0
