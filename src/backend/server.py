import asyncio
import logging
from dataclasses import asdict
from typing import Any, Dict

from executor import MissingQuestionError, NoProvidersError, RunFailedError, runBatch
from fastapi import FastAPI, Request
from fastapi.responses import StreamingResponse
from models.registry import ALL_PROVIDERS, hasApiKey, modelForProvider
from pydantic import ValidationError
from utils.helpers import formatSSEMessage
from utils.runConfig import RunConfig
from utils.types import EventCallback, sse_headers

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s\n%(message)s\n",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="AI Schematics Ensemble API")

# each caller gets their own queue keyed by run_id
event_queues: Dict[str, asyncio.Queue] = {}


# workflows report progress through the callback, which pushes onto the queue that event_stream drains
def getCallback(run_id: str) -> EventCallback:
    queue = event_queues.setdefault(run_id, asyncio.Queue())

    async def on_event(event_type: str, payload: Dict[str, Any]):
        await queue.put({"type": event_type, **payload})

    return on_event


async def orchestrate_run(run_id: str, options: RunConfig, updateCallback: EventCallback):
    queue = event_queues.setdefault(run_id, asyncio.Queue())
    try:
        state = await runBatch(options, updateCallback)
        outputs = state.context.get("outputs")
        await queue.put({"type": "result", "outputs": asdict(outputs) if outputs else None})
    except (NoProvidersError, MissingQuestionError, RunFailedError) as e:
        logger.error(f"Run {run_id} failed: {e}")
        await queue.put({"type": "error", "message": str(e)})
    except Exception as e:
        logger.error(f"Run {run_id} crashed", exc_info=e)
        await queue.put({"type": "error", "message": str(e)})
    finally:
        await queue.put({"type": "complete"})


async def event_stream(run_id: str):
    queue = event_queues.setdefault(run_id, asyncio.Queue())
    try:
        while True:
            event = await queue.get()
            yield formatSSEMessage(event)
            if event.get("type") == "complete":
                break
    finally:
        event_queues.pop(run_id, None)


async def single_event_stream(event: Dict[str, Any]):
    yield formatSSEMessage(event)
    yield formatSSEMessage({"type": "complete"})


@app.get("/providers")
async def providers():
    return [
        {"provider": p.value, "model": modelForProvider(p), "hasApiKey": hasApiKey(p)}
        for p in ALL_PROVIDERS
    ]


@app.post("/run/{run_id}")
async def run(run_id: str, request: Request):
    """
    Starts a batch run and streams its events as server-sent events:
      - run_started / workflow_* / substage_* / run_succeeded
      - result (artifact paths) or error
      - complete (always at end)
    """
    payload = await request.json()
    try:
        options = RunConfig.model_validate(payload or {})
    except ValidationError as e:
        return StreamingResponse(
            single_event_stream({"type": "error", "message": f"Invalid run configuration: {e}"}),
            headers=sse_headers,
        )

    updateCallback = getCallback(run_id)
    asyncio.create_task(orchestrate_run(run_id, options, updateCallback))
    return StreamingResponse(event_stream(run_id), headers=sse_headers)
