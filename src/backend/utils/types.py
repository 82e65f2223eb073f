from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

sse_headers = {
    "Content-Type": "text/event-stream; charset=utf-8",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    # stop nginx from buffering the stream
    "X-Accel-Buffering": "no",
}

# (event_type, payload) -> awaitable
EventCallback = Callable[[str, Dict[str, Any]], Awaitable[None]]


class Status(Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class ProviderName(str, Enum):
    OPENAI = "openai"
    XAI = "xai"
    GOOGLE = "google"
    ANTHROPIC = "anthropic"


@dataclass(frozen=True)
class InputImage:
    mime_type: str  # e.g. "image/png"
    base64: str  # no "data:" prefix
    filename: Optional[str] = None

    def toDataUrl(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"


@dataclass(frozen=True)
class ModelAnswer:
    """
    One provider's reply. `error` is set only when the call failed, in which case `text` is empty.
    """

    provider: ProviderName
    model: str
    text: str = ""
    error: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None

    def toDict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"provider": self.provider.value, "model": self.model, "text": self.text}
        if self.error is not None:
            out["error"] = self.error
        if self.meta:
            out["meta"] = dict(self.meta)
        return out


@dataclass(frozen=True)
class EnsembleOutputs:
    final_markdown: str = ""
    spice_netlist: str = ""
    circuit_json: str = ""


@dataclass(frozen=True)
class Component:
    reference: str
    nodes: Tuple[str, ...]
    raw: str


@dataclass(frozen=True)
class BundledInclude:
    directive: str  # "include" | "lib"
    original_specifier: str
    resolved_source_path: str
    dest_path: str


@dataclass(frozen=True)
class MissingInclude:
    directive: str
    original_specifier: str
    resolved_attempt_path: str


@dataclass(frozen=True)
class BundleResult:
    rewritten_text: str
    copied: Tuple[BundledInclude, ...] = ()
    missing: Tuple[MissingInclude, ...] = ()
    includes_dir: str = ""

    def toReport(self) -> Dict[str, List[Dict[str, str]]]:
        return {
            "copied": [asdict(c) for c in self.copied],
            "missing": [asdict(m) for m in self.missing],
        }


@dataclass
class WorkflowContext:
    """Timing and LLM usage of one workflow within a run."""

    start_time_ns: Optional[int] = None
    end_time_ns: Optional[int] = None
    duration_ns: Optional[int] = None
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cost: float = 0.0


@dataclass
class WorkflowState:
    """
    Everything the workflows of one run share. `memory` holds run inputs (options, enabled providers),
    `context` holds what workflows produce, keyed by name; "<workflow>_result" is reported in events.
    """

    current_workflow: Optional[str]
    current_stage: Optional[str]
    context: Dict[str, Any]
    memory: Optional[Dict[str, Any]]
    status: Status
    err_message: Optional[str] = None
    workflows_context: Dict[str, WorkflowContext] = field(default_factory=dict)

    def __post_init__(self):
        self.current_stage = self.current_stage or ""
        self.memory = self.memory or {}
        self.err_message = self.err_message or ""


@dataclass
class RunOutputs:
    """Paths written by a batch run, filled in by the workflows as they go."""

    run_dir: str
    answers_json: Optional[str] = None
    ensemble_raw: Optional[str] = None
    final_md: Optional[str] = None
    final_cir: Optional[str] = None
    final_json: Optional[str] = None
    schematic_dot: Optional[str] = None
    schematic_png: Optional[str] = None
    schematic_svg: Optional[str] = None
    baseline_cir: Optional[str] = None
    baseline_original_cir: Optional[str] = None
    baseline_includes_json: Optional[str] = None
    baseline_image: Optional[str] = None
