import asyncio
import logging
import os
import shutil
from subprocess import PIPE, TimeoutExpired, run
from typing import List, Optional, Tuple

from config import DEFAULT_SCHEMATIC_DPI
from netlist.graph import netlistToDot
from netlist.parse import parseNetlist
from utils.helpers import writeText
from utils.runConfig import RunConfig
from utils.types import Component, EnsembleOutputs, EventCallback, RunOutputs, Status, WorkflowState
from workflows.BaseWorkflow import BaseWorkflow

logger = logging.getLogger(__name__)

GRAPHVIZ_TIMEOUT_S = 120


def chooseSchematicSource(final_netlist: str, baseline_netlist: str) -> Tuple[str, List[Component]]:
    """
    Picks the netlist the diagram is drawn from: the final one, or the baseline when the final one is
    empty or yields no components. Returns (source label, components).
    """
    if not final_netlist.strip() and baseline_netlist.strip():
        logger.warning("Final netlist is empty; generating schematic from baseline netlist instead.")
        return "baseline", parseNetlist(baseline_netlist)

    comps = parseNetlist(final_netlist)
    if not comps and baseline_netlist.strip():
        baseline_comps = parseNetlist(baseline_netlist)
        if baseline_comps:
            logger.warning(
                "Final netlist did not yield any components; generating schematic from baseline netlist instead."
            )
            return "baseline", baseline_comps
    return "final", comps


def renderDot(dot_path: str, out_path: str, fmt: str, dpi: Optional[int] = None) -> bool:
    """Runs Graphviz `dot`; False (with a warning) when it is missing or fails."""
    cmd = shutil.which("dot")
    if cmd is None:
        logger.warning(f"Graphviz 'dot' not found; wrote {os.path.basename(dot_path)} only.")
        return False

    args = [cmd]
    if dpi:
        args.append(f"-Gdpi={dpi}")
    args += [f"-T{fmt}", dot_path, "-o", out_path]
    try:
        res = run(args, stdout=PIPE, stderr=PIPE, text=True, timeout=GRAPHVIZ_TIMEOUT_S)
    except TimeoutExpired:
        logger.warning(f"Graphviz timed out rendering {os.path.basename(out_path)}.")
        return False
    if res.returncode != 0:
        logger.warning(f"Graphviz failed to render {os.path.basename(out_path)}: {res.stderr.strip()}")
        return False
    logger.info(f"Rendered {os.path.basename(out_path)} via Graphviz.")
    return True


class SchematicWorkflow(BaseWorkflow):
    """
    Draws the connectivity diagram (schematic.dot, plus png/svg when Graphviz is installed).
    Diagram problems are never fatal to a run.
    """

    name = "schematic"

    async def run(self, state: WorkflowState, updateCallback: EventCallback) -> WorkflowState:
        options: RunConfig = state.memory["options"]
        outputs: RunOutputs = state.context["outputs"]
        parsed: EnsembleOutputs = state.context.get("ensemble_outputs") or EnsembleOutputs()

        await self._substage(updateCallback, state, "substage_started", "diagram", 1)
        logger.info("Generating connectivity diagram...")
        source_label, comps = chooseSchematicSource(
            parsed.spice_netlist or "", state.context.get("baseline_netlist") or ""
        )
        dot_path = os.path.join(outputs.run_dir, "schematic.dot")
        outputs.schematic_dot = writeText(dot_path, netlistToDot(comps, source_label=source_label))
        await self._substage(
            updateCallback,
            state,
            "substage_completed",
            "diagram",
            1,
            meta={"source": source_label, "components": len(comps)},
        )

        await self._substage(updateCallback, state, "substage_started", "render", 2)
        dpi = options.schematic_dpi or DEFAULT_SCHEMATIC_DPI
        png_path = os.path.join(outputs.run_dir, "schematic.png")
        svg_path = os.path.join(outputs.run_dir, "schematic.svg")
        if await asyncio.to_thread(renderDot, dot_path, png_path, "png", dpi):
            outputs.schematic_png = png_path
        if comps and await asyncio.to_thread(renderDot, dot_path, svg_path, "svg"):
            outputs.schematic_svg = svg_path
        await self._substage(updateCallback, state, "substage_completed", "render", 2)

        state.context[f"{self.name}_result"] = {
            "source": source_label,
            "components": len(comps),
            "dot": outputs.schematic_dot,
            "png": outputs.schematic_png,
            "svg": outputs.schematic_svg,
        }
        state.status = Status.SUCCESS
        return state
