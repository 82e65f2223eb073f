import logging
import os
import shutil
from typing import Optional, Tuple

from netlist.includes import bundleSpiceIncludes
from utils.helpers import (
    extFromMimeType,
    loadImageAsBase64,
    readTextIfExists,
    safeFilename,
    writeJson,
    writeText,
)
from utils.runConfig import RunConfig
from utils.types import EventCallback, InputImage, RunOutputs, Status, WorkflowState
from workflows.BaseWorkflow import BaseWorkflow

logger = logging.getLogger(__name__)


class InputsWorkflow(BaseWorkflow):
    """
    Gathers everything the providers will see: the question, the baseline netlist (with its includes
    bundled into the run folder when asked) and the baseline schematic image. Copies land in the run folder.
    """

    name = "inputs"

    async def run(self, state: WorkflowState, updateCallback: EventCallback) -> WorkflowState:
        options: Optional[RunConfig] = state.memory.get("options")
        outputs: Optional[RunOutputs] = state.context.get("outputs")
        if options is None or outputs is None:
            return self._fail(state, "missing 'options' in state.memory or 'outputs' in state.context")

        run_dir = outputs.run_dir

        # question
        await self._substage(updateCallback, state, "substage_started", "question", 1)
        question = options.question_text if (options.question_text or "").strip() else None
        if question is None and options.question_path:
            question = readTextIfExists(options.question_path)
        if not (question or "").strip():
            if options.question_path:
                return self._fail(state, f"Could not read question file: {options.question_path}")
            return self._fail(state, "Missing required question input (provide questionPath or questionText)")

        if (options.question_text or "").strip() and not options.question_path:
            name = safeFilename(options.question_filename or "question.md", "question.md")
            writeText(os.path.join(run_dir, name), options.question_text)
        await self._substage(updateCallback, state, "substage_completed", "question", 1)

        # baseline netlist
        await self._substage(updateCallback, state, "substage_started", "baseline_netlist", 2)
        baseline_netlist, source_path = self._loadBaselineNetlist(options)
        if baseline_netlist:
            baseline_netlist = self._persistBaselineNetlist(options, outputs, baseline_netlist, source_path)
        await self._substage(
            updateCallback,
            state,
            "substage_completed",
            "baseline_netlist",
            2,
            meta={"present": bool(baseline_netlist), "bundled": outputs.baseline_includes_json is not None},
        )

        # baseline image
        await self._substage(updateCallback, state, "substage_started", "baseline_image", 3)
        image = self._loadBaselineImage(options, outputs)
        await self._substage(
            updateCallback, state, "substage_completed", "baseline_image", 3, meta={"present": image is not None}
        )

        state.context["question"] = question
        state.context["baseline_netlist"] = baseline_netlist
        state.context["baseline_image"] = image
        state.context["baseline_image_filename"] = (
            os.path.basename(outputs.baseline_image) if outputs.baseline_image else None
        )
        state.context[f"{self.name}_result"] = {
            "question_chars": len(question),
            "baseline_netlist": bool(baseline_netlist),
            "baseline_image": state.context["baseline_image_filename"],
        }
        state.status = Status.SUCCESS
        return state

    def _loadBaselineNetlist(self, options: RunConfig) -> Tuple[Optional[str], Optional[str]]:
        if (options.baseline_netlist_text or "").strip():
            return options.baseline_netlist_text, None
        if options.baseline_netlist_path:
            text = readTextIfExists(options.baseline_netlist_path)
            if text and text.strip():
                return text, options.baseline_netlist_path
            logger.warning(f"Baseline netlist not found or empty: {options.baseline_netlist_path}")
        return None, None

    def _persistBaselineNetlist(
        self, options: RunConfig, outputs: RunOutputs, netlist: str, source_path: Optional[str]
    ) -> str:
        run_dir = outputs.run_dir
        outputs.baseline_cir = os.path.join(run_dir, "baseline.cir")

        if options.bundle_includes and source_path:
            bundled = bundleSpiceIncludes(
                netlist_text=netlist,
                base_file_path=source_path,
                output_root=run_dir,
            )
            outputs.baseline_original_cir = writeText(os.path.join(run_dir, "baseline_original.cir"), netlist)
            writeText(outputs.baseline_cir, bundled.rewritten_text)
            outputs.baseline_includes_json = writeJson(
                os.path.join(run_dir, "baseline_includes.json"), bundled.toReport()
            )

            if bundled.missing:
                logger.warning(
                    f"Bundled includes: copied {len(bundled.copied)}, missing {len(bundled.missing)}"
                )
            else:
                logger.info(f"Bundled includes: copied {len(bundled.copied)}")
            # providers see the rewritten netlist
            return bundled.rewritten_text

        if options.bundle_includes and not source_path:
            logger.warning(
                "Include bundling was requested, but the baseline netlist was pasted (no source file path). Skipping bundling."
            )
        writeText(outputs.baseline_cir, netlist)
        return netlist

    def _loadBaselineImage(self, options: RunConfig, outputs: RunOutputs) -> Optional[InputImage]:
        if not options.baseline_image_path:
            return None
        image = loadImageAsBase64(options.baseline_image_path)
        ext = os.path.splitext(options.baseline_image_path)[1].lower() or extFromMimeType(image.mime_type)
        outputs.baseline_image = os.path.join(outputs.run_dir, f"baseline_schematic{ext}")
        shutil.copyfile(options.baseline_image_path, outputs.baseline_image)
        return image
