import json
import logging
import os
from typing import List, Optional

from agents.ProviderAgent import ProviderAgent
from config import (
    ENSEMBLE_MAX_TOKENS,
    PLACEHOLDER_MARKDOWN,
    PLACEHOLDER_MISSING_SPICE_WARNING,
    PLACEHOLDER_NETLIST_LINES,
)
from ensemble.parser import parseEnsembleOutputs
from ensemble.prompt import buildEnsemblePrompt
from models.registry import modelForProvider, pickEnsembleProvider
from utils.helpers import writeText
from utils.runConfig import RunConfig
from utils.types import EnsembleOutputs, EventCallback, ProviderName, RunOutputs, Status, WorkflowState
from workflows.BaseWorkflow import BaseWorkflow

logger = logging.getLogger(__name__)


def placeholderNetlist() -> str:
    return "\n".join(PLACEHOLDER_NETLIST_LINES)


def placeholderCircuitJson() -> str:
    return (
        json.dumps(
            {
                "error": "Ensemble output missing <circuit_json> block.",
                "assumptions": [],
                "probes": [],
                "bom": [],
                "notes": ["See ensemble_raw.txt for full model output."],
            },
            indent=2,
        )
        + "\n"
    )


def bestMarkdown(outputs: EnsembleOutputs) -> str:
    return outputs.final_markdown if outputs.final_markdown.strip() else PLACEHOLDER_MARKDOWN


class EnsembleWorkflow(BaseWorkflow):
    """
    Hands every fanout answer to one provider, asks for the tagged markdown/SPICE/JSON blocks and
    writes final.md, final.cir and final.json. There is no fallback ensembler and no retry: an error or
    an empty reply fails the run. Unrecoverable fields are replaced with placeholders instead.
    """

    name = "ensemble"
    retryable = False

    def __init__(self, agent: Optional[ProviderAgent] = None):
        self.agent = agent or ProviderAgent()

    async def run(self, state: WorkflowState, updateCallback: EventCallback) -> WorkflowState:
        answers = state.context.get("answers")
        if answers is None:
            return self._fail(state, "missing 'answers' field in state.context")

        options: RunConfig = state.memory["options"]
        providers: List[ProviderName] = state.memory["providers"]
        outputs: RunOutputs = state.context["outputs"]

        provider = pickEnsembleProvider(providers)
        model = modelForProvider(provider, options.providerModels())

        await self._substage(updateCallback, state, "substage_started", "ensemble", 1)
        logger.info(f"Ensembling with {provider.value}...")
        prompt = buildEnsemblePrompt(
            state.context["question"],
            answers,
            baseline_netlist=state.context.get("baseline_netlist"),
            baseline_image_filename=state.context.get("baseline_image_filename"),
        )
        max_tokens = ENSEMBLE_MAX_TOKENS if provider == ProviderName.ANTHROPIC else None
        ensemble = await self.agent.run(
            provider=provider,
            model=model,
            prompt=prompt,
            image=state.context.get("baseline_image"),
            max_tokens=max_tokens,
        )
        outputs.ensemble_raw = writeText(
            os.path.join(outputs.run_dir, "ensemble_raw.txt"), ensemble.text or ensemble.error or ""
        )
        if ensemble.error or not ensemble.text.strip():
            return self._fail(state, f"Ensemble failed: {ensemble.error or 'No text returned'}")
        await self._substage(
            updateCallback, state, "substage_completed", "ensemble", 1, meta={"provider": provider.value, "model": model}
        )

        await self._substage(updateCallback, state, "substage_started", "parse", 2)
        parsed = parseEnsembleOutputs(ensemble.text)
        missing_spice = not parsed.spice_netlist.strip()
        missing_json = not parsed.circuit_json.strip()

        if missing_spice:
            logger.error(
                "Ensemble output did not include a <spice_netlist> block (or a recoverable SPICE code block). final.cir will contain an error placeholder."
            )
        if missing_json:
            logger.warning(
                "Ensemble output did not include a <circuit_json> block (or a recoverable JSON block). final.json will contain an error placeholder."
            )

        final_md = bestMarkdown(parsed) + (PLACEHOLDER_MISSING_SPICE_WARNING if missing_spice else "")
        outputs.final_md = writeText(os.path.join(outputs.run_dir, "final.md"), final_md)
        outputs.final_cir = writeText(
            os.path.join(outputs.run_dir, "final.cir"),
            placeholderNetlist() if missing_spice else parsed.spice_netlist,
        )
        outputs.final_json = writeText(
            os.path.join(outputs.run_dir, "final.json"),
            placeholderCircuitJson() if missing_json else parsed.circuit_json,
        )
        await self._substage(
            updateCallback,
            state,
            "substage_completed",
            "parse",
            2,
            meta={"missing_spice": missing_spice, "missing_json": missing_json},
        )

        state.context["ensemble_outputs"] = parsed
        state.context[f"{self.name}_result"] = {
            "provider": provider.value,
            "model": model,
            "missing_markdown": not parsed.final_markdown.strip(),
            "missing_spice": missing_spice,
            "missing_json": missing_json,
        }
        state.status = Status.SUCCESS
        return state
