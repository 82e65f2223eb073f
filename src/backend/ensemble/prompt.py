from typing import Optional, Sequence

from langchain_core.prompts import PromptTemplate

from config import (
    ANSWER_SEPARATOR,
    ENSEMBLE_BASELINE_TEMPLATE,
    ENSEMBLE_DOMAIN_FOCUS,
    ENSEMBLE_IMAGE_NOTE_TEMPLATE,
    ENSEMBLE_PROMPT,
    FANOUT_BASELINE_TEMPLATE,
    FANOUT_IMAGE_NOTE,
)
from utils.types import ModelAnswer

ensemble_prompt_template = PromptTemplate(
    template=ENSEMBLE_PROMPT,
    input_variables=["domain_focus", "question", "baseline", "image_note", "answers"],
)


def formatAnswerBlock(answer: ModelAnswer) -> str:
    header = f"## Provider: {answer.provider.value} | Model: {answer.model}"
    body = f"(ERROR) {answer.error}" if answer.error else (answer.text or "").strip()
    return f"{header}\n\n{body}\n"


def buildEnsemblePrompt(
    question: str,
    answers: Sequence[ModelAnswer],
    baseline_netlist: Optional[str] = None,
    baseline_image_filename: Optional[str] = None,
    domain_focus: str = ENSEMBLE_DOMAIN_FOCUS,
) -> str:
    """
    Single prompt sent to the ensembling provider: preamble, question, optional baseline netlist and
    screenshot note, every collected answer (errors included), hard requirements and the three tagged
    output blocks.
    """
    baseline = (
        ENSEMBLE_BASELINE_TEMPLATE.format(netlist=baseline_netlist.strip())
        if baseline_netlist and baseline_netlist.strip()
        else ""
    )
    image_note = (
        ENSEMBLE_IMAGE_NOTE_TEMPLATE.format(filename=baseline_image_filename)
        if baseline_image_filename
        else ""
    )
    return ensemble_prompt_template.format(
        domain_focus=domain_focus.strip(),
        question=question.strip(),
        baseline=baseline,
        image_note=image_note,
        answers=ANSWER_SEPARATOR.join(formatAnswerBlock(a) for a in answers),
    )


def buildFanoutPrompt(question: str, baseline_netlist: Optional[str] = None, has_image: bool = False) -> str:
    prompt = question.strip()
    if baseline_netlist and baseline_netlist.strip():
        prompt += FANOUT_BASELINE_TEMPLATE.format(netlist=baseline_netlist.strip())
    if has_image:
        prompt += FANOUT_IMAGE_NOTE
    return prompt
