"""
Recovers the three structured outputs from the ensembler's free-text reply.

Providers do not reliably follow the tag syntax, so each field is recovered by an ordered list of
extraction strategies: the first one returning non-empty text wins. Nothing here raises; a field
nobody could recover is an empty string and the caller decides what that means.
"""

import re
from typing import Callable, Iterator, Optional, Sequence, Tuple

from config import (
    SPICE_FENCE_LANGUAGES,
    TAG_JSON_CLOSE,
    TAG_JSON_OPEN,
    TAG_MD_CLOSE,
    TAG_MD_OPEN,
    TAG_SPICE_CLOSE,
    TAG_SPICE_OPEN,
)
from utils.types import EnsembleOutputs

ExtractionStrategy = Callable[[str], Optional[str]]

# ```lang\n...\n``` ; deliberately small, not a Markdown parser
FENCE_RE = re.compile(r"```([^\n`]*)\n(.*?)\n```", re.DOTALL)

SPICE_DIRECTIVE_RE = re.compile(r"^\.(tran|ac|dc|op|end|model|include|param)\b", re.IGNORECASE)
SPICE_COMPONENT_RE = re.compile(r"^[RCLVIEMQXD]\S*\s+\S+\s+\S+", re.IGNORECASE)


def extractBetween(text: str, open_tag: str, close_tag: str) -> Optional[str]:
    i = text.find(open_tag)
    j = text.find(close_tag)
    if i == -1 or j == -1 or j <= i:
        return None
    return text[i + len(open_tag) : j].strip()


def iterFencedBlocks(text: str) -> Iterator[Tuple[str, str]]:
    """Yields (language, body) for each non-empty fenced block; language is lower-cased, may be ''."""
    for m in FENCE_RE.finditer(text):
        body = m.group(2).strip()
        if body:
            yield m.group(1).strip().lower(), body


def extractFirstFencedCodeBlock(text: str, langs: Sequence[str]) -> Optional[str]:
    wanted = {lang.strip().lower() for lang in langs}
    for lang, body in iterFencedBlocks(text):
        if lang in wanted:
            return body
    return None


def looksLikeSpiceNetlist(text: str) -> bool:
    lines = [
        line.strip()
        for line in text.splitlines()
        if line.strip() and not line.strip().startswith(("*", ";"))
    ]
    has_directive = any(SPICE_DIRECTIVE_RE.match(line) for line in lines)
    has_component = any(SPICE_COMPONENT_RE.match(line) for line in lines)
    return has_directive and has_component


def taggedBlock(open_tag: str, close_tag: str) -> ExtractionStrategy:
    def strategy(text: str) -> Optional[str]:
        return extractBetween(text, open_tag, close_tag)

    strategy.__name__ = f"taggedBlock({open_tag})"
    return strategy


def spiceLanguageFence(text: str) -> Optional[str]:
    # the tag alone is not enough, prose labelled ```spice is still prose
    wanted = {lang.lower() for lang in SPICE_FENCE_LANGUAGES}
    for lang, body in iterFencedBlocks(text):
        if lang in wanted and looksLikeSpiceNetlist(body):
            return body
    return None


def plausibleSpiceFence(text: str) -> Optional[str]:
    # any fence, tagged or not, as long as the body reads like a netlist
    for _, body in iterFencedBlocks(text):
        if looksLikeSpiceNetlist(body):
            return body
    return None


def jsonLanguageFence(text: str) -> Optional[str]:
    return extractFirstFencedCodeBlock(text, ["json"])


def outermostBraceSpan(text: str) -> Optional[str]:
    """First '{' to last '}'. Crude: nested or multiple objects give a wrong span, validate downstream."""
    i = text.find("{")
    j = text.rfind("}")
    if i == -1 or j == -1 or j <= i:
        return None
    return text[i : j + 1].strip()


MARKDOWN_STRATEGIES: Tuple[ExtractionStrategy, ...] = (taggedBlock(TAG_MD_OPEN, TAG_MD_CLOSE),)

SPICE_STRATEGIES: Tuple[ExtractionStrategy, ...] = (
    taggedBlock(TAG_SPICE_OPEN, TAG_SPICE_CLOSE),
    spiceLanguageFence,
    plausibleSpiceFence,
)

JSON_STRATEGIES: Tuple[ExtractionStrategy, ...] = (
    taggedBlock(TAG_JSON_OPEN, TAG_JSON_CLOSE),
    jsonLanguageFence,
    outermostBraceSpan,
)


def firstRecovered(text: str, strategies: Sequence[ExtractionStrategy]) -> str:
    for strategy in strategies:
        result = strategy(text)
        if result and result.strip():
            return result
    return ""


def parseEnsembleOutputs(text: str) -> EnsembleOutputs:
    text = text or ""
    return EnsembleOutputs(
        final_markdown=firstRecovered(text, MARKDOWN_STRATEGIES),
        spice_netlist=firstRecovered(text, SPICE_STRATEGIES),
        circuit_json=firstRecovered(text, JSON_STRATEGIES),
    )
