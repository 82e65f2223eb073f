"""
Very small SPICE netlist tokenizer used for connectivity diagrams.

Handles the common one-line component forms (R, C, L, D, Q, M, V, I, X ...).
This is NOT a SPICE parser: subcircuit bodies, parameter expressions and '+'
continuation lines are not modelled. Node names that look numeric after the
second node (e.g. "Q1 c b 3") are read as values, which is a known accuracy
limitation of the heuristic.
"""

import re
from typing import List

from utils.types import Component

COMMENT_RE = re.compile(r"^\s*[\*;]")
DIGIT_RE = re.compile(r"\d")

MIN_NODES = 2
MAX_NODES = 6


def _isValueToken(token: str) -> bool:
    return bool(DIGIT_RE.search(token)) or "=" in token or token.upper() == "DC"


def parseNetlist(netlist: str) -> List[Component]:
    comps: List[Component] = []

    for line0 in netlist.splitlines():
        line = line0.strip()
        if not line:
            continue
        if COMMENT_RE.match(line):
            continue
        if line.startswith("."):  # directive
            continue

        body = line.split(";", 1)[0].strip()
        if not body:
            continue

        parts = body.split()
        ref = parts[0]

        # first token is the reference; nodes follow until a value/model token shows up
        nodes: List[str] = []
        for tok in parts[1:]:
            if len(nodes) >= MIN_NODES and _isValueToken(tok):
                break
            nodes.append(tok)
            if len(nodes) >= MAX_NODES:
                break

        if len(nodes) >= MIN_NODES:
            comps.append(Component(reference=ref, nodes=tuple(nodes), raw=body))

    return comps
