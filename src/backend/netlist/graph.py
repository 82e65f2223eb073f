import re
from typing import Dict, Iterable, List, Optional

import networkx as nx

from utils.types import Component

UNSAFE_ID_RE = re.compile(r"[^a-zA-Z0-9_]")
DOT_HEADER = "digraph G {"


def sanitizeId(name: str) -> str:
    return UNSAFE_ID_RE.sub("_", name)


def _escapeLabel(label: str) -> str:
    return label.replace("\\", "\\\\").replace('"', '\\"')


def collectNets(components: Iterable[Component]) -> List[str]:
    """Distinct net names across all components, in first-seen order."""
    seen: Dict[str, None] = {}
    for comp in components:
        for node in comp.nodes:
            seen.setdefault(node, None)
    return list(seen)


def _assignIds(names: Iterable[str], prefix: str) -> Dict[str, str]:
    # two distinct names can sanitize to the same id ("a-b" / "a_b"), suffix the later ones
    ids: Dict[str, str] = {}
    used = set()
    for name in names:
        if name in ids:
            continue
        base = f"{prefix}{sanitizeId(name)}"
        candidate = base
        n = 2
        while candidate in used:
            candidate = f"{base}_{n}"
            n += 1
        used.add(candidate)
        ids[name] = candidate
    return ids


def buildConnectivityGraph(components: List[Component]) -> nx.MultiDiGraph:
    """
    Builds the bipartite net/component graph. Nets and components are nodes keyed by a sanitized id
    (label attribute holds the original name); every (net, component) adjacency becomes one edge
    directed net -> component. Parallel edges are kept, e.g. "R1 a a 1k" yields two a -> R1 edges.
    """
    graph = nx.MultiDiGraph()

    net_ids = _assignIds(collectNets(components), "net_")
    comp_ids = _assignIds((c.reference for c in components), "comp_")

    for name, node_id in net_ids.items():
        graph.add_node(node_id, label=name, kind="net", bipartite=0)
    for name, node_id in comp_ids.items():
        graph.add_node(node_id, label=name, kind="component", bipartite=1)

    for comp in components:
        for node in comp.nodes:
            graph.add_edge(net_ids[node], comp_ids[comp.reference])

    return graph


def graphToDot(graph: nx.MultiDiGraph) -> str:
    lines = [
        DOT_HEADER,
        "  rankdir=LR;",
        "  graph [splines=true, overlap=false];",
        "  node  [fontsize=10];",
        "",
        "  // Nets",
    ]
    for node_id, data in graph.nodes(data=True):
        if data.get("kind") == "net":
            lines.append(f'  {node_id} [label="{_escapeLabel(data["label"])}", shape=ellipse];')

    lines.append("")
    lines.append("  // Components")
    for node_id, data in graph.nodes(data=True):
        if data.get("kind") == "component":
            lines.append(f'  {node_id} [label="{_escapeLabel(data["label"])}", shape=box];')

    lines.append("")
    lines.append("  // Edges (net -> component)")
    for src, dst in graph.edges():
        lines.append(f"  {src} -> {dst};")

    lines.append("}")
    return "\n".join(lines) + "\n"


def annotateDotSource(dot: str, source_label: str) -> str:
    """Adds a provenance comment under the graph header; nodes and edges are untouched."""
    note = (
        f"  // NOTE: Rendered from {source_label} netlist because final netlist was empty or unparseable."
    )
    return dot.replace(DOT_HEADER, f"{DOT_HEADER}\n{note}", 1)


def netlistToDot(components: List[Component], source_label: Optional[str] = None) -> str:
    dot = graphToDot(buildConnectivityGraph(components))
    if source_label and source_label != "final":
        dot = annotateDotSource(dot, source_label)
    return dot
