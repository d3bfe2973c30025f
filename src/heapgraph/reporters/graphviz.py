"""Prune the call graph to a legible size and write it in DOT format."""
import logging
import sys
from collections import Counter
from dataclasses import dataclass
from dataclasses import field
from typing import List
from typing import TextIO
from typing import Tuple

from heapgraph.graph import Edge
from heapgraph.graph import Graph
from heapgraph.graph import Node
from heapgraph.reporters.labels import NodeLabeler
from heapgraph.state import RenderParams

LOGGER = logging.getLogger(__name__)


@dataclass
class Subgraph:
    """The part of a graph that survives pruning."""

    threshold: int
    edges: List[Tuple[Edge, int]] = field(default_factory=list)
    nodes: List[Node] = field(default_factory=list)
    dropped: List[Node] = field(default_factory=list)

    @property
    def shown_bytes(self) -> int:
        return sum(node.cur.inuse_bytes for node in self.nodes)

    @property
    def missing_bytes(self) -> int:
        return sum(node.cum.inuse_bytes for node in self.dropped)


def size_threshold(graph: Graph, node_keep_count: int) -> int:
    if node_keep_count < len(graph.node_sizes):
        return graph.node_sizes[node_keep_count]
    return 0


def select_nodes(graph: Graph, threshold: int) -> List[Node]:
    kept = [node for node in graph.nodes.values() if node.cum.inuse_bytes >= threshold]
    kept.sort(key=lambda node: (-node.cum.inuse_bytes, node.address))
    return kept


def select_edges(
    graph: Graph, kept: List[Node], min_edge_weight: int
) -> List[Tuple[Edge, int]]:
    """Pick the edges to draw between kept nodes.

    Every destination keeps its heaviest incoming edge; any other edge is
    only drawn when it weighs at least ``min_edge_weight`` bytes.
    """
    kept_ids = {id(node) for node in kept}
    candidates = [
        (edge, weight)
        for edge, weight in graph.edges.items()
        if id(edge.src) in kept_ids and id(edge.dst) in kept_ids
    ]
    candidates.sort(
        key=lambda item: (-item[1], item[0].src.address, item[0].dst.address)
    )

    indegree: Counter = Counter()
    selected = []
    for edge, weight in candidates:
        if indegree[id(edge.dst)] and weight < min_edge_weight:
            continue
        indegree[id(edge.dst)] += 1
        selected.append((edge, weight))
    return selected


def prune(graph: Graph, params: RenderParams) -> Subgraph:
    threshold = size_threshold(graph, params.node_keep_count)
    LOGGER.info(
        "keeping %d nodes with cumulative >= %dk",
        params.node_keep_count,
        threshold // 1024,
    )
    kept = select_nodes(graph, threshold)
    subgraph = Subgraph(
        threshold=threshold,
        edges=select_edges(graph, kept, params.min_edge_weight),
    )

    connected = set()
    for edge, _ in subgraph.edges:
        connected.add(id(edge.src))
        connected.add(id(edge.dst))
    for node in kept:
        if id(node) in connected:
            subgraph.nodes.append(node)
        else:
            LOGGER.info(
                "no edges for %x (%dk)", node.address, node.cum.inuse_bytes // 1024
            )
            subgraph.dropped.append(node)

    LOGGER.info("total not shown: %dk", subgraph.missing_bytes // 1024)
    LOGGER.info("total kept nodes: %dk", subgraph.shown_bytes // 1024)
    return subgraph


def escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


class GraphvizReporter:
    def __init__(self, subgraph: Subgraph, labeler: NodeLabeler) -> None:
        self.subgraph = subgraph
        self.labeler = labeler

    @classmethod
    def from_graph(
        cls, graph: Graph, params: RenderParams, labeler: NodeLabeler
    ) -> "GraphvizReporter":
        return cls(prune(graph, params), labeler)

    def node_label(self, node: Node) -> str:
        return (
            escape(self.labeler.label(node))
            + "\\n"
            + escape(self.labeler.size_label(node))
        )

    def render(self, outfile: TextIO) -> None:
        # Labels are computed first so that a demangling failure leaves no
        # partial output behind.
        node_lines = [
            f'{node.address} [label="{self.node_label(node)}",shape=box,'
            f'href="{node.address}"]\n'
            for node in self.subgraph.nodes
        ]

        outfile.write("digraph G {\n")
        outfile.write("nodesep = 0.2\n")
        outfile.write("ranksep = 0.3\n")
        if sys.platform == "darwin":
            outfile.write("node [fontname = Menlo]\n")
        outfile.write("node [fontsize=9]\n")
        outfile.write("edge [fontsize=9]\n")
        for edge, weight in self.subgraph.edges:
            src, dst = edge.src.address, edge.dst.address
            outfile.write(f'{src} -> {dst} [label=" {weight // 1024}"]\n')
        outfile.writelines(node_lines)
        outfile.write("}\n")
