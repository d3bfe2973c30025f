"""The weighted call graph built from canonicalized stacks."""
import logging
from dataclasses import dataclass
from dataclasses import field
from typing import Dict
from typing import Iterable
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Tuple

from heapgraph._stats import Stats
from heapgraph.profile import Stack

LOGGER = logging.getLogger(__name__)


@dataclass(eq=False)
class Node:
    """One allocation site: a function, or a bare address when unresolved.

    ``cur`` is what the node allocated itself, as the innermost frame of a
    stack. ``cum`` counts every stack the node appears in.
    """

    address: int
    name: str = ""
    cur: Stats = field(default_factory=Stats)
    cum: Stats = field(default_factory=Stats)


class Edge(NamedTuple):
    """Caller ``src`` calls callee ``dst``."""

    src: Node
    dst: Node


class Graph:
    def __init__(self) -> None:
        self.nodes: Dict[int, Node] = {}
        self.edges: Dict[Edge, int] = {}
        self.node_sizes: List[int] = []

    @classmethod
    def from_stacks(cls, stacks: Iterable[Stack], names: Dict[int, str]) -> "Graph":
        graph = cls()
        graph.build(stacks, names)
        return graph

    def _get_or_create_node(self, address: int, names: Dict[int, str]) -> Node:
        node = self.nodes.get(address)
        if node is None:
            node = Node(address=address, name=names.get(address, ""))
            self.nodes[address] = node
        return node

    def build(self, stacks: Iterable[Stack], names: Dict[int, str]) -> None:
        """Accumulate the stacks' costs into nodes and edges.

        Stacks are walked innermost frame first: the first frame owns the
        allocation, and each following frame is the caller of the previous.
        """
        n_stacks = 0
        for stack in stacks:
            n_stacks += 1
            last: Optional[Node] = None
            for address in stack.addresses:
                if last is not None and address == last.address:
                    continue

                node = self._get_or_create_node(address, names)
                if last is None:
                    node.cur.add(stack.stats)
                else:
                    edge = Edge(node, last)
                    self.edges[edge] = (
                        self.edges.get(edge, 0) + stack.stats.inuse_bytes
                    )
                node.cum.add(stack.stats)

                last = node

        self.node_sizes = sorted(
            (
                node.cum.inuse_bytes
                for node in self.nodes.values()
                if node.cum.inuse_bytes > 0
            ),
            reverse=True,
        )
        LOGGER.info(
            "built graph with %d nodes and %d edges from %d stacks",
            len(self.nodes),
            len(self.edges),
            n_stacks,
        )

    def node(self, address: int) -> Optional[Node]:
        return self.nodes.get(address)

    def edge_weight(self, src: int, dst: int) -> int:
        src_node = self.nodes.get(src)
        dst_node = self.nodes.get(dst)
        if src_node is None or dst_node is None:
            return 0
        return self.edges.get(Edge(src_node, dst_node), 0)

    def callers(self, node: Node) -> List[Tuple[Node, int]]:
        """Nodes calling ``node`` with the bytes flowing through each call,
        biggest first."""
        return _by_weight(
            (edge.src, weight)
            for edge, weight in self.edges.items()
            if edge.dst is node
        )

    def callees(self, node: Node) -> List[Tuple[Node, int]]:
        return _by_weight(
            (edge.dst, weight)
            for edge, weight in self.edges.items()
            if edge.src is node
        )


def _by_weight(pairs: Iterable[Tuple[Node, int]]) -> List[Tuple[Node, int]]:
    return sorted(pairs, key=lambda pair: (-pair[1], pair[0].address))
