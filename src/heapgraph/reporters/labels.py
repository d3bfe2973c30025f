from heapgraph.demangle import Demangler
from heapgraph.demangle import remove_types
from heapgraph.graph import Node
from heapgraph.profile import MemoryMap

MAX_LABEL_LENGTH = 60


class NodeLabeler:
    """Formats the display name and size summary of graph nodes."""

    def __init__(
        self, demangler: Demangler, memory_map: MemoryMap, total_inuse_bytes: int
    ) -> None:
        self.demangler = demangler
        self.memory_map = memory_map
        self.total_inuse_bytes = total_inuse_bytes

    def label(self, node: Node) -> str:
        if not node.name:
            label = f"0x{node.address:x}"
            entry = self.memory_map.search(node.address)
            if entry is not None:
                label += f" [{entry.path}]"
            return label

        label = remove_types(self.demangler.demangle(node.name))
        if len(label) > MAX_LABEL_LENGTH:
            label = label[:MAX_LABEL_LENGTH] + "..."
        return label

    def fraction_of_total(self, node: Node) -> float:
        if self.total_inuse_bytes <= 0:
            return 0.0
        return node.cum.inuse_bytes / self.total_inuse_bytes

    def size_label(self, node: Node) -> str:
        cur = node.cur.inuse_bytes // 1024
        cum = node.cum.inuse_bytes // 1024
        percent = self.fraction_of_total(node) * 100.0
        return f"{cur}k of {cum}k ({percent:.1f}% of total)"
