import os
from typing import IO
from typing import Optional

from rich import print as rprint
from rich.markup import escape
from rich.table import Column
from rich.table import Table

from heapgraph._stats import size_fmt
from heapgraph.graph import Graph
from heapgraph.reporters.labels import NodeLabeler

DEFAULT_TERMINAL_LINES = 24


def _get_terminal_lines() -> int:
    try:
        return os.get_terminal_size().lines
    except OSError:
        return DEFAULT_TERMINAL_LINES


def _size_to_color(proportion_of_total: float) -> str:
    if proportion_of_total > 0.6:
        return "red"
    elif proportion_of_total > 0.2:
        return "yellow"
    elif proportion_of_total > 0.05:
        return "green"
    else:
        return "bright_green"


class SummaryReporter:
    """Terminal table of the allocation sites with the largest cumulative size."""

    def __init__(self, graph: Graph, labeler: NodeLabeler) -> None:
        self.graph = graph
        self.labeler = labeler

    def render(
        self,
        *,
        max_rows: Optional[int] = None,
        file: Optional[IO[str]] = None,
    ) -> None:
        max_rows = max_rows or max(_get_terminal_lines() - 5, 10)
        table = Table(
            Column("Location", ratio=5),
            Column("<Total Memory>", ratio=1, justify="right"),
            Column("Total Memory %", ratio=1, justify="right"),
            Column("Own Memory", ratio=1, justify="right"),
            Column("Objects", ratio=1, justify="right"),
            expand=True,
        )

        nodes = sorted(
            self.graph.nodes.values(),
            key=lambda node: (-node.cum.inuse_bytes, node.address),
        )[:max_rows]
        for node in nodes:
            fraction = self.labeler.fraction_of_total(node)
            total_color = _size_to_color(fraction)
            own_color = _size_to_color(
                node.cur.inuse_bytes / self.labeler.total_inuse_bytes
                if self.labeler.total_inuse_bytes > 0
                else 0.0
            )
            table.add_row(
                f"[bold magenta]{escape(self.labeler.label(node))}[/]",
                f"[{total_color}]{size_fmt(node.cum.inuse_bytes)}[/{total_color}]",
                f"[{total_color}]{fraction * 100:.2f}%[/{total_color}]",
                f"[{own_color}]{size_fmt(node.cur.inuse_bytes)}[/{own_color}]",
                str(node.cum.inuse_objects),
            )

        rprint(table, file=file)
