"""Utilities / Helpers for writing tests."""
from typing import Dict
from typing import Iterable
from typing import Optional

from heapgraph import DemangleError
from heapgraph import Graph
from heapgraph import MemoryMap
from heapgraph import Stack
from heapgraph import Stats
from heapgraph.profile import Profile
from heapgraph.profile import ProfileHeader
from heapgraph.reporters.labels import NodeLabeler
from heapgraph.state import RenderParams
from heapgraph.state import State

KB = 1024

MAIN = 0x1000
MAKE_BUFFER = 0x2000
PARSE = 0x3000


def make_stack(addresses: Iterable[int], inuse_bytes: int, inuse_objects: int = 1):
    return Stack(
        addresses=list(addresses),
        stats=Stats(inuse_objects=inuse_objects, inuse_bytes=inuse_bytes),
    )


def scenario_stacks():
    """Two stacks through make_buffer and one through parse, all from main.

    Stacks are listed innermost frame first.
    """
    return [
        make_stack([MAKE_BUFFER, MAIN], 100 * KB),
        make_stack([MAKE_BUFFER, MAIN], 50 * KB),
        make_stack([PARSE, MAIN], 10 * KB),
    ]


SCENARIO_NAMES = {MAIN: "main", MAKE_BUFFER: "make_buffer", PARSE: "parse"}


class FakeDemangler:
    def __init__(self, names: Optional[Dict[str, str]] = None) -> None:
        self.names = names or {}

    def demangle(self, name: str) -> str:
        return self.names.get(name, name)

    def close(self) -> None:
        pass


class FailingDemangler:
    def demangle(self, name: str) -> str:
        raise DemangleError(f"Cannot demangle {name!r}")

    def close(self) -> None:
        pass


def make_labeler(total_inuse_bytes, demangler=None, memory_map=None):
    return NodeLabeler(
        demangler=demangler or FakeDemangler(),
        memory_map=memory_map or MemoryMap(),
        total_inuse_bytes=total_inuse_bytes,
    )


def make_state(stacks, names, total_inuse_bytes, params=None, demangler=None):
    profile = Profile(
        header=ProfileHeader(totals=Stats(inuse_bytes=total_inuse_bytes)),
        stacks=stacks,
    )
    return State(
        profile=profile,
        graph=Graph.from_stacks(stacks, names),
        demangler=demangler or FakeDemangler(),
        params=params or RenderParams(),
        n_symbols=len(names),
    )
