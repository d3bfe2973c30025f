"""Load a heap profile and its symbols and build the call graph."""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Optional

from heapgraph._errors import HeapGraphError
from heapgraph.canonicalize import canonicalize_stacks
from heapgraph.demangle import Demangler
from heapgraph.demangle import get_demangler
from heapgraph.graph import Graph
from heapgraph.profile import Profile
from heapgraph.profile import load_profile
from heapgraph.reporters.labels import NodeLabeler
from heapgraph.symbols import Symbols
from heapgraph.symbols import load_symbols_from_binary
from heapgraph.symbols import load_symbols_map

LOGGER = logging.getLogger(__name__)

DEFAULT_NODE_KEEP_COUNT = 100
DEFAULT_MIN_EDGE_WEIGHT = 30 * 1024


@dataclass
class RenderParams:
    node_keep_count: int = DEFAULT_NODE_KEEP_COUNT
    min_edge_weight: int = DEFAULT_MIN_EDGE_WEIGHT


@dataclass
class Config:
    profile_path: Path
    binary_path: Optional[Path] = None
    symbols_path: Optional[Path] = None
    builtin_demangler: bool = False
    params: RenderParams = field(default_factory=RenderParams)

    def __post_init__(self) -> None:
        if (self.binary_path is None) == (self.symbols_path is None):
            raise HeapGraphError(
                "Exactly one of a binary or a symbol map must be provided"
            )


@dataclass
class State:
    profile: Profile
    graph: Graph
    demangler: Demangler
    params: RenderParams
    n_symbols: int = 0

    def labeler(self) -> NodeLabeler:
        return NodeLabeler(
            demangler=self.demangler,
            memory_map=self.profile.maps,
            total_inuse_bytes=self.profile.header.inuse_bytes,
        )

    def close(self) -> None:
        self.demangler.close()


def _read_profile(path: Path) -> Profile:
    LOGGER.info("reading profile from %s", path)
    profile = load_profile(path)
    LOGGER.info("loaded %d stacks", len(profile.stacks))
    return profile


def _read_symbols(config: Config) -> Symbols:
    if config.binary_path is not None:
        LOGGER.info("reading symbols from %s", config.binary_path)
        symbols = load_symbols_from_binary(config.binary_path)
    else:
        assert config.symbols_path is not None
        LOGGER.info("reading symbol map from %s", config.symbols_path)
        symbols = load_symbols_map(config.symbols_path)
    LOGGER.info("loaded %d symbols", len(symbols))
    return symbols


def load_state(config: Config) -> State:
    """Decode the profile and load the symbols concurrently, then build the
    graph. A failure of either load aborts the whole operation."""
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="heapgraph") as pool:
        profile_future = pool.submit(_read_profile, config.profile_path)
        symbols_future = pool.submit(_read_symbols, config)
        symbols = symbols_future.result()
        profile = profile_future.result()

    names = canonicalize_stacks(profile.stacks, symbols)
    graph = Graph.from_stacks(profile.stacks, names)
    return State(
        profile=profile,
        graph=graph,
        demangler=get_demangler(builtin=config.builtin_demangler),
        params=config.params,
        n_symbols=len(symbols),
    )
