import argparse
import cProfile
import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
from typing import Optional

from rich import print as pprint

from heapgraph._errors import HeapGraphCommandError
from heapgraph.state import DEFAULT_NODE_KEEP_COUNT
from heapgraph.state import Config
from heapgraph.state import RenderParams
from heapgraph.state import State
from heapgraph.state import load_state

LOGGER = logging.getLogger(__name__)

SELF_PROFILE_OUTPUT = "heapgraph.prof"


def warn_if_no_symbols(state: State) -> None:
    if state.n_symbols == 0:
        pprint(
            ":warning: [bold yellow] No symbols were loaded [/] :warning:\n\n"
            "Every allocation site will be shown as a raw address. Check that "
            "the binary was not stripped or that the symbol map is not empty.\n",
            file=sys.stderr,
        )
    if not state.graph.nodes:
        pprint(
            ":warning: [bold yellow] The profile contains no stacks [/] :warning:\n",
            file=sys.stderr,
        )


@contextmanager
def self_profile(enabled: bool) -> Iterator[None]:
    if not enabled:
        yield
        return
    profiler = cProfile.Profile()
    profiler.enable()
    try:
        yield
    finally:
        profiler.disable()
        profiler.dump_stats(SELF_PROFILE_OUTPUT)
        LOGGER.info("wrote self-profile to %s", SELF_PROFILE_OUTPUT)


class GraphCommand:
    """Shared option handling for commands that build a call graph."""

    def validate_inputs(self, args: argparse.Namespace) -> Config:
        inputs = list(args.inputs)
        if args.syms is not None:
            if len(inputs) != 1:
                raise HeapGraphCommandError(
                    "Expected only a profile when --syms is given", exit_code=1
                )
            binary_path: Optional[Path] = None
            symbols_path: Optional[Path] = Path(args.syms)
            (profile,) = inputs
        else:
            if len(inputs) != 2:
                raise HeapGraphCommandError(
                    "Expected a binary and a profile (or --syms MAP and a profile)",
                    exit_code=1,
                )
            binary, profile = inputs
            binary_path, symbols_path = Path(binary), None

        for path in (binary_path, symbols_path, Path(profile)):
            if path is not None and not path.is_file():
                raise HeapGraphCommandError(f"No such file: {path}", exit_code=1)
        if args.keep < 0:
            raise HeapGraphCommandError(
                f"Invalid node count: {args.keep}", exit_code=1
            )

        return Config(
            profile_path=Path(profile),
            binary_path=binary_path,
            symbols_path=symbols_path,
            builtin_demangler=args.builtin_demangler,
            params=RenderParams(node_keep_count=args.keep),
        )

    def load(self, args: argparse.Namespace) -> State:
        state = load_state(self.validate_inputs(args))
        warn_if_no_symbols(state)
        return state

    def prepare_parser(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--syms",
            metavar="MAP",
            help="Load symbols from an nm-style map file instead of a binary",
            default=None,
        )
        parser.add_argument(
            "--builtin-demangler",
            help="Demangle names in-process instead of running c++filt",
            action="store_true",
            default=False,
        )
        parser.add_argument(
            "--keep",
            metavar="N",
            help=(
                "Number of largest nodes to keep"
                f" (default: {DEFAULT_NODE_KEEP_COUNT})"
            ),
            type=int,
            default=DEFAULT_NODE_KEEP_COUNT,
        )
        parser.add_argument(
            "--self-profile",
            help=(
                "Profile heapgraph itself and write the results"
                f" to {SELF_PROFILE_OUTPUT}"
            ),
            action="store_true",
            default=False,
        )
        parser.add_argument(
            "inputs",
            metavar="[binary] profile",
            nargs="+",
            help="Binary the profile was taken from, followed by the heap profile",
        )
