import argparse
import logging
import sys
import textwrap
from typing import List
from typing import Optional

from heapgraph._errors import HeapGraphCommandError
from heapgraph._errors import HeapGraphError
from heapgraph._version import __version__

from . import dot
from . import serve
from . import summary
from .protocol import Command

_COMMANDS: List[Command] = [
    dot.DotCommand(),
    serve.ServeCommand(),
    summary.SummaryCommand(),
]

_EPILOG = textwrap.dedent(
    """\
    Render the output of the dot command with Graphviz, for example:
        heapgraph dot ./server heap.prof | dot -Tsvg -o heap.svg
    """
)

_DESCRIPTION = """\
Call graph viewer for sampled heap profiles

    Example:

    $ heapgraph dot ./server server.0001.heap > heap.dot
    $ heapgraph serve --syms server.syms server.0001.heap
"""


def get_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=_DESCRIPTION,
        prog="heapgraph",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog=_EPILOG,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity. Option is additive and can be specified up to 2 times",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=__version__,
        help="Displays the current version of heapgraph",
    )

    subparsers = parser.add_subparsers(
        help="Mode of operation",
        dest="command",
        required=True,
    )

    for command in _COMMANDS:
        # Extract the CLI command name from the classes' names
        assert command.__class__.__name__.endswith("Command")
        name = command.__class__.__name__[: -len("Command")].lower()

        command_parser = subparsers.add_parser(
            name, help=command.__doc__, description=command.__doc__, epilog=_EPILOG
        )
        command_parser.set_defaults(entrypoint=command.run)
        command.prepare_parser(command_parser)

    return parser


def determine_logging_level_from_verbosity(
    verbose_level: int,
) -> int:  # pragma: no cover
    if verbose_level == 0:
        return logging.WARNING
    elif verbose_level == 1:
        return logging.INFO
    else:
        return logging.DEBUG


def main(args: Optional[List[str]] = None) -> int:
    if args is None:
        args = sys.argv[1:]

    parser = get_argument_parser()
    arg_values = parser.parse_args(args=args)
    logging.basicConfig(
        level=determine_logging_level_from_verbosity(arg_values.verbose),
        format="%(levelname)s(%(funcName)s): %(message)s",
    )

    try:
        arg_values.entrypoint(arg_values, parser)
    except HeapGraphCommandError as e:
        print(e, file=sys.stderr)
        return e.exit_code
    except HeapGraphError as e:
        print(e, file=sys.stderr)
        return 1
    else:
        return 0
