import argparse
import io
import os
import sys
from pathlib import Path

from heapgraph._errors import HeapGraphCommandError
from heapgraph.reporters import BaseReporter
from heapgraph.reporters.graphviz import GraphvizReporter

from .common import GraphCommand
from .common import self_profile


class DotCommand(GraphCommand):
    """Write the heap call graph in Graphviz DOT format"""

    def prepare_parser(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "-o",
            "--output",
            help="Output file name (default: standard output)",
            default=None,
        )
        parser.add_argument(
            "-f",
            "--force",
            help="If the output file already exists, overwrite it",
            action="store_true",
            default=False,
        )
        super().prepare_parser(parser)

    def run(self, args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
        output_file = Path(args.output) if args.output is not None else None
        if output_file is not None and not args.force and output_file.exists():
            raise HeapGraphCommandError(
                f"File already exists, will not overwrite: {output_file}",
                exit_code=1,
            )

        with self_profile(args.self_profile):
            state = self.load(args)
            try:
                reporter: BaseReporter = GraphvizReporter.from_graph(
                    state.graph, state.params, state.labeler()
                )
                # Render to memory first so that a failure leaves no partial output.
                output = io.StringIO()
                reporter.render(output)
            finally:
                state.close()

        if output_file is None:
            sys.stdout.write(output.getvalue())
            return
        with open(os.fspath(output_file.expanduser()), "w") as f:
            f.write(output.getvalue())
        print(f"Wrote {output_file}", file=sys.stderr)
