import argparse

from heapgraph.reporters.summary import SummaryReporter

from .common import GraphCommand
from .common import self_profile


class SummaryCommand(GraphCommand):
    """Print a table of the allocation sites using the most memory"""

    def prepare_parser(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "-r",
            "--max-rows",
            help="Maximum number of rows in the table",
            type=int,
            default=None,
        )
        super().prepare_parser(parser)

    def run(self, args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
        with self_profile(args.self_profile):
            state = self.load(args)
            try:
                reporter = SummaryReporter(state.graph, state.labeler())
                reporter.render(max_rows=args.max_rows)
            finally:
                state.close()
