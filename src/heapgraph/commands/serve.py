import argparse

from heapgraph.reporters.serve import GraphServer

from .common import GraphCommand
from .common import self_profile


class ServeCommand(GraphCommand):
    """Run a web server to browse the heap call graph interactively"""

    def prepare_parser(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--host",
            help="Address to listen on (default: all interfaces)",
            default="",
        )
        parser.add_argument(
            "-p",
            "--port",
            help="Port to listen on (default: 8000)",
            type=int,
            default=8000,
        )
        super().prepare_parser(parser)

    def run(self, args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
        with self_profile(args.self_profile):
            state = self.load(args)
        server = GraphServer(state)
        try:
            server.run(host=args.host, port=args.port)
        finally:
            state.close()
