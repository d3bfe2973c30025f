"""Interactive browsing of the call graph over HTTP."""
import io
import logging
from functools import partial
from http.server import BaseHTTPRequestHandler
from http.server import HTTPServer
from typing import Any
from typing import Dict
from typing import List
from typing import Tuple
from urllib.parse import parse_qs
from urllib.parse import urlparse

from heapgraph._errors import HeapGraphError
from heapgraph.graph import Node
from heapgraph.reporters.graphviz import GraphvizReporter
from heapgraph.reporters.graphviz import prune
from heapgraph.reporters.templates import render_page
from heapgraph.state import RenderParams
from heapgraph.state import State

LOGGER = logging.getLogger(__name__)

Response = Tuple[int, str, str]


class GraphServer:
    def __init__(self, state: State) -> None:
        self.state = state

    def run(self, host: str = "", port: int = 8000) -> None:
        request_handler = partial(RequestHandler, pages=GraphPages(self.state))
        httpd = HTTPServer((host, port), request_handler)
        print(f"Starting server on port {port}")
        httpd.serve_forever()


class GraphPages:
    """Builds the responses served for each route. The graph is only read."""

    def __init__(self, state: State) -> None:
        self.state = state
        self.labeler = state.labeler()

    def _params(self, query: Dict[str, List[str]]) -> RenderParams:
        params = self.state.params
        keep = query.get("keep")
        if not keep:
            return params
        try:
            node_keep_count = int(keep[0])
        except ValueError:
            return params
        return RenderParams(
            node_keep_count=max(node_keep_count, 0),
            min_edge_weight=params.min_edge_weight,
        )

    def _links(self, pairs: List[Tuple[Node, int]]) -> List[Dict[str, Any]]:
        return [
            {
                "address": node.address,
                "label": self.labeler.label(node),
                "weight": weight,
            }
            for node, weight in pairs
        ]

    def dot(self, params: RenderParams) -> str:
        reporter = GraphvizReporter.from_graph(self.state.graph, params, self.labeler)
        output = io.StringIO()
        reporter.render(output)
        return output.getvalue()

    def index(self, params: RenderParams) -> str:
        subgraph = prune(self.state.graph, params)
        nodes = [
            {
                "address": node.address,
                "label": self.labeler.label(node),
                "cur": node.cur.inuse_bytes,
                "cum": node.cum.inuse_bytes,
                "percent": self.labeler.fraction_of_total(node) * 100.0,
            }
            for node in subgraph.nodes
        ]
        return render_page(
            "index",
            title="Heap profile",
            nodes=nodes,
            keep=params.node_keep_count,
            threshold=subgraph.threshold,
            missing_bytes=subgraph.missing_bytes,
            total_bytes=self.labeler.total_inuse_bytes,
            dot=self.dot(params),
        )

    def node(self, address: int) -> str:
        graph = self.state.graph
        node = graph.node(address)
        if node is None:
            raise KeyError(address)
        return render_page(
            "node",
            title=self.labeler.label(node),
            size_label=self.labeler.size_label(node),
            callers=self._links(graph.callers(node)),
            callees=self._links(graph.callees(node)),
        )

    def get(self, url: str) -> Response:
        parsed_url = urlparse(url)
        params = self._params(parse_qs(parsed_url.query))
        path = parsed_url.path
        try:
            if path == "/":
                return 200, "text/html", self.index(params)
            if path == "/graph.dot":
                return 200, "text/vnd.graphviz", self.dot(params)
            if path.startswith("/node/"):
                return 200, "text/html", self.node(int(path[len("/node/") :]))
            if path[1:].isdigit():
                # Node links in the DOT output carry the bare address.
                return 200, "text/html", self.node(int(path[1:]))
        except (KeyError, ValueError):
            return 404, "text/plain", f"No such node: {path}"
        except HeapGraphError as e:
            LOGGER.error("failed to render %s: %s", path, e)
            return 500, "text/plain", str(e)
        return 404, "text/plain", "Invalid path"


class RequestHandler(BaseHTTPRequestHandler):
    def __init__(self, *args: Any, pages: GraphPages, **kwargs: Any) -> None:
        self.pages = pages
        super().__init__(*args, **kwargs)

    def _send_response(self, content: str, content_type: str, status: int) -> None:
        self.send_response(status)
        self.send_header("Content-type", f"{content_type}; charset=utf-8")
        self.end_headers()
        self.wfile.write(bytes(content, "utf8"))

    def do_GET(self) -> None:
        status, content_type, content = self.pages.get(self.path)
        self._send_response(content, content_type, status)

    def log_message(self, format: str, *args: Any) -> None:
        LOGGER.info("%s - %s", self.address_string(), format % args)
