"""Templates to render the pages of the interactive server."""
from functools import lru_cache
from typing import Any

import jinja2


@lru_cache(maxsize=1)
def get_render_environment() -> jinja2.Environment:
    loader = jinja2.PackageLoader("heapgraph.reporters")
    env = jinja2.Environment(loader=loader, autoescape=jinja2.select_autoescape())
    env.filters["kib"] = lambda num_bytes: f"{num_bytes // 1024}k"
    return env


def render_page(name: str, **context: Any) -> str:
    template = get_render_environment().get_template(name + ".html")
    return template.render(**context)
