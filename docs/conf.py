"""Sphinx configuration file for heapgraph's documentation."""

import os

import heapgraph.commands

# -- General configuration ------------------------------------------------------------

default_role = "py:obj"

extensions = [
    # first-party extensions
    "sphinx.ext.autodoc",
    "sphinx.ext.intersphinx",
    "sphinx.ext.napoleon",
    "sphinx.ext.viewcode",
    # third-party extensions
    "sphinxarg.ext",
]

exclude_patterns = ["manpage.rst"]

# General information about the project.
project = "heapgraph"

# -- Options for HTML -----------------------------------------------------------------

html_title = project
html_theme = "furo"

# -- Options for man pages ------------------------------------------------------------
man_pages = [
    ("manpage", "heapgraph", "Call graph viewer for sampled heap profiles", "", 1),
]

# -- Options for smartquotes ----------------------------------------------------------

# Keep long options like "--builtin-demangler" intact.
smartquotes_action = "qe"

# -- Options for intersphinx ----------------------------------------------------------

intersphinx_mapping = {
    "python": (
        "https://docs.python.org/3",
        (None,),
    ),
}

# -- Options for sphinx-argparse ------------------------------------------------------

# Usage messages are wrapped to the terminal width otherwise.
os.environ["COLUMNS"] = "88"

heapgraph.commands._DESCRIPTION = "Call graph viewer for sampled heap profiles."
