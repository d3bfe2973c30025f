from ._errors import DemangleError
from ._errors import HeapGraphError
from ._errors import ProfileDecodeError
from ._errors import SymbolLoadError
from ._stats import Stats
from ._version import __version__
from .canonicalize import canonicalize_stacks
from .graph import Edge
from .graph import Graph
from .graph import Node
from .profile import MemoryMap
from .profile import Profile
from .profile import Stack
from .profile import decode_profile
from .symbols import Symbol
from .symbols import Symbols

__all__ = [
    "DemangleError",
    "HeapGraphError",
    "ProfileDecodeError",
    "SymbolLoadError",
    "Stats",
    "canonicalize_stacks",
    "Edge",
    "Graph",
    "Node",
    "MemoryMap",
    "Profile",
    "Stack",
    "decode_profile",
    "Symbol",
    "Symbols",
    "__version__",
]
