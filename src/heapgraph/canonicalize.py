"""Rewrite raw stacks so that every function is addressed by one address."""
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional
from typing import Protocol

from heapgraph.profile import Stack
from heapgraph.symbols import Symbol


class SymbolSource(Protocol):
    def lookup(self, address: int) -> Optional[Symbol]:
        ...


def canonicalize_stacks(
    stacks: Iterable[Stack], symbols: SymbolSource
) -> Dict[int, str]:
    """Canonicalize ``stacks`` in place and return the names of the
    representative addresses.

    Every address is mapped to its symbol and the symbol back to the first
    address seen for it, so that many points within the same function end
    up as a single node. Consecutive repeats of the same canonical address
    are collapsed. Addresses that do not resolve are kept as they are.
    """
    addresses_by_name: Dict[str, int] = {}
    names: Dict[int, str] = {}

    for stack in stacks:
        new_stack: List[int] = []
        last: Optional[int] = None
        for address in stack.addresses:
            symbol = symbols.lookup(address)
            if symbol is not None:
                address = addresses_by_name.setdefault(symbol.name, address)
                names[address] = symbol.name

            if address == last:
                continue
            new_stack.append(address)
            last = address
        stack.addresses = new_stack

    return names
