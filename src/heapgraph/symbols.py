"""Symbol tables used to resolve sampled addresses to function names."""
import bisect
import logging
import os
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable
from typing import List
from typing import Optional
from typing import Union

from heapgraph._errors import SymbolLoadError

LOGGER = logging.getLogger(__name__)

TEXT_SYMBOL_TYPES = frozenset("TtWwi")


@dataclass(frozen=True)
class Symbol:
    address: int
    name: str
    size: int = 0


class Symbols:
    """An address-ordered symbol table.

    An address resolves to the symbol whose range contains it. When the
    source did not record symbol sizes, a symbol extends up to the next one
    and the last symbol covers every higher address.
    """

    def __init__(self, symbols: Iterable[Symbol]) -> None:
        self._symbols: List[Symbol] = []
        for symbol in sorted(symbols, key=lambda s: s.address):
            if self._symbols and self._symbols[-1].address == symbol.address:
                continue
            self._symbols.append(symbol)
        self._addresses = [symbol.address for symbol in self._symbols]

    def __len__(self) -> int:
        return len(self._symbols)

    def lookup(self, address: int) -> Optional[Symbol]:
        idx = bisect.bisect_right(self._addresses, address) - 1
        if idx < 0:
            return None
        symbol = self._symbols[idx]
        if symbol.size:
            end = symbol.address + symbol.size
        elif idx + 1 < len(self._symbols):
            end = self._symbols[idx + 1].address
        else:
            # The last unsized symbol has no known end.
            return symbol
        return symbol if address < end else None


def parse_nm_line(line: str, text_only: bool = False) -> Optional[Symbol]:
    """Parse one line of ``nm`` style output.

    Accepted shapes are ``addr name``, ``addr type name``, ``addr size name``
    and ``addr size type name``.
    """
    parts = line.split()
    if len(parts) < 2:
        return None
    try:
        address = int(parts[0], 16)
    except ValueError:
        return None

    size = 0
    sym_type = None
    rest = parts[1:]
    if len(rest) >= 3:
        try:
            size = int(rest[0], 16)
        except ValueError:
            return None
        sym_type, name = rest[1], " ".join(rest[2:])
    elif len(rest) == 2:
        if len(rest[0]) == 1 and not rest[0].isdigit():
            sym_type, name = rest
        else:
            try:
                size = int(rest[0], 16)
            except ValueError:
                return None
            name = rest[1]
    else:
        name = rest[0]

    if text_only and sym_type is not None and sym_type not in TEXT_SYMBOL_TYPES:
        return None
    return Symbol(address=address, name=name, size=size)


def parse_nm_output(lines: Iterable[str], text_only: bool = False) -> Symbols:
    symbols = []
    for line in lines:
        symbol = parse_nm_line(line, text_only=text_only)
        if symbol is None:
            LOGGER.debug("skipping symbol line %r", line.rstrip())
            continue
        symbols.append(symbol)
    return Symbols(symbols)


def _nm_command(binary: str) -> List[str]:
    if sys.platform == "darwin":
        return ["nm", "-n", "-U", binary]
    return ["nm", "-n", "-S", "--defined-only", binary]


def load_symbols_from_binary(path: Union[str, Path]) -> Symbols:
    """Read the symbol table of a binary using ``nm``."""
    binary = os.fspath(path)
    if not Path(binary).is_file():
        raise SymbolLoadError(f"No such file: {binary}")
    try:
        result = subprocess.run(
            _nm_command(binary),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            check=True,
        )
    except FileNotFoundError as e:
        raise SymbolLoadError(
            f"Cannot read symbols from {binary}: nm is not installed"
        ) from e
    except subprocess.CalledProcessError as e:
        raise SymbolLoadError(
            f"Cannot read symbols from {binary}\nReason: {e.stderr.strip()}"
        ) from e
    return parse_nm_output(result.stdout.splitlines(), text_only=True)


def load_symbols_map(path: Union[str, Path]) -> Symbols:
    """Read a precomputed address to name map in ``nm`` format."""
    try:
        with open(os.fspath(path)) as f:
            return parse_nm_output(f)
    except (OSError, UnicodeDecodeError) as e:
        raise SymbolLoadError(
            f"Failed to read symbol map {path}\nReason: {e}"
        ) from e
