from typing import Any


class HeapGraphError(Exception):
    """Exceptions raised in this package."""


class HeapGraphCommandError(HeapGraphError):
    """Exceptions raised from this package's CLI commands."""

    def __init__(self, *args: Any, exit_code: int) -> None:
        super().__init__(*args)
        self.exit_code = exit_code


class ProfileDecodeError(HeapGraphError):
    """The heap profile could not be read or is malformed."""


class SymbolLoadError(HeapGraphError):
    """The symbol source could not be read."""


class DemangleError(HeapGraphError):
    """A symbol name could not be demangled."""
