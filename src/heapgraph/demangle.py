"""Symbol demanglers and display-name cleanup."""
import ctypes
import ctypes.util
import functools
import logging
import subprocess
from typing import Any
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional
from typing import Protocol

from heapgraph._errors import DemangleError

LOGGER = logging.getLogger(__name__)

MANGLED_PREFIXES = ("_Z", "__Z")


class Demangler(Protocol):
    def demangle(self, name: str) -> str:
        ...

    def close(self) -> None:
        ...


class CppFiltDemangler:
    """Demangle names through one long-running ``c++filt`` process.

    Names are written to its standard input one per line, and each answer is
    read back as one line of output.
    """

    def __init__(self, command: str = "c++filt") -> None:
        self.command = command
        self._cache: Dict[str, str] = {}
        self._process: Optional["subprocess.Popen[str]"] = None

    def _start(self) -> "subprocess.Popen[str]":
        if self._process is not None and self._process.poll() is None:
            return self._process
        try:
            self._process = subprocess.Popen(
                [self.command],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                bufsize=1,
            )
        except OSError as e:
            raise DemangleError(f"Cannot run {self.command}: {e}") from e
        LOGGER.debug("started %s with pid %s", self.command, self._process.pid)
        return self._process

    def _run(self, name: str) -> str:
        process = self._start()
        assert process.stdin is not None and process.stdout is not None
        try:
            process.stdin.write(name + "\n")
            process.stdin.flush()
            demangled = process.stdout.readline().strip()
        except OSError as e:
            self.close()
            raise DemangleError(
                f"{self.command} failed to demangle {name!r}: {e}"
            ) from e
        if not demangled:
            self.close()
            raise DemangleError(f"{self.command} returned nothing for {name!r}")
        return demangled

    def demangle(self, name: str) -> str:
        if not name.startswith(MANGLED_PREFIXES):
            return name
        if name not in self._cache:
            self._cache[name] = self._run(name)
        return self._cache[name]

    def close(self) -> None:
        process, self._process = self._process, None
        if process is None:
            return
        if process.stdin is not None:
            try:
                process.stdin.close()
            except OSError:
                LOGGER.debug("%s exited before its input was closed", self.command)
        process.wait()


@functools.lru_cache(maxsize=1)
def _load_cxa_demangle() -> Callable[..., Any]:
    candidates: List[Optional[str]] = [
        ctypes.util.find_library("stdc++"),
        ctypes.util.find_library("c++"),
        "libstdc++.so.6",
    ]
    for candidate in candidates:
        if candidate is None:
            continue
        try:
            library = ctypes.CDLL(candidate)
            func = library.__cxa_demangle
        except (OSError, AttributeError):
            continue
        func.argtypes = [
            ctypes.c_char_p,
            ctypes.c_void_p,
            ctypes.c_void_p,
            ctypes.POINTER(ctypes.c_int),
        ]
        func.restype = ctypes.c_void_p
        return func
    raise DemangleError("No C++ runtime library with __cxa_demangle was found")


@functools.lru_cache(maxsize=1)
def _load_free() -> Callable[..., Any]:
    libc = ctypes.CDLL(ctypes.util.find_library("c"))
    func = libc.free
    func.argtypes = [ctypes.c_void_p]
    func.restype = None
    return func


class BuiltinDemangler:
    """Demangle names in-process through the C++ runtime's ``__cxa_demangle``."""

    STATUS_MESSAGES = {
        -1: "memory allocation failure",
        -2: "not a valid mangled name",
        -3: "invalid argument",
    }

    def __init__(self) -> None:
        self._cache: Dict[str, str] = {}

    def _run(self, name: str) -> str:
        cxa_demangle = _load_cxa_demangle()
        # macOS prefixes every symbol with an extra underscore.
        mangled = name[1:] if name.startswith("__Z") else name
        status = ctypes.c_int()
        result = cxa_demangle(mangled.encode(), None, None, ctypes.byref(status))
        if status.value != 0 or not result:
            reason = self.STATUS_MESSAGES.get(status.value, f"status {status.value}")
            raise DemangleError(f"Cannot demangle {name!r}: {reason}")
        try:
            return ctypes.string_at(result).decode("utf-8", errors="replace")
        finally:
            _load_free()(result)

    def demangle(self, name: str) -> str:
        if not name.startswith(MANGLED_PREFIXES):
            return name
        if name not in self._cache:
            self._cache[name] = self._run(name)
        return self._cache[name]

    def close(self) -> None:
        self._cache.clear()


def get_demangler(builtin: bool) -> Demangler:
    if builtin:
        return BuiltinDemangler()
    return CppFiltDemangler()


ANONYMOUS_NAMESPACE = "(anonymous namespace)"
OPERATOR = "operator"
ARRAY_OPERATORS = ("operator new[]", "operator delete[]")
OPENING = {"<": ">", "(": ")", "[": "]"}


def _is_identifier_char(char: str) -> bool:
    return char.isalnum() or char == "_"


def remove_types(name: str) -> str:
    """Strip template arguments, parameter lists and ABI tags from a
    demangled C++ name, leaving the bare qualified identifier.

    ``std::vector<int>::push_back(int const&)`` becomes
    ``std::vector::push_back``.
    """
    out: List[str] = []
    closing: List[str] = []
    i = 0
    while i < len(name):
        if not closing and name.startswith(ANONYMOUS_NAMESPACE, i):
            out.append(ANONYMOUS_NAMESPACE)
            i += len(ANONYMOUS_NAMESPACE)
            continue
        if (
            not closing
            and name.startswith(OPERATOR, i)
            and (i == 0 or not _is_identifier_char(name[i - 1]))
            and (
                i + len(OPERATOR) == len(name)
                or not _is_identifier_char(name[i + len(OPERATOR)])
            )
        ):
            # Keep the operator token verbatim, e.g. "operator<<" or "operator()".
            array_operator = next(
                (op for op in ARRAY_OPERATORS if name.startswith(op, i)), None
            )
            if array_operator is not None:
                end = i + len(array_operator)
            else:
                end = i + len(OPERATOR)
                if name.startswith("()", end):
                    end += 2
                while end < len(name) and name[end] not in "( ":
                    end += 1
            out.append(name[i:end])
            i = end
            continue

        char = name[i]
        if char in OPENING:
            closing.append(OPENING[char])
        elif closing and char == closing[-1]:
            closing.pop()
        elif not closing:
            out.append(char)
        i += 1

    result = "".join(out).strip()
    for qualifier in (" const", " volatile", " &&", " &"):
        if result.endswith(qualifier):
            result = result[: -len(qualifier)].rstrip()
    return result
