"""Decoder for heap profiles in the legacy gperftools text format.

A profile looks like::

    heap profile:   12:  4096 [    50:  102400] @ heapprofile
         3:  1024 [    10:    2048] @ 0x4005a0 0x400600 0x400700
         ...
    MAPPED_LIBRARIES:
    00400000-00452000 r-xp 00000000 08:02 173521  /usr/bin/server

Each stack line lists ``inuse_objects: inuse_bytes [alloc_objects:
alloc_bytes]`` followed by the call stack, innermost frame first.
"""
import bisect
import logging
import os
import re
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Iterable
from typing import List
from typing import Optional
from typing import TextIO
from typing import Union

from heapgraph._errors import ProfileDecodeError
from heapgraph._stats import Stats

LOGGER = logging.getLogger(__name__)

_COUNTS = r"(\d+):\s*(\d+)\s*\[\s*(\d+):\s*(\d+)\s*\]\s*@"
RE_HEADER = re.compile(r"^heap profile:\s*" + _COUNTS + r"\s*(\S*)")
RE_STACK = re.compile(r"^\s*" + _COUNTS + r"(.*)$")
RE_MAPPING = re.compile(
    r"^([0-9a-fA-F]+)-([0-9a-fA-F]+)\s+(\S+)\s+([0-9a-fA-F]+)\s+\S+\s+\d+\s*(.*)$"
)
MAPPED_LIBRARIES = "MAPPED_LIBRARIES:"


@dataclass
class Stack:
    """One sampled call path, innermost frame first."""

    addresses: List[int]
    stats: Stats


@dataclass
class ProfileHeader:
    totals: Stats
    sampling_period: int = 0

    @property
    def inuse_bytes(self) -> int:
        return self.totals.inuse_bytes


@dataclass(frozen=True)
class MapEntry:
    start: int
    end: int
    offset: int
    path: str


class MemoryMap:
    """Address ranges of the binaries and libraries loaded in the process."""

    def __init__(self, entries: Iterable[MapEntry] = ()) -> None:
        self._entries = sorted(entries, key=lambda entry: entry.start)
        self._starts = [entry.start for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def search(self, address: int) -> Optional[MapEntry]:
        idx = bisect.bisect_right(self._starts, address) - 1
        if idx < 0:
            return None
        entry = self._entries[idx]
        if entry.start <= address < entry.end:
            return entry
        return None


@dataclass
class Profile:
    header: ProfileHeader
    stacks: List[Stack] = field(default_factory=list)
    maps: MemoryMap = field(default_factory=MemoryMap)


def _parse_counts(match: "re.Match[str]") -> Stats:
    inuse_objects, inuse_bytes, alloc_objects, alloc_bytes = (
        int(match.group(i)) for i in range(1, 5)
    )
    return Stats(
        inuse_objects=inuse_objects,
        inuse_bytes=inuse_bytes,
        alloc_objects=alloc_objects,
        alloc_bytes=alloc_bytes,
    )


def _parse_sampling_period(tag: str) -> int:
    # "heapprofile" carries no period, "heap_v2/524288" does.
    _, _, period = tag.partition("/")
    return int(period) if period.isdigit() else 0


def _parse_addresses(text: str, lineno: int) -> List[int]:
    try:
        return [int(token, 16) for token in text.split()]
    except ValueError:
        raise ProfileDecodeError(
            f"Invalid address in stack at line {lineno}: {text.strip()!r}"
        ) from None


def _parse_mapping(line: str) -> Optional[MapEntry]:
    match = RE_MAPPING.match(line)
    if match is None:
        return None
    start, end, _perms, offset, path = match.groups()
    if not path:
        return None
    return MapEntry(
        start=int(start, 16),
        end=int(end, 16),
        offset=int(offset, 16),
        path=path.strip(),
    )


def decode_profile(stream: TextIO) -> Profile:
    """Decode a heap profile from a text stream."""
    header_line = stream.readline()
    header_match = RE_HEADER.match(header_line)
    if header_match is None:
        raise ProfileDecodeError(
            f"Not a heap profile, unexpected header: {header_line.strip()!r}"
        )
    header = ProfileHeader(
        totals=_parse_counts(header_match),
        sampling_period=_parse_sampling_period(header_match.group(5)),
    )

    stacks: List[Stack] = []
    entries: List[MapEntry] = []
    in_maps = False
    for lineno, line in enumerate(stream, start=2):
        if in_maps:
            entry = _parse_mapping(line)
            if entry is not None:
                entries.append(entry)
            continue
        if not line.strip():
            continue
        if line.startswith(MAPPED_LIBRARIES):
            in_maps = True
            continue
        match = RE_STACK.match(line)
        if match is None:
            raise ProfileDecodeError(
                f"Malformed stack at line {lineno}: {line.strip()!r}"
            )
        stacks.append(
            Stack(
                addresses=_parse_addresses(match.group(5), lineno),
                stats=_parse_counts(match),
            )
        )

    LOGGER.debug("decoded %d stacks and %d mappings", len(stacks), len(entries))
    return Profile(header=header, stacks=stacks, maps=MemoryMap(entries))


def load_profile(path: Union[str, Path]) -> Profile:
    try:
        with open(os.fspath(path)) as f:
            return decode_profile(f)
    except (OSError, UnicodeDecodeError) as e:
        raise ProfileDecodeError(
            f"Failed to read heap profile {path}\nReason: {e}"
        ) from e
