import io
from textwrap import dedent

import pytest

from heapgraph import ProfileDecodeError
from heapgraph import Stats
from heapgraph import decode_profile
from heapgraph.profile import MapEntry
from heapgraph.profile import MemoryMap
from heapgraph.profile import load_profile

PROFILE = dedent(
    """\
    heap profile:    3:   163840 [     5:   204800] @ heap_v2/524288
         2:   102400 [     3:   122880] @ 0x0000000000402010 0x0000000000401010
         1:    61440 [     2:    81920] @ 0x402020 0x401020

    MAPPED_LIBRARIES:
    00400000-00452000 r-xp 00000000 08:02 173521      /usr/bin/server
    7f0000000000-7f0000021000 rw-p 00000000 00:00 0
    7f1000000000-7f1000200000 r-xp 00000000 08:02 42   /lib/x86_64-linux-gnu/libc.so.6
    """
)


class TestDecodeProfile:
    def test_header_totals(self):
        # GIVEN/WHEN
        profile = decode_profile(io.StringIO(PROFILE))

        # THEN
        assert profile.header.totals == Stats(
            inuse_objects=3, inuse_bytes=163840, alloc_objects=5, alloc_bytes=204800
        )
        assert profile.header.inuse_bytes == 163840
        assert profile.header.sampling_period == 524288

    def test_stacks_keep_innermost_frame_first(self):
        # GIVEN/WHEN
        profile = decode_profile(io.StringIO(PROFILE))

        # THEN
        assert [stack.addresses for stack in profile.stacks] == [
            [0x402010, 0x401010],
            [0x402020, 0x401020],
        ]
        assert profile.stacks[0].stats == Stats(
            inuse_objects=2, inuse_bytes=102400, alloc_objects=3, alloc_bytes=122880
        )

    def test_mapped_libraries(self):
        # GIVEN/WHEN
        profile = decode_profile(io.StringIO(PROFILE))

        # THEN
        assert len(profile.maps) == 2
        entry = profile.maps.search(0x401010)
        assert entry is not None
        assert entry.path == "/usr/bin/server"
        libc = profile.maps.search(0x7F1000000100)
        assert libc is not None
        assert libc.path == "/lib/x86_64-linux-gnu/libc.so.6"
        assert profile.maps.search(0x7F0000000010) is None

    def test_legacy_header_has_no_sampling_period(self):
        # GIVEN
        text = "heap profile:    1:   1024 [     1:   1024] @ heapprofile\n"

        # WHEN
        profile = decode_profile(io.StringIO(text))

        # THEN
        assert profile.header.sampling_period == 0
        assert profile.stacks == []
        assert len(profile.maps) == 0

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "not a heap profile\n",
            "heap profile:    1:   1024 [     1:   1024] @ heapprofile\ngarbage\n",
            "heap profile:    1:   1024 [     1:   1024] @ heapprofile\n"
            "     1:   1024 [     1:   1024] @ 0x1000 0xZZZZ\n",
        ],
    )
    def test_malformed_profiles(self, text):
        # GIVEN/WHEN/THEN
        with pytest.raises(ProfileDecodeError):
            decode_profile(io.StringIO(text))

    def test_load_profile_from_file(self, tmp_path):
        # GIVEN
        path = tmp_path / "server.0001.heap"
        path.write_text(PROFILE)

        # WHEN
        profile = load_profile(path)

        # THEN
        assert len(profile.stacks) == 2

    def test_load_missing_profile(self, tmp_path):
        # GIVEN/WHEN/THEN
        with pytest.raises(ProfileDecodeError, match="Failed to read heap profile"):
            load_profile(tmp_path / "missing.heap")


class TestMemoryMap:
    def test_search(self):
        # GIVEN
        memory_map = MemoryMap(
            [
                MapEntry(start=0x3000, end=0x4000, offset=0, path="/lib/b.so"),
                MapEntry(start=0x1000, end=0x2000, offset=0, path="/lib/a.so"),
            ]
        )

        # WHEN/THEN
        assert memory_map.search(0x0FFF) is None
        assert memory_map.search(0x1000).path == "/lib/a.so"
        assert memory_map.search(0x1FFF).path == "/lib/a.so"
        assert memory_map.search(0x2000) is None
        assert memory_map.search(0x3500).path == "/lib/b.so"
        assert memory_map.search(0x4000) is None
