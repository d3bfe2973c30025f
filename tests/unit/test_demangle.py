import subprocess
from unittest.mock import call
from unittest.mock import patch

import pytest

from heapgraph import DemangleError
from heapgraph.demangle import BuiltinDemangler
from heapgraph.demangle import CppFiltDemangler
from heapgraph.demangle import _load_cxa_demangle
from heapgraph.demangle import get_demangler
from heapgraph.demangle import remove_types


def _has_cxa_demangle():
    try:
        _load_cxa_demangle()
    except (DemangleError, OSError, AttributeError):
        return False
    return True


class TestRemoveTypes:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ["malloc", "malloc"],
            ["foo::bar()", "foo::bar"],
            [
                "std::vector<int, std::allocator<int> >::push_back(int const&)",
                "std::vector::push_back",
            ],
            ["operator new(unsigned long)", "operator new"],
            ["operator new[](unsigned long)", "operator new[]"],
            ["operator delete[](void*)", "operator delete[]"],
            ["operator delete(void*, unsigned long)", "operator delete"],
            ["std::ostream::operator<<(int)", "std::ostream::operator<<"],
            ["Foo::operator()(int) const", "Foo::operator()"],
            ["Foo::operator bool() const", "Foo::operator bool"],
            [
                "(anonymous namespace)::Cache::insert(int)",
                "(anonymous namespace)::Cache::insert",
            ],
            ["Parser::name[abi:cxx11]() const", "Parser::name"],
            ["my_operator_table(int)", "my_operator_table"],
        ],
    )
    def test_strips_decorations(self, name, expected):
        # GIVEN/WHEN/THEN
        assert remove_types(name) == expected


class TestCppFiltDemangler:
    @pytest.fixture
    def process(self):
        with patch("heapgraph.demangle.subprocess.Popen") as popen_mock:
            process = popen_mock.return_value
            process.poll.return_value = None
            yield process

    def test_demangles_through_one_cppfilt_process(self, process):
        # GIVEN
        process.stdout.readline.side_effect = ["foo::bar()\n", "baz()\n"]
        demangler = CppFiltDemangler()

        # WHEN
        first = demangler.demangle("_ZN3foo3barEv")
        second = demangler.demangle("_ZN3foo3barEv")
        third = demangler.demangle("_Z3bazv")

        # THEN
        assert first == second == "foo::bar()"
        assert third == "baz()"
        with patch("heapgraph.demangle.subprocess.Popen") as popen_mock:
            demangler.demangle("_Z3bazv")
            popen_mock.assert_not_called()
        assert process.stdin.write.call_args_list == [
            call("_ZN3foo3barEv\n"),
            call("_Z3bazv\n"),
        ]

    def test_starts_cppfilt_reading_standard_input(self):
        # GIVEN
        demangler = CppFiltDemangler()

        # WHEN
        with patch("heapgraph.demangle.subprocess.Popen") as popen_mock:
            popen_mock.return_value.stdout.readline.return_value = "foo::bar()\n"
            demangler.demangle("_ZN3foo3barEv")

        # THEN
        popen_mock.assert_called_once()
        assert popen_mock.call_args[0][0] == ["c++filt"]
        assert popen_mock.call_args[1]["stdin"] == subprocess.PIPE
        assert popen_mock.call_args[1]["stdout"] == subprocess.PIPE

    def test_plain_names_are_not_demangled(self):
        # GIVEN
        demangler = CppFiltDemangler()

        # WHEN/THEN
        with patch("heapgraph.demangle.subprocess.Popen") as popen_mock:
            assert demangler.demangle("malloc") == "malloc"
        popen_mock.assert_not_called()

    def test_missing_cppfilt_raises_demangle_error(self):
        # GIVEN
        demangler = CppFiltDemangler()

        # WHEN/THEN
        with patch(
            "heapgraph.demangle.subprocess.Popen",
            side_effect=FileNotFoundError("c++filt"),
        ):
            with pytest.raises(DemangleError, match="Cannot run c\\+\\+filt"):
                demangler.demangle("_ZN3foo3barEv")

    def test_broken_pipe_raises_demangle_error(self, process):
        # GIVEN
        process.stdin.write.side_effect = BrokenPipeError()
        demangler = CppFiltDemangler()

        # WHEN/THEN
        with pytest.raises(DemangleError):
            demangler.demangle("_ZN3foo3barEv")
        process.wait.assert_called_once()

    def test_empty_output_is_an_error(self, process):
        # GIVEN
        process.stdout.readline.return_value = ""
        demangler = CppFiltDemangler()

        # WHEN/THEN
        with pytest.raises(DemangleError, match="returned nothing"):
            demangler.demangle("_ZN3foo3barEv")

    def test_exited_process_is_restarted(self, process):
        # GIVEN
        process.stdout.readline.side_effect = ["foo::bar()\n", "baz()\n"]
        demangler = CppFiltDemangler()
        demangler.demangle("_ZN3foo3barEv")

        # WHEN
        process.poll.return_value = 1
        with patch("heapgraph.demangle.subprocess.Popen") as popen_mock:
            popen_mock.return_value.stdout.readline.return_value = "baz()\n"
            result = demangler.demangle("_Z3bazv")

        # THEN
        assert result == "baz()"
        popen_mock.assert_called_once()

    def test_close_ends_the_process(self, process):
        # GIVEN
        process.stdout.readline.return_value = "foo::bar()\n"
        demangler = CppFiltDemangler()
        demangler.demangle("_ZN3foo3barEv")

        # WHEN
        demangler.close()
        demangler.close()

        # THEN
        process.stdin.close.assert_called_once()
        process.wait.assert_called_once()


@pytest.mark.skipif(not _has_cxa_demangle(), reason="no C++ runtime available")
class TestBuiltinDemangler:
    def test_demangles_in_process(self):
        # GIVEN
        demangler = BuiltinDemangler()

        # WHEN/THEN
        assert demangler.demangle("_ZN3foo3barEv") == "foo::bar()"

    def test_plain_names_are_returned_unchanged(self):
        # GIVEN/WHEN/THEN
        assert BuiltinDemangler().demangle("malloc") == "malloc"

    def test_invalid_names_raise(self):
        # GIVEN/WHEN/THEN
        with pytest.raises(DemangleError, match="not a valid mangled name"):
            BuiltinDemangler().demangle("_Z!!!")


def test_get_demangler():
    # GIVEN/WHEN/THEN
    assert isinstance(get_demangler(builtin=True), BuiltinDemangler)
    assert isinstance(get_demangler(builtin=False), CppFiltDemangler)
