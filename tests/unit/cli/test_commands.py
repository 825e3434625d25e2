"""Unit tests for client command handlers and dispatch."""

import io
import os
from unittest.mock import Mock

import pytest

from acrd.commands import (
    Command,
    absolute_path,
    cmd_autocomplete,
    cmd_rename,
    cmd_set,
    cmd_smap,
    dispatch,
    parse_cursor,
    read_source,
)
from acrd.errors import InputUnreadableError
from acrd.models import CandidateSet, DeclDesc


@pytest.fixture
def client():
    return Mock()


@pytest.fixture
def formatter():
    return Mock()


class TestCommand:
    """Test command line parsing into a Command."""

    def test_from_argv(self):
        command = Command.from_argv(("rename", "a.py", "12"), "vim", "")

        assert command.verb == "rename"
        assert command.args == ("a.py", "12")
        assert command.output_format == "vim"
        assert command.input_path is None

    def test_no_verb(self):
        assert Command.from_argv(()).verb == ""


class TestHelpers:
    """Test path, cursor and input helpers."""

    def test_relative_path_is_made_absolute(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert absolute_path("pkg/../a.py") == os.path.join(str(tmp_path), "a.py")

    def test_absolute_and_empty_paths_unchanged(self):
        assert absolute_path("/src/a.py") == "/src/a.py"
        assert absolute_path("") == ""

    @pytest.mark.parametrize("raw,expected", [("42", 42), ("-1", -1), ("abc", 0), ("", 0)])
    def test_parse_cursor(self, raw, expected):
        assert parse_cursor(raw) == expected

    def test_read_source_from_stream(self):
        assert read_source(None, io.BytesIO(b"x = 1")) == b"x = 1"

    def test_read_source_from_file(self, tmp_path):
        path = tmp_path / "buffer.py"
        path.write_bytes(b"y = 2")

        assert read_source(str(path), io.BytesIO(b"ignored")) == b"y = 2"

    def test_read_source_missing_file(self, tmp_path):
        with pytest.raises(InputUnreadableError):
            read_source(str(tmp_path / "missing.py"))


class TestAutocomplete:
    """Test the autocomplete handler."""

    def test_cursor_only(self, client, formatter):
        client.auto_complete.return_value = None
        command = Command("autocomplete", ("7",))

        cmd_autocomplete(client, command, formatter, stdin=io.BytesIO(b"import os"))

        client.auto_complete.assert_called_once_with(b"import os", "", 7)
        formatter.write_empty.assert_called_once()

    def test_filename_and_cursor(self, client, formatter):
        client.auto_complete.return_value = CandidateSet(("os",), ("module",), ("module",), 1)
        command = Command("autocomplete", ("/src/a.py", "3"))

        cmd_autocomplete(client, command, formatter, stdin=io.BytesIO(b"o"))

        client.auto_complete.assert_called_once_with(b"o", "/src/a.py", 3)
        formatter.write_candidates.assert_called_once_with(
            ("os",), ("module",), ("module",), 1
        )

    def test_no_arguments_means_end_of_buffer(self, client, formatter):
        client.auto_complete.return_value = None

        cmd_autocomplete(client, Command("autocomplete"), formatter, stdin=io.BytesIO(b""))

        client.auto_complete.assert_called_once_with(b"", "", -1)

    def test_too_many_arguments_treated_like_none(self, client, formatter):
        client.auto_complete.return_value = None
        command = Command("autocomplete", ("a", "b", "c"))

        cmd_autocomplete(client, command, formatter, stdin=io.BytesIO(b"x"))

        client.auto_complete.assert_called_once_with(b"x", "", -1)

    def test_input_file_replaces_stdin(self, client, formatter, tmp_path):
        path = tmp_path / "unsaved.py"
        path.write_bytes(b"from_file")
        client.auto_complete.return_value = None
        command = Command("autocomplete", ("0",), input_path=str(path))

        cmd_autocomplete(client, command, formatter, stdin=io.BytesIO(b"from_stdin"))

        assert client.auto_complete.call_args.args[0] == b"from_file"


class TestOtherHandlers:
    """Test smap, rename and set argument handling."""

    def test_smap(self, client, formatter):
        decls = [DeclDesc("f", "func", 1, 1)]
        client.smap.return_value = decls

        cmd_smap(client, Command("smap", ("/src/a.py",)), formatter)

        client.smap.assert_called_once_with("/src/a.py")
        formatter.write_decl_map.assert_called_once_with(decls)

    @pytest.mark.parametrize("args", [(), ("a.py", "b.py")])
    def test_smap_wrong_arity_does_nothing(self, client, formatter, args):
        cmd_smap(client, Command("smap", args), formatter)

        client.smap.assert_not_called()
        formatter.write_decl_map.assert_not_called()

    def test_rename(self, client, formatter):
        client.rename.return_value = (None, "can't rename keyword 'def'")

        cmd_rename(client, Command("rename", ("/src/a.py", "x")), formatter)

        client.rename.assert_called_once_with("/src/a.py", 0)
        formatter.write_rename.assert_called_once_with(None, "can't rename keyword 'def'")

    def test_rename_wrong_arity_does_nothing(self, client, formatter):
        cmd_rename(client, Command("rename", ("/src/a.py",)), formatter)

        client.rename.assert_not_called()

    @pytest.mark.parametrize(
        "args,expected",
        [((), ("", "")), (("log-level",), ("log-level", "")), (("a", "b"), ("a", "b"))],
    )
    def test_set_pads_missing_arguments(self, client, formatter, capsys, args, expected):
        client.set.return_value = "result\n"

        cmd_set(client, Command("set", args), formatter)

        client.set.assert_called_once_with(*expected)
        assert capsys.readouterr().out == "result\n"

    def test_set_too_many_arguments_does_nothing(self, client, formatter):
        cmd_set(client, Command("set", ("a", "b", "c")), formatter)

        client.set.assert_not_called()


class TestDispatch:
    """Test verb dispatch."""

    def test_status_printed_with_newline(self, client, capsys):
        client.status.return_value = "engine ok"

        dispatch(client, Command("status"))

        assert capsys.readouterr().out == "engine ok\n"

    def test_close_and_drop_cache(self, client, capsys):
        dispatch(client, Command("close"))
        dispatch(client, Command("drop-cache"))

        client.close.assert_called_once()
        client.drop_cache.assert_called_once()
        assert capsys.readouterr().out == ""

    def test_unknown_verb_is_silent(self, client, capsys):
        dispatch(client, Command("frobnicate", ("x",)))

        assert client.method_calls == []
        assert capsys.readouterr().out == ""

    def test_format_selects_formatter(self, client, capsys):
        client.smap.return_value = [DeclDesc("f", "func", 1, 1)]

        dispatch(client, Command("smap", ("/a.py",), output_format="vim"))

        assert capsys.readouterr().out == ""
