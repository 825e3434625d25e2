"""Unit tests for the default Python analysis engine."""

import threading
from pathlib import Path

from acrd.models import DeclDesc, DeclPos

from conftest import SAMPLE_SOURCE

SAMPLE_BYTES = SAMPLE_SOURCE.encode("utf-8")


def complete(engine, text: str, cursor: int = -1, filename: str = ""):
    return engine.auto_complete(text.encode("utf-8"), filename, cursor)


class TestAutoComplete:
    """Test completion candidates."""

    def test_module_level_prefix(self, engine):
        result = complete(engine, SAMPLE_SOURCE + "gre")

        assert result.names == ("greet", "greeting_count")
        assert result.classes == ("func", "func")
        assert result.types[0] == "func(name, punctuation='!')"
        assert result.types[1] == "func() -> int"
        assert result.replace_count == 3

    def test_negative_cursor_means_end_of_buffer(self, engine):
        source = SAMPLE_SOURCE + "LIM"
        explicit = complete(engine, source, len(source.encode("utf-8")))
        implicit = complete(engine, source, -1)

        assert explicit == implicit
        assert implicit.names == ("LIMIT",)
        assert implicit.types == ("int",)

    def test_cursor_past_end_is_clamped(self, engine):
        result = complete(engine, SAMPLE_SOURCE + "LIM", 10_000)
        assert result.names == ("LIMIT",)

    def test_locals_of_enclosing_function(self, engine):
        cursor = SAMPLE_BYTES.index(b"message =") + len("mess")

        result = engine.auto_complete(SAMPLE_BYTES, "", cursor)

        assert result.names == ("message",)
        assert result.replace_count == 4

    def test_parameters_are_candidates_inside_function(self, engine):
        source = SAMPLE_BYTES.replace(b'"hello " + name', b'"hello " + pun')
        cursor = source.index(b'"hello " + pun') + len('"hello " + pun')

        result = engine.auto_complete(source, "", cursor)

        assert result is not None
        assert "punctuation" in result.names

    def test_imports_are_listed_with_their_kind(self, engine):
        result = complete(engine, SAMPLE_SOURCE + "o")

        by_name = dict(zip(result.names, result.classes))
        assert by_name["os"] == "module"
        assert by_name["osp"] == "module"

        result = complete(engine, SAMPLE_SOURCE + "Ord")
        assert result.names == ("OrderedDict",)
        assert result.classes == ("import",)
        assert result.types == ("from collections",)

    def test_members_of_imported_module(self, engine):
        result = complete(engine, SAMPLE_SOURCE + "os.pa")

        assert "path" in result.names
        assert result.classes[result.names.index("path")] == "module"
        assert all(name.startswith("pa") for name in result.names)
        assert result.replace_count == 2

    def test_members_of_aliased_module(self, engine):
        result = complete(engine, SAMPLE_SOURCE + "osp.jo")

        assert "join" in result.names
        assert result.classes[result.names.index("join")] == "func"

    def test_members_of_imported_name(self, engine):
        result = complete(engine, SAMPLE_SOURCE + "OrderedDict.move")
        assert "move_to_end" in result.names

    def test_members_of_class_in_buffer_while_editing(self, engine):
        result = complete(engine, SAMPLE_SOURCE + "Greeter.")

        assert result.names == ("say", "default")
        assert result.classes == ("func", "var")
        assert result.replace_count == 0

    def test_unknown_owner_has_nothing_to_complete(self, engine):
        assert complete(engine, SAMPLE_SOURCE + "nowhere.x") is None

    def test_no_match_returns_none(self, engine):
        assert complete(engine, SAMPLE_SOURCE + "zzz") is None

    def test_builtins_only_when_enabled(self, engine):
        assert complete(engine, SAMPLE_SOURCE + "isinst") is None

        engine.config.propose_builtins = True
        result = complete(engine, SAMPLE_SOURCE + "isinst")

        assert result.names == ("isinstance",)
        assert result.classes == ("func",)

    def test_candidates_are_unique(self, engine):
        result = complete(engine, SAMPLE_SOURCE + "names = []\nna")
        assert result.names.count("names") == 1

    def test_unparseable_buffer_falls_back_to_last_good_tree(self, engine):
        complete(engine, SAMPLE_SOURCE, filename="/work/sample.py")

        broken = SAMPLE_SOURCE.replace("def greet(", "def greet((") + "LIM"
        result = complete(engine, broken, filename="/work/sample.py")

        assert result.names == ("LIMIT",)


class TestSMap:
    """Test the declaration map."""

    def test_declarations_in_source_order(self, engine, sample_module: Path):
        decls = engine.smap(str(sample_module))

        assert decls == [
            DeclDesc("LIMIT", "var", 5, 1),
            DeclDesc("names", "var", 6, 1),
            DeclDesc("greet", "func", 9, 1),
            DeclDesc("greeting_count", "func", 14, 1),
            DeclDesc(
                "Greeter",
                "type",
                18,
                1,
                children=[
                    DeclDesc("default", "var", 19, 5),
                    DeclDesc("say", "func", 21, 5),
                ],
            ),
        ]

    def test_missing_file_gives_empty_map(self, engine, tmp_path: Path):
        assert engine.smap(str(tmp_path / "missing.py")) == []

    def test_syntax_error_gives_empty_map(self, engine, tmp_path: Path):
        path = tmp_path / "broken.py"
        path.write_text("def broken(:\n")
        assert engine.smap(str(path)) == []

    def test_parsed_file_is_cached(self, engine, sample_module: Path):
        engine.smap(str(sample_module))
        engine.smap(str(sample_module))

        stats = engine.cache.get_stats()
        assert stats["cached_files"] == 1
        assert stats["hits"] == 1


class TestRename:
    """Test rename occurrence lookup."""

    def test_function_occurrences(self, engine, sample_module: Path):
        cursor = SAMPLE_BYTES.index(b"def greet") + len("def ")

        renames, err = engine.rename(str(sample_module), cursor)

        assert err == ""
        assert len(renames) == 1
        assert renames[0].filename == str(sample_module)
        assert renames[0].length == len(SAMPLE_BYTES)
        assert renames[0].decls == [DeclPos(9, 5), DeclPos(22, 16), DeclPos(25, 1)]

    def test_cursor_at_end_of_identifier(self, engine, sample_module: Path):
        cursor = SAMPLE_BYTES.index(b"def greet") + len("def greet")

        renames, err = engine.rename(str(sample_module), cursor)

        assert err == ""
        assert renames[0].decls[0] == DeclPos(9, 5)

    def test_local_variable(self, engine, sample_module: Path):
        cursor = SAMPLE_BYTES.index(b"message =")

        renames, err = engine.rename(str(sample_module), cursor)

        assert err == ""
        assert renames[0].decls == [DeclPos(10, 5), DeclPos(11, 12)]

    def test_keyword_is_refused(self, engine, sample_module: Path):
        cursor = SAMPLE_BYTES.index(b"def greet")

        renames, err = engine.rename(str(sample_module), cursor)

        assert renames is None
        assert err == "can't rename keyword 'def'"

    def test_builtin_is_refused(self, engine, sample_module: Path):
        cursor = SAMPLE_BYTES.index(b"len(names)")

        renames, err = engine.rename(str(sample_module), cursor)

        assert renames is None
        assert err == "can't rename builtin 'len'"

    def test_whitespace_has_nothing_to_rename(self, engine, sample_module: Path):
        cursor = SAMPLE_BYTES.index(b"\n\nLIMIT") + 1
        assert engine.rename(str(sample_module), cursor) == (None, "")

    def test_cursor_out_of_range(self, engine, sample_module: Path):
        assert engine.rename(str(sample_module), len(SAMPLE_BYTES) + 5) == (None, "")
        assert engine.rename(str(sample_module), -3) == (None, "")

    def test_unreadable_file_is_an_error(self, engine, tmp_path: Path):
        renames, err = engine.rename(str(tmp_path / "missing.py"), 0)

        assert renames is None
        assert err.startswith("can't read ")


class TestStatusAndCache:
    """Test status reporting and cache dropping."""

    def test_status_mentions_engine_state(self, engine, sample_module: Path):
        engine.smap(str(sample_module))

        status = engine.status()

        assert status.startswith("PythonEngine: uptime ")
        assert "1 request(s)" in status
        assert "1 cached file(s)" in status
        assert "propose-builtins off" in status

    def test_drop_cache_forgets_parsed_files(self, engine, sample_module: Path):
        engine.smap(str(sample_module))
        assert len(engine.cache) == 1

        engine.drop_cache()

        assert len(engine.cache) == 0

    def test_cache_ttl_follows_config(self, engine, sample_module: Path):
        engine.config.cache_ttl_minutes = 3
        engine.smap(str(sample_module))
        assert engine.cache.ttl_minutes == 3


class TestThreadSafety:
    """Test the engine's own serialization."""

    def test_concurrent_requests_are_all_counted(self, engine):
        threads = [
            threading.Thread(target=complete, args=(engine, SAMPLE_SOURCE + "gre"))
            for _ in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert engine.request_count == 8
        assert len(engine.cache) == 1

    def test_status_does_not_wait_for_running_request(self, engine):
        holding = threading.Event()
        release = threading.Event()

        def hold_engine_lock():
            with engine._lock:
                holding.set()
                release.wait(timeout=5.0)

        holder = threading.Thread(target=hold_engine_lock)
        holder.start()
        try:
            assert holding.wait(timeout=5.0)
            status = []
            reader = threading.Thread(target=lambda: status.append(engine.status()))
            reader.start()
            reader.join(timeout=1.0)

            assert not reader.is_alive()
            assert status[0].startswith("PythonEngine: uptime ")
        finally:
            release.set()
            holder.join(timeout=5.0)
