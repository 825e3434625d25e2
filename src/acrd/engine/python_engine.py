"""Default analysis engine for Python sources.

Built on the standard library `ast` and `tokenize` modules. Completion is
scope-light: names bound at module level, names local to the enclosing
functions, members of imported modules and of classes declared in the
buffer, and optionally builtins. Rename is lexical within one file.
"""

import ast
import builtins
import functools
import importlib
import inspect
import io
import keyword
import logging
import re
import threading
import time
import tokenize
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..models import CandidateSet, DeclDesc, DeclPos, RenameDesc
from .base import AnalysisEngine
from .cache import ParsedFileCache

logger = logging.getLogger(__name__)

BUFFER_KEY = "<buffer>"

# owner is a dotted name before the last ".", prefix the identifier being typed
_COMPLETION_CONTEXT = re.compile(
    r"(?:(?P<owner>[^\W\d]\w*(?:\.[^\W\d]\w*)*)\.)?(?P<prefix>[^\W\d]\w*)?$"
)

Candidate = Tuple[str, str, str]  # (name, type, kind)


def _serialized(method):
    """Run an engine method under the engine's own lock."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


def _signature_of(obj: Any) -> str:
    try:
        return "func" + str(inspect.signature(obj))
    except (TypeError, ValueError):
        return "func(...)"


def _describe_object(name: str, obj: Any) -> Candidate:
    if inspect.ismodule(obj):
        return name, "module", "module"
    if inspect.isclass(obj):
        return name, "class", "type"
    if callable(obj):
        return name, _signature_of(obj), "func"
    return name, type(obj).__name__, "var"


def _function_type(node: ast.AST) -> str:
    args = ast.unparse(node.args)
    returns = f" -> {ast.unparse(node.returns)}" if node.returns else ""
    return f"func({args}){returns}"


def _value_type(value: Optional[ast.AST]) -> str:
    if isinstance(value, ast.Constant):
        return type(value.value).__name__
    if isinstance(value, (ast.List, ast.ListComp)):
        return "list"
    if isinstance(value, (ast.Dict, ast.DictComp)):
        return "dict"
    if isinstance(value, (ast.Set, ast.SetComp)):
        return "set"
    if isinstance(value, ast.Tuple):
        return "tuple"
    if isinstance(value, ast.Call) and isinstance(value.func, ast.Name):
        return value.func.id
    return ""


def _assigned_names(node: ast.AST) -> Iterable[Tuple[str, str]]:
    """(name, type) pairs bound by an assignment statement."""
    if isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name):
        yield node.target.id, ast.unparse(node.annotation)
    elif isinstance(node, ast.Assign):
        for target in node.targets:
            for sub in ast.walk(target):
                if isinstance(sub, ast.Name) and isinstance(sub.ctx, ast.Store):
                    yield sub.id, _value_type(node.value)


def _statement_candidates(body: Iterable[ast.stmt]) -> List[Candidate]:
    found: List[Candidate] = []
    for node in body:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            found.append((node.name, _function_type(node), "func"))
        elif isinstance(node, ast.ClassDef):
            found.append((node.name, "class", "type"))
        elif isinstance(node, ast.Import):
            for alias in node.names:
                found.append((alias.asname or alias.name.split(".")[0], "module", "module"))
        elif isinstance(node, ast.ImportFrom):
            for alias in node.names:
                if alias.name != "*":
                    found.append((alias.asname or alias.name, f"from {node.module or '.'}", "import"))
        else:
            for name, type_ in _assigned_names(node):
                found.append((name, type_, "var"))
    return found


def _import_bindings(tree: ast.Module) -> Dict[str, Tuple[str, Optional[str]]]:
    """Local name -> (module to import, attribute of it or None)."""
    bindings: Dict[str, Tuple[str, Optional[str]]] = {}
    for node in tree.body:
        if isinstance(node, ast.Import):
            for alias in node.names:
                if alias.asname:
                    bindings[alias.asname] = (alias.name, None)
                else:
                    head = alias.name.split(".")[0]
                    bindings[head] = (head, None)
        elif isinstance(node, ast.ImportFrom) and node.module and not node.level:
            for alias in node.names:
                if alias.name != "*":
                    bindings[alias.asname or alias.name] = (node.module, alias.name)
    return bindings


def _enclosing_functions(tree: ast.Module, line: int) -> List[ast.AST]:
    found = []
    for node in ast.walk(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.Lambda)):
            end = getattr(node, "end_lineno", None) or node.lineno
            if node.lineno <= line <= end:
                found.append(node)
    # innermost last
    found.sort(key=lambda n: n.lineno)
    return found


def _local_candidates(func: ast.AST) -> List[Candidate]:
    found: List[Candidate] = []
    args = func.args
    for arg in args.posonlyargs + args.args + args.kwonlyargs:
        found.append((arg.arg, ast.unparse(arg.annotation) if arg.annotation else "", "var"))
    for arg in (args.vararg, args.kwarg):
        if arg is not None:
            found.append((arg.arg, "", "var"))
    if isinstance(func, ast.Lambda):
        return found
    for node in ast.walk(func):
        if node is not func and isinstance(node, (ast.Assign, ast.AnnAssign)):
            for name, type_ in _assigned_names(node):
                found.append((name, type_, "var"))
    found.extend(_statement_candidates(
        n for n in func.body if isinstance(n, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef))
    ))
    return found


def _parse_tolerant(text: str, cursor_line: int) -> Optional[ast.Module]:
    """Parse a buffer that is usually mid-edit.

    The line under the cursor is the one most likely to be incomplete; on a
    syntax error it is replaced by `pass` at the same indentation and the
    parse is retried once.
    """
    try:
        return ast.parse(text)
    except (SyntaxError, ValueError):
        pass

    lines = text.split("\n")
    if not 0 <= cursor_line < len(lines):
        return None
    line = lines[cursor_line]
    indent = line[: len(line) - len(line.lstrip())]
    lines[cursor_line] = indent + "pass"
    try:
        return ast.parse("\n".join(lines))
    except (SyntaxError, ValueError):
        return None


class PythonEngine(AnalysisEngine):
    """Completion, symbol map and rename for Python files.

    Thread Safety:
        Analysis requests and drop_cache share one RLock. status only reads
        counters and cache stats, so it never blocks behind a request.
    """

    def __init__(self, config):
        super().__init__(config)
        self.cache = ParsedFileCache(ttl_minutes=config.cache_ttl_minutes)
        self.start_time = time.time()
        self.request_count = 0
        self._lock = threading.RLock()

    # =============================================================================
    # Autocomplete
    # =============================================================================

    @_serialized
    def auto_complete(
        self, source: bytes, filename: str, cursor: int
    ) -> Optional[CandidateSet]:
        self._begin_request()
        if cursor < 0 or cursor > len(source):
            cursor = len(source)

        before = source[:cursor].decode("utf-8", errors="replace")
        cursor_line = before.count("\n")
        current_line = before.rsplit("\n", 1)[-1]
        match = _COMPLETION_CONTEXT.search(current_line)
        owner = match.group("owner") if match else None
        prefix = (match.group("prefix") if match else None) or ""

        tree = self._parse_buffer(source, filename, cursor_line)

        if owner:
            candidates = self._member_candidates(tree, owner)
        else:
            candidates = self._scope_candidates(tree, cursor_line + 1)

        seen = set()
        matches: List[Candidate] = []
        for name, type_, kind in candidates:
            if name.startswith(prefix) and name not in seen:
                seen.add(name)
                matches.append((name, type_, kind))

        if not matches:
            return None

        matches.sort(key=lambda c: (c[2], c[0]))
        return CandidateSet(
            names=tuple(c[0] for c in matches),
            types=tuple(c[1] for c in matches),
            classes=tuple(c[2] for c in matches),
            replace_count=len(prefix.encode("utf-8")),
        )

    def _parse_buffer(
        self, source: bytes, filename: str, cursor_line: int
    ) -> Optional[ast.Module]:
        key = filename or BUFFER_KEY
        tree = self.cache.get(key, source)
        if tree is not None:
            return tree

        tree = _parse_tolerant(source.decode("utf-8", errors="replace"), cursor_line)
        if tree is None:
            logger.debug(f"Buffer {key} does not parse, using last good tree")
            return self.cache.get_latest(key)

        self.cache.put(key, source, tree)
        return tree

    def _scope_candidates(self, tree: Optional[ast.Module], line: int) -> List[Candidate]:
        candidates: List[Candidate] = []
        if tree is not None:
            for func in reversed(_enclosing_functions(tree, line)):
                candidates.extend(_local_candidates(func))
            candidates.extend(_statement_candidates(tree.body))
        if self.config.propose_builtins:
            candidates.extend(
                _describe_object(name, getattr(builtins, name))
                for name in dir(builtins)
                if not name.startswith("_")
            )
        return candidates

    def _member_candidates(self, tree: Optional[ast.Module], owner: str) -> List[Candidate]:
        if tree is None:
            return []

        head, *rest = owner.split(".")
        for node in tree.body:
            if isinstance(node, ast.ClassDef) and node.name == head and not rest:
                return _statement_candidates(node.body)

        binding = _import_bindings(tree).get(head)
        if binding is None:
            return []

        obj = self._resolve_import(*binding)
        for attr in rest:
            if obj is None:
                break
            obj = getattr(obj, attr, None)
        if obj is None:
            return []

        members = []
        for name in dir(obj):
            if name.startswith("_"):
                continue
            try:
                members.append(_describe_object(name, getattr(obj, name)))
            except Exception:
                logger.debug(f"Skipping member {owner}.{name}", exc_info=True)
        return members

    def _resolve_import(self, module_name: str, attr: Optional[str]) -> Any:
        try:
            module = importlib.import_module(module_name)
        except Exception as e:
            logger.debug(f"Cannot import {module_name} for completion: {e}")
            return None
        if attr is None:
            return module
        value = getattr(module, attr, None)
        if value is None:
            try:
                value = importlib.import_module(f"{module_name}.{attr}")
            except Exception:
                return None
        return value

    # =============================================================================
    # Symbol map
    # =============================================================================

    @_serialized
    def smap(self, filename: str) -> List[DeclDesc]:
        self._begin_request()
        tree = self._parse_file(filename)
        if tree is None:
            return []
        return self._declarations(tree.body)

    def _parse_file(self, filename: str) -> Optional[ast.Module]:
        try:
            source = Path(filename).read_bytes()
        except OSError as e:
            logger.warning(f"Cannot read {filename}: {e}")
            return None

        tree = self.cache.get(filename, source)
        if tree is not None:
            return tree
        try:
            tree = ast.parse(source, filename=filename)
        except (SyntaxError, ValueError) as e:
            logger.info(f"Cannot parse {filename}: {e}")
            return None
        self.cache.put(filename, source, tree)
        return tree

    def _declarations(self, body: Iterable[ast.stmt]) -> List[DeclDesc]:
        decls: List[DeclDesc] = []
        for node in body:
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                decls.append(DeclDesc(node.name, "func", node.lineno, node.col_offset + 1))
            elif isinstance(node, ast.ClassDef):
                decls.append(
                    DeclDesc(
                        node.name,
                        "type",
                        node.lineno,
                        node.col_offset + 1,
                        children=self._declarations(node.body),
                    )
                )
            elif isinstance(node, (ast.Assign, ast.AnnAssign)):
                for name, _ in _assigned_names(node):
                    decls.append(DeclDesc(name, "var", node.lineno, node.col_offset + 1))
        return decls

    # =============================================================================
    # Rename
    # =============================================================================

    @_serialized
    def rename(
        self, filename: str, cursor: int
    ) -> Tuple[Optional[List[RenameDesc]], str]:
        self._begin_request()
        try:
            source = Path(filename).read_bytes()
        except OSError as e:
            return None, f"can't read '{filename}': {e.strerror or e}"

        if cursor < 0 or cursor > len(source):
            return None, ""

        try:
            names = list(self._name_tokens(source))
        except (tokenize.TokenError, SyntaxError) as e:
            return None, f"can't tokenize '{filename}': {e}"

        row = source.count(b"\n", 0, cursor) + 1
        col = cursor - (source.rfind(b"\n", 0, cursor) + 1)
        target = None
        for name, tok_row, start, end, is_attr in names:
            if tok_row == row and start <= col <= end:
                target = (name, is_attr)
                break

        if target is None:
            return None, ""

        name, is_attr = target
        if keyword.iskeyword(name):
            return None, f"can't rename keyword '{name}'"
        if not is_attr and hasattr(builtins, name) and name not in self._bound_names(source):
            return None, f"can't rename builtin '{name}'"

        decls = [
            DeclPos(tok_row, start + 1)
            for tok_name, tok_row, start, _, tok_attr in names
            if tok_name == name and tok_attr == is_attr
        ]
        return [RenameDesc(filename=filename, length=len(source), decls=decls)], ""

    @staticmethod
    def _name_tokens(source: bytes) -> Iterable[Tuple[str, int, int, int, bool]]:
        """(name, row, start byte col, end byte col, follows '.') per NAME token."""
        prev = None
        for tok in tokenize.tokenize(io.BytesIO(source).readline):
            if tok.type in (tokenize.NL, tokenize.COMMENT, tokenize.ENCODING):
                continue
            if tok.type == tokenize.NAME:
                row, char_col = tok.start
                start = len(tok.line[:char_col].encode("utf-8"))
                end = start + len(tok.string.encode("utf-8"))
                is_attr = prev is not None and prev.type == tokenize.OP and prev.string == "."
                yield tok.string, row, start, end, is_attr
            prev = tok

    @staticmethod
    def _bound_names(source: bytes) -> set:
        try:
            tree = ast.parse(source)
        except (SyntaxError, ValueError):
            return set()
        bound = set()
        for node in ast.walk(tree):
            if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Store):
                bound.add(node.id)
            elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
                bound.add(node.name)
            elif isinstance(node, ast.arg):
                bound.add(node.arg)
            elif isinstance(node, (ast.Import, ast.ImportFrom)):
                for alias in node.names:
                    bound.add(alias.asname or alias.name.split(".")[0])
        return bound

    # =============================================================================
    # Daemon management
    # =============================================================================

    def status(self) -> str:
        stats = self.cache.get_stats()
        uptime = int(time.time() - self.start_time)
        return (
            f"PythonEngine: uptime {uptime}s, {self.request_count} request(s), "
            f"{stats['cached_files']} cached file(s) "
            f"({stats['hits']} hits, {stats['misses']} misses), "
            f"propose-builtins {'on' if self.config.propose_builtins else 'off'}"
        )

    @_serialized
    def drop_cache(self) -> None:
        logger.info("Dropping parsed file cache")
        self.cache.clear()

    def _begin_request(self) -> None:
        self.request_count += 1
        self.cache.ttl_minutes = self.config.cache_ttl_minutes
