"""Output formatters for editor integrations.

Every client response is one of four outcomes: nothing to complete, a
candidate list, a declaration map, or a rename outcome. A formatter renders
those outcomes in the syntax one consumer expects:

- nice:  human-readable text (default, handy for testing from a shell)
- vim:   Vim script literals consumed by the Vim plugin
- emacs: `name,,hint` lines consumed by the Emacs plugin
- csv:   `kind,,name,,type` lines for tabular consumers
"""

import json
from abc import ABC, abstractmethod
from dataclasses import asdict
from typing import Dict, Optional, Sequence, TextIO, Type

import click

from .models import DeclDesc, RenameDesc

DEFAULT_FORMAT = "nice"


def candidate_abbr(name: str, type_: str, kind: str) -> str:
    """Summary shown in completion menus.

    Functions read as a call signature: the leading "func" of the type is
    dropped so the name is followed directly by the parameter list.
    """
    if kind == "func":
        return f"{kind} {name}{type_[len('func'):]}"
    return f"{kind} {name} {type_}"


def vim_quote(s: str) -> str:
    """Escape a string for a single-quoted Vim literal."""
    return s.replace("'", "''")


class Formatter(ABC):
    """Renders client responses to an output stream."""

    def __init__(self, out: Optional[TextIO] = None):
        self.out = out

    def write(self, text: str) -> None:
        click.echo(text, file=self.out, nl=False)

    @abstractmethod
    def write_empty(self) -> None:
        """Nothing to complete."""

    @abstractmethod
    def write_candidates(
        self,
        names: Sequence[str],
        types: Sequence[str],
        classes: Sequence[str],
        num: int,
    ) -> None:
        """Completion candidates; `num` is the length already typed."""

    @abstractmethod
    def write_decl_map(self, decls: Sequence[DeclDesc]) -> None:
        """Declarations of one file."""

    @abstractmethod
    def write_rename(
        self, renames: Optional[Sequence[RenameDesc]], err: str
    ) -> None:
        """Rename outcome: error, nothing to rename, or per-file occurrences."""


class NiceFormatter(Formatter):
    def write_empty(self) -> None:
        self.write("Nothing to complete.\n")

    def write_candidates(self, names, types, classes, num) -> None:
        self.write(f"Found {len(names)} candidates:\n")
        for name, type_, kind in zip(names, types, classes):
            self.write(f"  {candidate_abbr(name, type_, kind)}\n")

    def write_decl_map(self, decls) -> None:
        # json errors propagate: a half-written dump is worse than none
        self.write(json.dumps([asdict(decl) for decl in decls]))

    def write_rename(self, renames, err) -> None:
        if err:
            self.write(json.dumps({"error": err}))
            return
        if renames is None:
            self.write(json.dumps(None))
            return
        self.write(json.dumps([asdict(desc) for desc in renames]))


class VimFormatter(Formatter):
    def write_empty(self) -> None:
        self.write("[0, []]")

    def write_candidates(self, names, types, classes, num) -> None:
        entries = []
        for name, type_, kind in zip(names, types, classes):
            word = name + "(" if kind == "func" else name
            abbr = candidate_abbr(name, type_, kind)
            entries.append(f"{{'word': '{word}', 'abbr': '{abbr}'}}")
        self.write(f"[{num}, [{', '.join(entries)}]]")

    def write_decl_map(self, decls) -> None:
        pass

    def write_rename(self, renames, err) -> None:
        if err:
            self.write(f"['{vim_quote(err)}', []]")
            return
        if not renames:
            self.write("['Nothing to rename', []]")
            return

        files = []
        for desc in renames:
            positions = ",".join(f"[{pos.line},{pos.col}]" for pos in desc.decls)
            files.append(
                f"{{'filename':'{desc.filename}','length':{desc.length},"
                f"'decls':[{positions}]}}"
            )
        self.write(f"['OK', [{','.join(files)}]]")


class EmacsFormatter(Formatter):
    def write_empty(self) -> None:
        pass

    def write_candidates(self, names, types, classes, num) -> None:
        for name, type_, kind in zip(names, types, classes):
            hint = type_ if kind == "func" else f"{kind} {type_}"
            self.write(f"{name},,{hint}\n")

    def write_decl_map(self, decls) -> None:
        pass

    def write_rename(self, renames, err) -> None:
        pass


class CSVFormatter(Formatter):
    def write_empty(self) -> None:
        pass

    def write_candidates(self, names, types, classes, num) -> None:
        for name, type_, kind in zip(names, types, classes):
            self.write(f"{kind},,{name},,{type_}\n")

    def write_decl_map(self, decls) -> None:
        pass

    def write_rename(self, renames, err) -> None:
        pass


FORMATTERS: Dict[str, Type[Formatter]] = {
    "nice": NiceFormatter,
    "human": NiceFormatter,
    "vim": VimFormatter,
    "editorA": VimFormatter,
    "emacs": EmacsFormatter,
    "editorB": EmacsFormatter,
    "csv": CSVFormatter,
    "tabular": CSVFormatter,
}


def get_formatter(name: str, out: Optional[TextIO] = None) -> Formatter:
    """Formatter for a format name; unknown names get the Vim formatter."""
    return FORMATTERS.get(name, VimFormatter)(out)
