"""Result shapes exchanged between the daemon and its clients.

RPyC passes tuples, strings, bytes and numbers by value (brine) but hands
lists, dicts and objects over as remote references. Every result therefore
crosses the socket as nested tuples and is rebuilt into these dataclasses on
the client side.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class CandidateSet:
    """Completion candidates as three index-aligned sequences.

    Attributes:
        names: Candidate names
        types: Declared type signature of each candidate
        classes: Kind classification of each candidate ("func", "var", ...)
        replace_count: Length of the prefix the editor should replace
    """

    names: Tuple[str, ...]
    types: Tuple[str, ...]
    classes: Tuple[str, ...]
    replace_count: int = 0

    def __post_init__(self) -> None:
        if not (len(self.names) == len(self.types) == len(self.classes)):
            raise ValueError(
                "names, types and classes must have the same length "
                f"({len(self.names)}, {len(self.types)}, {len(self.classes)})"
            )

    def __len__(self) -> int:
        return len(self.names)

    def to_wire(self) -> Tuple[Tuple[str, ...], Tuple[str, ...], Tuple[str, ...], int]:
        return (
            tuple(self.names),
            tuple(self.types),
            tuple(self.classes),
            int(self.replace_count),
        )

    @classmethod
    def from_wire(cls, data: Optional[Sequence[Any]]) -> Optional["CandidateSet"]:
        """Rebuild a candidate set; None stays None (nothing to complete)."""
        if data is None:
            return None
        names, types, classes, replace_count = data
        return cls(tuple(names), tuple(types), tuple(classes), int(replace_count))


@dataclass
class DeclDesc:
    """One declaration of a file, with nested members for classes."""

    name: str
    kind: str
    line: int
    col: int
    children: List["DeclDesc"] = field(default_factory=list)

    def to_wire(self) -> Tuple[Any, ...]:
        return (
            self.name,
            self.kind,
            self.line,
            self.col,
            tuple(child.to_wire() for child in self.children),
        )

    @classmethod
    def from_wire(cls, data: Sequence[Any]) -> "DeclDesc":
        name, kind, line, col, children = data
        return cls(
            name=str(name),
            kind=str(kind),
            line=int(line),
            col=int(col),
            children=[cls.from_wire(child) for child in children],
        )


@dataclass(frozen=True)
class DeclPos:
    """Position of one occurrence to rewrite (1-based line and byte column)."""

    line: int
    col: int


@dataclass
class RenameDesc:
    """Effect of a rename on one file.

    Attributes:
        filename: Absolute path of the touched file
        length: Size of the file in bytes, used by editors to validate buffers
        decls: Occurrences to rewrite, in source order
    """

    filename: str
    length: int
    decls: List[DeclPos] = field(default_factory=list)

    def to_wire(self) -> Tuple[Any, ...]:
        return (
            self.filename,
            self.length,
            tuple((pos.line, pos.col) for pos in self.decls),
        )

    @classmethod
    def from_wire(cls, data: Sequence[Any]) -> "RenameDesc":
        filename, length, decls = data
        return cls(
            filename=str(filename),
            length=int(length),
            decls=[DeclPos(int(line), int(col)) for line, col in decls],
        )


def decls_to_wire(decls: Sequence[DeclDesc]) -> Tuple[Any, ...]:
    return tuple(decl.to_wire() for decl in decls)


def decls_from_wire(data: Optional[Sequence[Any]]) -> List[DeclDesc]:
    if not data:
        return []
    return [DeclDesc.from_wire(item) for item in data]


def renames_to_wire(
    renames: Optional[Sequence[RenameDesc]],
) -> Optional[Tuple[Any, ...]]:
    if renames is None:
        return None
    return tuple(desc.to_wire() for desc in renames)


def renames_from_wire(data: Optional[Sequence[Any]]) -> Optional[List[RenameDesc]]:
    if data is None:
        return None
    return [RenameDesc.from_wire(item) for item in data]
