"""Shared models and enums for listedit."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union

DIRECTORY_MARKER = "/"
NEW_IDENTITY = "new"


class EntryType(str, Enum):
    """Kinds of paths the executor handles."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


@dataclass(frozen=True, slots=True)
class Entity:
    """A filesystem item as currently believed to exist."""

    name: str
    full_path: Path
    is_directory: bool = False

    def key(self) -> tuple[str, bool]:
        return (self.full_path.as_posix(), self.is_directory)

    def display(self) -> str:
        """Return the full path carrying the directory marker when needed."""

        return str(self.full_path) + (DIRECTORY_MARKER if self.is_directory else "")

    def relocated(self, destination: Path) -> "Entity":
        return Entity(name=destination.name, full_path=destination, is_directory=self.is_directory)


@dataclass(slots=True)
class DirectorySnapshot:
    """Current textual listing of one opened directory."""

    directory_path: Path
    lines: list[str]


@dataclass(frozen=True, slots=True)
class New:
    """Create an empty file or directory."""


@dataclass(frozen=True, slots=True)
class Copy:
    """Copy the entity to ``destination``."""

    destination: Path


@dataclass(frozen=True, slots=True)
class Cut:
    """Move the entity into the staging area."""


@dataclass(frozen=True, slots=True)
class Paste:
    """Move a staged entity back out to the entity's path."""


@dataclass(frozen=True, slots=True)
class Delete:
    """Remove the entity."""


@dataclass(frozen=True, slots=True)
class Move:
    """Relocate the entity to ``destination``; only produced by the optimizer."""

    destination: Path


Operation = Union[New, Copy, Cut, Paste, Delete, Move]

StateMap = dict[str, list[Entity]]
OperationBatch = dict[str, dict[Entity, list[Operation]]]


class OperationKind(str, Enum):
    """Script keywords, one per operation variant."""

    NEW = "NEW"
    COPY = "COPY"
    CUT = "CUT"
    PASTE = "PASTE"
    DELETE = "DELETE"
    MOVE = "MOVE"


@dataclass(frozen=True, slots=True)
class ExecutableOperation:
    """A parsed script line that the executor can run directly."""

    kind: OperationKind
    path: Path
    is_directory: bool = False
    identity: str | None = None
    destination: Path | None = None


class LineStatus(str, Enum):
    """Outcome of a single script line."""

    DONE = "done"
    ERROR = "error"
    SKIPPED = "skipped"
    NOT_ATTEMPTED = "not_attempted"


@dataclass(frozen=True, slots=True)
class LineResult:
    """Result emitted for each script line handed to the executor."""

    index: int
    line: str
    status: LineStatus
    operation: ExecutableOperation | None = None
    details: str | None = None


class DirectoryState(str, Enum):
    """Lifecycle of a directory listing within a session."""

    UNOPENED = "unopened"
    OPEN = "open"
    CLOSED = "closed"


def operation_kind(operation: Operation) -> OperationKind:
    """Return the keyword for ``operation``."""

    if isinstance(operation, New):
        return OperationKind.NEW
    if isinstance(operation, Copy):
        return OperationKind.COPY
    if isinstance(operation, Cut):
        return OperationKind.CUT
    if isinstance(operation, Paste):
        return OperationKind.PASTE
    if isinstance(operation, Delete):
        return OperationKind.DELETE
    if isinstance(operation, Move):
        return OperationKind.MOVE
    raise TypeError(f"Unknown operation {operation!r}")


def copy_batches(batches: list[OperationBatch]) -> list[OperationBatch]:
    """Return a structural copy of ``batches``; operations are immutable."""

    return [
        {identity: {entity: list(operations) for entity, operations in by_entity.items()} for identity, by_entity in batch.items()}
        for batch in batches
    ]
