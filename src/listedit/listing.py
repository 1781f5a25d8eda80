"""Conversion between directory contents and the textual listing format."""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Literal

from .ids import DEFAULT_IDENTITY_LENGTH, IdentityAllocator, is_identity
from .models import (
    DIRECTORY_MARKER,
    NEW_IDENTITY,
    DirectorySnapshot,
    Entity,
)

_logger = logging.getLogger(__name__)

SEPARATOR = ":"


class LineKind(Enum):
    NOT_AN_ENTITY = "not_an_entity"


# Blank or nameless lines decode to this marker and are ignored by the diff.
NOT_AN_ENTITY: Literal[LineKind.NOT_AN_ENTITY] = LineKind.NOT_AN_ENTITY


@dataclass(frozen=True, slots=True)
class DecodedLine:
    """A listing line that names an entity.

    ``identity`` is ``None`` for lines that introduce a new entity.
    """

    identity: str | None
    name: str
    is_directory: bool = False

    def entity(self, directory: Path) -> Entity:
        full_path = Path(os.path.normpath(directory / self.name))
        return Entity(name=self.name, full_path=full_path, is_directory=self.is_directory)


def encode_line(identity: str | None, entity: Entity) -> str:
    """Render ``entity`` as ``IDENTITY:NAME`` with a trailing marker for directories."""

    name = entity.name + (DIRECTORY_MARKER if entity.is_directory else "")
    if identity is None or identity == NEW_IDENTITY:
        # An empty identity keeps names containing the separator unambiguous.
        return SEPARATOR + name if SEPARATOR in name else name
    return f"{identity}{SEPARATOR}{name}"


def decode_line(
    line: str, *, identity_length: int = DEFAULT_IDENTITY_LENGTH
) -> DecodedLine | Literal[LineKind.NOT_AN_ENTITY]:
    """Parse a listing line.

    Lines are parsed independently. Whitespace around the line, the identity and
    the name is ignored. A prefix that does not look like an identity is treated
    as part of the name of a new entity.
    """

    text = line.strip()
    if not text:
        return NOT_AN_ENTITY

    identity: str | None = None
    name = text
    prefix, separator, rest = text.partition(SEPARATOR)
    if separator:
        prefix = prefix.strip()
        if not prefix:
            name = rest
        elif is_identity(prefix, length=identity_length):
            identity = prefix
            name = rest

    name = name.strip()
    is_directory = name.endswith(DIRECTORY_MARKER)
    if is_directory:
        name = name.rstrip(DIRECTORY_MARKER).rstrip()

    if not name or name in (".", ".."):
        return NOT_AN_ENTITY
    return DecodedLine(identity=identity, name=name, is_directory=is_directory)


def list_directory(path: Path) -> list[Entity]:
    """Return the entities inside ``path``, directories first.

    Each group keeps the order in which the directory is enumerated. Entries
    whose metadata cannot be read, such as broken symlinks, are dropped, and so
    are entries whose name a listing line cannot carry unchanged.
    """

    directory = Path(path).resolve(strict=False)
    directories: list[Entity] = []
    files: list[Entity] = []

    for child in directory.iterdir():
        try:
            mode = child.stat().st_mode
        except OSError as exc:
            _logger.debug("Skipping unreadable entry %s: %s", child, exc)
            continue

        entity = Entity(name=child.name, full_path=child, is_directory=stat.S_ISDIR(mode))
        if not survives_listing(entity):
            _logger.warning("Skipping %r: its name cannot be edited as a listing line", str(child))
            continue

        if entity.is_directory:
            directories.append(entity)
        else:
            files.append(entity)

    return directories + files


def survives_listing(entity: Entity) -> bool:
    """Return ``True`` if ``entity`` decodes back to itself from its listing line."""

    line = encode_line(None, entity)
    if len(line.splitlines()) != 1:
        return False
    decoded = decode_line(line)
    return (
        decoded is not NOT_AN_ENTITY
        and decoded.name == entity.name
        and decoded.is_directory == entity.is_directory
    )


def parse_snapshot(
    snapshot: DirectorySnapshot, *, identity_length: int = DEFAULT_IDENTITY_LENGTH
) -> list[tuple[str, Entity]]:
    """Return ``(identity, entity)`` pairs for every entity line in ``snapshot``.

    Lines without an identity are reported under ``NEW_IDENTITY``.
    """

    pairs: list[tuple[str, Entity]] = []
    for line in snapshot.lines:
        decoded = decode_line(line, identity_length=identity_length)
        if decoded is NOT_AN_ENTITY:
            continue
        identity = decoded.identity if decoded.identity is not None else NEW_IDENTITY
        pairs.append((identity, decoded.entity(snapshot.directory_path)))
    return pairs


def stamp_lines(lines: Iterable[str], allocator: IdentityAllocator) -> list[str]:
    """Give every new entity line a freshly allocated identity.

    Lines naming an identity the allocator never issued count as new too. Lines
    that are not entities are kept verbatim.
    """

    stamped: list[str] = []
    for line in lines:
        decoded = decode_line(line, identity_length=allocator.length)
        if decoded is NOT_AN_ENTITY or (decoded.identity is not None and decoded.identity in allocator):
            stamped.append(line)
            continue

        identity = allocator.allocate()
        entity = Entity(name=decoded.name, full_path=Path(decoded.name), is_directory=decoded.is_directory)
        stamped.append(encode_line(identity, entity))
    return stamped
