"""Rendering and parsing of script command lines."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from .models import (
    DIRECTORY_MARKER,
    Copy,
    Cut,
    Delete,
    Entity,
    ExecutableOperation,
    Move,
    New,
    Operation,
    OperationBatch,
    OperationKind,
    Paste,
)

DESTINATION_SEPARATOR = " => "
IDENTITY_SEPARATOR = ":"


def operation_to_line(identity: str, entity: Entity, operation: Operation) -> str:
    """Render one operation as a script line."""

    source = entity.display()
    if isinstance(operation, New):
        return f"{OperationKind.NEW.value} {source}"
    if isinstance(operation, Copy):
        return f"{OperationKind.COPY.value} {source}{DESTINATION_SEPARATOR}{operation.destination}"
    if isinstance(operation, Cut):
        return f"{OperationKind.CUT.value} {identity}{IDENTITY_SEPARATOR}{source}"
    if isinstance(operation, Paste):
        return f"{OperationKind.PASTE.value} {identity}{IDENTITY_SEPARATOR}{source}"
    if isinstance(operation, Delete):
        return f"{OperationKind.DELETE.value} {source}"
    if isinstance(operation, Move):
        return f"{OperationKind.MOVE.value} {source}{DESTINATION_SEPARATOR}{operation.destination}"
    raise TypeError(f"Unknown operation {operation!r}")


def render_script(batches: Iterable[OperationBatch]) -> list[str]:
    """Flatten batches into script lines, preserving edit order."""

    lines: list[str] = []
    for batch in batches:
        for identity, by_entity in batch.items():
            for entity, operations in by_entity.items():
                lines.extend(operation_to_line(identity, entity, operation) for operation in operations)
    return lines


def parse_executable_line(line: str) -> ExecutableOperation | None:
    """Parse a script line; unknown keywords and malformed payloads yield ``None``."""

    parts = line.strip().split(None, 1)
    if len(parts) != 2:
        return None
    keyword, payload = parts
    try:
        kind = OperationKind(keyword)
    except ValueError:
        return None

    payload = payload.strip()
    identity: str | None = None
    destination: Path | None = None

    if kind in (OperationKind.CUT, OperationKind.PASTE):
        identity, separator, payload = payload.partition(IDENTITY_SEPARATOR)
        identity = identity.strip()
        if not separator or not identity:
            return None
    elif kind in (OperationKind.COPY, OperationKind.MOVE):
        payload, separator, raw_destination = payload.partition(DESTINATION_SEPARATOR)
        raw_destination = _strip_marker(raw_destination.strip())[0]
        if not separator or not raw_destination:
            return None
        destination = Path(raw_destination)

    raw_path, is_directory = _strip_marker(payload.strip())
    if not raw_path:
        return None

    return ExecutableOperation(
        kind=kind,
        path=Path(raw_path),
        is_directory=is_directory,
        identity=identity,
        destination=destination,
    )


def _strip_marker(text: str) -> tuple[str, bool]:
    if text.endswith(DIRECTORY_MARKER):
        return text[:-1], True
    return text, False
