"""Sequential execution of script lines against the filesystem."""

from __future__ import annotations

import atexit
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Iterable, Iterator

from .filesystem import copy_entry, create_entry, exists, move_entry, remove_path
from .models import ExecutableOperation, LineResult, LineStatus, OperationKind
from .script import parse_executable_line

_logger = logging.getLogger(__name__)

DEFAULT_STAGING_PREFIX = "listedit-"


class ExecutionError(RuntimeError):
    """Raised when a script line cannot be carried out."""


class StagingArea:
    """Temporary directory holding cut entities until they are pasted.

    The directory is created on first use and removed when the process exits.
    """

    def __init__(self, root: Path | None = None, *, prefix: str = DEFAULT_STAGING_PREFIX) -> None:
        self.root = root
        self.prefix = prefix
        self._path: Path | None = None

    @property
    def path(self) -> Path:
        if self._path is None:
            if self.root is not None:
                self.root.mkdir(parents=True, exist_ok=True)
            self._path = Path(tempfile.mkdtemp(prefix=self.prefix, dir=self.root))
            atexit.register(self.cleanup)
            _logger.debug("Created staging directory %s", self._path)
        return self._path

    def slot(self, identity: str) -> Path:
        return self.path / identity

    def cleanup(self) -> None:
        if self._path is not None:
            shutil.rmtree(self._path, ignore_errors=True)
            _logger.debug("Removed staging directory %s", self._path)
            self._path = None


_shared_areas: dict[tuple[Path | None, str], StagingArea] = {}


def shared_staging_area(root: Path | None = None, *, prefix: str = DEFAULT_STAGING_PREFIX) -> StagingArea:
    """Return the process-wide staging area for ``root`` and ``prefix``.

    Every executor asking for the same location shares one directory, created
    on first use and removed at exit.
    """

    key = (root, prefix)
    area = _shared_areas.get(key)
    if area is None:
        area = _shared_areas[key] = StagingArea(root, prefix=prefix)
    return area


class Executor:
    """Runs script lines strictly in order, stopping at the first failure."""

    def __init__(self, staging: StagingArea | None = None) -> None:
        self.staging = staging or shared_staging_area()

    def execute(self, lines: Iterable[str]) -> Iterator[LineResult]:
        """Yield one result per line.

        Lines that are not operations are skipped. Once a line fails, every
        later line is reported as not attempted. Nothing already done is undone.
        """

        failed = False
        for index, line in enumerate(lines):
            if failed:
                yield LineResult(index=index, line=line, status=LineStatus.NOT_ATTEMPTED)
                continue

            operation = parse_executable_line(line)
            if operation is None:
                yield LineResult(index=index, line=line, status=LineStatus.SKIPPED)
                continue

            try:
                self.run(operation)
            except (OSError, ExecutionError) as exc:
                failed = True
                _logger.warning("Line %d failed: %s", index + 1, exc)
                yield LineResult(
                    index=index,
                    line=line,
                    status=LineStatus.ERROR,
                    operation=operation,
                    details=str(exc),
                )
                continue

            yield LineResult(index=index, line=line, status=LineStatus.DONE, operation=operation)

    def run(self, operation: ExecutableOperation) -> None:
        """Carry out a single operation."""

        _logger.debug("Running %s %s", operation.kind.value, operation.path)
        kind = operation.kind
        if kind is OperationKind.NEW:
            create_entry(operation.path, is_directory=operation.is_directory)
        elif kind is OperationKind.COPY:
            copy_entry(operation.path, self._destination(operation))
        elif kind is OperationKind.CUT:
            slot = self.staging.slot(self._identity(operation))
            if exists(slot):
                raise ExecutionError(f"Identity '{operation.identity}' is already staged")
            move_entry(operation.path, slot)
        elif kind is OperationKind.PASTE:
            slot = self.staging.slot(self._identity(operation))
            if not exists(slot):
                raise ExecutionError(f"Nothing staged for identity '{operation.identity}'")
            move_entry(slot, operation.path)
        elif kind is OperationKind.DELETE:
            remove_path(operation.path)
        elif kind is OperationKind.MOVE:
            move_entry(operation.path, self._destination(operation))
        else:
            raise TypeError(f"Unknown operation kind {kind!r}")

    @staticmethod
    def _destination(operation: ExecutableOperation) -> Path:
        if operation.destination is None:
            raise ExecutionError(f"{operation.kind.value} of '{operation.path}' has no destination")
        return operation.destination

    @staticmethod
    def _identity(operation: ExecutableOperation) -> str:
        if not operation.identity:
            raise ExecutionError(f"{operation.kind.value} of '{operation.path}' has no identity")
        return operation.identity
