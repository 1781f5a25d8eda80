"""High level orchestration of a listing edit session."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Sequence

from .config import Settings
from .diff import diff
from .executor import Executor, shared_staging_area
from .ids import IdentityAllocator
from .listing import encode_line, list_directory, stamp_lines
from .models import (
    DirectorySnapshot,
    DirectoryState,
    LineResult,
    LineStatus,
    OperationBatch,
    OperationKind,
    StateMap,
    copy_batches,
)
from .optimizer import optimize
from .script import render_script

_logger = logging.getLogger(__name__)


class SessionError(RuntimeError):
    """Raised when the session is driven through an invalid transition."""


class EditSession:
    """Owns the snapshots, identity state and pending batches of one commit cycle."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        allocator: IdentityAllocator | None = None,
        executor: Executor | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.allocator = allocator or IdentityAllocator(
            self.settings.identity_length,
            max_attempts=self.settings.max_identity_attempts,
        )
        self.executor = executor or Executor(
            shared_staging_area(self.settings.staging_root, prefix=self.settings.staging_prefix)
        )
        self._snapshots: dict[Path, DirectorySnapshot] = {}
        self._closed: set[Path] = set()
        self._state: StateMap = {}
        self._batches: list[OperationBatch] = []

    @property
    def state(self) -> StateMap:
        return {identity: list(entities) for identity, entities in self._state.items()}

    @property
    def batches(self) -> list[OperationBatch]:
        return copy_batches(self._batches)

    def directory_state(self, path: Path) -> DirectoryState:
        key = self._key(path)
        if key in self._snapshots:
            return DirectoryState.OPEN
        if key in self._closed:
            return DirectoryState.CLOSED
        return DirectoryState.UNOPENED

    def open_directory(self, path: Path) -> list[str]:
        """Return the listing lines for ``path``, listing it on first open."""

        key = self._key(path)
        snapshot = self._snapshots.get(key)
        if snapshot is not None:
            return list(snapshot.lines)

        if not key.is_dir():
            raise SessionError(f"'{key}' is not a directory")

        lines: list[str] = []
        for entity in list_directory(key):
            identity = self.allocator.allocate()
            self._state.setdefault(identity, []).append(entity)
            lines.append(encode_line(identity, entity))

        self._snapshots[key] = DirectorySnapshot(directory_path=key, lines=lines)
        self._closed.discard(key)
        _logger.info("Opened %s with %d entries", key, len(lines))
        return list(lines)

    def update_lines(self, path: Path, lines: Sequence[str]) -> list[str]:
        """Record an edit of the listing for ``path``.

        Returns the lines as they should now be displayed, with identities
        assigned to newly added entities.
        """

        key = self._key(path)
        snapshot = self._snapshots.get(key)
        if snapshot is None:
            raise SessionError(f"Directory '{key}' has not been opened")

        snapshot.lines = stamp_lines(lines, self.allocator)
        self._state, batch = diff(
            self._state,
            self._snapshots.values(),
            identity_length=self.allocator.length,
        )
        if batch:
            self._batches.append(batch)
            _logger.info("Recorded edit of %s as batch %d", key, len(self._batches))
        return list(snapshot.lines)

    def optimized_batches(self) -> list[OperationBatch]:
        return optimize(self._batches)

    def script(self) -> list[str]:
        """Render the optimized script for every edit recorded so far."""

        return render_script(self.optimized_batches())

    def commit(self, lines: Iterable[str] | None = None) -> list[LineResult]:
        """Execute ``lines`` (the rendered script by default) and reset the session."""

        script = list(lines) if lines is not None else self.script()
        if not script:
            raise SessionError("There are no pending changes to commit")

        try:
            return list(self.executor.execute(script))
        finally:
            self.reset()

    def reset(self) -> None:
        """Forget every snapshot, identity and pending batch."""

        self._closed.update(self._snapshots)
        self._snapshots.clear()
        self._state = {}
        self._batches = []

    @staticmethod
    def created_files(results: Iterable[LineResult]) -> list[Path]:
        """Return the files newly created by a successful ``NEW`` line."""

        return [
            result.operation.path
            for result in results
            if result.status is LineStatus.DONE
            and result.operation is not None
            and result.operation.kind is OperationKind.NEW
            and not result.operation.is_directory
        ]

    @staticmethod
    def _key(path: Path) -> Path:
        return Path(path).expanduser().resolve(strict=False)
