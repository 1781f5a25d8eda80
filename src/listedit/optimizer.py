"""Rewrite passes turning diff batches into a minimal operation script.

Every pass takes the full batch sequence and returns a new one, leaving its
input untouched. ``optimize`` chains them in the order they depend on each
other: moves are formed within a batch first, then the cut/paste vocabulary is
settled, and finally staged relocations and chains of moves are collapsed.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from .models import (
    Copy,
    Cut,
    Delete,
    Entity,
    Move,
    New,
    Operation,
    OperationBatch,
    Paste,
    copy_batches,
)

_logger = logging.getLogger(__name__)


def create_moves(batches: list[OperationBatch]) -> list[OperationBatch]:
    """Merge a copy and a cut of the same entity within one batch into a move."""

    result: list[OperationBatch] = []
    for batch in batches:
        rewritten: OperationBatch = {}
        for identity, by_entity in batch.items():
            for entity, operations in by_entity.items():
                for operation in _pair_copy_and_cut(entity, operations):
                    _add(rewritten, identity, entity, operation)
        if rewritten:
            result.append(rewritten)
    return result


def convert_news_to_pastes(batches: list[OperationBatch]) -> list[OperationBatch]:
    """Turn a new entity into a paste when its identity was cut earlier.

    Each cut is reclaimed by at most one paste. Further entities of the same
    identity appearing in the paste's batch are copied from the pasted entity.
    """

    pending_cuts: set[str] = set()
    result: list[OperationBatch] = []

    for batch in batches:
        rewritten: OperationBatch = {}
        for identity, by_entity in batch.items():
            pasted: Entity | None = None
            for entity, operations in by_entity.items():
                for operation in operations:
                    if isinstance(operation, Cut):
                        pending_cuts.add(identity)
                        _add(rewritten, identity, entity, operation)
                    elif isinstance(operation, New) and pasted is not None:
                        _add(rewritten, identity, pasted, Copy(entity.full_path))
                    elif isinstance(operation, New) and identity in pending_cuts:
                        pending_cuts.discard(identity)
                        pasted = entity
                        _add(rewritten, identity, entity, Paste())
                    else:
                        _add(rewritten, identity, entity, operation)
        result.append(rewritten)

    return result


def convert_cuts_to_deletes(batches: list[OperationBatch]) -> list[OperationBatch]:
    """Turn cuts that no later paste reclaims into deletes."""

    pending_pastes: set[str] = set()
    result: list[OperationBatch] = []

    for batch in reversed(batches):
        rewritten: OperationBatch = {}
        for identity, by_entity in batch.items():
            for entity, operations in by_entity.items():
                for operation in operations:
                    if isinstance(operation, Paste):
                        pending_pastes.add(identity)
                        _add(rewritten, identity, entity, operation)
                    elif isinstance(operation, Cut) and identity in pending_pastes:
                        # Only the first cut of an identity in a batch is reclaimed.
                        pending_pastes.discard(identity)
                        _add(rewritten, identity, entity, operation)
                    elif isinstance(operation, Cut):
                        _add(rewritten, identity, entity, Delete())
                    else:
                        _add(rewritten, identity, entity, operation)
        result.append(rewritten)

    result.reverse()
    return result


def merge_moves(batches: list[OperationBatch]) -> list[OperationBatch]:
    """Collapse staged relocations and chains of moves of one entity.

    A cut reclaimed by a later paste becomes a single move at the paste's
    position as long as nothing in between touches the cut path. Consecutive
    batches holding a single operation each are then fused when the second one
    moves what the first one placed. Both steps repeat until nothing changes.
    """

    current = [batch for batch in copy_batches(batches) if batch]
    while True:
        merged = _fuse_consecutive_moves(_pair_cuts_with_pastes(current))
        if merged == current:
            return merged
        current = merged


def optimize(batches: list[OperationBatch]) -> list[OperationBatch]:
    """Run every pass in order; running it on its own output changes nothing."""

    optimized = merge_moves(convert_cuts_to_deletes(convert_news_to_pastes(create_moves(batches))))
    _logger.debug("Optimized %d batches into %d", len(batches), len(optimized))
    return optimized


# ----------------------------------------------------------------------
# Internal helpers


def _add(batch: OperationBatch, identity: str, entity: Entity, operation: Operation) -> None:
    batch.setdefault(identity, {}).setdefault(entity, []).append(operation)


def _pair_copy_and_cut(entity: Entity, operations: list[Operation]) -> list[Operation]:
    copy = next((operation for operation in operations if isinstance(operation, Copy)), None)
    cut = next((operation for operation in operations if isinstance(operation, Cut)), None)
    if copy is None or cut is None:
        return list(operations)

    remaining = list(operations)
    remaining.remove(copy)
    remaining.remove(cut)
    if copy.destination != entity.full_path:
        remaining.append(Move(copy.destination))
    return remaining


def _iter_operations(batch: OperationBatch) -> Iterator[tuple[str, Entity, Operation]]:
    for identity, by_entity in batch.items():
        for entity, operations in by_entity.items():
            for operation in operations:
                yield identity, entity, operation


def _touched_paths(entity: Entity, operation: Operation) -> list[Path]:
    paths = [entity.full_path]
    if isinstance(operation, (Copy, Move)):
        paths.append(operation.destination)
    return paths


def _overlaps(first: Path, second: Path) -> bool:
    return first == second or first in second.parents or second in first.parents


def _find_paste(batches: list[OperationBatch], identity: str, start: int) -> tuple[int, Entity] | None:
    for index in range(start, len(batches)):
        for entity, operations in batches[index].get(identity, {}).items():
            if any(isinstance(operation, Paste) for operation in operations):
                return index, entity
    return None


def _path_is_free(
    batches: list[OperationBatch],
    path: Path,
    first: int,
    last: int,
    ignored: set[tuple[int, str, Entity, type]],
) -> bool:
    for index in range(first, last + 1):
        for identity, entity, operation in _iter_operations(batches[index]):
            if (index, identity, entity, type(operation)) in ignored:
                continue
            if any(_overlaps(path, touched) for touched in _touched_paths(entity, operation)):
                return False
    return True


def _pair_cuts_with_pastes(batches: list[OperationBatch]) -> list[OperationBatch]:
    working = copy_batches(batches)

    for cut_index in range(len(working)):
        for identity in list(working[cut_index]):
            for cut_entity in list(working[cut_index].get(identity, {})):
                operations = working[cut_index][identity][cut_entity]
                if not any(isinstance(operation, Cut) for operation in operations):
                    continue

                found = _find_paste(working, identity, cut_index + 1)
                if found is None:
                    continue
                paste_index, paste_entity = found

                ignored = {(cut_index, identity, cut_entity, Cut), (paste_index, identity, paste_entity, Paste)}
                if not _path_is_free(working, cut_entity.full_path, cut_index, paste_index, ignored):
                    _logger.debug("Keeping staged relocation of %s; its path is reused", cut_entity.full_path)
                    continue

                operations.remove(Cut())
                _replace_paste(working[paste_index], identity, paste_entity, cut_entity)

    pruned = [_prune(batch) for batch in working]
    return [batch for batch in pruned if batch]


def _replace_paste(batch: OperationBatch, identity: str, paste_entity: Entity, source: Entity) -> None:
    rebuilt: dict[Entity, list[Operation]] = {}
    for entity, operations in batch[identity].items():
        if entity != paste_entity:
            rebuilt.setdefault(entity, []).extend(operations)
            continue
        if paste_entity.full_path != source.full_path:
            rebuilt.setdefault(source, []).append(Move(paste_entity.full_path))
        remaining = list(operations)
        remaining.remove(Paste())
        if remaining:
            rebuilt.setdefault(entity, []).extend(remaining)
    batch[identity] = rebuilt


def _prune(batch: OperationBatch) -> OperationBatch:
    pruned: OperationBatch = {}
    for identity, by_entity in batch.items():
        kept = {entity: operations for entity, operations in by_entity.items() if operations}
        if kept:
            pruned[identity] = kept
    return pruned


def _single_operation(batch: OperationBatch) -> tuple[str, Entity, Operation] | None:
    if len(batch) != 1:
        return None
    identity, by_entity = next(iter(batch.items()))
    if len(by_entity) != 1:
        return None
    entity, operations = next(iter(by_entity.items()))
    if len(operations) != 1:
        return None
    return identity, entity, operations[0]


def _fuse(first: OperationBatch, second: OperationBatch) -> OperationBatch | None:
    first_single = _single_operation(first)
    second_single = _single_operation(second)
    if first_single is None or second_single is None:
        return None

    first_identity, first_entity, first_operation = first_single
    second_identity, second_entity, second_operation = second_single
    if first_identity != second_identity or not isinstance(second_operation, Move):
        return None

    if isinstance(first_operation, Move) and first_operation.destination == second_entity.full_path:
        if second_operation.destination == first_entity.full_path:
            return {}
        return {first_identity: {first_entity: [Move(second_operation.destination)]}}

    if isinstance(first_operation, (New, Paste)) and first_entity.full_path == second_entity.full_path:
        return {first_identity: {first_entity.relocated(second_operation.destination): [first_operation]}}

    return None


def _fuse_consecutive_moves(batches: list[OperationBatch]) -> list[OperationBatch]:
    fused: list[OperationBatch] = []
    for batch in batches:
        merged = _fuse(fused[-1], batch) if fused else None
        if merged is None:
            fused.append(batch)
        elif merged:
            fused[-1] = merged
        else:
            fused.pop()
    return fused
