"""Diffing of listing snapshots into per-identity operations."""

from __future__ import annotations

import logging
from typing import Iterable

from .ids import DEFAULT_IDENTITY_LENGTH
from .listing import parse_snapshot
from .models import Copy, Cut, DirectorySnapshot, Entity, New, Operation, OperationBatch, StateMap

_logger = logging.getLogger(__name__)


def build_state(snapshots: Iterable[DirectorySnapshot], *, identity_length: int = DEFAULT_IDENTITY_LENGTH) -> StateMap:
    """Parse every snapshot into a mapping of identity to entities.

    Repeated lines naming the same identity and path collapse into one entity.
    """

    state: StateMap = {}
    for snapshot in snapshots:
        for identity, entity in parse_snapshot(snapshot, identity_length=identity_length):
            entities = state.setdefault(identity, [])
            if not _contains(entities, entity):
                entities.append(entity)
    return state


def diff(
    previous: StateMap,
    snapshots: Iterable[DirectorySnapshot],
    *,
    identity_length: int = DEFAULT_IDENTITY_LENGTH,
) -> tuple[StateMap, OperationBatch]:
    """Compare ``previous`` with the current snapshots.

    Returns the proposed state, which replaces ``previous`` wholesale, and the
    batch of operations explaining the change. Added entities of a known
    identity are copied from the removed entity at the same position (or from
    the first previous entity once none is left), removed ones are cut and
    entities of unknown identities are new.
    """

    proposed = build_state(snapshots, identity_length=identity_length)
    batch: OperationBatch = {}

    for identity, previous_entities in previous.items():
        proposed_entities = proposed.get(identity, [])
        added = [entity for entity in proposed_entities if not _contains(previous_entities, entity)]
        removed = [entity for entity in previous_entities if not _contains(proposed_entities, entity)]

        for position, entity in enumerate(added):
            anchor = removed[position] if position < len(removed) else previous_entities[0]
            _record(batch, identity, anchor, Copy(entity.full_path))
        for entity in removed:
            _record(batch, identity, entity, Cut())

    for identity, proposed_entities in proposed.items():
        if identity in previous:
            continue
        for entity in proposed_entities:
            _record(batch, identity, entity, New())

    if batch:
        _logger.debug("Diff produced operations for %d identities", len(batch))
    return proposed, batch


def _contains(entities: list[Entity], candidate: Entity) -> bool:
    key = candidate.key()
    return any(entity.key() == key for entity in entities)


def _record(batch: OperationBatch, identity: str, entity: Entity, operation: Operation) -> None:
    batch.setdefault(identity, {}).setdefault(entity, []).append(operation)
