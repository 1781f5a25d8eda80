from __future__ import annotations

import random
from pathlib import Path

import pytest

from listedit.ids import IdentityAllocator


@pytest.fixture
def root(tmp_path: Path) -> Path:
    directory = tmp_path / "root"
    directory.mkdir()
    return directory.resolve()


@pytest.fixture
def allocator() -> IdentityAllocator:
    return IdentityAllocator(rng=random.Random(1234))


@pytest.fixture
def isolated_cwd(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return workdir
