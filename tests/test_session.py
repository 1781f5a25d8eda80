from __future__ import annotations

import itertools
import random
from pathlib import Path

import pytest

from listedit.config import Settings
from listedit.executor import Executor, StagingArea, shared_staging_area
from listedit.ids import IdentityAllocator
from listedit.listing import NOT_AN_ENTITY, decode_line
from listedit.models import DirectoryState, LineStatus
from listedit.session import EditSession, SessionError


@pytest.fixture
def session(tmp_path: Path, allocator: IdentityAllocator) -> EditSession:
    staging = StagingArea(tmp_path / "staging")
    yield EditSession(Settings(), allocator=allocator, executor=Executor(staging))
    staging.cleanup()


def _identity_of(lines: list[str], name: str) -> str:
    for line in lines:
        decoded = decode_line(line)
        if decoded is not NOT_AN_ENTITY and decoded.name == name:
            assert decoded.identity is not None
            return decoded.identity
    raise AssertionError(f"{name} not listed")


def _tree(directory: Path) -> set[tuple[str, bool]]:
    return {(path.relative_to(directory).as_posix(), path.is_dir()) for path in directory.rglob("*")}


def test_open_directory_lists_with_identities(root: Path, session: EditSession) -> None:
    (root / "a.txt").write_text("a")
    (root / "sub").mkdir()

    lines = session.open_directory(root)

    assert [line.split(":", 1)[1] for line in lines] == ["sub/", "a.txt"]
    assert session.directory_state(root) is DirectoryState.OPEN
    assert set(session.state) == {line.split(":", 1)[0] for line in lines}


def test_open_directory_twice_returns_current_lines(root: Path, session: EditSession) -> None:
    (root / "a.txt").write_text("a")
    lines = session.open_directory(root)
    identity = _identity_of(lines, "a.txt")

    session.update_lines(root, [f"{identity}:b.txt"])

    assert session.open_directory(root) == [f"{identity}:b.txt"]


def test_sessions_share_the_configured_staging_area(tmp_path: Path) -> None:
    settings = Settings(staging_root=tmp_path / "stage", staging_prefix="session-")

    first = EditSession(settings)
    second = EditSession(settings)

    assert first.executor.staging is second.executor.staging
    assert first.executor.staging is shared_staging_area(tmp_path / "stage", prefix="session-")


def test_open_directory_rejects_files(root: Path, session: EditSession) -> None:
    (root / "a.txt").write_text("a")

    with pytest.raises(SessionError):
        session.open_directory(root / "a.txt")


def test_update_requires_open_directory(root: Path, session: EditSession) -> None:
    assert session.directory_state(root) is DirectoryState.UNOPENED
    with pytest.raises(SessionError):
        session.update_lines(root, [])


def test_rename_scenario(root: Path, session: EditSession) -> None:
    (root / "a.txt").write_text("a")
    identity = _identity_of(session.open_directory(root), "a.txt")

    session.update_lines(root, [f"{identity}:b.txt"])

    assert session.script() == [f"MOVE {root / 'a.txt'} => {root / 'b.txt'}"]


def test_delete_scenario(root: Path, session: EditSession) -> None:
    (root / "a.txt").write_text("a")
    session.open_directory(root)

    session.update_lines(root, [])

    assert session.script() == [f"DELETE {root / 'a.txt'}"]


def test_new_file_scenario(root: Path, session: EditSession) -> None:
    (root / "a.txt").write_text("a")
    lines = session.open_directory(root)

    stamped = session.update_lines(root, lines + ["newfile.txt"])

    assert session.script() == [f"NEW {root / 'newfile.txt'}"]
    assert stamped[0] == lines[0]
    assert _identity_of(stamped, "newfile.txt") in session.allocator


def test_new_entity_keeps_identity_across_edits(root: Path, session: EditSession) -> None:
    session.open_directory(root)
    stamped = session.update_lines(root, ["draft/"])
    identity = _identity_of(stamped, "draft")

    session.update_lines(root, [f"{identity}:final/"])

    assert session.script() == [f"NEW {root / 'final'}/"]


def test_cross_directory_cut_and_paste_scenario(tmp_path: Path, session: EditSession) -> None:
    first = (tmp_path / "first").resolve()
    second = (tmp_path / "second").resolve()
    first.mkdir()
    second.mkdir()
    (first / "a.txt").write_text("a")
    identity = _identity_of(session.open_directory(first), "a.txt")
    session.open_directory(second)

    session.update_lines(first, [])
    session.update_lines(second, [f"{identity}:a.txt"])

    assert session.script() == [f"MOVE {first / 'a.txt'} => {second / 'a.txt'}"]


@pytest.mark.parametrize("awkward", ["trailing ", " leading", "back\\"])
def test_untouched_awkward_names_are_left_alone(root: Path, session: EditSession, awkward: str) -> None:
    (root / awkward).write_text("keep")
    lines = session.open_directory(root)

    session.update_lines(root, lines + ["other.txt"])

    assert session.script() == [f"NEW {root / 'other.txt'}"]
    results = session.commit()
    assert all(result.status is LineStatus.DONE for result in results)
    assert (root / awkward).read_text() == "keep"


def test_no_op_edits_record_no_batch(root: Path, session: EditSession) -> None:
    (root / "a.txt").write_text("a")
    lines = session.open_directory(root)

    session.update_lines(root, lines + ["", "   "])

    assert session.batches == []
    assert session.script() == []


def test_commit_executes_and_resets(root: Path, session: EditSession) -> None:
    (root / "a.txt").write_text("a")
    identity = _identity_of(session.open_directory(root), "a.txt")
    session.update_lines(root, [f"{identity}:b.txt", "notes.md"])

    results = session.commit()

    assert [result.status for result in results] == [LineStatus.DONE, LineStatus.DONE]
    assert (root / "b.txt").read_text() == "a"
    assert (root / "notes.md").exists()
    assert session.created_files(results) == [root / "notes.md"]
    assert session.batches == []
    assert session.state == {}
    assert session.directory_state(root) is DirectoryState.CLOSED


def test_commit_with_nothing_pending(root: Path, session: EditSession) -> None:
    session.open_directory(root)

    with pytest.raises(SessionError):
        session.commit()


def test_commit_resets_even_after_failure(root: Path, session: EditSession) -> None:
    (root / "a.txt").write_text("a")
    session.open_directory(root)
    session.update_lines(root, [])

    results = session.commit([f"DELETE {root / 'missing.txt'}", f"DELETE {root / 'a.txt'}"])

    assert [result.status for result in results] == [LineStatus.ERROR, LineStatus.NOT_ATTEMPTED]
    assert (root / "a.txt").exists()
    assert session.batches == []


def test_replaying_script_reproduces_edited_listing(root: Path, session: EditSession) -> None:
    (root / "a.txt").write_text("a")
    (root / "b.txt").write_text("b")
    (root / "sub").mkdir()
    (root / "sub" / "inner.txt").write_text("inner")
    lines = session.open_directory(root)
    a, b, sub = (_identity_of(lines, name) for name in ("a.txt", "b.txt", "sub"))

    session.update_lines(root, [f"{sub}:sub/", f"{a}:c.txt", f"{b}:b.txt"])
    session.update_lines(root, [f"{sub}:sub/", f"{a}:c.txt"])
    stamped = session.update_lines(root, [f"{sub}:sub/", f"{a}:c.txt", "made/", "new.txt"])
    session.update_lines(root, stamped[:1] + [f"{a}:d.txt"] + stamped[2:] + [f"{a}:sub/copy.txt"])

    results = session.commit()

    assert all(result.status is LineStatus.DONE for result in results)
    assert _tree(root) == {
        ("sub", True),
        ("sub/inner.txt", False),
        ("sub/copy.txt", False),
        ("d.txt", False),
        ("made", True),
        ("new.txt", False),
    }
    assert (root / "d.txt").read_text() == "a"
    assert (root / "sub" / "copy.txt").read_text() == "a"


def test_replaying_staged_relocation(root: Path, session: EditSession) -> None:
    (root / "a.txt").write_text("original")
    identity = _identity_of(session.open_directory(root), "a.txt")

    session.update_lines(root, [])
    session.update_lines(root, ["a.txt"])
    stamped = session.update_lines(root, session.open_directory(root) + [f"{identity}:c.txt"])

    script = session.script()
    assert [line.split()[0] for line in script] == ["CUT", "NEW", "PASTE"]
    assert len(stamped) == 2

    results = session.commit()

    assert all(result.status is LineStatus.DONE for result in results)
    assert (root / "a.txt").read_text() == ""
    assert (root / "c.txt").read_text() == "original"


class _RandomEditor:
    """Applies seeded random listing edits and tracks what each identity holds."""

    def __init__(self, session: EditSession, directories: list[Path], rng: random.Random) -> None:
        self.session = session
        self.rng = rng
        self.listings = {directory: session.open_directory(directory) for directory in directories}
        self.contents: dict[str, str | None] = {}
        for directory, lines in self.listings.items():
            for line in lines:
                identity, name = line.split(":", 1)
                self.contents[identity] = (directory / name).read_text()
        self._names = itertools.count()

    def step(self) -> None:
        directories = list(self.listings)
        populated = [directory for directory in directories if self.listings[directory]]
        live = {line.split(":", 1)[0] for lines in self.listings.values() for line in lines}
        removed = sorted(set(self.contents) - live)

        actions = ["new"]
        if populated:
            actions += ["rename", "delete", "duplicate", "move"]
        if removed:
            actions.append("repaste")
        action = self.rng.choice(actions)

        if action == "new":
            target = self.rng.choice(directories)
            self._update(target, self.listings[target] + [self._fresh(self.rng.random() < 0.3)])
            return
        if action == "repaste":
            identity = self.rng.choice(removed)
            target = self.rng.choice(directories)
            line = f"{identity}:{self._fresh(self.contents[identity] is None)}"
            self._update(target, self.listings[target] + [line])
            return

        source = self.rng.choice(populated)
        lines = list(self.listings[source])
        index = self.rng.randrange(len(lines))
        identity, name = lines[index].split(":", 1)
        renamed = f"{identity}:{self._fresh(name.endswith('/'))}"

        if action == "rename":
            lines[index] = renamed
            self._update(source, lines)
        elif action == "delete":
            del lines[index]
            self._update(source, lines)
        elif action == "duplicate":
            target = self.rng.choice(directories)
            self._update(target, self.listings[target] + [renamed])
        else:
            del lines[index]
            self._update(source, lines)
            target = next(directory for directory in directories if directory != source)
            self._update(target, self.listings[target] + [renamed])

    def assert_matches_disk(self) -> None:
        for directory, lines in self.listings.items():
            expected: dict[str, str | None] = {}
            for line in lines:
                identity, name = line.split(":", 1)
                expected[name.rstrip("/")] = self.contents[identity]
            on_disk = {child.name: child for child in directory.iterdir()}

            assert set(on_disk) == set(expected)
            for name, content in expected.items():
                if content is None:
                    assert on_disk[name].is_dir()
                else:
                    assert on_disk[name].read_text() == content

    def _fresh(self, is_directory: bool) -> str:
        return f"n{next(self._names)}" + ("/" if is_directory else "")

    def _update(self, directory: Path, lines: list[str]) -> None:
        self.listings[directory] = self.session.update_lines(directory, lines)
        for line in self.listings[directory]:
            identity, name = line.split(":", 1)
            self.contents.setdefault(identity, None if name.endswith("/") else "")


@pytest.mark.parametrize("seed", range(40))
def test_random_edit_sequences_replay_to_final_listings(tmp_path: Path, seed: int) -> None:
    directories = [(tmp_path / "left").resolve(), (tmp_path / "right").resolve()]
    for directory in directories:
        directory.mkdir()
        for number in range(3):
            (directory / f"{directory.name}-{number}.txt").write_text(f"{directory.name} {number}")

    staging = StagingArea(tmp_path / "staging")
    session = EditSession(
        Settings(),
        allocator=IdentityAllocator(rng=random.Random(seed)),
        executor=Executor(staging),
    )
    editor = _RandomEditor(session, directories, random.Random(seed))

    for _ in range(10):
        editor.step()
    results = session.commit()
    staging.cleanup()

    assert all(result.status is LineStatus.DONE for result in results), [
        (result.line, result.details) for result in results if result.status is not LineStatus.DONE
    ]
    editor.assert_matches_disk()
