"""Filesystem primitives used when executing a script."""

from __future__ import annotations

import errno
import os
import shutil
from pathlib import Path

from .models import EntryType


def exists(path: Path) -> bool:
    """Return ``True`` for existing paths, including dangling symlinks."""

    return path.exists() or path.is_symlink()


def ensure_parent(path: Path) -> None:
    """Ensure the parent directory exists."""

    path.parent.mkdir(parents=True, exist_ok=True)


def detect_entry_type(path: Path) -> EntryType:
    """Determine the ``EntryType`` for ``path``."""

    if path.is_symlink():
        return EntryType.SYMLINK
    if path.is_dir():
        return EntryType.DIRECTORY
    return EntryType.FILE


def create_entry(path: Path, *, is_directory: bool) -> None:
    """Create an empty file or directory at ``path``."""

    if exists(path):
        raise FileExistsError(errno.EEXIST, "Destination already exists", str(path))
    ensure_parent(path)
    if is_directory:
        path.mkdir()
    else:
        path.touch(exist_ok=False)


def copy_entry(source: Path, destination: Path) -> EntryType:
    """Copy ``source`` to ``destination`` preserving metadata and symlinks."""

    if not exists(source):
        raise FileNotFoundError(errno.ENOENT, "Source does not exist", str(source))
    if exists(destination):
        raise FileExistsError(errno.EEXIST, "Destination already exists", str(destination))

    entry_type = detect_entry_type(source)
    ensure_parent(destination)

    if entry_type == EntryType.SYMLINK:
        destination.symlink_to(os.readlink(source))
    elif entry_type == EntryType.DIRECTORY:
        shutil.copytree(
            source,
            destination,
            symlinks=True,
            copy_function=shutil.copy2,
            dirs_exist_ok=False,
        )
    else:
        shutil.copy2(source, destination)

    return entry_type


def move_entry(source: Path, destination: Path) -> None:
    """Rename ``source`` to ``destination``, copying across filesystems."""

    if not exists(source):
        raise FileNotFoundError(errno.ENOENT, "Source does not exist", str(source))
    if exists(destination):
        raise FileExistsError(errno.EEXIST, "Destination already exists", str(destination))

    ensure_parent(destination)
    try:
        os.rename(source, destination)
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            raise
        copy_entry(source, destination)
        remove_path(source)


def remove_path(path: Path) -> None:
    """Delete ``path`` whether it is a file, directory, or symlink."""

    if not exists(path):
        raise FileNotFoundError(errno.ENOENT, "Path does not exist", str(path))
    if path.is_symlink() or path.is_file():
        path.unlink()
        return
    shutil.rmtree(path)
