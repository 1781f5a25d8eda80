"""Core package for the listedit project."""

import logging

from .cli import app, run_app
from .config import Config, ConfigError, Settings, load_config
from .diff import diff
from .executor import ExecutionError, Executor, StagingArea, shared_staging_area
from .ids import IdentityAllocator, IdentityExhaustedError
from .listing import NOT_AN_ENTITY, DecodedLine, decode_line, encode_line, list_directory, survives_listing
from .models import (
    Copy,
    Cut,
    Delete,
    DirectorySnapshot,
    Entity,
    ExecutableOperation,
    LineResult,
    LineStatus,
    Move,
    New,
    OperationKind,
    Paste,
)
from .optimizer import optimize
from .script import operation_to_line, parse_executable_line, render_script
from .session import EditSession, SessionError

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Config",
    "ConfigError",
    "Settings",
    "load_config",
    "EditSession",
    "SessionError",
    "IdentityAllocator",
    "IdentityExhaustedError",
    "Executor",
    "ExecutionError",
    "StagingArea",
    "shared_staging_area",
    "DecodedLine",
    "NOT_AN_ENTITY",
    "decode_line",
    "encode_line",
    "list_directory",
    "survives_listing",
    "diff",
    "optimize",
    "operation_to_line",
    "parse_executable_line",
    "render_script",
    "Copy",
    "Cut",
    "Delete",
    "DirectorySnapshot",
    "Entity",
    "ExecutableOperation",
    "LineResult",
    "LineStatus",
    "Move",
    "New",
    "OperationKind",
    "Paste",
    "app",
    "run_app",
]
