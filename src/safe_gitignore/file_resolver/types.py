"""Pattern and configuration types for file resolution."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from safe_gitignore.file_resolver.defaults import DEFAULT_GLOB_ENGINE, IGNORE_FILENAME, SAFE_TAG


class PatternKind(Enum):
    """
    Syntactic class of a tagged pattern. Classes are checked in declaration
    order and the first match wins.
    """

    RECURSIVE = "recursive"
    PATH = "path"
    GLOB = "glob"
    LITERAL = "literal"


@dataclass(frozen=True)
class SafePattern:
    """
    A tagged pattern with its class. `prefix` is the directory part of a
    `PATH` pattern (`"secrets"` for `secrets/*.json`), otherwise `None`.
    """

    raw: str
    kind: PatternKind
    prefix: str | None = None


@dataclass
class FileResolverConfig:
    """
    Configuration for tagged-file discovery.

    `glob_engine` picks the matcher behind path and glob patterns:
    `"shell"` (shell-style globbing) or `"pathspec"` (gitignore wildmatch).
    """

    ignore_filename: str = IGNORE_FILENAME
    safe_tag: str = SAFE_TAG
    glob_engine: str = DEFAULT_GLOB_ENGINE
