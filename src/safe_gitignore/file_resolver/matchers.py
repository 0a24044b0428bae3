"""
Glob matchers used to expand path and glob patterns.

A matcher only expands; it does not decide which pattern class applies.
Results may include directories, so callers filter for regular files.
"""

from __future__ import annotations

import glob
import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

import pathspec
from pathspec.patterns.gitignore import GitIgnorePatternError

from safe_gitignore.file_resolver.defaults import GLOB_ENGINES

log = logging.getLogger(__name__)


class GlobMatcher(Protocol):
    def expand(self, pattern: str, base_dir: Path) -> Iterable[Path]:
        """Yield existing paths under `base_dir` matching `pattern`."""
        ...


class ShellGlobMatcher:
    """
    Shell-style globbing relative to `base_dir`. As in the shell, `*` and `?`
    do not match a leading dot, and `[...]` is a character class.
    """

    def expand(self, pattern: str, base_dir: Path) -> Iterable[Path]:
        relative = pattern.lstrip("/")
        if not relative:
            return
        for match in sorted(glob.glob(relative, root_dir=base_dir)):
            yield base_dir / match


class PathSpecMatcher:
    """
    Gitignore wildmatch semantics via `pathspec`. Patterns are anchored at
    `base_dir` like the shell matcher, so `*.key` finds `server.key` but not
    `certs/server.key`. A pattern that gitignore syntax rejects matches
    nothing. The `.git` directory is never entered.
    """

    def expand(self, pattern: str, base_dir: Path) -> Iterable[Path]:
        anchored = pattern if pattern.startswith("/") else "/" + pattern
        try:
            spec = pathspec.PathSpec.from_lines("gitignore", [anchored])
        except GitIgnorePatternError as e:
            log.warning("Ignoring invalid pattern %r: %s", pattern, e)
            return
        for dirpath, dirnames, filenames in os.walk(base_dir):
            dirnames[:] = sorted(d for d in dirnames if d != ".git")
            current = Path(dirpath)
            for filename in sorted(filenames):
                filepath = current / filename
                if spec.match_file(filepath.relative_to(base_dir).as_posix()):
                    yield filepath


def get_matcher(engine: str) -> GlobMatcher:
    """Return the matcher for a `glob_engine` name."""
    if engine == "shell":
        return ShellGlobMatcher()
    if engine == "pathspec":
        return PathSpecMatcher()
    raise ValueError(f"Unknown glob engine: {engine!r} (expected one of {', '.join(GLOB_ENGINES)})")
