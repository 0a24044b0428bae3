"""Exceptions raised by safe-gitignore."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class SafeGitignoreError(Exception):
    """Base class for all safe-gitignore errors."""


class ConfigError(SafeGitignoreError):
    """A required config value is missing or a config file is malformed."""


class GitError(SafeGitignoreError):
    """A git command exited with a non-zero status."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.git_args: list[str] = list(args)
        self.returncode: int = returncode
        self.stderr: str = stderr
        detail = f": {stderr}" if stderr else ""
        super().__init__(f"git {' '.join(self.git_args)} failed (exit {returncode}){detail}")


class NotAGitRepoError(GitError):
    """The project directory is not inside a git working copy."""


class BackupError(SafeGitignoreError):
    """The mirror could not be updated. `path` names the offending file, if any."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path: Path | None = path
        super().__init__(message)
