"""
PatternResolver: main entry point for tagged-file discovery.

Resolves `#safe` patterns into the regular files they denote on disk, and
builds the sorted, deduplicated set of project-relative paths to back up.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator
from pathlib import Path

from safe_gitignore.file_resolver.defaults import RECURSIVE_TOKEN, WILDCARD
from safe_gitignore.file_resolver.matchers import GlobMatcher, get_matcher
from safe_gitignore.file_resolver.tags import read_safe_patterns
from safe_gitignore.file_resolver.types import FileResolverConfig, PatternKind, SafePattern

log = logging.getLogger(__name__)


def classify_pattern(pattern: str) -> SafePattern:
    """
    Classify a pattern. Checked in order, first match wins:
    recursive (`**`), path (contains `/`), glob (contains `*`), literal.
    """
    if RECURSIVE_TOKEN in pattern:
        return SafePattern(pattern, PatternKind.RECURSIVE)
    if "/" in pattern:
        prefix = pattern.rstrip("/").rpartition("/")[0].lstrip("/")
        return SafePattern(pattern, PatternKind.PATH, prefix or None)
    if WILDCARD in pattern:
        return SafePattern(pattern, PatternKind.GLOB)
    return SafePattern(pattern, PatternKind.LITERAL)


def _walk_files(root: Path) -> Iterator[Path]:
    """Yield every regular file below `root`, recursively, in a stable order."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        current = Path(dirpath)
        for filename in sorted(filenames):
            filepath = current / filename
            if filepath.is_file():
                yield filepath


class PatternResolver:
    """
    Expands tagged patterns into existing regular files.

    A pattern that matches nothing is not an error; it just contributes no
    files. Nothing is cached, so every call looks at the disk again.
    """

    def __init__(self, config: FileResolverConfig | None = None, matcher: GlobMatcher | None = None) -> None:
        self._config: FileResolverConfig = config or FileResolverConfig()
        self._matcher: GlobMatcher = matcher or get_matcher(self._config.glob_engine)

    def resolve_pattern(self, pattern: str, base_dir: Path) -> Iterator[Path]:
        """Yield absolute paths of the regular files `pattern` denotes under `base_dir`."""
        safe = classify_pattern(pattern)
        log.debug("Resolving %r as %s", pattern, safe.kind.value)

        if safe.kind is PatternKind.RECURSIVE:
            yield from self._resolve_recursive(safe, base_dir)
        elif safe.kind is PatternKind.PATH:
            yield from self._resolve_path(safe, base_dir)
        elif safe.kind is PatternKind.GLOB:
            yield from self._expand_glob(safe.raw, base_dir)
        else:
            candidate = base_dir / safe.raw
            if candidate.is_file():
                yield candidate

    def _resolve_recursive(self, safe: SafePattern, base_dir: Path) -> Iterator[Path]:
        """
        Loose recursive match: drop all wildcards and keep every file whose
        name contains what is left. A residue containing `/` is matched against
        the `/`-prefixed project-relative path instead, since no file name can
        contain a slash.
        """
        residue = safe.raw.replace(WILDCARD, "")
        for filepath in _walk_files(base_dir):
            if "/" in residue:
                haystack = "/" + filepath.relative_to(base_dir).as_posix()
            else:
                haystack = filepath.name
            if residue in haystack:
                yield filepath

    def _resolve_path(self, safe: SafePattern, base_dir: Path) -> Iterator[Path]:
        """Existing file, then existing directory (all files within), then glob."""
        relative = safe.raw.lstrip("/")
        candidate = base_dir / relative
        if relative and candidate.is_file():
            yield candidate
        elif relative and candidate.is_dir():
            yield from _walk_files(candidate)
        else:
            yield from self._expand_glob(safe.raw, base_dir)

    def _expand_glob(self, pattern: str, base_dir: Path) -> Iterator[Path]:
        """Expand through the matcher, keeping regular files only."""
        for path in self._matcher.expand(pattern, base_dir):
            if path.is_file():
                yield path

    def build_file_set(self, patterns: Iterable[str], base_dir: Path) -> list[str]:
        """
        Resolve every pattern and return the matched files as sorted,
        deduplicated POSIX paths relative to `base_dir`. Files that resolve
        outside `base_dir` (through `..`) are skipped.
        """
        root = Path(os.path.abspath(base_dir))
        found: set[str] = set()
        for pattern in patterns:
            for path in self.resolve_pattern(pattern, root):
                normalized = Path(os.path.normpath(path))
                try:
                    found.add(normalized.relative_to(root).as_posix())
                except ValueError:
                    log.warning("Skipping %s: outside the project root %s", normalized, root)
        return sorted(found)


def get_safe_files(project_root: Path, config: FileResolverConfig | None = None) -> list[str]:
    """
    Read the ignore file at `project_root` and return the sorted set of
    tagged files, relative to `project_root`. No ignore file, no tags, or no
    matches all give an empty list.
    """
    config = config or FileResolverConfig()
    patterns = read_safe_patterns(project_root / config.ignore_filename, config.safe_tag)
    for pattern in patterns:
        log.info("Tagged pattern: %s", pattern)
    return PatternResolver(config).build_file_set(patterns, project_root)
