"""Extraction of `#safe`-tagged patterns from an ignore file."""

from __future__ import annotations

from pathlib import Path

from safe_gitignore.file_resolver.defaults import SAFE_TAG


def parse_safe_patterns(text: str, safe_tag: str = SAFE_TAG) -> list[str]:
    """
    Return the patterns of all lines ending in `safe_tag`, in file order.

    The tag and any whitespace before it are removed and the rest is trimmed
    on the right only, since leading whitespace is part of a gitignore
    pattern. Blank lines and lines without the tag are skipped, which covers
    plain comments. A comment line that does end in the tag is kept as
    written. Duplicates are preserved.
    """
    patterns: list[str] = []
    for line in text.splitlines():
        stripped = line.rstrip()
        if not stripped.endswith(safe_tag):
            continue
        pattern = stripped[: -len(safe_tag)].rstrip()
        if not pattern.strip():
            continue
        patterns.append(pattern)
    return patterns


def read_safe_patterns(ignore_file: Path, safe_tag: str = SAFE_TAG) -> list[str]:
    """
    Read `ignore_file` and return its tagged patterns, or an empty list if
    the file does not exist.
    """
    if not ignore_file.is_file():
        return []
    return parse_safe_patterns(ignore_file.read_text(encoding="utf-8", errors="replace"), safe_tag)
