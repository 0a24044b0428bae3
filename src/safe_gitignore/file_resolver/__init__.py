"""
Self-contained discovery of `#safe`-tagged files.

No imports from `safe_gitignore` outside this package.

Usage::

    from safe_gitignore.file_resolver import PatternResolver, read_safe_patterns

    patterns = read_safe_patterns(root / ".gitignore")
    files = PatternResolver().build_file_set(patterns, root)
"""

from safe_gitignore.file_resolver.defaults import SAFE_TAG
from safe_gitignore.file_resolver.matchers import (
    GlobMatcher,
    PathSpecMatcher,
    ShellGlobMatcher,
    get_matcher,
)
from safe_gitignore.file_resolver.resolver import PatternResolver, classify_pattern, get_safe_files
from safe_gitignore.file_resolver.tags import parse_safe_patterns, read_safe_patterns
from safe_gitignore.file_resolver.types import FileResolverConfig, PatternKind, SafePattern

__all__ = [
    "SAFE_TAG",
    "FileResolverConfig",
    "GlobMatcher",
    "PathSpecMatcher",
    "PatternKind",
    "PatternResolver",
    "SafePattern",
    "ShellGlobMatcher",
    "classify_pattern",
    "get_matcher",
    "get_safe_files",
    "parse_safe_patterns",
    "read_safe_patterns",
]
