"""
Default names and tokens for tagged-pattern discovery.
"""

from __future__ import annotations

# Trailing marker that opts an ignore-file pattern into backup.
SAFE_TAG: str = "#safe"

# Ignore file read at the project root.
IGNORE_FILENAME: str = ".gitignore"

# Token that marks a recursive pattern.
RECURSIVE_TOKEN: str = "**"

# Single-level wildcard that marks a simple glob.
WILDCARD: str = "*"

GLOB_ENGINES: tuple[str, ...] = ("shell", "pathspec")
DEFAULT_GLOB_ENGINE: str = "shell"
