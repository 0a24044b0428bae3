"""
Post-commit hook installation for safe-gitignore.

The hook is a delimited block inside `.git/hooks/post-commit`, so an existing
hook script is kept and only our block is added or removed.
"""

from __future__ import annotations

import logging
import stat
from pathlib import Path

from safe_gitignore.git import Git

log = logging.getLogger(__name__)

HOOK_NAME = "post-commit"

BLOCK_START = "# >>> safe-gitignore >>>"
BLOCK_END = "# <<< safe-gitignore <<<"

# A failed backup must never fail the commit that triggered it.
HOOK_BLOCK = f"""{BLOCK_START}
if command -v safe-gitignore >/dev/null 2>&1; then
    safe-gitignore backup --quiet || true
fi
{BLOCK_END}
"""

SHEBANG = "#!/bin/sh\n"


def hook_path(project_root: Path) -> Path:
    """Path of the post-commit hook for the repository at `project_root`."""
    return Git(project_root).hooks_dir() / HOOK_NAME


def is_hook_installed(project_root: Path) -> bool:
    path = hook_path(project_root)
    return path.is_file() and BLOCK_START in path.read_text(encoding="utf-8")


def install_hook(project_root: Path) -> Path:
    """
    Add the backup block to the post-commit hook, creating the hook if needed,
    and make it executable. Installing twice leaves a single block.

    Returns:
        The hook file path.
    """
    path = hook_path(project_root)
    if path.is_file():
        content = path.read_text(encoding="utf-8")
        if BLOCK_START in content:
            log.info("Hook already installed in %s", path)
            return path
        if not content.endswith("\n"):
            content += "\n"
        content += "\n" + HOOK_BLOCK
    else:
        path.parent.mkdir(parents=True, exist_ok=True)
        content = SHEBANG + "\n" + HOOK_BLOCK

    path.write_text(content, encoding="utf-8")
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    log.info("Installed hook %s", path)
    return path


def uninstall_hook(project_root: Path) -> bool:
    """
    Remove the backup block from the post-commit hook. The hook file is
    deleted if nothing but the shebang remains.

    Returns:
        True if a block was removed.
    """
    path = hook_path(project_root)
    if not path.is_file():
        return False
    lines = path.read_text(encoding="utf-8").splitlines(keepends=True)

    kept: list[str] = []
    inside = False
    removed = False
    for line in lines:
        if line.strip() == BLOCK_START:
            inside = True
            removed = True
            continue
        if inside:
            if line.strip() == BLOCK_END:
                inside = False
            continue
        kept.append(line)

    if not removed:
        return False

    remaining = "".join(kept).strip()
    if not remaining or remaining == SHEBANG.strip():
        path.unlink()
        log.info("Removed hook %s", path)
    else:
        path.write_text(remaining + "\n", encoding="utf-8")
        log.info("Removed safe-gitignore block from %s", path)
    return True
