"""Thin wrapper around the `git` command line."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from safe_gitignore.errors import GitError, NotAGitRepoError

log = logging.getLogger(__name__)


class Git:
    """
    Runs `git` in a fixed working directory. Every command blocks until git
    exits; there is no timeout. A non-zero exit raises `GitError` unless
    `check=False`.
    """

    def __init__(self, cwd: Path, executable: str = "git") -> None:
        self.cwd: Path = cwd
        self.executable: str = executable

    def run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        log.debug("git %s (in %s)", " ".join(args), self.cwd)
        try:
            proc = subprocess.run(
                [self.executable, *args],
                cwd=self.cwd,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as e:
            raise GitError(args, 127, f"git executable not found: {e}") from e
        if check and proc.returncode != 0:
            raise GitError(args, proc.returncode, proc.stderr.strip())
        return proc

    def is_repo(self) -> bool:
        return self.run("rev-parse", "--git-dir", check=False).returncode == 0

    def toplevel(self) -> Path:
        try:
            out = self.run("rev-parse", "--show-toplevel").stdout.strip()
        except GitError as e:
            raise NotAGitRepoError(e.git_args, e.returncode, e.stderr) from e
        return Path(out)

    def hooks_dir(self) -> Path:
        """Hooks directory, honoring `core.hooksPath` and worktrees."""
        out = Path(self.run("rev-parse", "--git-path", "hooks").stdout.strip())
        return out if out.is_absolute() else self.cwd / out

    def init(self) -> None:
        self.run("init", "--quiet")

    def clone(self, url: str, dest: Path) -> None:
        self.run("clone", "--quiet", url, str(dest))

    def remote_add(self, name: str, url: str) -> None:
        self.run("remote", "add", name, url)

    def pull(self, remote: str | None = None, branch: str | None = None) -> None:
        """Pull with rebase, so queued local commits replay on top of the remote."""
        args = ["pull", "--rebase", "--quiet"]
        if remote and branch:
            args += [remote, branch]
        try:
            self.run(*args)
        except GitError:
            self.run("rebase", "--abort", check=False)
            raise

    def fetch(self, remote: str = "origin") -> None:
        self.run("fetch", "--quiet", remote)

    def current_branch(self) -> str:
        return self.run("symbolic-ref", "--short", "HEAD").stdout.strip()

    def has_remote_branch(self, branch: str, remote: str = "origin") -> bool:
        ref = f"refs/remotes/{remote}/{branch}"
        return self.run("rev-parse", "--verify", "--quiet", ref, check=False).returncode == 0

    def set_upstream(self, branch: str, remote: str = "origin") -> None:
        self.run("branch", "--quiet", f"--set-upstream-to={remote}/{branch}")

    def add_all(self) -> None:
        self.run("add", "--all")

    def status_porcelain(self) -> str:
        return self.run("status", "--porcelain").stdout

    def has_changes(self) -> bool:
        return bool(self.status_porcelain().strip())

    def commit(self, message: str) -> None:
        self.run("commit", "--quiet", "-m", message)

    def has_upstream(self) -> bool:
        proc = self.run("rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}", check=False)
        return proc.returncode == 0

    def unpushed_count(self) -> int:
        """
        Number of local commits not on the remote. Without an upstream branch
        every commit counts; an empty repository has none.
        """
        revs = "@{u}..HEAD" if self.has_upstream() else "HEAD"
        proc = self.run("rev-list", "--count", revs, check=False)
        if proc.returncode != 0:
            return 0
        return int(proc.stdout.strip() or 0)

    def push(self, remote: str = "origin") -> None:
        self.run("push", "--quiet", "--set-upstream", remote, "HEAD")


def find_project_root(start: Path) -> Path:
    """Top of the git working copy containing `start`, or `NotAGitRepoError`."""
    if not start.is_dir():
        raise NotAGitRepoError(["rev-parse", "--show-toplevel"], 128, f"not a directory: {start}")
    return Git(start).toplevel()
