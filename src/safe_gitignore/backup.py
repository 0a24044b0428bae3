"""
Backup orchestration: copy tagged files into the mirror, then commit and push.

The mirror is a git working copy of the backup remote at
`<cache-root>/<sanitized-remote>/`, holding one subdirectory per project.
Its unpushed commits are the retry queue: a failed push keeps the local
commit, and the next run pushes it.

Invocations are not locked against each other. Two runs against the same
mirror at once can interleave their git commands.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from string import Template

from safe_gitignore.config import SafeConfig, default_cache_root, sanitize_remote
from safe_gitignore.errors import BackupError, GitError
from safe_gitignore.file_resolver import FileResolverConfig, get_safe_files
from safe_gitignore.git import Git

log = logging.getLogger(__name__)


class BackupState(Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    SYNCING_MIRROR = "syncing-mirror"
    STAGING = "staging"
    COMMITTING = "committing"
    PUSHING = "pushing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class BackupResult:
    """
    Outcome of one backup run. A push failure ends in `FAILED` with
    `committed` left as it was and `queued` set; nothing is rolled back.
    """

    state: BackupState
    files: list[str]
    mirror_dir: Path
    project_dir: Path
    committed: bool = False
    pushed: bool = False
    warnings: list[str] = field(default_factory=list)

    @property
    def queued(self) -> bool:
        """True if local commits are waiting for a later push."""
        return self.state is BackupState.FAILED and not self.pushed


def render_commit_message(template: str, project: str, files: list[str], now: datetime | None = None) -> str:
    """
    Fill a commit message template. `$PROJECT`, `$DATE`, `$COUNT` and `$FILES`
    are substituted; any other `$NAME` is left alone.
    """
    now = now or datetime.now()
    return Template(template).safe_substitute(
        PROJECT=project,
        DATE=now.strftime("%Y-%m-%d %H:%M:%S"),
        COUNT=str(len(files)),
        FILES=", ".join(files),
    )


class BackupOrchestrator:
    """
    Runs one backup pass for a project: resolve, sync the mirror, stage,
    commit, push. Errors other than a failed push propagate to the caller.
    """

    def __init__(
        self,
        project_root: Path,
        config: SafeConfig,
        cache_root: Path | None = None,
        git_executable: str = "git",
    ) -> None:
        self.project_root: Path = Path(os.path.abspath(project_root))
        self.config: SafeConfig = config
        self.cache_root: Path = cache_root or default_cache_root(config)
        self.git_executable: str = git_executable
        self.state: BackupState = BackupState.IDLE

    @property
    def project_name(self) -> str:
        return self.config.effective_project_name(self.project_root)

    def mirror_dir_for(self, remote: str) -> Path:
        return self.cache_root / sanitize_remote(remote)

    def _enter(self, state: BackupState) -> None:
        log.debug("Backup state: %s -> %s", self.state.value, state.value)
        self.state = state

    def resolve_files(self) -> list[str]:
        resolver_config = FileResolverConfig(glob_engine=self.config.effective_glob_engine)
        return get_safe_files(self.project_root, resolver_config)

    def run(self, dry_run: bool = False) -> BackupResult:
        """
        Run the backup. With `dry_run`, stop after resolving and report the
        files that would be copied.
        """
        self._enter(BackupState.RESOLVING)
        remote = self.config.require_remote()
        files = self.resolve_files()
        mirror_dir = self.mirror_dir_for(remote)
        project_dir = mirror_dir / self.project_name
        result = BackupResult(self.state, files, mirror_dir, project_dir)
        log.info("Resolved %d file(s) for %s", len(files), self.project_name)

        if dry_run:
            self._enter(BackupState.DONE)
            result.state = self.state
            return result

        try:
            self._enter(BackupState.SYNCING_MIRROR)
            git = self._ensure_mirror(remote, mirror_dir, result.warnings)
            self._copy_files(files, project_dir)

            self._enter(BackupState.STAGING)
            git.add_all()

            self._enter(BackupState.COMMITTING)
            if git.has_changes():
                message = render_commit_message(
                    self.config.effective_commit_msg, self.project_name, files
                )
                git.commit(message)
                result.committed = True
                log.info("Committed: %s", message)
            else:
                log.info("No changes to commit")
        except GitError as e:
            self._enter(BackupState.FAILED)
            raise BackupError(f"Mirror update failed in {mirror_dir}: {e}") from e
        except BackupError:
            self._enter(BackupState.FAILED)
            raise

        self._enter(BackupState.PUSHING)
        result.pushed = self._push(git, result.warnings)
        self._enter(BackupState.DONE if result.pushed else BackupState.FAILED)
        result.state = self.state
        return result

    def _ensure_mirror(self, remote: str, mirror_dir: Path, warnings: list[str]) -> Git:
        """
        Clone the mirror on first use, else pull. If the remote cannot be cloned
        (empty or unreachable), start a local repository with `origin` set so
        commits queue until a push succeeds. A mirror started that way has no
        upstream, so each later run fetches and adopts the remote branch once
        it exists.
        """
        git = Git(mirror_dir, self.git_executable)
        if (mirror_dir / ".git").exists():
            try:
                if git.has_upstream():
                    git.pull()
                else:
                    self._track_remote_branch(git)
            except GitError as e:
                msg = f"Could not pull latest backup state, continuing with local mirror: {e}"
                log.warning("%s", msg)
                warnings.append(msg)
            return git

        mirror_dir.parent.mkdir(parents=True, exist_ok=True)
        try:
            Git(mirror_dir.parent, self.git_executable).clone(remote, mirror_dir)
            log.info("Cloned backup repository into %s", mirror_dir)
        except GitError as e:
            msg = f"Could not clone {remote}, starting a new local mirror: {e}"
            log.warning("%s", msg)
            warnings.append(msg)
            if mirror_dir.exists():
                shutil.rmtree(mirror_dir)
            mirror_dir.mkdir(parents=True)
            git.init()
            git.remote_add("origin", remote)
        return git

    def _track_remote_branch(self, git: Git) -> None:
        """Rebase local commits onto `origin/<branch>` and track it, if the remote has it."""
        git.fetch()
        branch = git.current_branch()
        if not git.has_remote_branch(branch):
            log.info("Remote has no %s branch yet", branch)
            return
        git.pull("origin", branch)
        git.set_upstream(branch)
        log.info("Mirror now tracks origin/%s", branch)

    def _copy_files(self, files: list[str], project_dir: Path) -> None:
        for rel in files:
            src = self.project_root / rel
            dest = project_dir / rel
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(src, dest)
            except OSError as e:
                raise BackupError(f"Could not copy {rel}: {e}", path=src) from e
            log.debug("Copied %s -> %s", src, dest)

    def _push(self, git: Git, warnings: list[str]) -> bool:
        """
        Push queued commits. Returns False on failure, leaving the commits in
        place for the next run.
        """
        pending = git.unpushed_count()
        if pending == 0:
            log.info("Mirror is up to date with the remote")
            return True
        try:
            git.push()
        except GitError as e:
            msg = f"Push failed, {pending} commit(s) queued for the next backup: {e}"
            log.warning("%s", msg)
            warnings.append(msg)
            return False
        log.info("Pushed %d commit(s)", pending)
        return True
