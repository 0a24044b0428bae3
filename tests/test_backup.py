"""Tests for the backup orchestrator against local bare repositories."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest
from conftest import git, requires_git

from safe_gitignore.backup import BackupOrchestrator, BackupState, render_commit_message
from safe_gitignore.config import SafeConfig, sanitize_remote
from safe_gitignore.errors import BackupError, ConfigError


def _remote_files(bare: Path) -> list[str]:
    return git(bare, "ls-tree", "-r", "--name-only", "HEAD").split()


def _commit_count(bare: Path) -> int:
    return int(git(bare, "rev-list", "--count", "HEAD").strip())


def test_render_commit_message() -> None:
    now = datetime(2024, 5, 6, 7, 8, 9)
    msg = render_commit_message(
        "Backup $PROJECT: $DATE ($COUNT files: $FILES) $UNKNOWN", "proj", [".env", "a/b"], now
    )
    assert msg == "Backup proj: 2024-05-06 07:08:09 (2 files: .env, a/b) $UNKNOWN"


def test_missing_remote_fails_before_io(tmp_path: Path) -> None:
    cache = tmp_path / "cache"
    orchestrator = BackupOrchestrator(tmp_path, SafeConfig(), cache_root=cache)
    with pytest.raises(ConfigError):
        orchestrator.run()
    assert not cache.exists()


@requires_git
def test_dry_run_does_not_touch_mirror(project: Path, tmp_path: Path) -> None:
    cache = tmp_path / "cache"
    config = SafeConfig(remote="git@example.com:me/backups.git")
    result = BackupOrchestrator(project, config, cache_root=cache).run(dry_run=True)
    assert result.state is BackupState.DONE
    assert result.files == [".env", "secrets/config.json"]
    assert result.mirror_dir == cache / sanitize_remote("git@example.com:me/backups.git")
    assert not cache.exists()


@requires_git
def test_first_backup_clones_commits_and_pushes(project: Path, bare_remote: Path, tmp_path: Path) -> None:
    config = SafeConfig(remote=f"file://{bare_remote}")
    result = BackupOrchestrator(project, config, cache_root=tmp_path / "cache").run()

    assert result.state is BackupState.DONE
    assert result.committed
    assert result.pushed
    assert not result.queued
    assert result.files == [".env", "secrets/config.json"]
    assert result.project_dir == result.mirror_dir / "project"
    assert (result.project_dir / ".env").read_text() == "SECRET=value\n"
    assert not (result.project_dir / "node_modules").exists()
    assert _remote_files(bare_remote) == ["project/.env", "project/secrets/config.json"]


@requires_git
def test_unchanged_backup_skips_commit(project: Path, bare_remote: Path, tmp_path: Path) -> None:
    config = SafeConfig(remote=f"file://{bare_remote}")
    cache = tmp_path / "cache"
    BackupOrchestrator(project, config, cache_root=cache).run()

    result = BackupOrchestrator(project, config, cache_root=cache).run()
    assert result.state is BackupState.DONE
    assert not result.committed
    assert result.pushed
    assert _commit_count(bare_remote) == 1


@requires_git
def test_changed_file_is_committed_again(project: Path, bare_remote: Path, tmp_path: Path) -> None:
    config = SafeConfig(remote=f"file://{bare_remote}")
    cache = tmp_path / "cache"
    BackupOrchestrator(project, config, cache_root=cache).run()

    (project / ".env").write_text("SECRET=rotated\n")
    result = BackupOrchestrator(project, config, cache_root=cache).run()
    assert result.committed
    assert _commit_count(bare_remote) == 2
    assert git(bare_remote, "show", "HEAD:project/.env") == "SECRET=rotated\n"


@requires_git
def test_commit_message_template_and_project_name(
    project: Path, bare_remote: Path, tmp_path: Path
) -> None:
    config = SafeConfig(
        remote=f"file://{bare_remote}",
        project_name="renamed",
        commit_msg="Safe $PROJECT ($COUNT): $FILES",
    )
    BackupOrchestrator(project, config, cache_root=tmp_path / "cache").run()
    subject = git(bare_remote, "log", "-1", "--format=%s").strip()
    assert subject == "Safe renamed (2): .env, secrets/config.json"
    assert _remote_files(bare_remote) == ["renamed/.env", "renamed/secrets/config.json"]


@requires_git
def test_push_failure_keeps_commit_and_retries(project: Path, tmp_path: Path) -> None:
    # The remote does not exist yet: clone and push both fail
    missing = tmp_path / "later" / "backups.git"
    config = SafeConfig(remote=f"file://{missing}")
    cache = tmp_path / "cache"

    first = BackupOrchestrator(project, config, cache_root=cache).run()
    assert first.state is BackupState.FAILED
    assert first.committed
    assert not first.pushed
    assert first.queued
    assert any("Push failed" in w for w in first.warnings)
    assert int(git(first.mirror_dir, "rev-list", "--count", "HEAD").strip()) == 1

    # Network restored
    missing.mkdir(parents=True)
    git(missing, "init", "--quiet", "--bare")

    second = BackupOrchestrator(project, config, cache_root=cache).run()
    assert second.state is BackupState.DONE
    assert not second.committed
    assert second.pushed
    assert _commit_count(missing) == 1
    assert _remote_files(missing) == ["project/.env", "project/secrets/config.json"]


@requires_git
def test_offline_first_backup_joins_shared_remote(
    project: Path, bare_remote: Path, tmp_path: Path
) -> None:
    other = tmp_path / "other"
    other.mkdir()
    git(other, "init", "--quiet")
    (other / ".gitignore").write_text("*.key #safe\n")
    (other / "server.key").write_text("KEY\n")
    config = SafeConfig(remote=f"file://{bare_remote}")
    BackupOrchestrator(other, config, cache_root=tmp_path / "cache-b").run()

    # Remote unreachable during this project's first clone
    offline = bare_remote.with_name("offline.git")
    bare_remote.rename(offline)
    cache = tmp_path / "cache-a"
    first = BackupOrchestrator(project, config, cache_root=cache).run()
    assert first.queued
    offline.rename(bare_remote)

    second = BackupOrchestrator(project, config, cache_root=cache).run()
    assert second.state is BackupState.DONE
    assert second.pushed
    assert (second.mirror_dir / "other" / "server.key").is_file()
    assert _commit_count(bare_remote) == 2
    assert _remote_files(bare_remote) == [
        "other/server.key",
        "project/.env",
        "project/secrets/config.json",
    ]

    third = BackupOrchestrator(project, config, cache_root=cache).run()
    assert third.state is BackupState.DONE
    assert third.warnings == []


@requires_git
def test_projects_sharing_a_remote(project: Path, bare_remote: Path, tmp_path: Path) -> None:
    other = tmp_path / "other"
    other.mkdir()
    git(other, "init", "--quiet")
    (other / ".gitignore").write_text("*.key #safe\n")
    (other / "server.key").write_text("KEY\n")

    config = SafeConfig(remote=f"file://{bare_remote}")
    BackupOrchestrator(project, config, cache_root=tmp_path / "cache-a").run()
    BackupOrchestrator(other, config, cache_root=tmp_path / "cache-b").run()

    # The first mirror pulls the other project's commit before pushing its own
    (project / ".env").write_text("SECRET=new\n")
    result = BackupOrchestrator(project, config, cache_root=tmp_path / "cache-a").run()
    assert result.state is BackupState.DONE
    assert result.warnings == []
    assert (result.mirror_dir / "other" / "server.key").is_file()
    assert _remote_files(bare_remote) == [
        "other/server.key",
        "project/.env",
        "project/secrets/config.json",
    ]


@requires_git
def test_no_tagged_files(project: Path, bare_remote: Path, tmp_path: Path) -> None:
    (project / ".gitignore").write_text("node_modules/\n")
    config = SafeConfig(remote=f"file://{bare_remote}")
    result = BackupOrchestrator(project, config, cache_root=tmp_path / "cache").run()
    assert result.files == []
    assert not result.committed
    assert result.state is BackupState.DONE


@requires_git
def test_copy_failure_names_path(project: Path, bare_remote: Path, tmp_path: Path) -> None:
    config = SafeConfig(remote=f"file://{bare_remote}")
    cache = tmp_path / "cache"
    first = BackupOrchestrator(project, config, cache_root=cache).run()

    # A file where the mirror needs a directory
    secrets_dir = first.project_dir / "secrets"
    (secrets_dir / "config.json").unlink()
    secrets_dir.rmdir()
    secrets_dir.write_text("in the way\n")

    orchestrator = BackupOrchestrator(project, config, cache_root=cache)
    with pytest.raises(BackupError) as exc:
        orchestrator.run()
    assert exc.value.path == project / "secrets" / "config.json"
    assert "secrets/config.json" in str(exc.value)
    assert orchestrator.state is BackupState.FAILED
