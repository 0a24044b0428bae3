"""Shared fixtures for tests that drive a real `git` binary."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def git(cwd: Path, *args: str) -> str:
    """Run git in `cwd` and return stdout, failing the test on error."""
    proc = subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True, check=True)
    return proc.stdout


@pytest.fixture
def git_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Isolate git from the user's config: a throwaway global config with an
    identity, no system config, and XDG dirs inside `tmp_path`.
    """
    home = tmp_path / "home"
    home.mkdir()
    global_config = home / ".gitconfig"
    global_config.write_text(
        "[user]\n\tname = Test\n\temail = test@test.com\n[init]\n\tdefaultBranch = main\n"
    )
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(home / ".cache"))
    monkeypatch.delenv("GIT_DIR", raising=False)
    monkeypatch.delenv("GIT_WORK_TREE", raising=False)
    return home


@pytest.fixture
def project(tmp_path: Path, git_env: Path) -> Path:
    """A git project with tagged files, untagged ignored files, and one commit."""
    root = tmp_path / "project"
    root.mkdir()
    git(root, "init", "--quiet")
    (root / ".gitignore").write_text(".env #safe\nsecrets/*.json #safe\nnode_modules/\n")
    (root / ".env").write_text("SECRET=value\n")
    (root / "secrets").mkdir()
    (root / "secrets" / "config.json").write_text('{"key": "value"}\n')
    (root / "node_modules" / "pkg").mkdir(parents=True)
    (root / "node_modules" / "pkg" / "index.js").write_text("module.exports = 1;\n")
    git(root, "add", ".gitignore")
    git(root, "commit", "--quiet", "-m", "Initial commit")
    return root


@pytest.fixture
def bare_remote(tmp_path: Path, git_env: Path) -> Path:
    """An empty bare repository to push backups to."""
    remote = tmp_path / "remote" / "backups.git"
    remote.mkdir(parents=True)
    git(remote, "init", "--quiet", "--bare")
    return remote
