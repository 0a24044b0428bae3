"""
Two-tier `KEY=value` config loading for safe-gitignore.

The global file (`~/.config/safe-gitignore/config`) holds user-wide defaults
and the local `.safe-gitignore.conf` at the project root overrides it key by
key. Files are parsed as plain data: values are never evaluated, so
`$(...)` and backticks stay literal text.
"""

from __future__ import annotations

import io
import os
import re
from dataclasses import dataclass, fields
from pathlib import Path

from dotenv import dotenv_values
from dotenv.parser import parse_stream

from safe_gitignore.errors import ConfigError
from safe_gitignore.file_resolver.defaults import DEFAULT_GLOB_ENGINE, GLOB_ENGINES

CONFIG_FILENAME = ".safe-gitignore.conf"

DEFAULT_COMMIT_MSG = "Backup $PROJECT: $DATE ($COUNT files)"


@dataclass
class SafeConfig:
    """
    Parsed config. Fields are `None` when not set, so the merge can tell
    "not configured" apart from "explicitly set".
    """

    remote: str | None = None
    project_name: str | None = None
    commit_msg: str | None = None
    glob_engine: str | None = None
    cache_dir: str | None = None

    def require_remote(self) -> str:
        """Return the remote URL, or raise `ConfigError` if it is unset or malformed."""
        if not self.remote:
            raise ConfigError("SAFE_REMOTE not configured. Run 'safe-gitignore init' first.")
        if not validate_remote_url(self.remote):
            raise ConfigError(
                f"Invalid SAFE_REMOTE: {self.remote!r} "
                "(expected git@host:path.git or https://host/path.git)"
            )
        return self.remote

    def effective_project_name(self, project_root: Path) -> str:
        """Configured project name, else the project directory's base name."""
        return self.project_name or Path(os.path.abspath(project_root)).name

    @property
    def effective_commit_msg(self) -> str:
        return self.commit_msg or DEFAULT_COMMIT_MSG

    @property
    def effective_glob_engine(self) -> str:
        return self.glob_engine or DEFAULT_GLOB_ENGINE


# Mapping from config file keys to SafeConfig field names
_KEY_TO_FIELD: dict[str, str] = {
    "SAFE_REMOTE": "remote",
    "SAFE_PROJECT_NAME": "project_name",
    "SAFE_COMMIT_MSG": "commit_msg",
    "SAFE_GLOB_ENGINE": "glob_engine",
    "SAFE_CACHE_DIR": "cache_dir",
}

_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_SSH_URL_RE = re.compile(r"^git@[^:\s]+:\S+\.git$")
_HTTPS_URL_RE = re.compile(r"^https://[^/\s]+/\S+\.git$")
_FILE_URL_RE = re.compile(r"^file:///\S+\.git$")


def validate_remote_url(url: str) -> bool:
    """
    Accept SSH (`git@host:path.git`) and HTTPS (`https://host/path.git`) URLs,
    plus `file:///path.git` for a bare repository on a local or mounted disk.
    """
    return bool(_SSH_URL_RE.match(url) or _HTTPS_URL_RE.match(url) or _FILE_URL_RE.match(url))


def sanitize_remote(url: str) -> str:
    """Directory name for a remote: every non-alphanumeric character becomes `_`."""
    return re.sub(r"[^a-zA-Z0-9]", "_", url)


def parse_config_text(text: str, source: str = "<config>") -> SafeConfig:
    """
    Parse `KEY=value` lines into a `SafeConfig` with `python-dotenv`, with
    interpolation off. Blank lines and `#` comments are skipped, an `export `
    prefix and matching quotes are allowed, and unknown keys are ignored. A
    line that is not a `KEY=value` assignment raises `ConfigError`.
    """
    for binding in parse_stream(io.StringIO(text)):
        if binding.error or (
            binding.key is not None
            and (binding.value is None or not _KEY_RE.match(binding.key))
        ):
            line = binding.original.string.strip()
            raise ConfigError(
                f"{source}:{binding.original.line}: expected KEY=value, got {line!r}"
            )

    values = dotenv_values(stream=io.StringIO(text), interpolate=False)
    mapped: dict[str, str] = {}
    for key, field_name in _KEY_TO_FIELD.items():
        value = values.get(key)
        if value is not None:
            # `\$` reads as a literal `$`
            mapped[field_name] = value.replace("\\$", "$")

    config = SafeConfig(**mapped)
    if config.glob_engine is not None and config.glob_engine not in GLOB_ENGINES:
        raise ConfigError(
            f"{source}: SAFE_GLOB_ENGINE must be one of {', '.join(GLOB_ENGINES)}, "
            f"got {config.glob_engine!r}"
        )
    return config


def read_config_file(path: Path) -> SafeConfig:
    """Load a config file; a missing file is an empty config."""
    if not path.is_file():
        return SafeConfig()
    return parse_config_text(path.read_text(encoding="utf-8"), source=str(path))


def merge_configs(global_config: SafeConfig, local_config: SafeConfig) -> SafeConfig:
    """Per-key merge: local values win, unset local values fall through to global."""
    merged = SafeConfig()
    for cfg_field in fields(SafeConfig):
        local_value = getattr(local_config, cfg_field.name)
        value = local_value if local_value is not None else getattr(global_config, cfg_field.name)
        setattr(merged, cfg_field.name, value)
    return merged


def global_config_path() -> Path:
    """`$XDG_CONFIG_HOME/safe-gitignore/config`, defaulting to `~/.config`."""
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "safe-gitignore" / "config"


def default_cache_root(config: SafeConfig) -> Path:
    """Mirror cache root: `SAFE_CACHE_DIR`, else `$XDG_CACHE_HOME/safe-gitignore`."""
    if config.cache_dir:
        return Path(config.cache_dir).expanduser()
    base = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(base) / "safe-gitignore"


def load_config(project_root: Path, global_path: Path | None = None) -> SafeConfig:
    """
    Read the global and local config fresh and merge them. Nothing is cached
    between calls.
    """
    global_config = read_config_file(global_path or global_config_path())
    local_config = read_config_file(project_root / CONFIG_FILENAME)
    return merge_configs(global_config, local_config)


def write_config(path: Path, remote: str, project_name: str | None = None) -> None:
    """Write a fresh local config file."""
    lines = [
        "# safe-gitignore configuration",
        "# Files tagged with #safe in .gitignore are backed up to this remote.",
        f"SAFE_REMOTE={remote}",
    ]
    if project_name:
        lines.append(f"SAFE_PROJECT_NAME={project_name}")
    lines += [
        "",
        "# Commit message template. Variables: $PROJECT, $DATE, $COUNT, $FILES",
        f'# SAFE_COMMIT_MSG="{DEFAULT_COMMIT_MSG}"',
    ]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
