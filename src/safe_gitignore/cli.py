#!/usr/bin/env python3
"""
safe-gitignore: Back up gitignored secrets to a private git repository

Tag lines in .gitignore with #safe and the matching files are copied into a
private backup repository on every commit:

  .env #safe
  secrets/*.json #safe

Common usage:
  safe-gitignore init --remote git@github.com:me/backups.git
  safe-gitignore install
  safe-gitignore status
  safe-gitignore backup
"""

from __future__ import annotations

import argparse
import importlib.metadata
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from safe_gitignore.backup import BackupOrchestrator
from safe_gitignore.config import CONFIG_FILENAME, load_config, validate_remote_url, write_config
from safe_gitignore.errors import ConfigError, NotAGitRepoError, SafeGitignoreError
from safe_gitignore.file_resolver import FileResolverConfig, get_safe_files
from safe_gitignore.git import find_project_root
from safe_gitignore.hooks import install_hook, is_hook_installed, uninstall_hook

log = logging.getLogger(__name__)


@dataclass
class Options:
    """Command-line options for the safe-gitignore tool."""

    command: str | None
    verbose: int
    version: bool
    remote: str | None = None
    name: str | None = None
    force: bool = False
    dry_run: bool = False
    quiet: bool = False


def _parse_args(args: list[str] | None = None) -> Options:
    # Use the module's docstring as the description
    module_doc = __doc__ or ""
    doc_parts = module_doc.split("\n\n")
    description = doc_parts[0]
    epilog = "\n\n".join(doc_parts[1:])

    parser = argparse.ArgumentParser(
        prog="safe-gitignore",
        description=description,
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Show progress (-v) or debug output (-vv) on stderr",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version information and exit",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    init_parser = subparsers.add_parser(
        "init", help=f"Create {CONFIG_FILENAME} in the current repository"
    )
    init_parser.add_argument(
        "--remote",
        required=True,
        metavar="URL",
        help="Backup repository (git@host:path.git or https://host/path.git)",
    )
    init_parser.add_argument(
        "--name",
        metavar="NAME",
        help="Subdirectory name in the backup repository (default: project directory name)",
    )
    init_parser.add_argument(
        "--force", action="store_true", help="Overwrite an existing config file"
    )

    subparsers.add_parser("install", help="Install the post-commit backup hook")
    subparsers.add_parser("uninstall", help="Remove the post-commit backup hook")
    subparsers.add_parser("status", help="List the files that would be backed up")

    backup_parser = subparsers.add_parser("backup", help="Copy tagged files to the backup repository")
    backup_parser.add_argument(
        "--dry-run",
        action="store_true",
        dest="dry_run",
        help="Show what would be backed up without touching the mirror",
    )
    backup_parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only print warnings and errors (used by the post-commit hook)",
    )

    opts = parser.parse_args(args)
    return Options(
        command=opts.command,
        verbose=opts.verbose,
        version=opts.version,
        remote=getattr(opts, "remote", None),
        name=getattr(opts, "name", None),
        force=getattr(opts, "force", False),
        dry_run=getattr(opts, "dry_run", False),
        quiet=getattr(opts, "quiet", False),
    )


def _setup_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level, format="%(levelname)s: %(message)s", stream=sys.stderr, force=True
    )


def _cmd_init(options: Options, project_root: Path) -> int:
    if not options.remote:
        print("Error: --remote is required", file=sys.stderr)
        return 1
    if not validate_remote_url(options.remote):
        print(
            f"Error: Invalid remote URL: {options.remote}"
            " (expected git@host:path.git or https://host/path.git)",
            file=sys.stderr,
        )
        return 1
    config_path = project_root / CONFIG_FILENAME
    if config_path.exists() and not options.force:
        print(
            f"Error: {config_path} already exists (use --force to overwrite)",
            file=sys.stderr,
        )
        return 1
    write_config(config_path, options.remote, options.name)
    print(f"Created {config_path}")
    print("Tag files in .gitignore with #safe, then run: safe-gitignore install")
    return 0


def _cmd_install(project_root: Path) -> int:
    path = install_hook(project_root)
    print(f"Post-commit hook installed: {path}")
    return 0


def _cmd_uninstall(project_root: Path) -> int:
    if uninstall_hook(project_root):
        print("Post-commit hook removed")
    else:
        print("No safe-gitignore hook installed")
    return 0


def _cmd_status(project_root: Path) -> int:
    config = load_config(project_root)
    resolver_config = FileResolverConfig(glob_engine=config.effective_glob_engine)
    for rel in get_safe_files(project_root, resolver_config):
        print(rel)
    if not is_hook_installed(project_root):
        log.info("Post-commit hook not installed (run: safe-gitignore install)")
    return 0


def _cmd_backup(options: Options, project_root: Path) -> int:
    config = load_config(project_root)
    orchestrator = BackupOrchestrator(project_root, config)
    result = orchestrator.run(dry_run=options.dry_run)

    if options.dry_run:
        for rel in result.files:
            print(rel)
        return 0

    if options.quiet:
        return 0
    if not result.files:
        print("No #safe files to back up")
    elif result.committed:
        print(f"Backed up {len(result.files)} file(s) to {result.project_dir}")
    else:
        print("Backup unchanged")
    if result.queued:
        print("Backup committed locally; it will be pushed on the next run")
    return 0


def main(args: list[str] | None = None) -> int:
    """
    Main entry point for the safe-gitignore CLI.

    Args:
        args: Command-line arguments (uses sys.argv if None)

    Returns:
        Exit code (0 for success, 1 for configuration or usage errors,
        2 for other failures)
    """
    options = _parse_args(args)

    if options.version:
        try:
            version = importlib.metadata.version("safe-gitignore")
            print(f"v{version}")
        except importlib.metadata.PackageNotFoundError:
            print("unknown (package not installed)")
        return 0

    if options.command is None:
        print(
            "Error: No command specified. Use --help for the list of commands.",
            file=sys.stderr,
        )
        return 1

    _setup_logging(options.verbose)

    try:
        project_root = find_project_root(Path.cwd())
        if options.command == "init":
            return _cmd_init(options, project_root)
        if options.command == "install":
            return _cmd_install(project_root)
        if options.command == "uninstall":
            return _cmd_uninstall(project_root)
        if options.command == "status":
            return _cmd_status(project_root)
        return _cmd_backup(options, project_root)
    except NotAGitRepoError:
        print("Error: Not a git repository. Run 'git init' first.", file=sys.stderr)
        return 1
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except SafeGitignoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
