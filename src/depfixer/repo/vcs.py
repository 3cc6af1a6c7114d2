"""Private git working tree used to detect changed archives between index runs."""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from depfixer.errors import VcsError

logger = logging.getLogger(__name__)

# Everything is ignored except jars; sources jars and toolchain/noise trees stay out.
BASE_IGNORE = (
    "*",
    "!*/",
    "*remotejdk*/",
    "local_jdk/",
    "io_bazel_rules_scala*/",
    "resources/",
    "**/org_scala_lang_scala_*/",
    "!*.jar",
    "*-src.jar",
    "*-sources.jar",
)

UNKNOWN_BRANCH = "n/a"

_COMMIT_IDENTITY = (
    "-c",
    "user.name=depfixer",
    "-c",
    "user.email=depfixer@localhost",
    "-c",
    "commit.gpgsign=false",
)


@dataclass(slots=True)
class ChangeSet:
    added: set[Path] = field(default_factory=set)
    removed: set[Path] = field(default_factory=set)
    modified: set[Path] = field(default_factory=set)

    @property
    def is_clean(self) -> bool:
        return not (self.added or self.removed or self.modified)

    def __len__(self) -> int:
        return len(self.added) + len(self.removed) + len(self.modified)


def _run_git(args: Sequence[str], *, cwd: Path) -> str:
    command = ["git", *args]
    proc = subprocess.run(
        command,
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=False,
    )
    if proc.returncode != 0:
        raise VcsError(
            f"Command failed: {' '.join(command)}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}",
            command=command,
            exit_code=proc.returncode,
            stdout=proc.stdout,
            stderr=proc.stderr,
            path=str(cwd),
        )
    return proc.stdout


def current_branch(repo_root: Path) -> str:
    """Branch checked out in the workspace repository, or ``n/a`` outside git."""
    try:
        out = _run_git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=repo_root)
    except (VcsError, OSError):
        return UNKNOWN_BRANCH
    lines = out.strip().splitlines()
    return lines[0] if lines else UNKNOWN_BRANCH


class GitWorkTree:
    """Git repository owned by the indexer, rooted at the archive directory."""

    def __init__(self, root: Path, ignore_entries: Sequence[str] = ()) -> None:
        self.root = root
        self.ignore_entries = tuple(ignore_entries)

    @property
    def git_dir(self) -> Path:
        return self.root / ".git"

    def exists(self) -> bool:
        return self.git_dir.is_dir()

    def git(self, *args: str) -> str:
        return _run_git(args, cwd=self.root)

    def write_ignore(self) -> Path:
        path = self.root / ".gitignore"
        lines = [*BASE_IGNORE, *self.ignore_entries]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    def ensure(self) -> bool:
        """Initialize the repository if missing. Returns True when it was created."""
        self.root.mkdir(parents=True, exist_ok=True)
        self.write_ignore()
        if self.exists():
            return False
        self.git("init", "--quiet")
        logger.info("Initialized index repository at %s", self.root)
        return True

    def diff(self) -> ChangeSet:
        """Stage everything and report what changed since the last commit."""
        self.ensure()
        self.git("add", "-A", ".")
        out = self.git("status", "--porcelain=v1", "-z", "--no-renames", "--untracked-files=no")

        changes = ChangeSet()
        for entry in out.split("\0"):
            if len(entry) < 4:
                continue
            staged, rel_path = entry[0], entry[3:]
            path = self.root / rel_path
            if staged == "A":
                changes.added.add(path)
            elif staged == "D":
                changes.removed.add(path)
            elif staged in ("M", "T"):
                changes.modified.add(path)
        return changes

    def commit(self, message: str) -> None:
        self.git(*_COMMIT_IDENTITY, "commit", "--quiet", "--no-verify", "-m", message)

    def gc(self) -> None:
        self.git("gc", "--quiet")

    def repack(self) -> None:
        self.git("repack", "-d", "--quiet")

    def remove(self) -> None:
        if self.git_dir.exists():
            logger.info("Removing index repository at %s", self.git_dir)
            shutil.rmtree(self.git_dir, ignore_errors=True)
