"""Recognize build output jars, derive their owning target and read their classes."""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Protocol

from depfixer.errors import ArchiveError
from depfixer.repo.cache import IndexCache, TargetsStore

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = ".jar"
CLASS_SUFFIX = ".class"
ZIP_MAGIC = (b"PK\x03\x04", b"PK\x05\x06")

# Jars that never own classes: sources, interface/header jars and deploy jars.
NON_CODE_SUFFIXES = (
    "-src.jar",
    "-sources.jar",
    "-hjar.jar",
    "-ijar.jar",
    "_deploy.jar",
)

# <name>_<qualifier>.jar is produced by target <name>.
TARGET_QUALIFIERS = ("_java", "_scala", "_kt")

_SKIPPED_CLASSES = ("module-info", "package-info")


class IndexerProfile(Protocol):
    """Naming rules for one kind of archive tree."""

    name: str

    def ignore_entries(self) -> list[str]: ...

    def matches(self, rel_path: PurePosixPath) -> bool: ...

    def target_name(self, rel_path: PurePosixPath) -> str | None: ...


def _matches_code_jar(rel_path: PurePosixPath) -> bool:
    filename = rel_path.name
    if not filename.endswith(ARCHIVE_SUFFIX):
        return False
    return not any(filename.endswith(suffix) for suffix in NON_CODE_SUFFIXES)


def _name_from_stem(stem: str) -> str:
    for qualifier in TARGET_QUALIFIERS:
        if stem.endswith(qualifier) and len(stem) > len(qualifier):
            return stem[: -len(qualifier)]
    return stem


@dataclass(slots=True, frozen=True)
class BazelOutProfile:
    """Jars under a Bazel ``bin`` output directory: ``pkg/util_java.jar`` -> ``//pkg:util``."""

    name: str = "BazelOutIndexer"

    def ignore_entries(self) -> list[str]:
        return ["external/", "_javac/", "*.runfiles/", "*_deploy.jar", "*-hjar.jar", "*-ijar.jar"]

    def matches(self, rel_path: PurePosixPath) -> bool:
        return _matches_code_jar(rel_path)

    def target_name(self, rel_path: PurePosixPath) -> str | None:
        if not self.matches(rel_path):
            return None
        package = rel_path.parent.as_posix()
        package = "" if package == "." else package
        return f"//{package}:{_name_from_stem(rel_path.stem)}"


@dataclass(slots=True, frozen=True)
class ExternalRepoProfile:
    """Jars under Bazel's ``external`` directory: ``repo/pkg/x.jar`` -> ``@repo//pkg:x``."""

    name: str = "ExternalRepoIndexer"

    def ignore_entries(self) -> list[str]:
        return ["bazel_tools/", "local_config_*/", "*-hjar.jar", "*-ijar.jar"]

    def matches(self, rel_path: PurePosixPath) -> bool:
        return len(rel_path.parts) >= 2 and _matches_code_jar(rel_path)

    def target_name(self, rel_path: PurePosixPath) -> str | None:
        if not self.matches(rel_path):
            return None
        repo, *package_parts = rel_path.parent.parts
        package = "/".join(package_parts)
        # Imported maven jars live in <repo>/jar/ and are exposed as @repo//jar.
        if package == "jar":
            return f"@{repo}//jar:jar"
        return f"@{repo}//{package}:{_name_from_stem(rel_path.stem)}"


PROFILES: dict[str, IndexerProfile] = {
    "bazel-out": BazelOutProfile(),
    "external": ExternalRepoProfile(),
}


def class_identity(entry_name: str) -> str | None:
    """``com/acme/Foo$Bar.class`` -> ``com.acme.Foo``. None for non-class entries."""
    if not entry_name.endswith(CLASS_SUFFIX) or entry_name.startswith("META-INF/"):
        return None
    path = entry_name[: -len(CLASS_SUFFIX)]
    if path.rsplit("/", 1)[-1] in _SKIPPED_CLASSES:
        return None
    return path.split("$", 1)[0].replace("/", ".")


def has_zip_magic(path: Path) -> bool:
    with path.open("rb") as handle:
        return handle.read(4) in ZIP_MAGIC


def read_classes(path: Path) -> frozenset[str]:
    """Class identities of the archive at *path*.

    Raises:
        ArchiveError: the archive is truncated, corrupt or uses an unsupported
            layout (bad entry names, unknown compression, broken zip64 data).
    """
    try:
        with zipfile.ZipFile(path) as archive:
            names = archive.namelist()
    except (
        zipfile.BadZipFile,
        zipfile.LargeZipFile,
        OSError,
        EOFError,
        ValueError,
        RuntimeError,
        NotImplementedError,
    ) as exc:
        raise ArchiveError(f"cannot read archive {path}: {exc}", path=str(path)) from exc
    classes = (class_identity(name) for name in names)
    return frozenset(name for name in classes if name)


class ArtifactIndexer:
    """Registers the classes of archives under *root* into an IndexCache."""

    def __init__(self, root: Path, profile: IndexerProfile) -> None:
        self.root = root
        self.profile = profile

    def relative(self, path: Path) -> PurePosixPath:
        return PurePosixPath(path.relative_to(self.root).as_posix())

    def matches(self, path: Path) -> bool:
        return self.profile.matches(self.relative(path))

    def target_for(self, path: Path) -> str | None:
        return self.profile.target_name(self.relative(path))

    def scan(self, path: Path) -> tuple[str, frozenset[str]] | None:
        """Read one archive. Safe to call from worker threads; does not touch the cache."""
        if not path.is_file():
            return None
        target = self.target_for(path)
        if target is None:
            return None
        try:
            if not has_zip_magic(path):
                logger.debug("Skipping %s: not a zip archive", path)
                return None
            classes = read_classes(path)
        except (ArchiveError, OSError) as exc:
            logger.warning("Failed to handle jar [%s] %s", path, exc)
            return None
        return target, classes

    def index_archive(
        self,
        path: Path,
        cache: IndexCache,
        store: TargetsStore | None = None,
    ) -> bool:
        return self.register(path, self.scan(path), cache, store)

    def register(
        self,
        path: Path,
        scanned: tuple[str, frozenset[str]] | None,
        cache: IndexCache,
        store: TargetsStore | None = None,
    ) -> bool:
        """Record the result of an earlier ``scan`` of *path*. Returns False when it had nothing."""
        if scanned is None:
            return False
        target, classes = scanned
        cache.add(str(path.absolute()), target, classes, store)
        return True

    def evict(self, path: Path, cache: IndexCache, store: TargetsStore | None = None) -> bool:
        return cache.clear(str(path.absolute()), store) is not None
