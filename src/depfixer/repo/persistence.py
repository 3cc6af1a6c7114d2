"""Versioned, gzip-compressed on-disk format for the artifact index.

Layout is three JSON lines: the format version, the branch the index was
built on, then the body. The version line is read and checked before
anything else so an incompatible body is never parsed.
"""

from __future__ import annotations

import gzip
import json
import logging
import os
import zlib
from pathlib import Path
from typing import IO

from pydantic import BaseModel, Field, ValidationError

from depfixer.errors import CacheFormatError
from depfixer.repo.cache import ArchiveEntry, IndexCache

logger = logging.getLogger(__name__)


class IndexMetadata(BaseModel):
    version: str
    branch: str


class ArchiveRecord(BaseModel):
    target: str
    classes: list[str] = Field(default_factory=list)


class IndexBody(BaseModel):
    archives: dict[str, ArchiveRecord] = Field(default_factory=dict)


def _read_json_line(handle: IO[str], what: str) -> object:
    line = handle.readline()
    if not line:
        raise CacheFormatError(f"index file ended before {what}")
    return json.loads(line)


def read_index(path: Path, *, version: str, branch: str) -> IndexCache:
    """Read the index at *path*.

    Raises:
        CacheFormatError: version or branch differ from the expected ones.
        OSError, ValueError: the file is missing, truncated or corrupt.
    """
    with gzip.open(path, "rt", encoding="utf-8") as handle:
        found_version = _read_json_line(handle, "version")
        if found_version != version:
            raise CacheFormatError(
                f"index version {found_version!r} does not match {version!r}", path=str(path)
            )
        found_branch = _read_json_line(handle, "branch")
        if found_branch != branch:
            raise CacheFormatError(
                f"index built on branch {found_branch!r}, current branch is {branch!r}",
                path=str(path),
            )
        body = IndexBody.model_validate(_read_json_line(handle, "body"))

    return IndexCache.from_archives(
        {
            archive_path: ArchiveEntry(target=record.target, classes=frozenset(record.classes))
            for archive_path, record in body.archives.items()
        }
    )


def load_index(path: Path, *, version: str, branch: str) -> IndexCache | None:
    """Like read_index, but any failure means there is no usable index."""
    if not path.is_file():
        logger.info("No index on disk at %s", path)
        return None
    try:
        return read_index(path, version=version, branch=branch)
    except CacheFormatError as exc:
        logger.info("Discarding index at %s: %s", path, exc)
    except (OSError, EOFError, ValueError, ValidationError, zlib.error) as exc:
        logger.warning("Failed to load index from %s, discarding it: %s", path, exc)
    return None


def save_index(path: Path, cache: IndexCache, *, version: str, branch: str) -> Path:
    metadata = IndexMetadata(version=version, branch=branch)
    body = IndexBody(
        archives={
            archive_path: ArchiveRecord(target=entry.target, classes=sorted(entry.classes))
            for archive_path, entry in cache.archives.items()
        }
    )

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.name}.tmp")
    with gzip.open(tmp_path, "wt", encoding="utf-8") as handle:
        handle.write(json.dumps(metadata.version) + "\n")
        handle.write(json.dumps(metadata.branch) + "\n")
        handle.write(body.model_dump_json() + "\n")
    os.replace(tmp_path, path)
    return path
