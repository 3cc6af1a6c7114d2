"""Resolve raw path-like identifiers from build output into Bazel target labels."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath

from depfixer.errors import LabelResolutionError

logger = logging.getLogger(__name__)

EXTERNAL_PREFIX = "external/"
GENERATOR_SUFFIX = "_generator"

# Output archive suffixes that may still be attached to an identifier.
ARCHIVE_SUFFIXES = ("_java-hjar.jar", "_java.jar", "_srcjar", ".jar")


def is_qualified(identifier: str) -> bool:
    return identifier.startswith("//") or identifier.startswith("@")


def strip_generator_suffix(label: str) -> str:
    if label.endswith(GENERATOR_SUFFIX):
        return label[: -len(GENERATOR_SUFFIX)]
    return label


def _strip_archive_suffix(identifier: str) -> str:
    for suffix in ARCHIVE_SUFFIXES:
        if identifier.endswith(suffix) and len(identifier) > len(suffix):
            return identifier[: -len(suffix)]
    return identifier


def _package_prefix(parts: tuple[str, ...], search_base: Path) -> PurePosixPath | None:
    package: PurePosixPath | None = None
    for part in parts:
        candidate = PurePosixPath(part) if package is None else package / part
        if not (search_base / candidate).is_dir():
            break
        package = candidate
    return package


def resolve_label(
    identifier: str,
    workspace_root: Path,
    external_root: Path,
) -> tuple[str, bool]:
    """Turn a raw identifier such as ``a/b/c`` into ``//a/b:c``.

    Identifiers under ``external/`` are resolved against *external_root* and
    produce ``@repo//pkg:name`` labels. Already qualified labels are returned
    as-is apart from the ``_generator`` suffix rule.

    Raises:
        LabelResolutionError: no leading segment of the identifier exists as a
            directory under the search base.
    """
    name = identifier
    external = False
    search_base = workspace_root

    if name.startswith(EXTERNAL_PREFIX):
        logger.debug("Target %s is external", identifier)
        name = name[len(EXTERNAL_PREFIX) :]
        search_base = external_root
        external = True

    if not is_qualified(name):
        name = _strip_archive_suffix(name)
        target_path = PurePosixPath(name)
        package = _package_prefix(target_path.parts, search_base)
        if package is None:
            raise LabelResolutionError(
                f"no package directory found for target {identifier!r} under {search_base}",
                identifier=identifier,
                path=str(search_base),
            )
        logger.debug("Target %s path is: %s", identifier, package)

        remainder = str(target_path.relative_to(package))
        if remainder == ".":
            remainder = package.name

        if external:
            repo, _, package_in_repo = str(package).partition("/")
            name = f"@{repo}//{package_in_repo}:{remainder}"
        else:
            name = f"//{package}:{remainder}"

    return strip_generator_suffix(name), external
