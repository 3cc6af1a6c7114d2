"""Extract failing targets from Bazel build output and split the log per target."""

from __future__ import annotations

import dataclasses
import logging
import re
from pathlib import Path

from depfixer.brokentarget.labels import resolve_label
from depfixer.brokentarget.types import BrokenTarget, FailureKind

logger = logging.getLogger(__name__)

# Matched against the whole log; a failure message may span several lines.
SCALA_FAILURE_RE = re.compile(
    r"ERROR: (?:[^:]+):\d+:\d+: Couldn't build file .+\.jar: scala(?:\sdeployable)? (.+) failed"
)
JAVA_FAILURE_RE = re.compile(
    r"ERROR: (?:[^:]+):\d+:\d+: Couldn't build file ([^\s]+)_(?:java|java-hjar)\.jar[^\n]+"
)
PROTO_FAILURE_RE = re.compile(
    r"ERROR: (?:[^:]+):\d+:\d+: Couldn't build file .+ creating scalapb files ([^\s]+)_srcjar[^\n]+"
)

FAILURE_PATTERNS: tuple[tuple[re.Pattern[str], FailureKind], ...] = (
    (SCALA_FAILURE_RE, FailureKind.SCALA),
    (JAVA_FAILURE_RE, FailureKind.JAVA),
    (PROTO_FAILURE_RE, FailureKind.PROTO),
)


def _origin_repo(label: str) -> str:
    if label.startswith("@"):
        return label.split("//", 1)[0][1:]
    return "//"


def _broken_target(
    log: str,
    match: re.Match[str],
    kind: FailureKind,
    workspace_root: Path,
    external_root: Path,
) -> BrokenTarget:
    # Drop diagnostic suffixes appended after the identifier.
    words = match.group(1).split()
    raw = words[0] if words else match.group(1).strip()
    logger.info("Found target: %s", raw)

    external = False
    if kind is FailureKind.PROTO:
        label = raw
    else:
        label, external = resolve_label(raw, workspace_root, external_root)

    if label.startswith("@"):
        external = True

    return BrokenTarget(
        target_label=label,
        failure_kind=kind,
        is_external=external,
        origin_repo=_origin_repo(label),
        error_start=match.start(),
        segment_start=match.end(),
        segment_end=len(log),
        log=log,
    )


def extract(
    log: str,
    workspace_root: Path,
    external_root: Path,
) -> list[BrokenTarget]:
    """Return one BrokenTarget per failure signature found in *log*.

    Targets are ordered by where their segment starts. Each segment runs up to
    the next target's error line; the last one runs to the end of the log.
    Matches for the same target from different signatures are kept as separate
    entries.
    """
    found: list[BrokenTarget] = []
    for pattern, kind in FAILURE_PATTERNS:
        for match in pattern.finditer(log):
            found.append(_broken_target(log, match, kind, workspace_root, external_root))

    found.sort(key=lambda item: item.segment_start)

    for i in range(len(found) - 1):
        found[i] = dataclasses.replace(found[i], segment_end=found[i + 1].error_start)
    return found


def extract_from_file(
    log_path: Path,
    workspace_root: Path,
    external_root: Path,
) -> list[BrokenTarget]:
    log = log_path.read_text(encoding="utf-8", errors="replace")
    return extract(log, workspace_root, external_root)
