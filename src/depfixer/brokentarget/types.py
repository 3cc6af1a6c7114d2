"""Types for broken targets extracted from build failure output."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class FailureKind(str, Enum):
    SCALA = "scala"
    JAVA = "java"
    PROTO = "proto"


@dataclass(slots=True, frozen=True)
class BrokenTarget:
    target_label: str
    failure_kind: FailureKind
    is_external: bool
    origin_repo: str
    error_start: int
    segment_start: int
    segment_end: int
    log: str = field(default="", repr=False, compare=False)

    @property
    def segment(self) -> str:
        """Error text belonging to this target only."""
        return self.log[self.segment_start : self.segment_end]

    def as_dict(self) -> dict[str, object]:
        return {
            "target_label": self.target_label,
            "failure_kind": self.failure_kind.value,
            "is_external": self.is_external,
            "origin_repo": self.origin_repo,
            "error_start": self.error_start,
            "segment_start": self.segment_start,
            "segment_end": self.segment_end,
        }
