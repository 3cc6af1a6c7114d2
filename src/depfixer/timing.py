"""Phase timing records for indexer runs."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class PhaseTiming:
    phase: str
    duration_s: float


@dataclass(slots=True)
class PhaseClock:
    """Collects one PhaseTiming per timed block, in the order the blocks ran."""

    owner: str = ""
    records: list[PhaseTiming] = field(default_factory=list)

    @contextmanager
    def phase(self, name: str) -> Iterator[None]:
        started = time.monotonic()
        try:
            yield
        finally:
            record = PhaseTiming(phase=name, duration_s=time.monotonic() - started)
            self.records.append(record)
            logger.info("%s %s: %.3fs", self.owner or "depfixer", name, record.duration_s)

    def duration_of(self, name: str) -> float:
        return sum(item.duration_s for item in self.records if item.phase == name)
