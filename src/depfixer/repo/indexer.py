"""Incremental index run: load, diff, index, commit, compact, save."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from depfixer.config import Settings, get_settings
from depfixer.errors import VcsError
from depfixer.repo.archives import ArtifactIndexer, IndexerProfile
from depfixer.repo.cache import IndexCache, TargetsStore
from depfixer.repo.persistence import load_index, save_index
from depfixer.repo.vcs import ChangeSet, GitWorkTree, current_branch
from depfixer.timing import PhaseClock, PhaseTiming

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    LOADING = "loading"
    DIFFING = "diffing"
    CLEAN = "clean"
    INDEXING = "indexing"
    COMMITTING = "committing"
    COMPACTING = "compacting"
    SAVING = "saving"
    DONE = "done"


# Phases whose combined duration decides whether the repository gets compacted.
_COMPACTION_PHASES = (Phase.DIFFING, Phase.INDEXING, Phase.COMMITTING)


@dataclass(slots=True)
class IndexRun:
    cache: IndexCache
    store: TargetsStore
    changes: ChangeSet
    branch: str
    indexed: int = 0
    evicted: int = 0
    saved: bool = False
    compaction_started: bool = False
    phases: list[Phase] = field(default_factory=list)
    timings: list[PhaseTiming] = field(default_factory=list)

    def summary(self) -> dict[str, object]:
        return {
            "branch": self.branch,
            "added": len(self.changes.added),
            "removed": len(self.changes.removed),
            "modified": len(self.changes.modified),
            "indexed": self.indexed,
            "evicted": self.evicted,
            "saved": self.saved,
            "compaction_started": self.compaction_started,
            "classes": len(self.cache),
            "targets": len(self.store),
            "phases": [phase.value for phase in self.phases],
            "timings": [
                {"phase": item.phase, "duration_s": round(item.duration_s, 4)}
                for item in self.timings
            ],
        }


class IndexerDriver:
    """Keeps the class index of one archive directory up to date across runs.

    One driver owns the private git repository inside *directory*; two drivers
    must not run against the same directory at the same time.
    """

    def __init__(
        self,
        directory: Path,
        profile: IndexerProfile,
        *,
        persistence_root: Path | None = None,
        workspace_name: str | None = None,
        workspace_root: Path | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.directory = directory.expanduser().resolve()
        self.profile = profile
        self.persistence_root = (
            persistence_root or Path(self.settings.persistence_root)
        ).expanduser()
        self.workspace_root = (workspace_root or Path(self.settings.workspace_root)).expanduser()
        self.workspace_name = (
            workspace_name
            or self.settings.workspace_name
            or self.workspace_root.resolve().name
        )
        self.worktree = GitWorkTree(self.directory, profile.ignore_entries())
        self.indexer = ArtifactIndexer(self.directory, profile)
        self._compaction: threading.Thread | None = None

    @property
    def index_path(self) -> Path:
        return self.persistence_root / self.workspace_name / self.profile.name

    def run(self, store: TargetsStore | None = None) -> IndexRun:
        self.wait_for_compaction()
        store = store if store is not None else TargetsStore()
        clock = PhaseClock(owner=self.profile.name)
        branch = current_branch(self.workspace_root)

        with clock.phase(Phase.LOADING.value):
            cache = self._load(branch)
            cache.rebind(store)

        with clock.phase(Phase.DIFFING.value):
            changes = self.worktree.diff()

        run = IndexRun(cache=cache, store=store, changes=changes, branch=branch)
        run.phases.extend([Phase.LOADING, Phase.DIFFING])

        if changes.is_clean:
            run.phases.extend([Phase.CLEAN, Phase.DONE])
            run.timings = list(clock.records)
            logger.info("%s index is up to date", self.profile.name)
            return run

        with clock.phase(Phase.INDEXING.value):
            self._apply(changes, run)
        run.phases.append(Phase.INDEXING)

        with clock.phase(Phase.COMMITTING.value):
            self.worktree.commit(self.settings.commit_message)
        run.phases.append(Phase.COMMITTING)

        elapsed = sum(clock.duration_of(phase.value) for phase in _COMPACTION_PHASES)
        if elapsed > self.settings.gc_threshold_seconds:
            with clock.phase(Phase.COMPACTING.value):
                self._start_compaction()
            run.compaction_started = True
            run.phases.append(Phase.COMPACTING)

        if run.indexed or run.evicted:
            with clock.phase(Phase.SAVING.value):
                self._save(cache, branch)
            run.saved = True
            run.phases.append(Phase.SAVING)

        run.phases.append(Phase.DONE)
        run.timings = list(clock.records)
        logger.info("%s total jars: %d", self.profile.name, run.indexed)
        return run

    def wait_for_compaction(self, timeout: float | None = None) -> bool:
        """Block until a running compaction finishes. Returns False on timeout."""
        thread = self._compaction
        if thread is None:
            return True
        thread.join(timeout)
        if thread.is_alive():
            return False
        self._compaction = None
        return True

    def _load(self, branch: str) -> IndexCache:
        cache = None
        if self.worktree.exists():
            cache = load_index(
                self.index_path,
                version=self.settings.index_version,
                branch=branch,
            )
        if cache is None:
            # Without a matching index the baseline commit is meaningless: start over.
            self.worktree.remove()
            return IndexCache()
        return cache

    def _apply(self, changes: ChangeSet, run: IndexRun) -> None:
        for path in sorted(changes.removed):
            if self.indexer.matches(path) and self.indexer.evict(path, run.cache, run.store):
                run.evicted += 1

        for path in sorted(changes.modified):
            if self.indexer.evict(path, run.cache, run.store):
                run.evicted += 1

        candidates = sorted(changes.added | changes.modified)
        workers = max(1, int(self.settings.index_workers))
        if workers == 1 or len(candidates) < 2:
            for path in candidates:
                if self.indexer.index_archive(path, run.cache, run.store):
                    run.indexed += 1
            return

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="depfixer-scan") as pool:
            scanned = list(pool.map(self.indexer.scan, candidates))

        # Cache mutations stay on this thread.
        for path, result in zip(candidates, scanned):
            if self.indexer.register(path, result, run.cache, run.store):
                run.indexed += 1

    def _save(self, cache: IndexCache, branch: str) -> None:
        try:
            save_index(
                self.index_path,
                cache,
                version=self.settings.index_version,
                branch=branch,
            )
        except Exception:
            # The baseline is already committed; without a matching index the next
            # run would see a clean diff and miss these archives.
            logger.error("Failed to save index to %s, discarding index state", self.index_path)
            self.index_path.unlink(missing_ok=True)
            self.wait_for_compaction()
            self.worktree.remove()
            raise

    def _start_compaction(self) -> None:
        thread = threading.Thread(
            target=self._compact,
            name="depfixer-compaction",
            daemon=False,
        )
        self._compaction = thread
        thread.start()

    def _compact(self) -> None:
        clock = PhaseClock(owner=self.profile.name)
        try:
            with clock.phase("git gc"):
                self.worktree.gc()
            with clock.phase("git repack"):
                self.worktree.repack()
        except VcsError as exc:
            logger.warning("Compaction of %s failed: %s", self.directory, exc)
