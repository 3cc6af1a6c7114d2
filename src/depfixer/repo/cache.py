"""In-memory class-to-target index with per-archive eviction."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field


@dataclass(slots=True)
class ArchiveEntry:
    target: str
    classes: frozenset[str]


class TargetsStore:
    """Reverse view of the index: target label to the classes it provides.

    The store is not persisted with the cache; it is filled by
    ``IndexCache.rebind`` after every load.
    """

    def __init__(self) -> None:
        self._classes: dict[str, set[str]] = {}

    def add(self, target: str, classes: Iterable[str]) -> None:
        self._classes.setdefault(target, set()).update(classes)

    def discard(self, target: str, classes: Iterable[str]) -> None:
        current = self._classes.get(target)
        if current is None:
            return
        current.difference_update(classes)
        if not current:
            del self._classes[target]

    def clear(self) -> None:
        self._classes.clear()

    def classes_of(self, target: str) -> frozenset[str]:
        return frozenset(self._classes.get(target, ()))

    def targets(self) -> list[str]:
        return sorted(self._classes)

    def __contains__(self, target: object) -> bool:
        return target in self._classes

    def __len__(self) -> int:
        return len(self._classes)


@dataclass(slots=True)
class IndexCache:
    """Class identity to owning target, keyed by the archive each class came from.

    A class present in several archives is owned by the most recently indexed
    one; evicting that archive hands ownership back to the previous one.
    Not safe for concurrent mutation.
    """

    archives: dict[str, ArchiveEntry] = field(default_factory=dict)
    _owners: dict[str, list[str]] = field(default_factory=dict, repr=False)

    @classmethod
    def from_archives(cls, archives: dict[str, ArchiveEntry]) -> IndexCache:
        cache = cls()
        for archive_path, entry in archives.items():
            cache.add(archive_path, entry.target, entry.classes)
        return cache

    def add(
        self,
        archive_path: str,
        target: str,
        classes: Iterable[str],
        store: TargetsStore | None = None,
    ) -> None:
        """Register *classes* from *archive_path* under *target*, replacing earlier contents."""
        self.clear(archive_path, store)
        entry = ArchiveEntry(target=target, classes=frozenset(classes))
        self.archives[archive_path] = entry
        for class_name in entry.classes:
            self._owners.setdefault(class_name, []).append(archive_path)
        if store is not None:
            store.add(target, entry.classes)

    def clear(self, archive_path: str, store: TargetsStore | None = None) -> ArchiveEntry | None:
        """Evict everything *archive_path* contributed. Returns the evicted entry."""
        entry = self.archives.pop(archive_path, None)
        if entry is None:
            return None
        orphaned: list[str] = []
        for class_name in entry.classes:
            owners = self._owners.get(class_name)
            if owners is None:
                continue
            if archive_path in owners:
                owners.remove(archive_path)
            if not owners:
                del self._owners[class_name]
            if not any(self.archives[other].target == entry.target for other in owners):
                orphaned.append(class_name)
        if store is not None and orphaned:
            store.discard(entry.target, orphaned)
        return entry

    def rebind(self, store: TargetsStore) -> TargetsStore:
        """Fill a fresh target store from the current index contents."""
        store.clear()
        for entry in self.archives.values():
            store.add(entry.target, entry.classes)
        return store

    def target_of(self, class_name: str) -> str | None:
        owners = self._owners.get(class_name)
        if not owners:
            return None
        return self.archives[owners[-1]].target

    def classes_in(self, archive_path: str) -> frozenset[str]:
        entry = self.archives.get(archive_path)
        return entry.classes if entry is not None else frozenset()

    def targets(self) -> list[str]:
        return sorted({entry.target for entry in self.archives.values()})

    def items(self) -> Iterator[tuple[str, str]]:
        for class_name in self._owners:
            target = self.target_of(class_name)
            if target is not None:
                yield class_name, target

    def __contains__(self, class_name: object) -> bool:
        return class_name in self._owners

    def __len__(self) -> int:
        return len(self._owners)
