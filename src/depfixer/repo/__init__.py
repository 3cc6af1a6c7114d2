"""Incremental class-to-target index over Bazel build outputs."""

from depfixer.repo.archives import (
    PROFILES,
    ArtifactIndexer,
    BazelOutProfile,
    ExternalRepoProfile,
    IndexerProfile,
)
from depfixer.repo.cache import IndexCache, TargetsStore
from depfixer.repo.indexer import IndexerDriver, IndexRun, Phase
from depfixer.repo.persistence import load_index, save_index
from depfixer.repo.vcs import ChangeSet, GitWorkTree, current_branch

__all__ = [
    "PROFILES",
    "ArtifactIndexer",
    "BazelOutProfile",
    "ChangeSet",
    "ExternalRepoProfile",
    "GitWorkTree",
    "IndexCache",
    "IndexRun",
    "IndexerDriver",
    "IndexerProfile",
    "Phase",
    "TargetsStore",
    "current_branch",
    "load_index",
    "save_index",
]
