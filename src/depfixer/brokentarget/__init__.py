"""Broken target extraction package."""

from depfixer.brokentarget.extractor import extract, extract_from_file
from depfixer.brokentarget.labels import resolve_label
from depfixer.brokentarget.types import BrokenTarget, FailureKind

__all__ = ["BrokenTarget", "FailureKind", "extract", "extract_from_file", "resolve_label"]
