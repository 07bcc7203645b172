"""Candidate collectors."""

from .base import BaseCollector
from .directory import DirectoryEnumerator, is_candidate_name

__all__ = ["BaseCollector", "DirectoryEnumerator", "is_candidate_name"]
