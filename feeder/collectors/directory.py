"""Directory enumerator for incoming report files."""

import os
from typing import List, Sequence

from loguru import logger

from feeder.errors import DirectoryAccessError
from .base import BaseCollector

TEMP_SUFFIXES = (".tmp", ".temp")


def is_candidate_name(name: str) -> bool:
    """Reject hidden and temporary file names."""
    if not name or name.startswith("."):
        return False
    if name.endswith(TEMP_SUFFIXES):
        return False
    if name.startswith("~") or name.endswith("~"):
        return False
    return True


class DirectoryEnumerator(BaseCollector):
    """Lists candidate files in the configured directories.

    A directory that is missing, not a directory or unreadable is logged
    and skipped; the remaining directories are still scanned.
    """

    def enumerate(self, directories: Sequence[str]) -> List[str]:
        logger.info(f"Starting directory scan for {len(directories)} directory(ies)")

        found: List[str] = []
        for directory in directories:
            try:
                files = self.scan_directory(directory)
            except DirectoryAccessError as e:
                logger.warning(f"Skipping directory {e.directory}: {e.reason}")
                continue
            found.extend(files)
            logger.info(f"Found {len(files)} file(s) in directory: {directory}")

        logger.info(f"Directory scan completed. Total files found: {len(found)}")
        return found

    def scan_directory(self, directory: str) -> List[str]:
        """Candidate files of one directory.

        Raises:
            DirectoryAccessError: the directory cannot be listed.
        """
        if not os.path.exists(directory):
            raise DirectoryAccessError(directory, "does not exist")
        if not os.path.isdir(directory):
            raise DirectoryAccessError(directory, "is not a directory")
        if not os.access(directory, os.R_OK | os.X_OK):
            raise DirectoryAccessError(directory, "is not readable")

        candidates = []
        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    if self._is_candidate(entry):
                        candidates.append(entry.path)
        except OSError as e:
            raise DirectoryAccessError(directory, str(e)) from e
        return candidates

    def _is_candidate(self, entry: os.DirEntry) -> bool:
        if not is_candidate_name(entry.name):
            return False
        try:
            if not entry.is_file(follow_symlinks=True):
                return False
        except OSError:
            return False
        if not os.access(entry.path, os.R_OK):
            logger.debug(f"File is not readable, skipping: {entry.path}")
            return False
        return True
