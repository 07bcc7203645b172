"""Base collector interface."""

from abc import ABC, abstractmethod
from typing import List, Sequence


class BaseCollector(ABC):
    """Base class for candidate collectors."""

    @abstractmethod
    def enumerate(self, directories: Sequence[str]) -> List[str]:
        """Return candidate identifiers found in the given directories."""
        pass
