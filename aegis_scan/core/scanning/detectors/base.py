"""Base detector interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..data_structures import Category, Finding


@dataclass(frozen=True)
class CategoryObservation:
    """What the progress driver saw for one category while the scan ran."""
    category: Category
    subtype: Optional[str] = None
    dbms_guess: Optional[str] = None
    payloads_tested: int = 0


class Detector(ABC):
    """Decides whether a category produced a finding against a target.

    The progress driver never calls detectors directly; the finding
    synthesizer asks one detector per requested category once the scan has
    completed. Implementations may be simulated or backed by a real scanner.
    """

    @abstractmethod
    def detect(self, category: Category, target_url: str,
               observation: Optional[CategoryObservation] = None) -> Optional[Finding]:
        """Produce a finding for ``category`` or ``None``.

        Args:
            category: Category being evaluated
            target_url: Target URL of the scan
            observation: Transient state recorded during the run, if any

        Returns:
            A Finding, or None when nothing was detected
        """
        pass
