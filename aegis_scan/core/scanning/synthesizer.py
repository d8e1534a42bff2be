"""Finding synthesis at scan completion."""

import logging
from typing import Dict, List, Mapping, Optional, Tuple

from .data_structures import Category, Finding, ScanRequest
from .detectors.base import Detector, CategoryObservation
from ..exceptions import SynthesisError


logger = logging.getLogger(__name__)


class FindingSynthesizer:
    """Asks one detector per requested category for a finding."""

    def __init__(self, detectors: Mapping[Category, Detector]):
        """Initialize synthesizer.

        Args:
            detectors: Detector to use for each category
        """
        self.detectors = dict(detectors)

    def synthesize(self, request: ScanRequest,
                   observations: Optional[Mapping[Category, CategoryObservation]] = None
                   ) -> Tuple[Finding, ...]:
        """Produce the findings of a completed scan.

        Args:
            request: The request that was scanned
            observations: Per-category state recorded during the run

        Returns:
            Findings in category order

        Raises:
            SynthesisError: If the request is unusable, a detector is missing
                or a detector fails
        """
        if request is None or not request.selected_categories:
            raise SynthesisError("Cannot synthesize findings without selected categories")

        observations = observations or {}
        findings: List[Finding] = []

        for category in request.selected_categories:
            detector = self.detectors.get(category)
            if detector is None:
                raise SynthesisError(
                    f"No detector registered for category '{category.value}'",
                    target=request.target_url
                )
            try:
                finding = detector.detect(category, request.target_url,
                                          observations.get(category))
            except SynthesisError:
                raise
            except Exception as e:
                raise SynthesisError(
                    f"Detector for '{category.value}' failed: {e}",
                    target=request.target_url
                ) from e

            if finding is not None:
                findings.append(finding)

        logger.info(f"Synthesized {len(findings)} finding(s) for {request.target_url}")
        return tuple(findings)
