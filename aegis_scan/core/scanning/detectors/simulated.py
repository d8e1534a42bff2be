"""Simulated detector driven by a random source."""

import logging
import random
from typing import Dict, Optional

from .base import Detector, CategoryObservation
from .templates import CATEGORY_TEMPLATES, FindingTemplate
from ..data_structures import Category, Finding


logger = logging.getLogger(__name__)


class SimulatedDetector(Detector):
    """Emits a templated finding with a fixed probability.

    The subtype observed during the run is used when one was recorded;
    otherwise the template default applies.
    """

    def __init__(self, probability: float = 0.7, rng: Optional[random.Random] = None,
                 templates: Optional[Dict[Category, FindingTemplate]] = None):
        """Initialize simulated detector.

        Args:
            probability: Chance of emitting a finding, between 0 and 1
            rng: Random source (seed it for reproducible runs)
            templates: Category templates (defaults to CATEGORY_TEMPLATES)
        """
        if not 0.0 <= probability <= 1.0:
            raise ValueError(f"probability must be between 0 and 1, got {probability}")
        self.probability = probability
        self.rng = rng or random.Random()
        self.templates = templates or CATEGORY_TEMPLATES

    def detect(self, category: Category, target_url: str,
               observation: Optional[CategoryObservation] = None) -> Optional[Finding]:
        if self.rng.random() >= self.probability:
            logger.debug(f"No {category.value} finding drawn for {target_url}")
            return None

        template = self.templates[category]
        subtype = (observation.subtype if observation and observation.subtype
                   else template.default_subtype)

        dbms_guess = None
        if template.reports_dbms:
            dbms_guess = (observation.dbms_guess if observation and observation.dbms_guess
                          else "Unknown")

        return Finding(
            category=category,
            subtype=subtype,
            severity=template.severity_for(subtype),
            description=template.description_for(subtype),
            target_url=target_url,
            parameter=template.parameter,
            payload=template.payload_for(subtype),
            dbms_guess=dbms_guess,
        )


def build_simulated_detectors(probabilities: Dict[Category, float],
                              rng: Optional[random.Random] = None) -> Dict[Category, Detector]:
    """Create one simulated detector per category sharing a random source."""
    rng = rng or random.Random()
    return {
        category: SimulatedDetector(probabilities.get(category, 0.7), rng)
        for category in Category
    }
