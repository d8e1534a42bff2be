"""Detector abstraction and the simulated implementation."""

from .base import Detector, CategoryObservation
from .templates import FindingTemplate, CATEGORY_TEMPLATES, candidate_subtypes
from .simulated import SimulatedDetector, build_simulated_detectors
from .csrf_probe import CsrfProbe, CsrfProbeReport

__all__ = [
    'Detector', 'CategoryObservation',
    'FindingTemplate', 'CATEGORY_TEMPLATES', 'candidate_subtypes',
    'SimulatedDetector', 'build_simulated_detectors',
    'CsrfProbe', 'CsrfProbeReport'
]
