"""Test configuration and fixtures for the AegisScan test suite."""

import random
import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

import pytest

from aegis_scan.core.config.settings import SimulationSettings, ProbeSettings
from aegis_scan.core.scanning.data_structures import (
    Category, Finding, ReportFormat, ScanRequest, ScanResult
)
from aegis_scan.core.scanning.detectors.base import Detector, CategoryObservation
from aegis_scan.core.scanning.detectors.templates import CATEGORY_TEMPLATES
from aegis_scan.core.scanning.result_aggregator import ResultAggregator


class TemplateDetector(Detector):
    """Always emits the template finding and records every call."""

    def __init__(self):
        self.calls = []

    def detect(self, category: Category, target_url: str,
               observation: Optional[CategoryObservation] = None) -> Optional[Finding]:
        self.calls.append((category, target_url, observation))
        template = CATEGORY_TEMPLATES[category]
        subtype = (observation.subtype if observation and observation.subtype
                   else template.default_subtype)
        return Finding(
            category=category,
            subtype=subtype,
            severity=template.severity_for(subtype),
            description=template.description_for(subtype),
            target_url=target_url,
            parameter=template.parameter,
            payload=template.payload_for(subtype),
            dbms_guess=observation.dbms_guess if observation else None,
        )


class SilentDetector(Detector):
    """Never finds anything."""

    def detect(self, category, target_url, observation=None):
        return None


class BrokenDetector(Detector):
    """Fails on every call."""

    def detect(self, category, target_url, observation=None):
        raise RuntimeError("detector exploded")


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def test_config() -> Dict[str, Any]:
    """Basic test configuration."""
    return {
        'system': {
            'environment': 'testing',
            'history_size': 10
        },
        'logging': {
            'level': 'ERROR',  # Reduce noise in tests
            'format': '%(message)s',
            'file_rotation': False
        },
        'simulation': {
            'tick_interval': 0.01,
            'elapsed_interval': 0.005,
            'log_capacity': 100,
            'seed': 42,
            'finding_probability': {'sqli': 1.0, 'xss': 0.5, 'csrf': 0.0},
            'detection_probability': 0.5,
            'dbms_probability': 0.7,
            'payload_range': [1, 5],
            'dbms_candidates': ['MySQL', 'PostgreSQL'],
            'csrf_probe': {'enabled': False, 'timeout': 2.0}
        },
        'reporting': {
            'default_formats': ['json', 'html']
        }
    }


@pytest.fixture
def config_file(temp_dir, test_config):
    """Create temporary configuration file."""
    import yaml

    config_file = temp_dir / 'test_config.yml'
    with open(config_file, 'w') as f:
        yaml.dump(test_config, f)

    return config_file


@pytest.fixture
def fast_settings() -> SimulationSettings:
    """Settings whose timers fire every few milliseconds."""
    return SimulationSettings(
        tick_interval=0.01,
        elapsed_interval=0.005,
        seed=1234,
        probe=ProbeSettings(enabled=False),
    )


@pytest.fixture
def manual_settings() -> SimulationSettings:
    """Settings whose timers never fire during a test; drive with tick()."""
    return SimulationSettings(
        tick_interval=3600.0,
        elapsed_interval=3600.0,
        seed=1234,
        probe=ProbeSettings(enabled=False),
    )


@pytest.fixture
def template_detectors() -> Dict[Category, TemplateDetector]:
    return {category: TemplateDetector() for category in Category}


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def sample_request() -> ScanRequest:
    return ScanRequest.create(
        "https://example.com/search",
        ["sqli", "xss", "csrf"],
        ["json", "txt", "html"],
        advanced={'crawl': True, 'scan_depth': 2},
    )


@pytest.fixture
def sample_findings(sample_request):
    detector = TemplateDetector()
    url = sample_request.target_url
    return [
        detector.detect(Category.SQLI, url, CategoryObservation(Category.SQLI, "Error-based", "MySQL")),
        detector.detect(Category.XSS, url, CategoryObservation(Category.XSS, "Reflected")),
        detector.detect(Category.CSRF, url, CategoryObservation(Category.CSRF, "Missing SameSite attribute")),
        detector.detect(Category.XSS, url, CategoryObservation(Category.XSS, "Stored")),
    ]


@pytest.fixture
def sample_result(sample_request, sample_findings) -> ScanResult:
    return ResultAggregator().build(
        sample_request,
        sample_findings,
        elapsed_seconds=42,
        started_at=datetime(2024, 5, 1, 12, 0, 0),
        completed_at=datetime(2024, 5, 1, 12, 0, 42),
        scan_id="scan-123",
        payloads_tested=17,
        dbms_detected="MySQL",
    )
