"""Tests for the finding synthesizer."""

import pytest

from aegis_scan.core.exceptions import SynthesisError
from aegis_scan.core.scanning.data_structures import Category, ScanRequest
from aegis_scan.core.scanning.detectors.base import CategoryObservation
from aegis_scan.core.scanning.synthesizer import FindingSynthesizer

from conftest import BrokenDetector, SilentDetector, TemplateDetector


class TestFindingSynthesizer:
    """Test cases for FindingSynthesizer."""

    def test_one_call_per_requested_category(self, template_detectors):
        request = ScanRequest.create("https://example.com", ["xss", "sqli"], ["json"])
        findings = FindingSynthesizer(template_detectors).synthesize(request)

        assert [f.category for f in findings] == [Category.XSS, Category.SQLI]
        assert len(template_detectors[Category.XSS].calls) == 1
        assert template_detectors[Category.CSRF].calls == []

    def test_observations_passed_through(self, template_detectors):
        request = ScanRequest.create("https://example.com", ["csrf"], ["json"])
        observation = CategoryObservation(Category.CSRF, subtype="Missing SameSite attribute")

        findings = FindingSynthesizer(template_detectors).synthesize(
            request, {Category.CSRF: observation}
        )

        assert findings[0].subtype == "Missing SameSite attribute"
        assert template_detectors[Category.CSRF].calls[0][2] is observation

    def test_no_findings(self):
        request = ScanRequest.create("https://example.com", ["sqli"], ["json"])
        findings = FindingSynthesizer({Category.SQLI: SilentDetector()}).synthesize(request)
        assert findings == ()

    def test_missing_detector(self):
        request = ScanRequest.create("https://example.com", ["sqli", "xss"], ["json"])

        with pytest.raises(SynthesisError) as exc_info:
            FindingSynthesizer({Category.SQLI: TemplateDetector()}).synthesize(request)

        assert "xss" in exc_info.value.message
        assert exc_info.value.error_code == "SYNTHESIS_FAILURE"

    def test_detector_error_wrapped(self):
        request = ScanRequest.create("https://example.com", ["sqli"], ["json"])

        with pytest.raises(SynthesisError) as exc_info:
            FindingSynthesizer({Category.SQLI: BrokenDetector()}).synthesize(request)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
