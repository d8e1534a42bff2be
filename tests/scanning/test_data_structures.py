"""Tests for scan request validation and value types."""

import pytest
from datetime import datetime

from aegis_scan.core.exceptions import InvalidRequestError
from aegis_scan.core.scanning.data_structures import (
    Category, LogEntry, LogKind, ReportArtifact, ReportFormat, ScanRequest,
    ScanResult, Severity
)


class TestScanRequest:
    """Test cases for ScanRequest.create()."""

    def test_valid_request(self):
        request = ScanRequest.create("https://example.com", ["sqli"], ["json"])

        assert request.target_url == "https://example.com"
        assert request.selected_categories == (Category.SQLI,)
        assert request.report_formats == (ReportFormat.JSON,)
        assert dict(request.advanced) == {}

    def test_order_kept_and_duplicates_removed(self):
        request = ScanRequest.create(
            "http://example.com", ["xss", "SQLI", "xss"], ["html", "json", "html"]
        )

        assert request.selected_categories == (Category.XSS, Category.SQLI)
        assert request.report_formats == (ReportFormat.HTML, ReportFormat.JSON)

    def test_sets_are_put_in_declaration_order(self):
        request = ScanRequest.create("http://example.com", {"csrf", "sqli", "xss"}, {"txt"})

        assert request.selected_categories == (Category.SQLI, Category.XSS, Category.CSRF)

    def test_empty_categories_rejected(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            ScanRequest.create("https://example.com", [], ["json"])

        assert exc_info.value.error_code == "INVALID_REQUEST"
        assert "Please select at least one scan category" in exc_info.value.problems

    def test_empty_formats_rejected(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            ScanRequest.create("https://example.com", ["xss"], [])

        assert "Please select at least one report format" in exc_info.value.problems

    @pytest.mark.parametrize("url", [
        "", "   ", "example.com", "ftp://example.com", "https://", "not a url", None
    ])
    def test_bad_urls_rejected(self, url):
        with pytest.raises(InvalidRequestError):
            ScanRequest.create(url, ["sqli"], ["json"])

    def test_all_problems_collected(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            ScanRequest.create("nope", ["rce"], [])

        problems = exc_info.value.problems
        assert len(problems) == 4
        assert "Unknown category: rce" in problems

    @pytest.mark.parametrize("kwargs", [
        {'target_url': "not a url"},
        {'selected_categories': ()},
        {'report_formats': ()},
        {'selected_categories': ("sqli",)},
    ])
    def test_constructor_validates(self, kwargs):
        fields = {
            'target_url': "https://example.com",
            'selected_categories': (Category.SQLI,),
            'report_formats': (ReportFormat.JSON,),
        }
        fields.update(kwargs)

        with pytest.raises(InvalidRequestError):
            ScanRequest(**fields)

    def test_request_is_hashable(self):
        first = ScanRequest.create("https://example.com", ["sqli"], ["json"], {"depth": 2})
        second = ScanRequest.create("https://example.com", ["sqli"], ["json"], {"depth": 2})

        assert hash(first) == hash(second)
        assert len({first, second}) == 1

    def test_request_is_immutable(self):
        request = ScanRequest.create("https://example.com", ["sqli"], ["json"], {"depth": 2})

        with pytest.raises(AttributeError):
            request.target_url = "https://other.example"
        with pytest.raises(TypeError):
            request.advanced["depth"] = 3

    def test_from_dict_accepts_camel_case(self):
        request = ScanRequest.from_dict({
            'targetUrl': 'https://example.com',
            'selectedScanTypes': ['csrf'],
            'selectedReportFormats': ['txt'],
            'advanced': {'authentication': False},
        })

        assert request.selected_categories == (Category.CSRF,)
        assert request.report_formats == (ReportFormat.TXT,)
        assert request.advanced['authentication'] is False

    def test_to_dict(self):
        request = ScanRequest.create("https://example.com", ["sqli", "xss"], ["json"])

        assert request.to_dict() == {
            'target_url': 'https://example.com',
            'selected_categories': ['sqli', 'xss'],
            'report_formats': ['json'],
            'advanced': {},
        }


class TestEnums:
    """Test cases for the closed domains."""

    def test_severity_rank_order(self):
        ranks = [severity.rank for severity in
                 (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW)]
        assert ranks == sorted(ranks, reverse=True)

    def test_severity_parse_is_case_insensitive(self):
        assert Severity.parse("critical") is Severity.CRITICAL
        assert Severity.parse(" HIGH ") is Severity.HIGH
        with pytest.raises(ValueError):
            Severity.parse("Info")

    def test_report_format_metadata(self):
        assert ReportFormat.HTML.extension == "html"
        assert ReportFormat.JSON.mime_type == "application/json"
        assert ReportFormat.TXT.mime_type == "text/plain"

    def test_category_display_name(self):
        assert Category.XSS.display_name == "Cross-Site Scripting"


class TestValueTypes:
    """Test cases for log entries, artifacts and results."""

    def test_log_entry_format_line(self):
        entry = LogEntry(datetime(2024, 1, 1, 9, 5, 3), LogKind.WARNING, "Careful")
        assert entry.format_line() == "[09:05:03] [!] Careful"

    def test_artifact_size_label(self):
        assert ReportArtifact(ReportFormat.JSON, "a.json", 2048).size_label == "2KB"
        assert ReportArtifact(ReportFormat.JSON, "a.json", 10).size_label == "1KB"

    def test_result_dict_restores(self, sample_result):
        restored = ScanResult.from_dict(sample_result.to_dict())

        assert restored.scan_id == sample_result.scan_id
        assert restored.findings == sample_result.findings
        assert restored.report_artifacts == sample_result.report_artifacts
        assert restored.summary == sample_result.summary
        assert restored.completed_at == sample_result.completed_at

    def test_result_to_request(self, sample_result, sample_request):
        assert sample_result.to_request() == sample_request
