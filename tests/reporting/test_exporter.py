"""Tests for report rendering and export."""

import json
import pytest

from aegis_scan.core.exceptions import ExportError
from aegis_scan.core.scanning.data_structures import ReportFormat
from aegis_scan.reporting.exporter import ReportExporter, export_report
from aegis_scan.reporting.formatters.base import FormatterRegistry
from aegis_scan.reporting.templates import TemplateError, TemplateManager, format_duration


class TestJsonExport:
    """Test cases for the JSON report."""

    @pytest.mark.asyncio
    async def test_structured_dump(self, sample_result):
        report = await export_report(sample_result, "json")
        data = json.loads(report.content.decode('utf-8'))

        assert report.mime_type == "application/json"
        assert report.filename == sample_result.report_artifacts[0].filename
        assert data['scan_id'] == "scan-123"
        assert len(data['findings']) == 4
        assert data['summary']['counts']['Critical'] == 1
        assert data['_metadata']['filtered'] is False

    @pytest.mark.asyncio
    async def test_severity_filtered_dump(self, sample_result):
        report = await export_report(sample_result, ReportFormat.JSON, ["Critical", "High"])
        data = json.loads(report.content)

        assert [f['severity'] for f in data['findings']] == ["Critical", "High"]
        assert data['summary']['total'] == 2
        assert data['_metadata']['total_findings'] == 4
        assert data['_metadata']['filtered'] is True


class TestTemplateExports:
    """Test cases for the text and HTML reports."""

    @pytest.mark.asyncio
    async def test_text_report(self, sample_result):
        report = await export_report(sample_result, "txt")
        text = report.content.decode('utf-8')

        assert report.mime_type == "text/plain"
        assert report.filename.endswith(".txt")
        assert "https://example.com/search" in text
        assert "[Critical] SQL Injection: Error-based" in text
        assert "Back-end DBMS:" in text and "MySQL" in text
        assert "00:42" in text

    @pytest.mark.asyncio
    async def test_html_report_escapes_payloads(self, sample_result):
        report = await export_report(sample_result, "html")
        html = report.content.decode('utf-8')

        assert report.mime_type == "text/html"
        assert "<table>" in html
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
        assert "<script>alert(1)</script>" not in html

    @pytest.mark.asyncio
    async def test_empty_findings_message(self, sample_result):
        report = await export_report(sample_result, "txt", severities=[])
        assert "No vulnerabilities found." in report.content.decode('utf-8')


class TestReportExporter:
    """Test cases for ReportExporter."""

    @pytest.mark.asyncio
    async def test_export_all_in_request_order(self, sample_result):
        reports = await ReportExporter().export_all(sample_result)

        assert [r.format for r in reports] == [ReportFormat.JSON, ReportFormat.TXT, ReportFormat.HTML]
        assert all(r.size_bytes == len(r.content) for r in reports)

    @pytest.mark.asyncio
    async def test_unknown_format(self, sample_result):
        with pytest.raises(ExportError):
            await export_report(sample_result, "pdf")

    @pytest.mark.asyncio
    async def test_unregistered_format(self, sample_result):
        registry = FormatterRegistry()
        del registry.formatters[ReportFormat.HTML]
        assert not registry.is_format_supported(ReportFormat.HTML)
        assert registry.is_format_supported(ReportFormat.JSON)

        with pytest.raises(ExportError):
            await ReportExporter(registry=registry).export(sample_result, "html")

    @pytest.mark.asyncio
    async def test_missing_template(self, sample_result, temp_dir):
        exporter = ReportExporter(template_manager=TemplateManager(temp_dir))

        with pytest.raises(TemplateError):
            await exporter.export(sample_result, "txt")

    @pytest.mark.asyncio
    async def test_write(self, sample_result, temp_dir):
        exporter = ReportExporter()
        report = await exporter.export(sample_result, "json")

        path = exporter.write(report, temp_dir / "out")

        assert path.name == report.filename
        assert path.read_bytes() == report.content


class TestTemplateHelpers:
    """Test cases for template filters."""

    def test_format_duration(self):
        assert format_duration(5) == "00:05"
        assert format_duration(125) == "02:05"
        assert format_duration(3725) == "1:02:05"

    def test_packaged_templates_exist(self):
        manager = TemplateManager()
        assert manager.template_exists("report.html.j2")
        assert manager.template_exists("report.txt.j2")
        assert not manager.template_exists("report.pdf.j2")
