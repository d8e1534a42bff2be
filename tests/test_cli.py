"""Tests for the command line interface."""

import json
import logging

import pytest
from click.testing import CliRunner

from aegis_scan.cli import cli
from aegis_scan.core.logger.logger_manager import AUDIT_LOGGER_NAME, ROOT_LOGGER_NAME


@pytest.fixture
def runner():
    yield CliRunner()
    for name in (ROOT_LOGGER_NAME, AUDIT_LOGGER_NAME):
        logger = logging.getLogger(name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)


class TestPlanCommand:
    """Test cases for ``aegis-scan plan``."""

    def test_plan_single_category(self, runner):
        result = runner.invoke(cli, ['plan', '-t', 'sqli'], obj={})

        assert result.exit_code == 0, result.output
        assert "Scan Phases" in result.output
        assert "100.00%" in result.output

    def test_unknown_category(self, runner):
        result = runner.invoke(cli, ['plan', '-t', 'rce'], obj={})
        assert result.exit_code == 2


class TestScanCommand:
    """Test cases for ``aegis-scan scan``."""

    def test_scan_writes_json_report(self, runner, temp_dir):
        out_dir = temp_dir / 'reports'
        result = runner.invoke(cli, [
            'scan', 'https://example.com/search', '-t', 'sqli', '-f', 'json',
            '--tick', '0.01', '--seed', '3', '--no-probe', '--no-live',
            '-o', str(out_dir)
        ], obj={})

        assert result.exit_code == 0, result.output
        reports = list(out_dir.glob('sqli_scan_*.json'))
        assert len(reports) == 1
        data = json.loads(reports[0].read_text(encoding='utf-8'))
        assert data['target_url'] == 'https://example.com/search'
        assert data['categories_run'] == ['sqli']

    def test_invalid_url(self, runner, temp_dir):
        result = runner.invoke(cli, [
            'scan', 'not a url', '--tick', '0.01', '--no-probe', '--no-live',
            '-o', str(temp_dir)
        ], obj={})

        assert result.exit_code == 2
        assert list(temp_dir.iterdir()) == []

    def test_config_file(self, runner, config_file, temp_dir):
        out_dir = temp_dir / 'out'
        result = runner.invoke(cli, [
            '--config', str(config_file),
            'scan', 'https://example.com', '-t', 'xss', '--tick', '0.01',
            '--no-live', '-o', str(out_dir)
        ], obj={})

        assert result.exit_code == 0, result.output
        # Config default_formats is [json, html]
        assert sorted(p.suffix for p in out_dir.iterdir()) == ['.html', '.json']
