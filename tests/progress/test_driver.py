"""Tests for the progress driver state machine."""

import asyncio
import dataclasses
import random
import pytest
import requests
from unittest.mock import Mock

from aegis_scan.core.config.settings import ProbeSettings
from aegis_scan.core.exceptions import InvalidRequestError, ScanStateError, SynthesisError
from aegis_scan.core.scanning.data_structures import Category, LogKind, ReportFormat, ScanRequest
from aegis_scan.core.scanning.detectors.csrf_probe import CsrfProbe
from aegis_scan.core.scanning.detectors.templates import candidate_subtypes
from aegis_scan.core.scanning.synthesizer import FindingSynthesizer
from aegis_scan.progress.driver import ProgressDriver, ScanHandle
from aegis_scan.progress.events import ProgressEventBus, ProgressEventType
from aegis_scan.progress.models import DriverState

from conftest import BrokenDetector, TemplateDetector


def make_driver(categories, settings, detectors=None, **kwargs):
    request = ScanRequest.create("https://example.com", categories, ["json"])
    detectors = detectors or {category: TemplateDetector() for category in Category}
    return ProgressDriver(
        request,
        settings=settings,
        synthesizer=FindingSynthesizer(detectors),
        rng=random.Random(7),
        **kwargs
    )


async def run_to_completion(driver):
    for _ in range(len(driver.phases) + 1):
        await driver.tick()


class TestDriverLifecycle:
    """Test cases for start, tick and completion."""

    @pytest.mark.asyncio
    async def test_initial_state(self, manual_settings):
        driver = make_driver(["sqli"], manual_settings)

        assert driver.state == DriverState.IDLE
        assert len(driver.log) == 0
        assert driver.pending_timers == 0

    @pytest.mark.asyncio
    async def test_start_schedules_two_timers(self, manual_settings):
        driver = make_driver(["sqli"], manual_settings)
        await driver.start()

        try:
            assert driver.state == DriverState.RUNNING
            assert driver.pending_timers == 2
            assert driver.log.latest().message == "Starting scan against https://example.com"
        finally:
            await driver.teardown()

    @pytest.mark.asyncio
    async def test_ticks_follow_the_plan(self, manual_settings):
        driver = make_driver(["sqli"], manual_settings)
        await driver.start()

        progress = []
        for _ in range(len(driver.phases)):
            await driver.tick()
            progress.append(driver.snapshot().progress)

        assert progress == [20.0, 40.0, 60.0, 80.0, 100.0, 100.0, 100.0]
        assert driver.run.phases_remaining == 0
        assert driver.snapshot().phase_label == "Scan completed"
        assert driver.state == DriverState.RUNNING

        await driver.tick()
        assert driver.state == DriverState.COMPLETED
        assert driver.pending_timers == 0

    @pytest.mark.asyncio
    async def test_completed_result(self, manual_settings):
        driver = make_driver(["sqli"], manual_settings)
        await driver.start()
        await run_to_completion(driver)

        result = await driver.result()

        assert result.scan_id == driver.scan_id
        assert [f.category for f in result.findings] == [Category.SQLI]
        assert [a.format for a in result.report_artifacts] == [ReportFormat.JSON]
        assert driver.log.latest().kind == LogKind.SUCCESS

    @pytest.mark.asyncio
    async def test_start_twice(self, manual_settings):
        driver = make_driver(["xss"], manual_settings)
        await driver.start()

        try:
            with pytest.raises(ScanStateError):
                await driver.start()
        finally:
            await driver.teardown()

    @pytest.mark.asyncio
    async def test_result_before_start(self, manual_settings):
        driver = make_driver(["xss"], manual_settings)
        with pytest.raises(ScanStateError):
            await driver.result()

    def test_empty_plan_rejected_before_anything_runs(self, manual_settings):
        with pytest.raises(InvalidRequestError):
            request = ScanRequest(target_url="https://example.com",
                                  selected_categories=(), report_formats=(ReportFormat.JSON,))
            ProgressDriver(request, settings=manual_settings)

    @pytest.mark.asyncio
    async def test_timers_drive_scan_to_completion(self, fast_settings):
        driver = make_driver(["sqli", "xss"], fast_settings)
        await driver.start()
        timers = list(driver.run.timer_tasks)

        result = await asyncio.wait_for(driver.result(), timeout=5)
        await asyncio.sleep(0.05)

        assert len(result.findings) == 2
        assert driver.pending_timers == 0
        assert all(task.done() for task in timers)
        assert result.elapsed_seconds == driver.snapshot().elapsed_seconds


class TestSynthesisOnce:
    """Test cases for the single synthesis per scan."""

    @pytest.mark.asyncio
    async def test_synthesis_runs_once(self, manual_settings):
        detectors = {category: TemplateDetector() for category in Category}
        driver = make_driver(["sqli", "csrf"], manual_settings, detectors)
        await driver.start()
        await run_to_completion(driver)

        findings = driver.synthesize()

        assert driver.run.synthesis_runs == 1
        assert driver.synthesize() is findings
        assert len(detectors[Category.SQLI].calls) == 1
        assert (await driver.result()).findings == findings

    @pytest.mark.asyncio
    async def test_extra_ticks_do_nothing(self, manual_settings):
        driver = make_driver(["xss"], manual_settings)
        await driver.start()
        await run_to_completion(driver)
        entries = len(driver.log)

        await driver.tick()
        await driver.tick()

        assert len(driver.log) == entries
        assert driver.run.synthesis_runs == 1

    @pytest.mark.asyncio
    async def test_synthesize_too_early(self, manual_settings):
        driver = make_driver(["xss"], manual_settings)
        await driver.start()
        try:
            await driver.tick()
            with pytest.raises(ScanStateError):
                driver.synthesize()
        finally:
            await driver.teardown()

    @pytest.mark.asyncio
    async def test_synthesis_failure(self, manual_settings):
        driver = make_driver(["sqli"], manual_settings, {Category.SQLI: BrokenDetector()})
        await driver.start()
        await run_to_completion(driver)

        assert driver.state == DriverState.FAILED
        assert driver.pending_timers == 0
        assert driver.log.latest().kind == LogKind.ERROR
        with pytest.raises(SynthesisError):
            await driver.result()


class TestTeardown:
    """Test cases for teardown mid-run."""

    @pytest.mark.asyncio
    async def test_teardown_stops_everything(self, manual_settings):
        driver = make_driver(["sqli", "xss"], manual_settings)
        await driver.start()
        timers = list(driver.run.timer_tasks)
        await driver.tick()
        await driver.tick()
        entries = len(driver.log)

        assert await driver.teardown() is True

        assert driver.pending_timers == 0
        assert all(task.done() for task in timers)

        await run_to_completion(driver)
        assert len(driver.log) == entries
        assert driver.run.findings is None
        with pytest.raises(asyncio.CancelledError):
            await driver.result()

    @pytest.mark.asyncio
    async def test_teardown_is_idempotent(self, manual_settings):
        driver = make_driver(["csrf"], manual_settings)
        await driver.start()

        assert await driver.teardown() is True
        assert await driver.teardown() is False

    @pytest.mark.asyncio
    async def test_teardown_after_completion(self, manual_settings):
        driver = make_driver(["csrf"], manual_settings)
        await driver.start()
        await run_to_completion(driver)

        assert await driver.teardown() is False
        assert (await driver.result()).findings

    @pytest.mark.asyncio
    async def test_handle_delegates(self, manual_settings):
        handle = ScanHandle(make_driver(["xss"], manual_settings))
        await handle.driver.start()

        assert handle.state == DriverState.RUNNING
        assert not handle.done
        assert handle.snapshot().scan_id == handle.scan_id

        await handle.teardown()
        assert handle.done

    @pytest.mark.asyncio
    async def test_no_findings_after_teardown_before_completion(self, manual_settings):
        detectors = {category: TemplateDetector() for category in Category}
        driver = make_driver(["sqli"], manual_settings, detectors)
        await driver.start()
        for _ in range(len(driver.phases)):
            await driver.tick()

        await driver.teardown()

        with pytest.raises(ScanStateError):
            driver.synthesize()
        assert driver.run.findings is None
        assert driver.run.synthesis_runs == 0
        assert detectors[Category.SQLI].calls == []

    @pytest.mark.asyncio
    async def test_no_findings_after_failed_synthesis(self, manual_settings):
        detector = BrokenDetector()
        driver = make_driver(["sqli"], manual_settings, {Category.SQLI: detector})
        await driver.start()
        await run_to_completion(driver)
        assert driver.state == DriverState.FAILED

        with pytest.raises(ScanStateError):
            driver.synthesize()
        assert driver.run.synthesis_runs == 1
        assert driver.run.findings is None


class TestSimulatedStages:
    """Test cases for the simulated log events."""

    @pytest.mark.asyncio
    async def test_payload_entries(self, manual_settings):
        settings = dataclasses.replace(manual_settings, payload_range=(3, 3),
                                       detection_probability=0.0, dbms_probability=0.0)
        driver = make_driver(["sqli"], settings)
        await driver.start()
        await run_to_completion(driver)

        payload_entries = [e for e in driver.log.entries() if e.kind == LogKind.PAYLOAD]
        assert len(payload_entries) == 2
        assert driver.snapshot().payloads_tested == 6
        assert (await driver.result()).payloads_tested == 6
        assert not [e for e in driver.log.entries() if e.kind == LogKind.WARNING]

    @pytest.mark.asyncio
    async def test_detection_and_dbms(self, manual_settings):
        settings = dataclasses.replace(manual_settings, detection_probability=1.0,
                                       dbms_probability=1.0, dbms_candidates=("PostgreSQL",))
        driver = make_driver(["sqli"], settings)
        await driver.start()
        await run_to_completion(driver)

        snapshot = driver.snapshot()
        assert snapshot.dbms_detected == "PostgreSQL"
        assert snapshot.last_detected_subtype in candidate_subtypes(Category.SQLI)

        finding = (await driver.result()).findings[0]
        assert finding.subtype == snapshot.last_detected_subtype
        assert finding.dbms_guess == "PostgreSQL"
        assert any(e.kind == LogKind.WARNING for e in snapshot.log_entries)

    @pytest.mark.asyncio
    async def test_log_timestamps_ordered(self, manual_settings):
        driver = make_driver(["sqli", "xss", "csrf"], manual_settings)
        await driver.start()
        await run_to_completion(driver)

        stamps = [entry.timestamp for entry in driver.log.entries()]
        assert stamps == sorted(stamps)

    @pytest.mark.asyncio
    async def test_events_published(self, manual_settings):
        bus = ProgressEventBus()
        received = []
        await bus.subscribe('*', lambda event: received.append(event.event_type))

        driver = make_driver(["xss"], manual_settings, event_bus=bus)
        await driver.start()
        await run_to_completion(driver)

        assert received[0] == ProgressEventType.SCAN_STARTED
        assert received.count(ProgressEventType.PHASE_ADVANCED) == len(driver.phases)
        assert received[-1] == ProgressEventType.SCAN_COMPLETED
        assert ProgressEventType.LOG_APPENDED in received


def probe_with(session):
    return CsrfProbe(ProbeSettings(timeout=1.0), session=session)


class TestCsrfProbeStage:
    """Test cases for the CSRF page fetch during parameter analysis."""

    @pytest.mark.asyncio
    async def test_missing_token_recorded(self, manual_settings):
        session = Mock()
        session.headers = {}
        session.get.return_value = Mock(status_code=200, text="<form></form>", headers={})

        driver = make_driver(["csrf"], manual_settings, probe=probe_with(session))
        await driver.start()
        await driver.tick()
        await driver.tick()

        try:
            messages = [e.message for e in driver.log.entries() if e.kind == LogKind.WARNING]
            assert "Missing CSRF token on target page" in messages
            assert driver.run.observed_subtypes[Category.CSRF] == "Missing CSRF token"
            session.get.assert_called_once()
        finally:
            await driver.teardown()

    @pytest.mark.asyncio
    async def test_probe_failure_becomes_warning(self, manual_settings):
        session = Mock()
        session.headers = {}
        session.get.side_effect = requests.ConnectionError("refused")

        driver = make_driver(["csrf"], manual_settings, probe=probe_with(session))
        await driver.start()
        await driver.tick()
        await driver.tick()

        try:
            warning = driver.log.latest()
            assert warning.kind == LogKind.WARNING
            assert "Could not complete CSRF analysis" in warning.message
            assert driver.state == DriverState.RUNNING
            assert Category.CSRF not in driver.run.observed_subtypes
        finally:
            await driver.teardown()

    @pytest.mark.asyncio
    async def test_probe_only_for_csrf(self, manual_settings):
        session = Mock()
        session.headers = {}

        driver = make_driver(["sqli"], manual_settings, probe=probe_with(session))
        await driver.start()
        await run_to_completion(driver)

        session.get.assert_not_called()
