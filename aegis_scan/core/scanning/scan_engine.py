"""Scan engine: the entry point that starts and tracks simulated scans."""

import logging
import random
from collections import deque
from datetime import datetime
from typing import Deque, Dict, List, Any, Mapping, Optional, Union

from .data_structures import ScanRequest, ScanResult, Severity
from .detectors.base import Detector
from .detectors.csrf_probe import CsrfProbe
from .detectors.simulated import build_simulated_detectors
from .result_aggregator import ResultAggregator
from .synthesizer import FindingSynthesizer
from ..config.config_manager import ConfigManager
from ..config.settings import SimulationSettings
from ..exceptions import RecordStoreError, ScanStateError
from ..logger.scan_audit_logger import ScanAuditLogger
from ...collaborators.base import IdentityProvider, ScanRecord, ScanRecordStore
from ...progress.driver import ProgressDriver, ScanHandle
from ...progress.events import ProgressEventBus
from ...progress.models import DriverState


DEFAULT_HISTORY_SIZE = 10


class ScanEngine:
    """Owns at most one running scan and the recent scan history.

    Starting a scan tears down the one already running. Completed results
    are kept in a bounded newest-first history and, when a user is signed
    in, handed to the record store.
    """

    def __init__(self, config: Optional[ConfigManager] = None,
                 settings: Optional[SimulationSettings] = None,
                 detectors: Optional[Mapping[Any, Detector]] = None,
                 probe: Optional[CsrfProbe] = None,
                 record_store: Optional[ScanRecordStore] = None,
                 identity_provider: Optional[IdentityProvider] = None,
                 event_bus: Optional[ProgressEventBus] = None,
                 rng: Optional[random.Random] = None,
                 audit_logger: Optional[ScanAuditLogger] = None):
        """Initialize scan engine.

        Args:
            config: Configuration manager (defaults are used when omitted)
            settings: Simulation settings; derived from ``config`` when omitted
            detectors: Detector per category (simulated detectors by default)
            probe: CSRF probe; built from settings when probing is enabled
            record_store: Persistence collaborator
            identity_provider: Identity collaborator
            event_bus: Bus receiving progress events of every scan
            rng: Random source shared by the simulation
            audit_logger: Scan audit logger
        """
        self.config = config
        config_data = config.to_dict() if config else {}

        self.settings = settings or SimulationSettings.from_config(config_data)
        self.rng = rng or random.Random(self.settings.seed)
        self.detectors = dict(detectors) if detectors else build_simulated_detectors(
            self.settings.finding_probability, self.rng
        )
        if probe is None and self.settings.probe.enabled:
            probe = CsrfProbe(self.settings.probe)
        self.probe = probe

        self.record_store = record_store
        self.identity_provider = identity_provider
        self.event_bus = event_bus
        self.audit = audit_logger or ScanAuditLogger()
        self.aggregator = ResultAggregator()
        self.logger = logging.getLogger(__name__)

        history_size = (config_data.get('system') or {}).get('history_size', DEFAULT_HISTORY_SIZE)
        self.history: Deque[ScanResult] = deque(maxlen=int(history_size))
        self._active: Optional[ProgressDriver] = None
        self._last_request: Optional[ScanRequest] = None

    @property
    def active(self) -> Optional[ScanHandle]:
        """Handle on the scan currently running, if any."""
        if self._active is None or self._active.state != DriverState.RUNNING:
            return None
        return ScanHandle(self._active)

    async def start_scan(self, request: Union[ScanRequest, Mapping[str, Any]]) -> ScanHandle:
        """Validate a request and start scanning it.

        Args:
            request: ScanRequest or a form-style mapping

        Returns:
            Handle on the started scan

        Raises:
            InvalidRequestError: If the request is invalid; nothing is started
        """
        if not isinstance(request, ScanRequest):
            request = ScanRequest.from_dict(request)

        user = await self._current_user_id()

        # Plans phases, so a bad request fails before the old scan is touched
        driver = ProgressDriver(
            request,
            settings=self.settings,
            synthesizer=FindingSynthesizer(self.detectors),
            aggregator=self.aggregator,
            probe=self.probe,
            rng=self.rng,
            event_bus=self.event_bus,
        )
        driver.add_done_hook(self._on_scan_finished)

        await self.teardown_active()

        self._active = driver
        self._last_request = request
        self.audit.log_scan_start(
            driver.scan_id, request.target_url,
            [category.value for category in request.selected_categories],
            user=user
        )
        await driver.start()
        return ScanHandle(driver)

    async def teardown_active(self) -> bool:
        """Tear down the running scan, if any.

        Returns:
            True if a running scan was stopped
        """
        driver = self._active
        if driver is None:
            return False

        self._active = None
        was_running = await driver.teardown()
        if was_running:
            self.audit.log_scan_teardown(driver.scan_id, driver.request.target_url)
        return was_running

    async def rescan(self, scan_id: Optional[str] = None) -> ScanHandle:
        """Start a new scan with the settings of an earlier one.

        Args:
            scan_id: Result in the history to repeat (the latest request when omitted)

        Raises:
            ScanStateError: If there is nothing to repeat
        """
        if scan_id is None:
            if self._last_request is None:
                raise ScanStateError("No previous scan to repeat")
            return await self.start_scan(self._last_request)

        result = self.get_result(scan_id)
        if result is None:
            raise ScanStateError(f"Scan {scan_id} is not in the recent history", scan_id=scan_id)
        return await self.start_scan(result.to_request())

    def get_result(self, scan_id: str) -> Optional[ScanResult]:
        for result in self.history:
            if result.scan_id == scan_id:
                return result
        return None

    def recent_scans(self) -> List[ScanResult]:
        """Completed results, newest first."""
        return list(self.history)

    def get_stats(self) -> Dict[str, Any]:
        """Dashboard statistics over the recent history."""
        results = list(self.history)
        return {
            'total_scans': len(results),
            'vulnerabilities_found': sum(result.summary.total for result in results),
            'critical_issues': sum(
                result.summary.counts.get(Severity.CRITICAL, 0) for result in results
            ),
            'last_scan': results[0].completed_at.isoformat() if results else None,
            'active_scan': self._active.scan_id if self.active else None,
        }

    async def list_records(self) -> List[ScanRecord]:
        """Scan records of the signed-in user, newest first."""
        user = await self._current_user_id()
        if user is None or self.record_store is None:
            return []
        return await self.record_store.list_scan_records(user)

    async def shutdown(self) -> None:
        await self.teardown_active()
        self.logger.info("Scan engine shut down")

    async def _current_user_id(self) -> Optional[str]:
        if self.identity_provider is None:
            return None
        user = await self.identity_provider.get_current_user()
        return user.id if user else None

    async def _on_scan_finished(self, driver: ProgressDriver) -> None:
        if self._active is driver:
            self._active = None

        if driver.state == DriverState.FAILED:
            reason = driver.run.error.message if driver.run.error else "unknown error"
            self.audit.log_scan_failed(driver.scan_id, driver.request.target_url, reason)
            return

        result = driver.run.result
        self.history.appendleft(result)
        self.audit.log_scan_complete(
            result.scan_id, result.target_url, result.elapsed_seconds, result.summary.total
        )
        await self._save_record(result)

    async def _save_record(self, result: ScanResult) -> None:
        if self.record_store is None:
            return

        user = await self._current_user_id()
        if user is None:
            self.logger.warning(f"No signed-in user; scan {result.scan_id} was not saved")
            return

        try:
            record = await self.record_store.save_scan_record(user, result)
        except RecordStoreError as e:
            self.logger.error(f"Failed to save scan {result.scan_id}: {e.message}")
            return
        self.logger.info(f"Saved scan {result.scan_id} as record {record.record_id}")
