"""Timed state machine that drives a simulated scan to completion."""

import asyncio
import logging
import random
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Tuple

from .events import ProgressEventBus, ProgressEventEmitter
from .log_stream import EventLogStream
from .models import DriverState, ProgressSnapshot, ScanRunState
from ..core.config.settings import SimulationSettings
from ..core.exceptions import ScanStateError, SynthesisError, TransientProbeError
from ..core.scanning.data_structures import (
    Category, Finding, LogEntry, LogKind, Phase, PhaseStage, ScanRequest, ScanResult
)
from ..core.scanning.detectors.csrf_probe import CsrfProbe
from ..core.scanning.detectors.simulated import build_simulated_detectors
from ..core.scanning.detectors.templates import candidate_subtypes
from ..core.scanning.planner import plan_phases
from ..core.scanning.result_aggregator import ResultAggregator
from ..core.scanning.synthesizer import FindingSynthesizer


logger = logging.getLogger(__name__)

DoneHook = Callable[['ProgressDriver'], Awaitable[None]]


def _retrieve_exception(future: asyncio.Future) -> None:
    # Keeps asyncio from reporting failures nobody awaited
    if not future.cancelled():
        future.exception()


class ProgressDriver:
    """Advances one scan through its planned phases.

    Two timer tasks own the scan while it runs: the progress loop calls
    :meth:`tick` every ``tick_interval`` seconds and the elapsed loop counts
    seconds every ``elapsed_interval``. Both stop together on completion,
    failure or teardown. The outcome is delivered once through
    :meth:`result`.
    """

    def __init__(self, request: ScanRequest,
                 settings: Optional[SimulationSettings] = None,
                 synthesizer: Optional[FindingSynthesizer] = None,
                 aggregator: Optional[ResultAggregator] = None,
                 probe: Optional[CsrfProbe] = None,
                 rng: Optional[random.Random] = None,
                 event_bus: Optional[ProgressEventBus] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 scan_id: Optional[str] = None):
        """Initialize progress driver.

        Args:
            request: Validated scan request
            settings: Simulation timing and probabilities
            synthesizer: Finding synthesizer (simulated detectors by default)
            aggregator: Result aggregator
            probe: Optional CSRF probe run during CSRF parameter analysis
            rng: Random source for simulated log events
            event_bus: Optional bus receiving progress events
            clock: Wall clock for log timestamps
            scan_id: Scan identifier (generated when omitted)

        Raises:
            InvalidRequestError: If the request has no categories
        """
        self.settings = settings or SimulationSettings()
        self.rng = rng or random.Random(self.settings.seed)
        self.synthesizer = synthesizer or FindingSynthesizer(
            build_simulated_detectors(self.settings.finding_probability, self.rng)
        )
        self.aggregator = aggregator or ResultAggregator()
        self.probe = probe
        self.emitter = ProgressEventEmitter(event_bus) if event_bus else None

        self.run = ScanRunState(
            request=request,
            phases=plan_phases(request),
            log=EventLogStream(self.settings.log_capacity, clock),
        )
        if scan_id:
            self.run.scan_id = scan_id

        self._future: Optional[asyncio.Future] = None
        self._done_hooks: List[DoneHook] = []

    # Read-side accessors

    @property
    def scan_id(self) -> str:
        return self.run.scan_id

    @property
    def request(self) -> ScanRequest:
        return self.run.request

    @property
    def state(self) -> DriverState:
        return self.run.state

    @property
    def phases(self) -> List[Phase]:
        return list(self.run.phases)

    @property
    def log(self) -> EventLogStream:
        return self.run.log

    @property
    def torn_down(self) -> bool:
        return self.run.torn_down

    @property
    def pending_timers(self) -> int:
        return sum(1 for task in self.run.timer_tasks if not task.done())

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot.of(self.run)

    def add_done_hook(self, hook: DoneHook) -> None:
        """Register a coroutine called with the driver once it completes or fails.

        Hooks run before the result is delivered. Hook errors are logged and
        never change the outcome.
        """
        self._done_hooks.append(hook)

    # Lifecycle

    async def start(self) -> None:
        """Move from IDLE to RUNNING and schedule both timers.

        Raises:
            ScanStateError: If the driver was already started or torn down
        """
        run = self.run
        if run.state != DriverState.IDLE or run.torn_down:
            raise ScanStateError(
                "Scan has already been started",
                current_state=run.state.value,
                scan_id=run.scan_id
            )

        loop = asyncio.get_running_loop()
        self._future = loop.create_future()
        self._future.add_done_callback(_retrieve_exception)

        run.state = DriverState.RUNNING
        run.started_at = datetime.now()
        logger.info(f"Scan {run.scan_id} started against {run.request.target_url} "
                    f"({len(run.phases)} phases)")

        if self.emitter:
            await self.emitter.scan_started(run.scan_id, run.request, len(run.phases))
        await self._log(LogKind.INFO, f"Starting scan against {run.request.target_url}")

        short_id = run.scan_id[:8]
        run.timer_tasks = [
            asyncio.create_task(self._progress_loop(), name=f"ScanProgress-{short_id}"),
            asyncio.create_task(self._elapsed_loop(), name=f"ScanElapsed-{short_id}"),
        ]

    async def tick(self) -> None:
        """Advance to the next phase, or complete when none remain."""
        run = self.run
        if not run.is_live:
            return

        if run.phases_remaining == 0:
            await self._complete()
            return

        index = run.cursor
        phase = run.phases[index]
        run.cursor += 1
        run.current_phase = phase
        run.progress = phase.target_progress

        await self._log(LogKind.INFO, phase.label)
        if self.emitter:
            await self.emitter.phase_advanced(run.scan_id, phase, index)

        if phase.category is not None:
            await self._simulate_stage(phase)

    def synthesize(self) -> Tuple[Finding, ...]:
        """Run the finding synthesizer once and cache its output.

        Raises:
            ScanStateError: If phases remain to be played, the scan failed or
                it was torn down before findings were produced
            SynthesisError: If the synthesizer fails
        """
        run = self.run
        if run.state == DriverState.FAILED:
            raise ScanStateError(
                "Scan failed; no findings are available",
                current_state=run.state.value,
                scan_id=run.scan_id
            )
        if run.findings is not None:
            return run.findings
        if run.torn_down:
            raise ScanStateError(
                "Scan was torn down before findings were produced",
                current_state=run.state.value,
                scan_id=run.scan_id
            )
        if run.phases_remaining > 0:
            raise ScanStateError(
                "Findings are only available once all phases have run",
                current_state=run.state.value,
                scan_id=run.scan_id
            )

        run.synthesis_runs += 1
        run.findings = self.synthesizer.synthesize(run.request, run.observations())
        return run.findings

    async def result(self) -> ScanResult:
        """Wait for the scan outcome.

        Raises:
            ScanStateError: If the scan was never started
            SynthesisError: If the scan failed
            asyncio.CancelledError: If the scan was torn down first
        """
        if self._future is None:
            raise ScanStateError("Scan has not been started",
                                 current_state=self.run.state.value,
                                 scan_id=self.run.scan_id)
        return await asyncio.shield(self._future)

    async def teardown(self) -> bool:
        """Cancel both timers and the pending result.

        Returns:
            True if the scan was still running
        """
        run = self.run
        if run.torn_down:
            return False

        was_running = run.state == DriverState.RUNNING
        run.torn_down = True

        current = asyncio.current_task()
        tasks = [task for task in run.timer_tasks if task is not current]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        run.timer_tasks = []

        if self._future is not None and not self._future.done():
            self._future.cancel()

        if was_running:
            logger.info(f"Scan {run.scan_id} torn down at {run.progress:.0f}%")
        return was_running

    # Internals

    async def _progress_loop(self) -> None:
        while self.run.is_live:
            await asyncio.sleep(self.settings.tick_interval)
            try:
                await self.tick()
            except Exception as e:
                logger.exception(f"Unexpected error advancing scan {self.run.scan_id}")
                await self._fail(SynthesisError(
                    f"Scan aborted: {e}",
                    target=self.run.request.target_url,
                    scan_id=self.run.scan_id
                ))

    async def _elapsed_loop(self) -> None:
        while self.run.is_live:
            await asyncio.sleep(self.settings.elapsed_interval)
            if self.run.is_live:
                self.run.elapsed_seconds += 1

    def _stop_timers(self) -> None:
        # The calling loop may be one of the timers; it exits on its own
        current = asyncio.current_task()
        for task in self.run.timer_tasks:
            if task is not current and not task.done():
                task.cancel()
        self.run.timer_tasks = []

    async def _log(self, kind: LogKind, message: str) -> Optional[LogEntry]:
        if self.run.torn_down:
            return None
        entry = self.run.log.append(kind, message)
        if self.emitter:
            await self.emitter.log_appended(self.run.scan_id, entry)
        return entry

    async def _simulate_stage(self, phase: Phase) -> None:
        run = self.run
        category = phase.category
        settings = self.settings

        if (phase.stage == PhaseStage.PARAMETER_ANALYSIS and category == Category.CSRF
                and self.probe is not None):
            await self._run_csrf_probe()

        if not run.is_live:
            return

        if phase.stage in (PhaseStage.PAYLOAD_TESTING, PhaseStage.VERIFICATION):
            low, high = settings.payload_range
            count = self.rng.randint(low, high)
            run.record_payloads(category, count)
            await self._log(LogKind.PAYLOAD,
                            f"Sent {count} {category.display_name} payload(s) "
                            f"({run.payloads_tested} total)")

        if (phase.stage == PhaseStage.PAYLOAD_TESTING and category == Category.SQLI
                and run.dbms_detected is None and settings.dbms_candidates):
            if self.rng.random() < settings.dbms_probability:
                run.dbms_detected = self.rng.choice(settings.dbms_candidates)
                await self._log(LogKind.SUCCESS,
                                f"Back-end DBMS identified: {run.dbms_detected}")

        if phase.stage == PhaseStage.VERIFICATION:
            if self.rng.random() < settings.detection_probability:
                subtype = self.rng.choice(candidate_subtypes(category))
                run.observed_subtypes[category] = subtype
                run.last_detected_subtype = subtype
                await self._log(LogKind.WARNING,
                                f"Potential {category.display_name} vulnerability "
                                f"detected: {subtype}")

    async def _run_csrf_probe(self) -> None:
        run = self.run
        target_url = run.request.target_url
        timeout = self.probe.settings.timeout

        try:
            report = await asyncio.wait_for(self.probe.run(target_url), timeout=timeout + 1.0)
        except asyncio.TimeoutError:
            error = TransientProbeError(f"CSRF probe timed out after {timeout:.0f}s",
                                        target=target_url, scan_id=run.scan_id)
            logger.warning(error.message)
            await self._log(LogKind.WARNING, error.message)
            return
        except TransientProbeError as e:
            logger.warning(f"CSRF probe failed for {target_url}: {e.message}")
            await self._log(LogKind.WARNING, e.message)
            return

        if not run.is_live:
            return

        missing = report.missing_protections
        if not missing:
            await self._log(LogKind.SUCCESS, "Anti-CSRF protections found on target page")
            return

        for subtype in missing:
            await self._log(LogKind.WARNING, f"{subtype} on target page")
        run.observed_subtypes[Category.CSRF] = missing[0]
        run.last_detected_subtype = missing[0]

    async def _complete(self) -> None:
        run = self.run
        self._stop_timers()

        try:
            findings = self.synthesize()
            result = self.aggregator.build(
                run.request, findings,
                elapsed_seconds=run.elapsed_seconds,
                started_at=run.started_at or datetime.now(),
                scan_id=run.scan_id,
                payloads_tested=run.payloads_tested,
                dbms_detected=run.dbms_detected,
            )
        except SynthesisError as e:
            await self._fail(e)
            return
        except Exception as e:
            await self._fail(SynthesisError(
                f"Could not build scan result: {e}",
                target=run.request.target_url,
                scan_id=run.scan_id
            ))
            return

        run.state = DriverState.COMPLETED
        run.result = result
        logger.info(f"Scan {run.scan_id} completed with {len(findings)} finding(s) "
                    f"in {run.elapsed_seconds}s")
        await self._log(LogKind.SUCCESS,
                        f"Scan finished: {len(findings)} vulnerability(ies) found")

        await self._run_done_hooks()
        if self._future is not None and not self._future.done():
            self._future.set_result(result)
        if self.emitter and not run.torn_down:
            await self.emitter.scan_completed(run.scan_id, result)

    async def _fail(self, error: SynthesisError) -> None:
        run = self.run
        self._stop_timers()
        run.state = DriverState.FAILED
        run.error = error
        logger.error(f"Scan {run.scan_id} failed: {error.message}")
        await self._log(LogKind.ERROR, f"Scan failed: {error.message}")

        await self._run_done_hooks()
        if self._future is not None and not self._future.done():
            self._future.set_exception(error)
        if self.emitter and not run.torn_down:
            await self.emitter.scan_failed(run.scan_id, error)

    async def _run_done_hooks(self) -> None:
        for hook in self._done_hooks:
            try:
                await hook(self)
            except Exception as e:
                logger.error(f"Error in scan completion hook: {e}")


class ScanHandle:
    """Caller-facing handle on a running scan."""

    def __init__(self, driver: ProgressDriver):
        self._driver = driver

    @property
    def scan_id(self) -> str:
        return self._driver.scan_id

    @property
    def request(self) -> ScanRequest:
        return self._driver.request

    @property
    def state(self) -> DriverState:
        return self._driver.state

    @property
    def phases(self) -> List[Phase]:
        return self._driver.phases

    @property
    def log(self) -> EventLogStream:
        return self._driver.log

    @property
    def driver(self) -> ProgressDriver:
        return self._driver

    @property
    def done(self) -> bool:
        return self._driver.state.is_terminal or self._driver.torn_down

    def snapshot(self) -> ProgressSnapshot:
        return self._driver.snapshot()

    async def result(self) -> ScanResult:
        return await self._driver.result()

    async def teardown(self) -> bool:
        return await self._driver.teardown()
