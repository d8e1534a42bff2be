"""Typed simulation parameters built from the ``simulation`` config section."""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Tuple

from ..scanning.data_structures import Category


@dataclass(frozen=True)
class ProbeSettings:
    """Settings for the ancillary CSRF page fetch."""
    enabled: bool = True
    timeout: float = 5.0
    user_agent: str = "AegisScan/1.0"


@dataclass(frozen=True)
class SimulationSettings:
    """Timing and probability knobs of the simulated scan.

    Probabilities are simulation parameters, not detection facts; every
    value can be overridden from configuration.
    """
    tick_interval: float = 2.0
    elapsed_interval: float = 1.0
    log_capacity: int = 100
    seed: Optional[int] = None
    finding_probability: Dict[Category, float] = field(
        default_factory=lambda: {category: 0.7 for category in Category}
    )
    detection_probability: float = 0.5
    dbms_probability: float = 0.7
    payload_range: Tuple[int, int] = (1, 5)
    dbms_candidates: Tuple[str, ...] = ("MySQL", "PostgreSQL", "SQLite", "MSSQL")
    probe: ProbeSettings = field(default_factory=ProbeSettings)

    def finding_probability_for(self, category: Category) -> float:
        return self.finding_probability.get(category, 0.7)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'SimulationSettings':
        """Create settings from a full configuration dictionary.

        Args:
            config: Configuration dictionary (as held by ConfigManager)

        Returns:
            SimulationSettings instance; missing keys keep their defaults
        """
        simulation = config.get('simulation') or {}
        defaults = cls()

        raw_probability = simulation.get('finding_probability')
        if raw_probability is None:
            finding_probability = dict(defaults.finding_probability)
        elif isinstance(raw_probability, (int, float)):
            finding_probability = {category: float(raw_probability) for category in Category}
        else:
            finding_probability = dict(defaults.finding_probability)
            for key, value in raw_probability.items():
                finding_probability[Category(key)] = float(value)

        probe_config = simulation.get('csrf_probe') or {}
        probe = ProbeSettings(
            enabled=probe_config.get('enabled', defaults.probe.enabled),
            timeout=float(probe_config.get('timeout', defaults.probe.timeout)),
            user_agent=probe_config.get('user_agent', defaults.probe.user_agent),
        )

        payload_range = simulation.get('payload_range', defaults.payload_range)

        return cls(
            tick_interval=float(simulation.get('tick_interval', defaults.tick_interval)),
            elapsed_interval=float(simulation.get('elapsed_interval', defaults.elapsed_interval)),
            log_capacity=int(simulation.get('log_capacity', defaults.log_capacity)),
            seed=simulation.get('seed', defaults.seed),
            finding_probability=finding_probability,
            detection_probability=float(
                simulation.get('detection_probability', defaults.detection_probability)
            ),
            dbms_probability=float(simulation.get('dbms_probability', defaults.dbms_probability)),
            payload_range=(int(payload_range[0]), int(payload_range[1])),
            dbms_candidates=tuple(simulation.get('dbms_candidates', defaults.dbms_candidates)),
            probe=probe,
        )
