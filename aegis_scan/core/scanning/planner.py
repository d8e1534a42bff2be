"""Phase planner: expands a scan request into an ordered phase list."""

import logging
from typing import Dict, List, Sequence, Union

from .data_structures import Category, Phase, PhaseStage, ScanRequest, CATEGORY_STAGES
from ..exceptions import InvalidRequestError


logger = logging.getLogger(__name__)


STAGE_LABELS: Dict[Category, Dict[PhaseStage, str]] = {
    Category.SQLI: {
        PhaseStage.SETUP: "Initializing SQL injection scan...",
        PhaseStage.PARAMETER_ANALYSIS: "Analyzing injection points...",
        PhaseStage.PAYLOAD_TESTING: "Testing SQL injection payloads...",
        PhaseStage.VERIFICATION: "Verifying SQL injection behaviour...",
        PhaseStage.FINALIZE: "Finalizing SQL injection checks...",
    },
    Category.XSS: {
        PhaseStage.SETUP: "Initializing XSS scan...",
        PhaseStage.PARAMETER_ANALYSIS: "Mapping reflected parameters...",
        PhaseStage.PAYLOAD_TESTING: "Injecting XSS vectors...",
        PhaseStage.VERIFICATION: "Verifying script execution contexts...",
        PhaseStage.FINALIZE: "Finalizing XSS checks...",
    },
    Category.CSRF: {
        PhaseStage.SETUP: "Initializing CSRF analysis...",
        PhaseStage.PARAMETER_ANALYSIS: "Inspecting forms and cookies...",
        PhaseStage.PAYLOAD_TESTING: "Replaying state-changing requests...",
        PhaseStage.VERIFICATION: "Verifying anti-CSRF protections...",
        PhaseStage.FINALIZE: "Finalizing CSRF checks...",
    },
}

REPORT_LABEL = "Generating vulnerability report..."
COMPLETED_LABEL = "Scan completed"


def plan_phases(source: Union[ScanRequest, Sequence[Category]]) -> List[Phase]:
    """Build the phase sequence for a request.

    Each category gets a contiguous band of ``100 / len(categories)``
    points split evenly across its five stages; two trailing phases at 100
    close the scan.

    Args:
        source: A ScanRequest or an ordered sequence of categories

    Returns:
        Ordered list of phases with non-decreasing target progress

    Raises:
        InvalidRequestError: If no categories are given
    """
    categories = list(source.selected_categories if isinstance(source, ScanRequest) else source)
    if not categories:
        raise InvalidRequestError(
            "Please select at least one scan category",
            problems=["Please select at least one scan category"]
        )

    band_width = 100.0 / len(categories)
    stage_count = len(CATEGORY_STAGES)
    phases: List[Phase] = []

    for index, category in enumerate(categories):
        band_start = index * band_width
        labels = STAGE_LABELS[category]
        for step, stage in enumerate(CATEGORY_STAGES, start=1):
            if index == len(categories) - 1 and step == stage_count:
                target = 100.0
            else:
                target = round(band_start + band_width * step / stage_count, 2)
            phases.append(Phase(
                label=labels[stage],
                target_progress=target,
                category=category,
                stage=stage,
            ))

    phases.append(Phase(REPORT_LABEL, 100.0, None, PhaseStage.REPORT))
    phases.append(Phase(COMPLETED_LABEL, 100.0, None, PhaseStage.COMPLETED))

    logger.debug(f"Planned {len(phases)} phases for {len(categories)} categories")
    return phases
