"""Per-category finding templates used by the simulated detector."""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from ..data_structures import Category, Severity


@dataclass(frozen=True)
class FindingTemplate:
    """Shape of the finding a category produces."""
    category: Category
    subtypes: Tuple[str, ...]
    default_subtype: str
    parameter: str
    severities: Mapping[str, Severity]
    default_severity: Severity
    descriptions: Mapping[str, str] = field(default_factory=dict)
    payloads: Mapping[str, str] = field(default_factory=dict)
    reports_dbms: bool = False

    def severity_for(self, subtype: str) -> Severity:
        return self.severities.get(subtype, self.default_severity)

    def description_for(self, subtype: str) -> str:
        if subtype in self.descriptions:
            return self.descriptions[subtype]
        return f"{subtype} {self.category.display_name} vulnerability detected"

    def payload_for(self, subtype: str) -> Optional[str]:
        return self.payloads.get(subtype)


CATEGORY_TEMPLATES: Dict[Category, FindingTemplate] = {
    Category.SQLI: FindingTemplate(
        category=Category.SQLI,
        subtypes=("Boolean-based blind", "Error-based", "Time-based blind", "UNION query"),
        default_subtype="Boolean-based blind",
        parameter="id",
        severities={"Error-based": Severity.CRITICAL},
        default_severity=Severity.HIGH,
        descriptions={
            subtype: f"{subtype} SQL injection vulnerability detected"
            for subtype in ("Boolean-based blind", "Error-based", "Time-based blind", "UNION query")
        },
        payloads={
            "Boolean-based blind": "1' AND '1'='1",
            "Error-based": "1' AND EXTRACTVALUE(1,CONCAT(0x7e,VERSION()))-- -",
            "Time-based blind": "1' AND SLEEP(5)-- -",
            "UNION query": "1' UNION SELECT NULL,NULL-- -",
        },
        reports_dbms=True,
    ),
    Category.XSS: FindingTemplate(
        category=Category.XSS,
        subtypes=("Reflected", "Stored", "DOM-based"),
        default_subtype="Reflected",
        parameter="searchFor",
        severities={"Stored": Severity.HIGH},
        default_severity=Severity.MEDIUM,
        payloads={
            "Reflected": "<script>alert(1)</script>",
            "Stored": "<img src=x onerror=alert(document.cookie)>",
            "DOM-based": "#<svg onload=alert(1)>",
        },
    ),
    Category.CSRF: FindingTemplate(
        category=Category.CSRF,
        subtypes=("Missing CSRF token", "Missing SameSite attribute"),
        default_subtype="Missing CSRF token",
        parameter="form",
        severities={"Missing SameSite attribute": Severity.LOW},
        default_severity=Severity.MEDIUM,
        descriptions={
            "Missing CSRF token": "No CSRF tokens detected in forms",
            "Missing SameSite attribute": "SameSite cookie attribute not detected",
        },
    ),
}


def candidate_subtypes(category: Category) -> Tuple[str, ...]:
    """Subtypes the progress driver may announce for a category."""
    return CATEGORY_TEMPLATES[category].subtypes
