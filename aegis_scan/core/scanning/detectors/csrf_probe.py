"""Ancillary CSRF heuristic check against the live target page."""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

import requests

from ...config.settings import ProbeSettings
from ...exceptions import TransientProbeError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CsrfProbeReport:
    """Protections observed on the fetched page."""
    status_code: int
    has_csrf_token: bool
    has_samesite_cookie: bool
    referrer_policy: Optional[str] = None

    @property
    def missing_protections(self) -> List[str]:
        """Finding subtypes implied by the missing protections, most severe first."""
        missing = []
        if not self.has_csrf_token:
            missing.append("Missing CSRF token")
        if not self.has_samesite_cookie:
            missing.append("Missing SameSite attribute")
        return missing


class CsrfProbe:
    """Fetches the target once and looks for anti-CSRF markers.

    Any transport failure is raised as TransientProbeError; callers are
    expected to downgrade it to a log warning.
    """

    def __init__(self, settings: Optional[ProbeSettings] = None,
                 session: Optional[requests.Session] = None):
        self.settings = settings or ProbeSettings()
        self.session = session or requests.Session()
        self.session.headers.setdefault('User-Agent', self.settings.user_agent)

    def check(self, target_url: str) -> CsrfProbeReport:
        """Fetch ``target_url`` and inspect body and headers.

        Raises:
            TransientProbeError: If the request fails
        """
        try:
            response = self.session.get(target_url, timeout=self.settings.timeout)
        except requests.RequestException as e:
            raise TransientProbeError(
                f"Could not complete CSRF analysis: {e}", target=target_url
            ) from e

        html = response.text or ""
        lowered = html.lower()
        set_cookie = response.headers.get('Set-Cookie', '')

        report = CsrfProbeReport(
            status_code=response.status_code,
            has_csrf_token='csrf' in lowered or '_token' in lowered,
            has_samesite_cookie='samesite' in lowered or 'samesite' in set_cookie.lower(),
            referrer_policy=response.headers.get('Referrer-Policy'),
        )
        logger.debug(f"CSRF probe of {target_url} returned {report}")
        return report

    async def run(self, target_url: str) -> CsrfProbeReport:
        """Run :meth:`check` in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.check, target_url)
