"""
Release Endpoint Diagnostics

Explains why version resolution fails in one environment but not another
(CI container vs. developer shell):
- Environment facts (user, container, CI provider, locale)
- Plain HTTPS connectivity to the API host
- One probe per header set, recording status, rate limit headers and
  whether the body carries a usable tag_name
- A full resolution with the configured query
"""

import getpass
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import requests

from .config import ConfigManager
from .models import HeaderSet, ReleaseQuery, ReleaseQueryResult, Resolved
from .resolver import VersionResolver, extract_version
from ..utils.error_handling import VersionParseError


ENVIRONMENT_VARIABLES = (
    'GITHUB_ACTIONS', 'GITHUB_WORKFLOW', 'GITHUB_RUN_ID',
    'TARGETPLATFORM', 'TZ', 'LANG', 'LC_ALL',
)


@dataclass
class ProbeResult:
    """
    Outcome of a single request made with one header set.

    Attributes:
        header_set: Name of the header set used
        status: HTTP status, None when the request failed outright
        has_tag_name: Whether the JSON body has a top-level tag_name
        version: Normalized version if one could be extracted
        error: Network or parse error description
        rate_limit_remaining: X-RateLimit-Remaining header value
        rate_limit_reset: X-RateLimit-Reset header value
    """
    header_set: str
    status: Optional[int] = None
    has_tag_name: bool = False
    version: Optional[str] = None
    error: Optional[str] = None
    rate_limit_remaining: Optional[str] = None
    rate_limit_reset: Optional[str] = None

    @property
    def rate_limited(self) -> bool:
        return self.status in (403, 429) and self.rate_limit_remaining == '0'

    def describe(self) -> str:
        """One-line summary suitable for a log message."""
        if self.status is None:
            return f"[{self.header_set}] no response: {self.error}"
        if self.version is not None:
            return f"[{self.header_set}] HTTP {self.status}, version {self.version}"
        if self.rate_limited:
            return (f"[{self.header_set}] HTTP {self.status}: API rate limit exhausted "
                    f"(resets at {self.rate_limit_reset})")
        if self.status == 403:
            return (f"[{self.header_set}] HTTP 403: rejected, likely missing "
                    f"User-Agent/Accept headers or a proxy rewriting them")
        if self.status == 200:
            return f"[{self.header_set}] HTTP 200 but no version: {self.error}"
        return f"[{self.header_set}] HTTP {self.status}"


@dataclass
class DiagnosticReport:
    """Everything collected by run_diagnostics."""
    environment: Dict[str, str] = field(default_factory=dict)
    connectivity_status: Optional[int] = None
    connectivity_error: Optional[str] = None
    probes: List[ProbeResult] = field(default_factory=list)
    resolution: Optional[ReleaseQueryResult] = None

    @property
    def resolved(self) -> bool:
        return isinstance(self.resolution, Resolved)


def collect_environment(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Gather the environment facts the original shell probes printed."""
    environ = os.environ if environ is None else environ
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = 'unknown'

    facts = {
        'user': user,
        'cwd': os.getcwd(),
        'in_docker': str(Path('/.dockerenv').exists()),
    }
    for name in ENVIRONMENT_VARIABLES:
        facts[name] = environ.get(name, 'not set')
    return facts


class EndpointDiagnostics:
    """
    Runs connectivity and header-set probes against a release endpoint.
    """

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 10.0):
        self.logger = logging.getLogger(__name__)
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def check_connectivity(self, url: str) -> tuple[Optional[int], Optional[str]]:
        """
        GET url and return (status, error).
        """
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            self.logger.error(f"HTTPS connection to {url} failed: {e}")
            return None, str(e)

        self.logger.info(f"HTTPS connection to {url}: HTTP {response.status_code}")
        return response.status_code, None

    def probe(self, endpoint: str, header_set: HeaderSet) -> ProbeResult:
        """Issue one request with header_set and record what came back."""
        result = ProbeResult(header_set=header_set.name)
        try:
            response = self.session.get(
                endpoint, headers=dict(header_set.headers), timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            result.error = str(e)
            return result

        result.status = response.status_code
        result.rate_limit_remaining = response.headers.get('X-RateLimit-Remaining')
        result.rate_limit_reset = response.headers.get('X-RateLimit-Reset')

        try:
            body = response.json()
        except ValueError:
            body = None
        result.has_tag_name = isinstance(body, dict) and 'tag_name' in body

        if response.status_code == 200:
            try:
                result.version = extract_version(response.content)
            except VersionParseError as e:
                result.error = str(e)
        return result

    def run(self, api_base_url: str, query: ReleaseQuery,
            resolver: Optional[VersionResolver] = None) -> DiagnosticReport:
        """Run every probe and a full resolution."""
        report = DiagnosticReport()

        self.logger.info("=== Environment ===")
        report.environment = collect_environment()
        for key, value in report.environment.items():
            self.logger.info(f"{key}: {value}")

        self.logger.info("=== Connectivity ===")
        report.connectivity_status, report.connectivity_error = (
            self.check_connectivity(api_base_url)
        )

        self.logger.info("=== Header set probes ===")
        for header_set in query.header_sets:
            probe = self.probe(query.endpoint, header_set)
            report.probes.append(probe)
            if probe.version is not None:
                self.logger.info(probe.describe())
            else:
                self.logger.warning(probe.describe())

        self.logger.info("=== Resolution ===")
        resolver = resolver or VersionResolver(session=self.session)
        report.resolution = resolver.resolve(query)
        if report.resolved:
            self.logger.info(f"Resolved version: {report.resolution.version}")
        else:
            self.logger.error(
                f"Resolution failed: {report.resolution.reason.value} "
                f"(last status: {report.resolution.last_status})"
            )
        return report


def run_diagnostics(config_manager: ConfigManager,
                    session: Optional[requests.Session] = None) -> DiagnosticReport:
    """Run the full diagnostic suite with settings from config_manager."""
    diagnostics = EndpointDiagnostics(session=session, timeout=config_manager.get_timeout())
    return diagnostics.run(
        config_manager.get_api_base_url(),
        config_manager.build_release_query(),
    )
