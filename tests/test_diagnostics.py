from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

import requests

from release_installer.core.config import ConfigManager
from release_installer.core.diagnostics import (
    EndpointDiagnostics,
    ProbeResult,
    collect_environment,
    run_diagnostics,
)
from release_installer.core.models import FailureReason, HeaderSet
from tests.fakes import FakeSession, make_response


ENDPOINT = "https://api.github.com/repos/mitmproxy/mitmproxy/releases/latest"


class ProbeTests(unittest.TestCase):
    def test_probe_records_version_and_rate_limit_headers(self) -> None:
        session = FakeSession([
            make_response(
                200,
                {"tag_name": "v10.1.5"},
                {"X-RateLimit-Remaining": "59", "X-RateLimit-Reset": "1700000000"},
            ),
        ])
        probe = EndpointDiagnostics(session=session).probe(ENDPOINT, HeaderSet("baseline"))

        self.assertEqual(probe.status, 200)
        self.assertTrue(probe.has_tag_name)
        self.assertEqual(probe.version, "10.1.5")
        self.assertEqual(probe.rate_limit_remaining, "59")

    def test_rate_limited_forbidden(self) -> None:
        session = FakeSession([
            make_response(403, {"message": "API rate limit exceeded"}, {"X-RateLimit-Remaining": "0"}),
        ])
        probe = EndpointDiagnostics(session=session).probe(ENDPOINT, HeaderSet("baseline"))

        self.assertTrue(probe.rate_limited)
        self.assertFalse(probe.has_tag_name)
        self.assertIn("rate limit", probe.describe())

    def test_forbidden_without_rate_limit_points_at_headers(self) -> None:
        probe = ProbeResult(header_set="baseline", status=403, rate_limit_remaining="42")
        self.assertFalse(probe.rate_limited)
        self.assertIn("User-Agent", probe.describe())

    def test_network_failure(self) -> None:
        session = FakeSession([requests.exceptions.ConnectionError("refused")])
        probe = EndpointDiagnostics(session=session).probe(ENDPOINT, HeaderSet("baseline"))

        self.assertIsNone(probe.status)
        self.assertIn("refused", probe.error)
        self.assertIn("no response", probe.describe())

    def test_ok_without_tag(self) -> None:
        session = FakeSession([make_response(200, {"message": "hello"})])
        probe = EndpointDiagnostics(session=session).probe(ENDPOINT, HeaderSet("baseline"))

        self.assertIsNone(probe.version)
        self.assertIn("no version", probe.describe())


class RunDiagnosticsTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        config_file = Path(self._tmp.name) / "config.ini"
        config_file.write_text("[release]\nmax_retries = 0\nretry_delay = 0\n", encoding="utf-8")
        self.config = ConfigManager(config_file)

    def test_report_with_successful_resolution(self) -> None:
        session = FakeSession([
            make_response(200, {"current_user_url": "https://api.github.com/user"}),
            make_response(403),
            make_response(200, {"tag_name": "v10.1.5"}),
            make_response(200, {"tag_name": "v10.1.5"}),
            make_response(403),
            make_response(200, {"tag_name": "v10.1.5"}),
        ])

        report = run_diagnostics(self.config, session=session)

        self.assertEqual(report.connectivity_status, 200)
        self.assertEqual([p.status for p in report.probes], [403, 200, 200])
        self.assertTrue(report.resolved)
        self.assertEqual(report.resolution.version, "10.1.5")
        self.assertEqual(report.resolution.attempt_index, 1)
        self.assertIn("GITHUB_ACTIONS", report.environment)

    def test_report_with_failed_resolution(self) -> None:
        session = FakeSession([requests.exceptions.ConnectionError("offline")] * 7)

        report = run_diagnostics(self.config, session=session)

        self.assertIsNone(report.connectivity_status)
        self.assertIsNotNone(report.connectivity_error)
        self.assertFalse(report.resolved)
        self.assertEqual(report.resolution.reason, FailureReason.NETWORK_ERROR)


class EnvironmentTests(unittest.TestCase):
    def test_collect_environment_reports_unset_variables(self) -> None:
        facts = collect_environment({"GITHUB_ACTIONS": "true"})
        self.assertEqual(facts["GITHUB_ACTIONS"], "true")
        self.assertEqual(facts["GITHUB_RUN_ID"], "not set")
        self.assertIn(facts["in_docker"], {"True", "False"})


if __name__ == "__main__":
    unittest.main()
