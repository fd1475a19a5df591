"""
Script: tests/test_main.py
What: Tests for the `release-installer` command line entry point.
Doing: Runs `main()` with patched controllers and checks exit codes and output.
Why: CI steps rely on a non-zero exit and a readable reason on failure.
"""

from __future__ import annotations

import contextlib
import io
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from release_installer import main as main_module
from release_installer.core.models import Failed, FailureReason
from release_installer.utils.error_handling import ResolutionError


class MainTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.config_file = Path(self._tmp.name) / "config.ini"

        patcher = mock.patch.object(main_module, "setup_global_error_handling")
        patcher.start()
        self.addCleanup(patcher.stop)

    def run_main(self, *argv: str) -> tuple[int, str, str]:
        stdout, stderr = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
            code = main_module.main([*argv, "--config", str(self.config_file)])
        return code, stdout.getvalue(), stderr.getvalue()

    def test_parser_defaults_to_install(self) -> None:
        args = main_module.build_parser().parse_args([])
        self.assertEqual(args.command, "install")
        self.assertFalse(args.verbose)

    def test_resolve_prints_bare_version(self) -> None:
        with mock.patch.object(
            main_module.InstallationController, "resolve_version", return_value="10.1.5"
        ):
            code, out, _err = self.run_main("resolve")

        self.assertEqual(code, 0)
        self.assertEqual(out, "10.1.5\n")

    def test_resolution_failure_exits_non_zero_with_reason(self) -> None:
        failed = Failed(last_status=None, attempts=9, reason=FailureReason.NETWORK_ERROR)
        with mock.patch.object(
            main_module.InstallationController,
            "resolve_version",
            side_effect=ResolutionError(failed),
        ):
            code, out, err = self.run_main("resolve")

        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("NetworkError", err)
        self.assertIn("no response", err)

    def test_install_runs_controller(self) -> None:
        with mock.patch.object(main_module.InstallationController, "run", return_value=[]) as run:
            code, _out, _err = self.run_main("install")

        self.assertEqual(code, 0)
        run.assert_called_once_with()

    def test_diagnose_exit_code_follows_resolution(self) -> None:
        report = mock.Mock(resolved=False)
        with mock.patch.object(main_module, "run_diagnostics", return_value=report):
            code, _out, _err = self.run_main("diagnose")
        self.assertEqual(code, 1)

    def test_bad_url_template_exits_non_zero_with_reason(self) -> None:
        self.config_file.write_text(
            "[install]\ndownload_url_template = https://example.org/{os}/{version}.tar.gz\n",
            encoding="utf-8",
        )
        with mock.patch.dict(os.environ, {"TARGETPLATFORM": "linux/amd64"}), \
                mock.patch.object(
                    main_module.InstallationController, "resolve_version", return_value="10.1.5"
                ):
            code, _out, err = self.run_main("install")

        self.assertEqual(code, 1)
        self.assertTrue(err.startswith("Error: "))
        self.assertIn("{os}", err)

    def test_interrupt_exits_130(self) -> None:
        with mock.patch.object(
            main_module.InstallationController, "run", side_effect=KeyboardInterrupt
        ):
            code, _out, err = self.run_main()
        self.assertEqual(code, 130)
        self.assertIn("Interrupted", err)


if __name__ == "__main__":
    unittest.main()
