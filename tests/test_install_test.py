"""
Tests for intunebatch.install_test module.

Tests installer execution for switch testing including:
- Exit code interpretation (0 and 3010 are success)
- Timeout handling (process killed, counts as failure)
- Argument splitting and working directory

Processes are mocked; no installer is executed.
"""

from __future__ import annotations

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from intunebatch.install_test import InstallTester, run_installer

# All tests in this file are unit tests (fast, mocked)
pytestmark = pytest.mark.unit


def _process(exit_code: int | None = 0, timeout: bool = False) -> MagicMock:
    process = MagicMock()
    if timeout:
        process.wait.side_effect = [subprocess.TimeoutExpired("setup.exe", 5), -9]
    else:
        process.wait.return_value = exit_code
    return process


class TestRunInstaller:
    """Tests for process execution."""

    @patch("intunebatch.install_test.subprocess.Popen")
    def test_returns_exit_code(self, mock_popen, tmp_path):
        """Test that the exit code is passed through."""
        mock_popen.return_value = _process(1603)

        assert run_installer(tmp_path / "setup.exe", ["/S"], timeout=5) == 1603

    @patch("intunebatch.install_test.subprocess.Popen")
    def test_command_and_cwd(self, mock_popen, tmp_path):
        """Test the command line and working directory."""
        mock_popen.return_value = _process(0)
        installer = tmp_path / "setup.exe"

        run_installer(installer, ["/silent", "/norestart"], timeout=5)

        args, kwargs = mock_popen.call_args
        assert args[0] == [str(installer), "/silent", "/norestart"]
        assert kwargs["cwd"] == str(tmp_path)

    @patch("intunebatch.install_test.subprocess.Popen")
    def test_timeout_kills_process(self, mock_popen, tmp_path):
        """Test that a hung installer is killed and reaped."""
        process = _process(timeout=True)
        mock_popen.return_value = process

        result = run_installer(tmp_path / "setup.exe", ["/S"], timeout=5)

        assert result is None
        process.kill.assert_called_once()
        assert process.wait.call_count == 2

    @patch("intunebatch.install_test.subprocess.Popen")
    def test_launch_failure_propagates(self, mock_popen, tmp_path):
        """Test that launch errors reach the caller."""
        mock_popen.side_effect = OSError("not a valid Win32 application")

        with pytest.raises(OSError):
            run_installer(tmp_path / "setup.exe", ["/S"], timeout=5)


class TestInstallTester:
    """Tests for the callable tester."""

    @pytest.mark.parametrize(
        "exit_code, expected",
        [(0, True), (3010, True), (1, False), (1602, False), (1641, False)],
    )
    @patch("intunebatch.install_test.subprocess.Popen")
    def test_exit_codes(self, mock_popen, exit_code, expected, tmp_path):
        """Test which exit codes count as success."""
        mock_popen.return_value = _process(exit_code)
        tester = InstallTester(tmp_path, timeout=5)

        assert tester("setup.exe", "/S") is expected

    @patch("intunebatch.install_test.subprocess.Popen")
    def test_timeout_is_failure(self, mock_popen, tmp_path):
        """Test that a timed-out candidate is rejected."""
        mock_popen.return_value = _process(timeout=True)
        tester = InstallTester(tmp_path, timeout=5)

        assert tester("setup.exe", "/VERYSILENT /NORESTART") is False

    @patch("intunebatch.install_test.run_installer", return_value=0)
    def test_switches_split_and_timeout_passed(self, mock_run, tmp_path):
        """Test that switch strings become separate arguments."""
        tester = InstallTester(tmp_path, timeout=42)

        tester("setup.exe", "/SP- /VERYSILENT /SUPPRESSMSGBOXES")

        mock_run.assert_called_once_with(
            tmp_path / "setup.exe", ["/SP-", "/VERYSILENT", "/SUPPRESSMSGBOXES"], 42
        )
