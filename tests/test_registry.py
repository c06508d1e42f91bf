"""
Tests for intunebatch.registry module.

Tests installed-application lookup including:
- Substring matching on DisplayName (case-insensitive)
- Native root searched before WOW6432Node (first match wins)
- Filtering for the registry listing command
- Non-Windows behavior

Registry access itself is Windows-only; enumeration is mocked here.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from intunebatch.registry import (
    UNINSTALL_ROOTS,
    RegistryMatch,
    enumerate_installed_applications,
    filter_installed_applications,
    find_registry_match,
    match_installed_application,
)

# All tests in this file are unit tests (fast, mocked)
pytestmark = pytest.mark.unit


class TestUninstallRoots:
    """Tests for the fixed registry search roots."""

    def test_native_root_searched_first(self):
        """Test that the 64-bit root comes before WOW6432Node."""
        (first, first_is_32), (second, second_is_32) = UNINSTALL_ROOTS

        assert "WOW6432Node" not in first
        assert first_is_32 is False
        assert "WOW6432Node" in second
        assert second_is_32 is True


class TestMatchInstalledApplication:
    """Tests for display name matching."""

    def test_substring_match(self, installed_apps):
        """Test that the app name only has to appear in DisplayName."""
        match = match_installed_application("WinSCP", installed_apps)

        assert match is not None
        assert match.display_name == "WinSCP 6.1.2"
        assert match.is_32bit_on_wow64 is True

    def test_case_insensitive(self, installed_apps):
        """Test that matching ignores case."""
        match = match_installed_application("winscp", installed_apps)

        assert match is not None
        assert match.display_name == "WinSCP 6.1.2"

    def test_native_root_wins_over_wow64(self, installed_apps):
        """Test that a native match beats a WOW6432Node match."""
        match = match_installed_application("Notepad++", installed_apps)

        assert match is not None
        assert match.display_name == "Notepad++ (64-bit x64)"
        assert match.is_32bit_on_wow64 is False
        assert "WOW6432Node" not in match.key_path

    def test_no_match_returns_none(self, installed_apps):
        """Test a miss across both roots."""
        assert match_installed_application("Firefox", installed_apps) is None

    def test_empty_app_name_returns_none(self, installed_apps):
        """Test that an empty name never matches everything."""
        assert match_installed_application("", installed_apps) is None

    def test_full_installer_name_does_not_match(self, installed_apps):
        """Test the known limitation: versioned file names rarely match."""
        assert match_installed_application("7z2301-x64", installed_apps) is None

    def test_match_carries_uninstall_strings(self, installed_apps):
        """Test that uninstall strings are copied onto the match."""
        match = match_installed_application("7-Zip", installed_apps)

        assert match == RegistryMatch.from_installed(installed_apps[0])
        assert match.quiet_uninstall_string.endswith("/S")


class TestFilterInstalledApplications:
    """Tests for listing filters."""

    def test_no_filter_returns_all(self, installed_apps):
        """Test that None keeps every entry."""
        assert filter_installed_applications(installed_apps, None) == installed_apps

    def test_filter_keeps_all_matches_in_order(self, installed_apps):
        """Test that every matching entry is returned."""
        apps = filter_installed_applications(installed_apps, "notepad")

        assert [a.display_name for a in apps] == [
            "Notepad++ (64-bit x64)",
            "Notepad++ (32-bit x86)",
        ]


class TestNonWindows:
    """Tests for behavior on hosts without a registry."""

    @patch("intunebatch.registry.sys")
    def test_enumerate_raises_off_windows(self, mock_sys):
        """Test that enumeration is refused outside Windows."""
        mock_sys.platform = "linux"

        with pytest.raises(NotImplementedError, match="only available on Windows"):
            enumerate_installed_applications()

    @patch("intunebatch.registry.enumerate_installed_applications")
    def test_find_returns_none_when_unavailable(self, mock_enumerate):
        """Test that lookup degrades to 'no match'."""
        mock_enumerate.side_effect = NotImplementedError("not windows")

        assert find_registry_match("Chrome") is None

    @patch("intunebatch.registry.enumerate_installed_applications")
    def test_find_uses_enumeration(self, mock_enumerate, installed_apps):
        """Test that lookup matches against the enumerated entries."""
        mock_enumerate.return_value = installed_apps

        match = find_registry_match("7-Zip")

        assert match is not None
        assert match.key_path.endswith("\\Uninstall\\7-Zip")
