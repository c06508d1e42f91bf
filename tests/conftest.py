"""
Pytest configuration and shared fixtures for intunebatch tests.

This module provides reusable fixtures and test utilities used across
the test suite.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml

from intunebatch.logging import SilentLogger, set_global_logger
from intunebatch.msi import MSIMetadata
from intunebatch.registry import InstalledApplication

NATIVE_ROOT = "HKEY_LOCAL_MACHINE\\SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\Uninstall"
WOW64_ROOT = (
    "HKEY_LOCAL_MACHINE\\SOFTWARE\\WOW6432Node\\Microsoft\\Windows\\CurrentVersion\\Uninstall"
)


@pytest.fixture(autouse=True)
def silent_global_logger():
    """Reset the global logger so one test's CLI run can't leak output."""
    set_global_logger(SilentLogger())
    yield
    set_global_logger(SilentLogger())


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def installer_dir(tmp_test_dir: Path) -> Path:
    """
    Provide a source directory with a realistic mix of files.

    Contains two MSI installers, one EXE installer and files that are not
    installers (which discovery must skip).
    """
    source = tmp_test_dir / "installers"
    source.mkdir()
    (source / "Chrome.msi").write_bytes(b"msi")
    (source / "7z2301-x64.exe").write_bytes(b"exe")
    (source / "Broken.MSI").write_bytes(b"not really an msi")
    (source / "readme.txt").write_text("notes")
    (source / "subdir").mkdir()
    (source / "subdir" / "Nested.exe").write_bytes(b"exe")
    return source


@pytest.fixture
def create_yaml_file(tmp_test_dir: Path):
    """
    Factory fixture for creating temporary YAML files.

    Usage:
        yaml_path = create_yaml_file("test.yaml", {"key": "value"})
    """

    def _create(filename: str, data: Any) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f)
        return path

    return _create


@pytest.fixture
def chrome_metadata() -> MSIMetadata:
    """Provide MSI metadata as read from an enterprise Chrome MSI."""
    return MSIMetadata(
        product_code="{8A69D345-D564-463C-AFF1-A69D9E530F96}",
        product_name="Google Chrome",
        product_version="120.0.6099.130",
        manufacturer="Google LLC",
    )


@pytest.fixture
def installed_apps() -> list[InstalledApplication]:
    """
    Provide installed applications in search order.

    Native-root entries come first, then WOW6432Node entries, the same
    order enumerate_installed_applications() returns them in.
    """
    return [
        InstalledApplication(
            key_path=f"{NATIVE_ROOT}\\7-Zip",
            display_name="7-Zip 23.01 (x64)",
            display_version="23.01",
            publisher="Igor Pavlov",
            install_location="C:\\Program Files\\7-Zip\\",
            uninstall_string='"C:\\Program Files\\7-Zip\\Uninstall.exe"',
            quiet_uninstall_string='"C:\\Program Files\\7-Zip\\Uninstall.exe" /S',
        ),
        InstalledApplication(
            key_path=f"{NATIVE_ROOT}\\Notepad++",
            display_name="Notepad++ (64-bit x64)",
            display_version="8.6",
            publisher="Notepad++ Team",
            uninstall_string='"C:\\Program Files\\Notepad++\\uninstall.exe"',
        ),
        InstalledApplication(
            key_path=f"{WOW64_ROOT}\\WinSCP3_is1",
            display_name="WinSCP 6.1.2",
            display_version="6.1.2",
            publisher="Martin Prikryl",
            uninstall_string='"C:\\Program Files (x86)\\WinSCP\\unins000.exe"',
            is_32bit=True,
        ),
        InstalledApplication(
            key_path=f"{WOW64_ROOT}\\Notepad++",
            display_name="Notepad++ (32-bit x86)",
            display_version="8.6",
            is_32bit=True,
        ),
    ]
