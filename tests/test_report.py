"""
Tests for intunebatch.report module.

Tests CSV report generation including:
- Exact package report column set
- Per-detection-type cell population
- MSI and registry listing rows
- UTF-8 with BOM output
"""

from __future__ import annotations

import csv
from pathlib import Path

import pytest

from intunebatch.msi import ExtractionFailure
from intunebatch.report import (
    PACKAGE_COLUMNS,
    msi_row,
    package_row,
    registry_row,
    write_package_report,
)
from intunebatch.results import STATUS_FAILED, STATUS_SUCCESS, PackageResult
from intunebatch.synthesis import (
    UNINSTALL_NOT_AUTOMATED,
    FileFallbackDetection,
    MSIDetection,
    RegistryDetection,
)

# All tests in this file are unit tests (fast, mocked)
pytestmark = pytest.mark.unit


def _result(rule, status=STATUS_SUCCESS, **kwargs) -> PackageResult:
    defaults = {
        "app_name": "App",
        "file_name": "App.exe",
        "install_command": "App.exe /S",
        "uninstall_command": UNINSTALL_NOT_AUTOMATED,
    }
    defaults.update(kwargs)
    return PackageResult(detection_rule=rule, status=status, **defaults)


class TestPackageColumns:
    """Tests for the report column set."""

    def test_exact_column_order(self):
        """Test the column names and their order."""
        assert PACKAGE_COLUMNS == (
            "AppName",
            "FileName",
            "InstallCommand",
            "UninstallCommand",
            "DetectionType",
            "MSIProductCode",
            "RegistryKeyPath",
            "RegistryValueName",
            "RegistryOperator",
            "RegistryValue",
            "Is32BitApp",
            "Status",
        )


class TestPackageRow:
    """Tests for per-installer rows."""

    def test_msi_rule(self, chrome_metadata):
        """Test that only the product code cell is filled for MSI rules."""
        rule = MSIDetection(chrome_metadata.product_code, chrome_metadata.registry_path)

        row = package_row(_result(rule, app_name="Chrome", file_name="Chrome.msi"))

        assert row["DetectionType"] == "MSI"
        assert row["MSIProductCode"] == chrome_metadata.product_code
        assert row["RegistryKeyPath"] == ""
        assert row["Is32BitApp"] == ""
        assert row["Status"] == "Success"

    def test_registry_rule(self):
        """Test the registry cells."""
        rule = RegistryDetection(
            key_path="HKEY_LOCAL_MACHINE\\SOFTWARE\\WOW6432Node\\X", value="X 1.0", is_32bit=True
        )

        row = package_row(_result(rule))

        assert row["DetectionType"] == "Registry"
        assert row["RegistryKeyPath"] == "HKEY_LOCAL_MACHINE\\SOFTWARE\\WOW6432Node\\X"
        assert row["RegistryValueName"] == "DisplayName"
        assert row["RegistryOperator"] == "Equals"
        assert row["RegistryValue"] == "X 1.0"
        assert row["Is32BitApp"] == "True"
        assert row["MSIProductCode"] == ""

    def test_file_fallback_rule(self):
        """Test that a fallback row leaves every rule cell empty."""
        row = package_row(_result(FileFallbackDetection(), status=STATUS_FAILED))

        assert row["DetectionType"] == "File"
        assert row["Status"] == "Failed"
        assert all(
            row[column] == ""
            for column in PACKAGE_COLUMNS
            if column.startswith(("MSI", "Registry")) or column == "Is32BitApp"
        )

    def test_row_has_exactly_the_columns(self):
        """Test that rows have no extra keys."""
        assert tuple(package_row(_result(FileFallbackDetection()))) == PACKAGE_COLUMNS


class TestListingRows:
    """Tests for msi-info and registry listing rows."""

    def test_msi_row_success(self, chrome_metadata):
        row = msi_row("Chrome.msi", chrome_metadata)

        assert row["ProductCode"] == chrome_metadata.product_code
        assert row["RegistryPath"] == chrome_metadata.registry_path
        assert row["Error"] == ""

    def test_msi_row_failure(self):
        row = msi_row("broken.msi", ExtractionFailure(Path("broken.msi"), "corrupt"))

        assert row["Error"] == "corrupt"
        assert row["ProductCode"] == ""

    def test_registry_row(self, installed_apps):
        row = registry_row(installed_apps[2])

        assert row["DisplayName"] == "WinSCP 6.1.2"
        assert row["Is32BitApp"] == "True"
        assert row["QuietUninstallString"] == ""


class TestWritePackageReport:
    """Tests for CSV output."""

    def test_writes_header_and_rows(self, tmp_path):
        """Test that the CSV round-trips through the csv module."""
        path = tmp_path / "reports" / "report.csv"
        results = [
            _result(FileFallbackDetection(), app_name="A", file_name="A.exe"),
            _result(FileFallbackDetection(), app_name="B", file_name="B.exe"),
        ]

        written = write_package_report(path, results)

        assert written == path
        with path.open(encoding="utf-8-sig", newline="") as f:
            rows = list(csv.DictReader(f))
        assert [r["AppName"] for r in rows] == ["A", "B"]
        assert tuple(rows[0]) == PACKAGE_COLUMNS

    def test_utf8_bom(self, tmp_path):
        """Test that the file starts with a BOM for Excel."""
        path = tmp_path / "report.csv"

        write_package_report(path, [])

        assert path.read_bytes().startswith(b"\xef\xbb\xbf")

    def test_commands_with_quotes_and_commas(self, tmp_path):
        """Test that quoted command lines survive CSV escaping."""
        path = tmp_path / "report.csv"
        command = 'msiexec /i "My, App.msi" /qn /norestart'

        write_package_report(path, [_result(FileFallbackDetection(), install_command=command)])

        with path.open(encoding="utf-8-sig", newline="") as f:
            row = next(csv.DictReader(f))
        assert row["InstallCommand"] == command
