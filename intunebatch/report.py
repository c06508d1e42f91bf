# Copyright 2026 The intunebatch Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""CSV reports for intunebatch.

Three report shapes are written:

- Package report: one row per processed installer (PACKAGE_COLUMNS)
- MSI report: one row per queried MSI (MSI_COLUMNS)
- Registry report: one row per installed application (REGISTRY_COLUMNS)

Cells that do not apply to a row (e.g. registry columns for an MSI
detection rule) are left empty. Files are written as UTF-8 with BOM so
Excel opens them with the right encoding.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import csv
from pathlib import Path

from intunebatch.msi import ExtractionFailure, MSIMetadata
from intunebatch.registry import InstalledApplication
from intunebatch.results import PackageResult
from intunebatch.synthesis import MSIDetection, RegistryDetection

__all__ = [
    "PACKAGE_COLUMNS",
    "MSI_COLUMNS",
    "REGISTRY_COLUMNS",
    "package_row",
    "msi_row",
    "registry_row",
    "write_csv",
    "write_package_report",
]

PACKAGE_COLUMNS = (
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

MSI_COLUMNS = (
    "FileName",
    "ProductCode",
    "ProductName",
    "ProductVersion",
    "Manufacturer",
    "RegistryPath",
    "Error",
)

REGISTRY_COLUMNS = (
    "DisplayName",
    "DisplayVersion",
    "Publisher",
    "InstallLocation",
    "InstallDate",
    "UninstallString",
    "QuietUninstallString",
    "RegistryKeyPath",
    "Is32BitApp",
)


def package_row(result: PackageResult) -> dict[str, str]:
    rule = result.detection_rule
    row = dict.fromkeys(PACKAGE_COLUMNS, "")
    row.update(
        AppName=result.app_name,
        FileName=result.file_name,
        InstallCommand=result.install_command,
        UninstallCommand=result.uninstall_command,
        DetectionType=rule.detection_type,
        Status=result.status,
    )
    if isinstance(rule, MSIDetection):
        row["MSIProductCode"] = rule.product_code
    elif isinstance(rule, RegistryDetection):
        row.update(
            RegistryKeyPath=rule.key_path,
            RegistryValueName=rule.value_name,
            RegistryOperator=rule.operator,
            RegistryValue=rule.value,
            Is32BitApp=str(rule.is_32bit),
        )
    return row


def msi_row(file_name: str, result: MSIMetadata | ExtractionFailure) -> dict[str, str]:
    row = dict.fromkeys(MSI_COLUMNS, "")
    row["FileName"] = file_name
    if isinstance(result, ExtractionFailure):
        row["Error"] = result.cause
    else:
        row.update(
            ProductCode=result.product_code,
            ProductName=result.product_name,
            ProductVersion=result.product_version,
            Manufacturer=result.manufacturer,
            RegistryPath=result.registry_path,
        )
    return row


def registry_row(app: InstalledApplication) -> dict[str, str]:
    return {
        "DisplayName": app.display_name,
        "DisplayVersion": app.display_version,
        "Publisher": app.publisher,
        "InstallLocation": app.install_location,
        "InstallDate": app.install_date,
        "UninstallString": app.uninstall_string or "",
        "QuietUninstallString": app.quiet_uninstall_string or "",
        "RegistryKeyPath": app.key_path,
        "Is32BitApp": str(app.is_32bit),
    }


def write_csv(
    path: Path, columns: Sequence[str], rows: Iterable[dict[str, str]]
) -> Path:
    """Write rows to a CSV file with a header row.

    Args:
        path: Output file. Parent directories are created.
        columns: Column names, in output order.
        rows: Row dicts keyed by column name.

    Returns:
        The written path.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8-sig", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(columns))
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
    return path


def write_package_report(path: Path, results: Iterable[PackageResult]) -> Path:
    """Write the per-installer package report."""
    from intunebatch.logging import get_global_logger

    logger = get_global_logger()
    written = write_csv(path, PACKAGE_COLUMNS, (package_row(r) for r in results))
    logger.verbose("REPORT", f"Report written: {written}")
    return written
