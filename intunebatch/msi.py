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

"""MSI metadata extraction for intunebatch.

This module reads the ProductCode, ProductName, ProductVersion and
Manufacturer properties from a Windows Installer (MSI) database. It tries
multiple backends in order of preference to maximize cross-platform
compatibility.

Backend Priority:

On Windows:

1. msilib (Python standard library, removed in Python 3.13)
2. PowerShell COM (WindowsInstaller.Installer, always available)

On Linux/macOS:

1. msiinfo (from msitools package, must be installed separately)

A backend that fails falls through to the next one. Only when every
available backend has failed is extraction reported as failed.

Installation Requirements:

Linux/macOS:

- Install msitools package:
    - Debian/Ubuntu: `sudo apt-get install msitools`
    - RHEL/Fedora: `sudo dnf install msitools`
    - macOS: `brew install msitools`

Example:
    Extract metadata from an MSI:

        from pathlib import Path
        from intunebatch.msi import ExtractionFailure, extract_msi_metadata

        result = extract_msi_metadata(Path("Chrome.msi"))
        if isinstance(result, ExtractionFailure):
            print(f"Extraction failed: {result.cause}")
        else:
            print(result.product_code, result.registry_path)

Note:
    This is pure file introspection; nothing is installed. Extraction
    failure is not fatal for a batch run: command synthesis falls through to
    the registry or file-fallback detection path.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import re
import shutil
import subprocess
import sys

try:
    import msilib  # type: ignore  # Windows-only standard library module
except ImportError:
    msilib = None  # type: ignore

from intunebatch.exceptions import PackagingError

__all__ = [
    "MSI_PROPERTIES",
    "NATIVE_UNINSTALL_PREFIX",
    "MSIMetadata",
    "ExtractionFailure",
    "extract_msi_metadata",
    "read_msi_properties",
]

MSI_PROPERTIES = ("ProductCode", "ProductName", "ProductVersion", "Manufacturer")

NATIVE_UNINSTALL_PREFIX = (
    "HKEY_LOCAL_MACHINE\\SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\Uninstall\\"
)

PRODUCT_CODE_PATTERN = re.compile(
    r"^\{[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}\}$"
)


@dataclass(frozen=True)
class MSIMetadata:
    """Properties read from an MSI Property table.

    Attributes:
        product_code: ProductCode GUID in braces, e.g.
            "{8A69D345-D564-463C-AFF1-A69D9E530F96}".
        product_name: ProductName, may be empty.
        product_version: ProductVersion, may be empty.
        manufacturer: Manufacturer, may be empty.
    """

    product_code: str
    product_name: str = ""
    product_version: str = ""
    manufacturer: str = ""

    @property
    def registry_path(self) -> str:
        """Uninstall registry key Windows Installer creates for this product."""
        return f"{NATIVE_UNINSTALL_PREFIX}{self.product_code}"


@dataclass(frozen=True)
class ExtractionFailure:
    """Why MSI metadata could not be read.

    Attributes:
        file_path: MSI that was queried.
        cause: Human-readable reason (corrupt file, missing property, no
            backend available, ...).
    """

    file_path: Path
    cause: str


def _is_windows() -> bool:
    return sys.platform.startswith("win")


def _parse_property_lines(output: str) -> dict[str, str]:
    """Parse "Name<TAB>Value" lines, keeping only the properties we query."""
    properties: dict[str, str] = {}
    for line in output.splitlines():
        parts = line.strip().split("\t", 1)
        if len(parts) == 2 and parts[0] in MSI_PROPERTIES:
            properties[parts[0]] = parts[1].strip()
    return properties


def _read_via_msilib(p: Path) -> dict[str, str]:
    db = msilib.OpenDatabase(str(p), msilib.MSIDBOPEN_READONLY)
    properties: dict[str, str] = {}
    try:
        for name in MSI_PROPERTIES:
            view = db.OpenView(
                f"SELECT `Value` FROM `Property` WHERE `Property`='{name}'"
            )
            view.Execute(None)
            rec = view.Fetch()
            if rec is not None:
                properties[name] = rec.GetString(1)
            view.Close()
    finally:
        db.Close()
    return properties


def _read_via_powershell(p: Path) -> dict[str, str]:
    names = ", ".join(f"'{name}'" for name in MSI_PROPERTIES)
    # Single quotes are escaped by doubling inside a PowerShell literal
    msi_path = str(p).replace("'", "''")
    ps_script = f"""
$installer = New-Object -ComObject WindowsInstaller.Installer
$db = $installer.GetType().InvokeMember('OpenDatabase', 'InvokeMethod', $null, $installer, @('{msi_path}', 0))
foreach ($name in @({names})) {{
    $query = "SELECT Value FROM Property WHERE Property='$name'"
    $view = $db.GetType().InvokeMember('OpenView', 'InvokeMethod', $null, $db, @($query))
    $view.GetType().InvokeMember('Execute', 'InvokeMethod', $null, $view, $null)
    $record = $view.GetType().InvokeMember('Fetch', 'InvokeMethod', $null, $view, $null)
    if ($record) {{
        $value = $record.GetType().InvokeMember('StringData', 'GetProperty', $null, $record, 1)
        Write-Output "$name`t$value"
    }}
    $view.GetType().InvokeMember('Close', 'InvokeMethod', $null, $view, $null)
}}
"""
    result = subprocess.run(
        ["powershell", "-NoProfile", "-NonInteractive", "-Command", ps_script],
        check=True,
        capture_output=True,
        text=True,
        timeout=30,
    )
    return _parse_property_lines(result.stdout)


def _read_via_msiinfo(msiinfo: str, p: Path) -> dict[str, str]:
    # msiinfo export <package> Property -> stdout (tab-separated)
    result = subprocess.run(
        [msiinfo, "export", str(p), "Property"],
        check=True,
        capture_output=True,
        text=True,
        timeout=30,
    )
    return _parse_property_lines(result.stdout)


def read_msi_properties(file_path: str | Path) -> dict[str, str]:
    """Read the fixed MSI property set using the first working backend.

    Args:
        file_path: Path to the MSI file.

    Returns:
        Mapping of property name to value for every property in
        MSI_PROPERTIES that the database defines.

    Raises:
        FileNotFoundError: If the MSI file doesn't exist.
        PackagingError: If every available backend failed, or none is
            available on this host.
    """
    from intunebatch.logging import get_global_logger

    logger = get_global_logger()
    p = Path(file_path)
    if not p.exists():
        raise FileNotFoundError(f"MSI not found: {p}")

    logger.verbose("MSI", f"Reading properties from: {p.name}")

    backends = []
    if _is_windows():
        if msilib is not None:
            backends.append(("msilib", lambda: _read_via_msilib(p)))
        backends.append(("PowerShell COM", lambda: _read_via_powershell(p)))
    msiinfo = shutil.which("msiinfo")
    if msiinfo:
        backends.append(("msiinfo", lambda: _read_via_msiinfo(msiinfo, p)))

    if not backends:
        logger.debug("MSI", "No MSI extraction backend available on this system")
        raise PackagingError(
            "MSI property extraction is not available on this host. "
            "On Windows, ensure PowerShell is available. "
            "On Linux/macOS, install 'msitools'."
        )

    errors = []
    for name, read in backends:
        logger.debug("MSI", f"Trying backend: {name}...")
        try:
            properties = read()
        except subprocess.CalledProcessError as err:
            detail = (err.stderr or "").strip() or f"exit code {err.returncode}"
            errors.append(f"{name}: {detail}")
        except subprocess.TimeoutExpired:
            errors.append(f"{name}: timed out")
        except Exception as err:
            errors.append(f"{name}: {err}")
        else:
            if properties:
                logger.debug("MSI", f"Success via {name}")
                return properties
            errors.append(f"{name}: no properties returned")
        logger.debug("MSI", f"{name} failed, trying next backend...")

    raise PackagingError(
        f"Failed to read MSI properties from {p.name}: " + "; ".join(errors)
    )


def extract_msi_metadata(file_path: str | Path) -> MSIMetadata | ExtractionFailure:
    """Extract MSI metadata, reporting any problem as an ExtractionFailure.

    A usable result requires a ProductCode in GUID form. The other three
    properties default to empty strings when the database omits them.

    Args:
        file_path: Path to the MSI file.

    Returns:
        MSIMetadata on success, ExtractionFailure with a human-readable
        cause otherwise. This function does not raise for unreadable,
        corrupt or incomplete MSI files.

    Example:
        ```python
        result = extract_msi_metadata("broken.msi")
        if isinstance(result, ExtractionFailure):
            print(result.cause)
        ```
    """
    from intunebatch.logging import get_global_logger

    logger = get_global_logger()
    p = Path(file_path)

    try:
        properties = read_msi_properties(p)
    except (FileNotFoundError, PackagingError) as err:
        logger.verbose("MSI", f"Extraction failed for {p.name}: {err}")
        return ExtractionFailure(file_path=p, cause=str(err))

    product_code = properties.get("ProductCode", "").strip()
    if not product_code:
        return ExtractionFailure(
            file_path=p, cause="ProductCode not found in MSI Property table"
        )
    if not PRODUCT_CODE_PATTERN.match(product_code):
        return ExtractionFailure(
            file_path=p, cause=f"ProductCode is not a valid GUID: {product_code!r}"
        )

    metadata = MSIMetadata(
        product_code=product_code,
        product_name=properties.get("ProductName", ""),
        product_version=properties.get("ProductVersion", ""),
        manufacturer=properties.get("Manufacturer", ""),
    )
    logger.verbose(
        "MSI",
        f"{p.name}: {metadata.product_name} {metadata.product_version} "
        f"({metadata.product_code})",
    )
    return metadata
