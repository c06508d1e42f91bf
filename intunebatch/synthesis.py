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

"""Install command, uninstall command and detection rule synthesis.

Given an installer, the operator's overrides and whatever MSI or registry
metadata was discovered, this module derives the three values Intune needs
for a Win32 app. Apart from the optional install tester, every function
here is pure: the same inputs always give the same output.

Install Command Precedence:
    1. Override install command
    2. MSI: ``msiexec /i "<file>" /qn /norestart``
    3. EXE with a tester: first candidate switch set that test-installs
       successfully (see INSTALL_SWITCH_CANDIDATES)
    4. ``<file> /VERYSILENT /NORESTART``

Uninstall Command Precedence:
    1. Override uninstall command
    2. MSI with metadata: ``msiexec /x "<ProductCode>" /qn /norestart``
    3. Registry match: QuietUninstallString, or an Inno Setup uninstaller
       (``unins*.exe``) with ``/VERYSILENT /NORESTART``
    4. UNINSTALL_NOT_AUTOMATED

Detection Rule Precedence:
    1. MSI metadata -> MSIDetection (product code)
    2. Registry match -> RegistryDetection (DisplayName Equals)
    3. FileFallbackDetection (operator must supply a rule)

Example:
    ```python
    from pathlib import Path
    from intunebatch.installers import InstallerDescriptor
    from intunebatch.config import OverrideConfig
    from intunebatch.synthesis import synthesize

    installer = InstallerDescriptor.from_path(Path("setup.exe"))
    result = synthesize(installer, OverrideConfig())
    print(result.install_command)   # setup.exe /VERYSILENT /NORESTART
    print(result.detection_rule)    # FileFallbackDetection(...)
    ```
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from intunebatch.config.overrides import OverrideConfig
from intunebatch.installers import InstallerDescriptor, InstallerKind
from intunebatch.msi import ExtractionFailure, MSIMetadata
from intunebatch.registry import RegistryMatch

__all__ = [
    "INSTALL_SWITCH_CANDIDATES",
    "DEFAULT_EXE_SWITCHES",
    "UNINSTALL_NOT_AUTOMATED",
    "FILE_FALLBACK_NOTE",
    "MSIDetection",
    "RegistryDetection",
    "FileFallbackDetection",
    "DetectionRule",
    "Synthesis",
    "synthesize_install_command",
    "synthesize_uninstall_command",
    "synthesize_detection_rule",
    "synthesize",
]

# (installer family, switches), tried in this order
INSTALL_SWITCH_CANDIDATES = (
    ("Inno Setup", "/VERYSILENT /NORESTART"),
    ("NSIS", "/S"),
    ("InstallShield", "/silent /norestart"),
    ("Generic", "/q /norestart"),
    (
        "Inno Setup (advanced)",
        "/SP- /VERYSILENT /SUPPRESSMSGBOXES /NORESTART /ALLUSERS",
    ),
)

DEFAULT_EXE_SWITCHES = "/VERYSILENT /NORESTART"

UNINSTALL_NOT_AUTOMATED = (
    "MANUAL: Uninstall command could not be determined automatically"
)

FILE_FALLBACK_NOTE = (
    "MANUAL: No MSI or registry information found. Configure a file or folder "
    "detection rule for this app in Intune."
)

# Called as tester(file_name, switches); True if the test install succeeded
InstallTesterFn = Callable[[str, str], bool]


@dataclass(frozen=True)
class MSIDetection:
    """MSI product code detection.

    Attributes:
        product_code: ProductCode GUID.
        registry_path: Uninstall key Windows Installer creates for the
            product. Informational, for operators who prefer a registry rule.
    """

    product_code: str
    registry_path: str

    detection_type = "MSI"


@dataclass(frozen=True)
class RegistryDetection:
    """Registry value detection on an uninstall key."""

    key_path: str
    value: str
    is_32bit: bool
    value_name: str = "DisplayName"
    operator: str = "Equals"

    detection_type = "Registry"


@dataclass(frozen=True)
class FileFallbackDetection:
    """No automatic rule; the operator has to define one."""

    note: str = FILE_FALLBACK_NOTE

    detection_type = "File"


DetectionRule = MSIDetection | RegistryDetection | FileFallbackDetection


@dataclass(frozen=True)
class Synthesis:
    """Synthesized commands and detection rule for one installer."""

    install_command: str
    uninstall_command: str
    detection_rule: DetectionRule


def _usable_msi(
    installer: InstallerDescriptor, msi: MSIMetadata | ExtractionFailure | None
) -> MSIMetadata | None:
    if installer.kind is InstallerKind.MSI and isinstance(msi, MSIMetadata):
        return msi
    return None


def _is_inno_uninstaller(uninstall_string: str) -> bool:
    # UninstallString is usually quoted: "C:\Program Files\App\unins000.exe"
    lowered = uninstall_string.strip().strip('"').lower()
    return "unins" in lowered and lowered.endswith(".exe")


def _test_candidates(
    installer: InstallerDescriptor, tester: InstallTesterFn
) -> str | None:
    """Return the first switch set the tester accepts, or None."""
    from intunebatch.logging import get_global_logger

    logger = get_global_logger()
    for family, switches in INSTALL_SWITCH_CANDIDATES:
        logger.verbose("TEST", f"Trying {family}: {installer.file_name} {switches}")
        try:
            succeeded = tester(installer.file_name, switches)
        except Exception as err:
            logger.verbose("TEST", f"Could not run {installer.file_name}: {err}")
            continue
        if succeeded:
            logger.verbose("TEST", f"{family} switches succeeded")
            return switches
    logger.verbose("TEST", f"No candidate switches succeeded for {installer.file_name}")
    return None


def synthesize_install_command(
    installer: InstallerDescriptor,
    overrides: OverrideConfig,
    tester: InstallTesterFn | None = None,
) -> str:
    """Derive the install command line for one installer.

    Args:
        installer: Installer to derive the command for.
        overrides: Operator overrides. A non-empty install override is
            returned verbatim.
        tester: Optional install tester. Only consulted for EXE installers
            without an override. When None, no installer is executed.

    Returns:
        The install command line.

    Raises:
        ValueError: If installer.kind is OTHER.
    """
    override = overrides.install_command(installer.app_name)
    if override:
        return override

    if installer.kind is InstallerKind.MSI:
        return f'msiexec /i "{installer.file_name}" /qn /norestart'
    if installer.kind is InstallerKind.EXE:
        if tester is not None:
            switches = _test_candidates(installer, tester)
            if switches is not None:
                return f"{installer.file_name} {switches}"
        return f"{installer.file_name} {DEFAULT_EXE_SWITCHES}"
    raise ValueError(f"Not a packageable installer: {installer.file_name}")


def synthesize_uninstall_command(
    installer: InstallerDescriptor,
    overrides: OverrideConfig,
    msi: MSIMetadata | ExtractionFailure | None = None,
    registry: RegistryMatch | None = None,
) -> str:
    """Derive the uninstall command line for one installer.

    Args:
        installer: Installer to derive the command for.
        overrides: Operator overrides. A non-empty uninstall override is
            returned verbatim.
        msi: MSI extraction result, if any. Only used for MSI installers.
        registry: Registry match, if one was found.

    Returns:
        The uninstall command line, or UNINSTALL_NOT_AUTOMATED when nothing
        could be derived. The sentinel is a valid result, not an error.
    """
    override = overrides.uninstall_command(installer.app_name)
    if override:
        return override

    metadata = _usable_msi(installer, msi)
    if metadata is not None:
        return f'msiexec /x "{metadata.product_code}" /qn /norestart'

    if registry is not None:
        if registry.quiet_uninstall_string:
            return registry.quiet_uninstall_string
        uninstall_string = registry.uninstall_string
        if uninstall_string and _is_inno_uninstaller(uninstall_string):
            return f"{registry.uninstall_string} {DEFAULT_EXE_SWITCHES}"

    return UNINSTALL_NOT_AUTOMATED


def synthesize_detection_rule(
    installer: InstallerDescriptor,
    msi: MSIMetadata | ExtractionFailure | None = None,
    registry: RegistryMatch | None = None,
) -> DetectionRule:
    """Choose exactly one detection rule for an installer.

    Args:
        installer: Installer the rule is for.
        msi: MSI extraction result, if any. Only used for MSI installers.
        registry: Registry match, if one was found.

    Returns:
        MSIDetection if MSI metadata is available, else RegistryDetection if
        a registry match is available, else FileFallbackDetection.
    """
    metadata = _usable_msi(installer, msi)
    if metadata is not None:
        return MSIDetection(
            product_code=metadata.product_code,
            registry_path=metadata.registry_path,
        )
    if registry is not None:
        return RegistryDetection(
            key_path=registry.key_path,
            value=registry.display_name,
            is_32bit=registry.is_32bit_on_wow64,
        )
    return FileFallbackDetection()


def synthesize(
    installer: InstallerDescriptor,
    overrides: OverrideConfig,
    msi: MSIMetadata | ExtractionFailure | None = None,
    registry: RegistryMatch | None = None,
    tester: InstallTesterFn | None = None,
) -> Synthesis:
    """Derive install command, uninstall command and detection rule.

    Without a tester this is a pure function of its arguments.
    """
    return Synthesis(
        install_command=synthesize_install_command(installer, overrides, tester),
        uninstall_command=synthesize_uninstall_command(
            installer, overrides, msi, registry
        ),
        detection_rule=synthesize_detection_rule(installer, msi, registry),
    )
