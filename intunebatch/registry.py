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

"""Installed-application registry lookup for intunebatch.

This module enumerates the machine-wide Windows uninstall keys and matches
installed applications against an installer's app name.

Registry Roots (searched in this order):
    - HKLM\\SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\Uninstall (native)
    - HKLM\\SOFTWARE\\WOW6432Node\\Microsoft\\Windows\\CurrentVersion\\Uninstall
      (32-bit applications on 64-bit Windows)

Matching:
    An entry matches when its DisplayName contains the app name as a
    case-insensitive substring. The first match wins, so a native-root entry
    always beats a WOW6432Node entry. This is a best-effort heuristic:
    "Zoom" also matches "ZoomIt", and localized display names may not match
    at all.

Example:
    List installed applications:
        ```python
        from intunebatch.registry import enumerate_installed_applications

        for app in enumerate_installed_applications():
            print(app.display_name, app.display_version)
        ```

    Find a registry match for an installer:
        ```python
        from intunebatch.registry import find_registry_match

        match = find_registry_match("Notepad++")
        if match:
            print(match.key_path, match.is_32bit_on_wow64)
        ```

Note:
    Registry access requires Windows. On other hosts enumeration raises
    NotImplementedError; the pure matching helpers work everywhere.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import sys

__all__ = [
    "UNINSTALL_ROOTS",
    "InstalledApplication",
    "RegistryMatch",
    "enumerate_installed_applications",
    "filter_installed_applications",
    "match_installed_application",
    "find_registry_match",
]

_HKLM = "HKEY_LOCAL_MACHINE"

# (subkey under HKLM, is 32-bit view), in search order
UNINSTALL_ROOTS = (
    ("SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\Uninstall", False),
    ("SOFTWARE\\WOW6432Node\\Microsoft\\Windows\\CurrentVersion\\Uninstall", True),
)

_VALUE_NAMES = (
    "DisplayName",
    "DisplayVersion",
    "Publisher",
    "InstallLocation",
    "InstallDate",
    "UninstallString",
    "QuietUninstallString",
)


@dataclass(frozen=True)
class InstalledApplication:
    """One entry under an uninstall root.

    Attributes:
        key_path: Full key path, e.g.
            "HKEY_LOCAL_MACHINE\\SOFTWARE\\...\\Uninstall\\Notepad++".
        display_name: DisplayName value.
        display_version: DisplayVersion value, may be empty.
        publisher: Publisher value, may be empty.
        install_location: InstallLocation value, may be empty.
        install_date: InstallDate value (usually YYYYMMDD), may be empty.
        uninstall_string: UninstallString value, or None.
        quiet_uninstall_string: QuietUninstallString value, or None.
        is_32bit: True if the key lives under WOW6432Node.
    """

    key_path: str
    display_name: str
    display_version: str = ""
    publisher: str = ""
    install_location: str = ""
    install_date: str = ""
    uninstall_string: str | None = None
    quiet_uninstall_string: str | None = None
    is_32bit: bool = False


@dataclass(frozen=True)
class RegistryMatch:
    """Registry entry matched to an installer by display name.

    Attributes:
        key_path: Full key path of the matched uninstall entry.
        display_name: DisplayName of the entry (used as the detection value).
        display_version: DisplayVersion of the entry.
        publisher: Publisher of the entry.
        is_32bit_on_wow64: True iff the key was found under WOW6432Node.
        uninstall_string: UninstallString, or None.
        quiet_uninstall_string: QuietUninstallString, or None.
    """

    key_path: str
    display_name: str
    display_version: str = ""
    publisher: str = ""
    is_32bit_on_wow64: bool = False
    uninstall_string: str | None = None
    quiet_uninstall_string: str | None = None

    @classmethod
    def from_installed(cls, app: InstalledApplication) -> RegistryMatch:
        return cls(
            key_path=app.key_path,
            display_name=app.display_name,
            display_version=app.display_version,
            publisher=app.publisher,
            is_32bit_on_wow64=app.is_32bit,
            uninstall_string=app.uninstall_string,
            quiet_uninstall_string=app.quiet_uninstall_string,
        )


def _read_value(key, name: str) -> str | None:
    import winreg

    try:
        value, _ = winreg.QueryValueEx(key, name)
    except OSError:
        return None
    if value is None:
        return None
    return str(value).strip()


def _scan_root(subkey_path: str, is_32bit: bool) -> list[InstalledApplication]:
    """Read every uninstall entry with a DisplayName under one root."""
    import winreg

    from intunebatch.logging import get_global_logger

    logger = get_global_logger()
    apps: list[InstalledApplication] = []

    # Explicit 64-bit view so a 32-bit interpreter is not redirected into
    # WOW6432Node when reading the native root
    access = winreg.KEY_READ | winreg.KEY_WOW64_64KEY
    try:
        root_key = winreg.OpenKeyEx(winreg.HKEY_LOCAL_MACHINE, subkey_path, 0, access)
    except OSError as err:
        logger.debug("REGISTRY", f"Cannot open {_HKLM}\\{subkey_path}: {err}")
        return apps

    with root_key:
        subkey_count = winreg.QueryInfoKey(root_key)[0]
        for i in range(subkey_count):
            try:
                subkey_name = winreg.EnumKey(root_key, i)
                with winreg.OpenKeyEx(root_key, subkey_name, 0, access) as subkey:
                    values = {name: _read_value(subkey, name) for name in _VALUE_NAMES}
            except OSError:
                continue

            display_name = values["DisplayName"]
            if not display_name:
                continue

            apps.append(
                InstalledApplication(
                    key_path=f"{_HKLM}\\{subkey_path}\\{subkey_name}",
                    display_name=display_name,
                    display_version=values["DisplayVersion"] or "",
                    publisher=values["Publisher"] or "",
                    install_location=values["InstallLocation"] or "",
                    install_date=values["InstallDate"] or "",
                    uninstall_string=values["UninstallString"] or None,
                    quiet_uninstall_string=values["QuietUninstallString"] or None,
                    is_32bit=is_32bit,
                )
            )

    logger.debug("REGISTRY", f"{len(apps)} entries under {_HKLM}\\{subkey_path}")
    return apps


def enumerate_installed_applications() -> list[InstalledApplication]:
    """Enumerate installed applications from both uninstall roots.

    Returns:
        Entries with a non-empty DisplayName, native root first, then
        WOW6432Node. Within a root, entries keep registry enumeration order.

    Raises:
        NotImplementedError: If not running on Windows.
    """
    if not sys.platform.startswith("win"):
        raise NotImplementedError(
            "Registry enumeration is only available on Windows hosts."
        )

    apps: list[InstalledApplication] = []
    for subkey_path, is_32bit in UNINSTALL_ROOTS:
        apps.extend(_scan_root(subkey_path, is_32bit))
    return apps


def filter_installed_applications(
    apps: Iterable[InstalledApplication], name: str | None
) -> list[InstalledApplication]:
    """Keep entries whose DisplayName contains name (case-insensitive)."""
    if not name:
        return list(apps)
    needle = name.casefold()
    return [app for app in apps if needle in app.display_name.casefold()]


def match_installed_application(
    app_name: str, apps: Iterable[InstalledApplication]
) -> RegistryMatch | None:
    """Return the first entry whose DisplayName contains app_name.

    Args:
        app_name: Installer app name (file name without extension).
        apps: Installed applications in search order (native root first).

    Returns:
        RegistryMatch for the first matching entry, or None.
    """
    if not app_name:
        return None
    needle = app_name.casefold()
    for app in apps:
        if needle in app.display_name.casefold():
            return RegistryMatch.from_installed(app)
    return None


def find_registry_match(app_name: str) -> RegistryMatch | None:
    """Search the host's uninstall roots for an application by name.

    Args:
        app_name: Installer app name to look for in DisplayName values.

    Returns:
        RegistryMatch for the first native-root match, else the first
        WOW6432Node match, else None. Also None on non-Windows hosts.
    """
    from intunebatch.logging import get_global_logger

    logger = get_global_logger()
    try:
        apps = enumerate_installed_applications()
    except NotImplementedError as err:
        logger.debug("REGISTRY", str(err))
        return None

    match = match_installed_application(app_name, apps)
    if match is None:
        logger.verbose("REGISTRY", f"No uninstall entry matches '{app_name}'")
    else:
        logger.verbose(
            "REGISTRY",
            f"'{app_name}' matched '{match.display_name}' at {match.key_path}",
        )
    return match
