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

"""Installer discovery and classification.

Installers are classified purely from their file name: ``.exe`` and ``.msi``
(case-insensitive) are packageable, anything else is ``OTHER`` and is
dropped by discovery before it reaches command synthesis.

Example:
    Discover installers in a folder:
        ```python
        from pathlib import Path
        from intunebatch.installers import discover_installers

        for installer in discover_installers(Path("installers")):
            print(installer.app_name, installer.kind.value)
        ```
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from intunebatch.exceptions import ConfigError

__all__ = [
    "InstallerKind",
    "InstallerDescriptor",
    "classify_installer",
    "discover_installers",
    "assign_package_names",
]


class InstallerKind(Enum):
    """Closed set of installer types."""

    EXE = "EXE"
    MSI = "MSI"
    OTHER = "OTHER"


_EXTENSION_KINDS = {
    ".exe": InstallerKind.EXE,
    ".msi": InstallerKind.MSI,
}


@dataclass(frozen=True)
class InstallerDescriptor:
    """One discovered installer.

    Attributes:
        file_name: Base name with extension (e.g., "Chrome.msi").
        kind: Installer type derived from the extension.
        app_name: File name without its final extension. Used as the
            override lookup key and as the .intunewin base name.
        path: Full path to the installer file.
    """

    file_name: str
    kind: InstallerKind
    app_name: str
    path: Path

    @classmethod
    def from_path(cls, path: Path) -> InstallerDescriptor:
        kind, app_name = classify_installer(path.name)
        return cls(file_name=path.name, kind=kind, app_name=app_name, path=path)


def classify_installer(file_name: str) -> tuple[InstallerKind, str]:
    """Map a file name to its installer kind and application name.

    Args:
        file_name: Installer base name, including extension.

    Returns:
        A (kind, app_name) tuple. app_name is the file name with only its
        final extension removed, so "7z2301-x64.exe" gives "7z2301-x64" and
        "app.v2.msi" gives "app.v2".

    Raises:
        ValueError: If file_name is empty.

    Example:
        ```python
        classify_installer("Chrome.MSI")   # (InstallerKind.MSI, "Chrome")
        classify_installer("notes.txt")    # (InstallerKind.OTHER, "notes")
        ```
    """
    if not file_name:
        raise ValueError("Installer file name must not be empty")

    stem, dot, extension = file_name.rpartition(".")
    if not dot or not stem:
        return InstallerKind.OTHER, file_name

    kind = _EXTENSION_KINDS.get(f".{extension.lower()}", InstallerKind.OTHER)
    return kind, stem


def discover_installers(source_dir: Path) -> list[InstallerDescriptor]:
    """List packageable installers in a source directory.

    Only the top level of source_dir is scanned. Results are sorted by file
    name (case-insensitive) so batch runs and reports are stable.

    Args:
        source_dir: Directory containing installer files.

    Returns:
        Installer descriptors for every .exe and .msi file found. May be
        empty; the caller decides whether that is fatal.

    Raises:
        ConfigError: If source_dir does not exist, is not a directory, or
            cannot be read.
    """
    from intunebatch.logging import get_global_logger

    logger = get_global_logger()

    if not source_dir.exists():
        raise ConfigError(f"Source directory not found: {source_dir}")
    if not source_dir.is_dir():
        raise ConfigError(f"Source path is not a directory: {source_dir}")

    try:
        entries = sorted(source_dir.iterdir(), key=lambda p: p.name.lower())
    except OSError as err:
        raise ConfigError(f"Cannot read source directory {source_dir}: {err}") from err

    installers = []
    for entry in entries:
        if not entry.is_file():
            continue
        descriptor = InstallerDescriptor.from_path(entry)
        if descriptor.kind is InstallerKind.OTHER:
            logger.debug("DISCOVER", f"Skipping non-installer file: {entry.name}")
            continue
        logger.verbose(
            "DISCOVER", f"Found {descriptor.kind.value} installer: {entry.name}"
        )
        installers.append(descriptor)

    return installers


def assign_package_names(installers: list[InstallerDescriptor]) -> dict[str, str]:
    """Give every installer a distinct .intunewin base name.

    The package name is the app name, except when several installers share
    an app name (compared case-insensitively, as on NTFS). Those all get
    ``<app_name>_<extension>`` instead, e.g. "Foo.exe" and "Foo.msi" become
    "Foo_exe" and "Foo_msi". A numeric suffix is added if a name is still
    taken.

    Args:
        installers: Installers in processing order.

    Returns:
        Mapping of installer file name to package name.
    """
    counts: dict[str, int] = {}
    for installer in installers:
        key = installer.app_name.casefold()
        counts[key] = counts.get(key, 0) + 1

    taken = {
        installer.app_name.casefold()
        for installer in installers
        if counts[installer.app_name.casefold()] == 1
    }
    names: dict[str, str] = {}
    for installer in installers:
        if counts[installer.app_name.casefold()] == 1:
            names[installer.file_name] = installer.app_name
            continue
        extension = installer.file_name.rpartition(".")[2].lower()
        base = f"{installer.app_name}_{extension}"
        name = base
        suffix = 2
        while name.casefold() in taken:
            name = f"{base}_{suffix}"
            suffix += 1
        taken.add(name.casefold())
        names[installer.file_name] = name
    return names
