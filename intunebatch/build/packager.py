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

""".intunewin package generation for intunebatch.

This module wraps individual installers into .intunewin packages using
Microsoft's IntuneWinAppUtil.exe tool.

Design Principles:
    - Each installer is packaged from its own working directory that holds
      only that installer, because IntuneWinAppUtil.exe packs the whole
      source folder
    - The package is named after the installer: Chrome.msi -> Chrome.intunewin
    - An explicit tool path must exist; without one the tool is cached
      globally and downloaded from Microsoft's GitHub repository once

Example:
    Basic usage:
        ```python
        from pathlib import Path
        from intunebatch.build.packager import (
            create_intunewin,
            prepare_working_directory,
            resolve_intunewin_tool,
        )

        tool = resolve_intunewin_tool(None, Path("cache/tools"))
        work_dir = prepare_working_directory(Path("installers/Chrome.msi"), Path("work"))
        package = create_intunewin(tool, work_dir, "Chrome.msi", Path("output"))
        print(f"Package: {package}")
        ```
"""

from __future__ import annotations

from pathlib import Path
import shutil
import subprocess

import requests

from intunebatch.exceptions import NetworkError, PackagingError

__all__ = [
    "INTUNEWIN_TOOL_URL",
    "create_intunewin",
    "prepare_working_directory",
    "resolve_intunewin_tool",
]

INTUNEWIN_TOOL_URL = (
    "https://github.com/microsoft/Microsoft-Win32-Content-Prep-Tool"
    "/raw/master/IntuneWinAppUtil.exe"
)


def _get_intunewin_tool(cache_dir: Path) -> Path:
    """Download and cache IntuneWinAppUtil.exe.

    Args:
        cache_dir: Directory to cache the tool.

    Returns:
        Path to the IntuneWinAppUtil.exe tool.

    Raises:
        NetworkError: If download fails.
    """
    from intunebatch.logging import get_global_logger

    logger = get_global_logger()
    tool_path = cache_dir / "IntuneWinAppUtil.exe"

    if tool_path.exists():
        logger.verbose("PACKAGE", f"Using cached IntuneWinAppUtil: {tool_path}")
        return tool_path

    logger.verbose("PACKAGE", "Downloading IntuneWinAppUtil.exe...")

    try:
        response = requests.get(INTUNEWIN_TOOL_URL, timeout=60)
        response.raise_for_status()
    except requests.RequestException as err:
        raise NetworkError(f"Failed to download IntuneWinAppUtil.exe: {err}") from err

    cache_dir.mkdir(parents=True, exist_ok=True)
    tool_path.write_bytes(response.content)

    logger.verbose("PACKAGE", f"[OK] IntuneWinAppUtil.exe cached: {tool_path}")

    return tool_path


def resolve_intunewin_tool(tool_path: Path | None, cache_dir: Path) -> Path:
    """Locate IntuneWinAppUtil.exe before any installer is processed.

    Args:
        tool_path: Explicit tool location, or None to use the cache.
        cache_dir: Tool cache directory, used when tool_path is None.

    Returns:
        Path to an existing IntuneWinAppUtil.exe.

    Raises:
        PackagingError: If an explicit tool_path does not exist.
        NetworkError: If the cached tool is missing and cannot be downloaded.
    """
    if tool_path is not None:
        if not tool_path.is_file():
            raise PackagingError(f"IntuneWinAppUtil.exe not found: {tool_path}")
        return tool_path
    return _get_intunewin_tool(cache_dir)


def prepare_working_directory(
    installer_path: Path, work_root: Path, name: str | None = None
) -> Path:
    """Create an isolated source folder holding only one installer.

    Any previous folder with the same name is removed first.

    Args:
        installer_path: Installer to package.
        work_root: Parent directory for per-installer working folders.
        name: Folder name. Defaults to the installer stem; pass the package
            name when two installers share a stem.

    Returns:
        The working directory, ``work_root/<name or installer stem>``.

    Raises:
        PackagingError: If the folder cannot be created or the installer
            cannot be copied.
    """
    work_dir = work_root / (name or installer_path.stem)
    try:
        if work_dir.exists():
            shutil.rmtree(work_dir)
        work_dir.mkdir(parents=True)
        shutil.copy2(installer_path, work_dir / installer_path.name)
    except OSError as err:
        raise PackagingError(
            f"Failed to prepare working directory {work_dir}: {err}"
        ) from err
    return work_dir


def _execute_packaging(
    tool_path: Path,
    source_dir: Path,
    setup_file: str,
    output_dir: Path,
    timeout: float = 300,
) -> Path:
    """Execute IntuneWinAppUtil.exe to create .intunewin package.

    Args:
        tool_path: Path to IntuneWinAppUtil.exe.
        source_dir: Source directory (per-installer working directory).
        setup_file: Name of the setup file (e.g., "Chrome.msi").
        output_dir: Output directory for .intunewin file.
        timeout: Seconds before the tool is killed.

    Returns:
        Path to the created .intunewin file.

    Raises:
        PackagingError: If packaging fails.
    """
    from intunebatch.logging import get_global_logger

    logger = get_global_logger()
    output_dir.mkdir(parents=True, exist_ok=True)

    # IntuneWinAppUtil names its output after the setup file
    expected = output_dir / f"{Path(setup_file).stem}.intunewin"
    if expected.exists():
        expected.unlink()

    # IntuneWinAppUtil.exe -c <source> -s <setup file> -o <output> -q
    cmd = [
        str(tool_path),
        "-c",
        str(source_dir),
        "-s",
        setup_file,
        "-o",
        str(output_dir),
        "-q",  # Quiet mode
    ]

    logger.verbose("PACKAGE", f"Running: {' '.join(cmd)}")

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=True,
            timeout=timeout,
        )

        if result.stdout:
            for line in result.stdout.strip().split("\n"):
                logger.debug("PACKAGE", f"  {line}")

    except subprocess.CalledProcessError as err:
        error_msg = f"IntuneWinAppUtil.exe failed (exit code {err.returncode})"
        if err.stderr:
            error_msg += f"\n{err.stderr.strip()}"
        raise PackagingError(error_msg) from err
    except subprocess.TimeoutExpired as err:
        raise PackagingError(
            f"IntuneWinAppUtil.exe timed out after {err.timeout}s"
        ) from err
    except OSError as err:
        raise PackagingError(f"Failed to run IntuneWinAppUtil.exe: {err}") from err

    if not expected.exists():
        raise PackagingError(
            f"IntuneWinAppUtil.exe completed but {expected.name} was not found in {output_dir}"
        )

    logger.verbose("PACKAGE", f"[OK] Created: {expected.name}")
    return expected


def create_intunewin(
    tool_path: Path,
    source_dir: Path,
    setup_file: str,
    output_dir: Path,
    timeout: float = 300,
    package_name: str | None = None,
) -> Path:
    """Create a .intunewin package from a working directory.

    Args:
        tool_path: Path to IntuneWinAppUtil.exe (see resolve_intunewin_tool).
        source_dir: Working directory containing the installer.
        setup_file: Installer file name inside source_dir.
        output_dir: Directory for the .intunewin output.
        timeout: Seconds before IntuneWinAppUtil.exe is killed.
            Default is 300.
        package_name: Base name of the package file. IntuneWinAppUtil.exe
            names its output after the setup file; the output is renamed
            when package_name differs. Default is the setup file stem.

    Returns:
        Path to the package, ``output_dir/<package_name>.intunewin``.

    Raises:
        PackagingError: If the setup file is missing from source_dir, or the
            tool fails, times out or produces no package, or the package
            cannot be renamed.

    Example:
        ```python
        package = create_intunewin(
            Path("cache/tools/IntuneWinAppUtil.exe"),
            Path("work/Chrome"),
            "Chrome.msi",
            Path("output"),
        )
        print(package)  # output/Chrome.intunewin
        ```
    """
    from intunebatch.logging import get_global_logger

    logger = get_global_logger()

    source_dir = source_dir.resolve()
    output_dir = output_dir.resolve()

    if not (source_dir / setup_file).is_file():
        raise PackagingError(f"Setup file not found: {source_dir / setup_file}")

    logger.verbose("PACKAGE", f"Packaging {setup_file} from {source_dir}")

    package_path = _execute_packaging(
        tool_path, source_dir, setup_file, output_dir, timeout=timeout
    )

    if package_name and package_name != package_path.stem:
        target = output_dir / f"{package_name}.intunewin"
        try:
            package_path = package_path.replace(target)
        except OSError as err:
            raise PackagingError(
                f"Failed to rename {package_path.name} to {target.name}: {err}"
            ) from err

    logger.verbose("PACKAGE", f"[OK] Package created: {package_path}")
    return package_path
