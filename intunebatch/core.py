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

"""Core orchestration for intunebatch.

This module runs a batch packaging job: discover installers, then for each
installer extract MSI metadata, synthesize commands and a detection rule,
package it with IntuneWinAppUtil.exe, and collect one result row.

Processing Order (per installer, strictly sequential):

1. MSI metadata extraction (MSI installers only; failure is not fatal)
2. Install command synthesis, test-installing EXE candidates when enabled
3. Registry search (only after test installation, or when requested)
4. Uninstall command and detection rule synthesis
5. Packaging in an isolated working directory

Steps 2 and 3 touch host-global state (installed software, the uninstall
registry) and run under a process-wide lock.

Error Handling:

- Pre-run problems (missing source directory, no installers, missing
  packaging tool) raise before any installer is processed.
- Anything that goes wrong for a single installer is recorded as a Failed
  result and the run moves on to the next installer.

Example:
    Programmatic usage:
        ```python
        from pathlib import Path
        from intunebatch.config import load_overrides
        from intunebatch.core import package_installers

        batch = package_installers(
            Path("installers"),
            Path("output"),
            overrides=load_overrides(Path("overrides.yaml")),
            report_path=Path("output/report.csv"),
        )
        print(f"{batch.succeeded}/{batch.total} packaged")
        for failure in batch.failures:
            print(f"{failure.file_name}: {failure.cause}")
        ```
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
import shutil
import threading

from intunebatch.build.packager import (
    create_intunewin,
    prepare_working_directory,
    resolve_intunewin_tool,
)
from intunebatch.config.overrides import OverrideConfig
from intunebatch.exceptions import ConfigError, PackagingError
from intunebatch.install_test import InstallTester
from intunebatch.installers import (
    InstallerDescriptor,
    InstallerKind,
    assign_package_names,
    discover_installers,
)
from intunebatch.logging import get_global_logger
from intunebatch.msi import ExtractionFailure, MSIMetadata, extract_msi_metadata
from intunebatch.registry import RegistryMatch, find_registry_match
from intunebatch.report import write_package_report
from intunebatch.results import (
    STATUS_FAILED,
    STATUS_SUCCESS,
    BatchResult,
    InstallerFailure,
    PackageResult,
)
from intunebatch.synthesis import (
    UNINSTALL_NOT_AUTOMATED,
    FileFallbackDetection,
    InstallTesterFn,
    MSIDetection,
    synthesize_detection_rule,
    synthesize_install_command,
    synthesize_uninstall_command,
)

__all__ = ["package_installers", "process_installer"]

MSIExtractor = Callable[[Path], MSIMetadata | ExtractionFailure]
RegistrySearch = Callable[[str], RegistryMatch | None]

# Serializes test installs and registry searches across installers
_HOST_STATE_LOCK = threading.Lock()


def process_installer(
    installer: InstallerDescriptor,
    *,
    overrides: OverrideConfig,
    tool_path: Path,
    output_dir: Path,
    work_root: Path,
    packaging_timeout: float = 300,
    tester: InstallTesterFn | None = None,
    registry_lookup: bool = False,
    keep_work_dir: bool = False,
    package_name: str | None = None,
    extract_msi: MSIExtractor = extract_msi_metadata,
    search_registry: RegistrySearch = find_registry_match,
) -> PackageResult:
    """Synthesize commands for and package a single installer.

    Args:
        installer: Installer to process (EXE or MSI).
        overrides: Operator command overrides.
        tool_path: IntuneWinAppUtil.exe location.
        output_dir: Directory for the .intunewin package.
        work_root: Parent of the per-installer working directory.
        packaging_timeout: Seconds before IntuneWinAppUtil.exe is killed.
        tester: Install tester for EXE switch testing. None disables test
            installation entirely.
        registry_lookup: Search the uninstall registry even without a test
            install (useful when the application is already installed).
        keep_work_dir: Keep the working directory after packaging.
        package_name: Base name for the working directory and the
            .intunewin file. Default is the installer app name.
        extract_msi: MSI metadata extractor.
        search_registry: Registry search by app name.

    Returns:
        A PackageResult. Packaging failures give status STATUS_FAILED with
        error_detail set; commands and detection rule are still reported.
    """
    logger = get_global_logger()

    msi: MSIMetadata | ExtractionFailure | None = None
    if installer.kind is InstallerKind.MSI:
        msi = extract_msi(installer.path)
        if isinstance(msi, ExtractionFailure):
            logger.verbose(
                "MSI", f"No MSI metadata for {installer.file_name}: {msi.cause}"
            )

    registry: RegistryMatch | None = None
    with _HOST_STATE_LOCK:
        exe_tester = tester if installer.kind is InstallerKind.EXE else None
        install_command = synthesize_install_command(installer, overrides, exe_tester)
        search = tester is not None or registry_lookup
        if search and not isinstance(msi, MSIMetadata):
            registry = search_registry(installer.app_name)

    uninstall_command = synthesize_uninstall_command(
        installer, overrides, msi, registry
    )
    detection_rule = synthesize_detection_rule(installer, msi, registry)

    logger.verbose("SYNTH", f"Install:   {install_command}")
    logger.verbose("SYNTH", f"Uninstall: {uninstall_command}")
    logger.verbose("SYNTH", f"Detection: {detection_rule.detection_type}")
    if isinstance(detection_rule, MSIDetection):
        logger.verbose(
            "SYNTH", f"Alternative registry key: {detection_rule.registry_path}"
        )

    status = STATUS_SUCCESS
    error_detail = None
    package_path = None
    work_dir = None
    try:
        name = package_name or installer.app_name
        work_dir = prepare_working_directory(installer.path, work_root, name)
        package_path = create_intunewin(
            tool_path,
            work_dir,
            installer.file_name,
            output_dir,
            timeout=packaging_timeout,
            package_name=name,
        )
    except PackagingError as err:
        status = STATUS_FAILED
        error_detail = str(err)
        logger.verbose("PACKAGE", f"[FAILED] {installer.file_name}: {err}")
    finally:
        if work_dir is not None and not keep_work_dir:
            shutil.rmtree(work_dir, ignore_errors=True)

    return PackageResult(
        app_name=installer.app_name,
        file_name=installer.file_name,
        install_command=install_command,
        uninstall_command=uninstall_command,
        detection_rule=detection_rule,
        status=status,
        error_detail=error_detail,
        package_path=package_path,
    )


def package_installers(
    source_dir: Path,
    output_dir: Path,
    *,
    overrides: OverrideConfig | None = None,
    tool_path: Path | None = None,
    tool_cache: Path = Path("cache/tools"),
    work_dir: Path | None = None,
    packaging_timeout: float = 300,
    test_install: bool = False,
    install_timeout: float = 600,
    registry_lookup: bool = False,
    report_path: Path | None = None,
    keep_work_dir: bool = False,
    extract_msi: MSIExtractor = extract_msi_metadata,
    search_registry: RegistrySearch = find_registry_match,
) -> BatchResult:
    """Package every installer in a directory into .intunewin files.

    This is the main entry point for the 'intunebatch package' command.

    Args:
        source_dir: Directory containing .exe/.msi installers.
        output_dir: Directory for .intunewin packages. Created if needed.
        overrides: Operator command overrides. Default is no overrides.
        tool_path: Explicit IntuneWinAppUtil.exe path. When None, the tool is
            taken from (or downloaded into) tool_cache.
        tool_cache: Tool cache directory. Default is "cache/tools".
        work_dir: Parent for per-installer working directories. Default is
            output_dir/_work.
        packaging_timeout: Seconds before IntuneWinAppUtil.exe is killed.
        test_install: Test-install EXE installers with candidate silent
            switches. WARNING: this executes real installers on this host.
        install_timeout: Seconds before a test install is killed.
        registry_lookup: Search the uninstall registry even without test
            installation.
        report_path: Write the CSV report here when set.
        keep_work_dir: Keep per-installer working directories.
        extract_msi: MSI metadata extractor.
        search_registry: Registry search by app name.

    Returns:
        BatchResult with one PackageResult per installer and a failure list.

    Raises:
        ConfigError: If source_dir is missing or unreadable, or contains no
            installers.
        PackagingError: If an explicit tool_path does not exist.
        NetworkError: If IntuneWinAppUtil.exe must be downloaded and the
            download fails.
    """
    logger = get_global_logger()

    source_dir = source_dir.resolve()
    output_dir = output_dir.resolve()
    overrides = overrides if overrides is not None else OverrideConfig()

    installers = discover_installers(source_dir)
    if not installers:
        raise ConfigError(f"No .exe or .msi installers found in {source_dir}")

    resolved_tool = resolve_intunewin_tool(tool_path, tool_cache)

    package_names = assign_package_names(installers)
    for installer in installers:
        name = package_names[installer.file_name]
        if name != installer.app_name:
            logger.warning(
                "CORE",
                f"{installer.file_name} shares its name with another installer, "
                f"packaging as {name}.intunewin",
            )

    work_root = (work_dir or output_dir / "_work").resolve()
    output_dir.mkdir(parents=True, exist_ok=True)

    tester = None
    if test_install:
        tester = InstallTester(source_dir, timeout=install_timeout)
        logger.verbose("TEST", "Install testing ENABLED: installers run on this host")

    results: list[PackageResult] = []
    failures: list[InstallerFailure] = []
    total = len(installers)

    for index, installer in enumerate(installers, start=1):
        logger.step(index, total, f"Processing {installer.file_name}...")
        try:
            result = process_installer(
                installer,
                overrides=overrides,
                tool_path=resolved_tool,
                output_dir=output_dir,
                work_root=work_root,
                packaging_timeout=packaging_timeout,
                tester=tester,
                registry_lookup=registry_lookup,
                keep_work_dir=keep_work_dir,
                package_name=package_names[installer.file_name],
                extract_msi=extract_msi,
                search_registry=search_registry,
            )
        except Exception as err:
            logger.verbose("CORE", f"[FAILED] {installer.file_name}: {err}")
            result = PackageResult(
                app_name=installer.app_name,
                file_name=installer.file_name,
                install_command="",
                uninstall_command=UNINSTALL_NOT_AUTOMATED,
                detection_rule=FileFallbackDetection(),
                status=STATUS_FAILED,
                error_detail=f"{type(err).__name__}: {err}",
            )

        results.append(result)
        if not result.succeeded:
            failures.append(
                InstallerFailure(
                    file_name=result.file_name,
                    cause=(result.error_detail or "unknown error").splitlines()[0],
                )
            )

    if not keep_work_dir and work_root.exists() and not any(work_root.iterdir()):
        work_root.rmdir()

    written_report = None
    if report_path is not None:
        written_report = write_package_report(report_path, results)

    return BatchResult(
        results=tuple(results),
        failures=tuple(failures),
        report_path=written_report,
    )
