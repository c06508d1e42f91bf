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

"""Command-line interface for intunebatch.

This module provides the main CLI entry point for the intunebatch tool.

Commands:

    package: Package every installer in a folder into .intunewin files
    msi-info: Show ProductCode and other properties of MSI installers
    registry: List installed applications from the uninstall registry

Example:
    Package a folder of installers:
        ```bash
        $ intunebatch package ./installers --output-dir ./output --report report.csv
        ```

    Package with command overrides:
        ```bash
        $ intunebatch package ./installers --overrides overrides.yaml
        ```

    Read MSI product codes:
        ```bash
        $ intunebatch msi-info ./installers --csv msi.csv
        ```

    Find installed applications by name:
        ```bash
        $ intunebatch registry --name "Notepad++"
        ```

Exit Codes:

- 0: Success
- 1: Error (pre-run failure, or at least one installer failed)

Note:
    ``--test-install`` runs real installers on this host to find working
    silent switches. Only use it on a disposable packaging machine.
"""

from __future__ import annotations

import argparse
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
import sys
from typing import Any

from intunebatch.config import load_overrides, load_settings
from intunebatch.core import package_installers
from intunebatch.exceptions import IntuneBatchError
from intunebatch.logging import get_logger, set_global_logger
from intunebatch.msi import ExtractionFailure, extract_msi_metadata
from intunebatch.registry import (
    enumerate_installed_applications,
    filter_installed_applications,
)
from intunebatch.report import (
    MSI_COLUMNS,
    REGISTRY_COLUMNS,
    msi_row,
    registry_row,
    write_csv,
)


def _print_error(err: Exception, args: argparse.Namespace) -> None:
    print(f"Error: {err}")
    if args.verbose or args.debug:
        import traceback

        traceback.print_exc()


def _optional_path(value: Any) -> Path | None:
    return Path(value) if value else None


def cmd_package(args: argparse.Namespace) -> int:
    """Handler for 'intunebatch package' command.

    Loads settings and overrides, then packages every installer in the
    source directory, synthesizing install/uninstall commands and detection
    rules along the way.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 if every installer was packaged, 1 otherwise).
    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    source_dir = Path(args.source_dir).resolve()
    output_dir = Path(args.output_dir).resolve()

    try:
        settings = load_settings(_optional_path(args.config))
    except IntuneBatchError as err:
        _print_error(err, args)
        return 1

    packaging = settings["packaging"]
    install_test = settings["install_test"]

    tool_path = _optional_path(args.tool or packaging.get("tool_path"))
    overrides_path = _optional_path(args.overrides or settings.get("overrides"))
    report_path = _optional_path(args.report or settings["report"].get("path"))
    test_enabled = args.test_install or bool(install_test.get("enabled"))
    install_timeout = args.install_timeout
    if install_timeout is None:
        install_timeout = install_test.get("timeout", 600)

    print(f"Packaging installers from: {source_dir}")
    print(f"Output directory: {output_dir}")
    if test_enabled:
        print("[WARNING] Install testing enabled: installers WILL run on this host")
    print()

    overrides = load_overrides(overrides_path)

    try:
        batch = package_installers(
            source_dir,
            output_dir,
            overrides=overrides,
            tool_path=tool_path,
            tool_cache=Path(packaging.get("tool_cache") or "cache/tools"),
            work_dir=_optional_path(args.work_dir),
            packaging_timeout=float(packaging.get("timeout", 300)),
            test_install=test_enabled,
            install_timeout=float(install_timeout),
            registry_lookup=args.registry_lookup or bool(settings.get("registry_lookup")),
            report_path=report_path,
            keep_work_dir=args.keep_work_dir,
        )
    except IntuneBatchError as err:
        _print_error(err, args)
        return 1

    # Display results
    print()
    print("=" * 70)
    print("PACKAGE RESULTS")
    print("=" * 70)
    for result in batch.results:
        marker = "[OK]" if result.succeeded else "[X]"
        print(f"{marker} {result.file_name}")
        print(f"    Install:   {result.install_command}")
        print(f"    Uninstall: {result.uninstall_command}")
        print(f"    Detection: {result.detection_rule.detection_type}")
        if result.package_path:
            print(f"    Package:   {result.package_path}")
    print("=" * 70)
    print(f"Total:     {batch.total}")
    print(f"Succeeded: {batch.succeeded}")
    print(f"Failed:    {batch.failed}")
    if batch.report_path:
        print(f"Report:    {batch.report_path}")
    print("=" * 70)

    if batch.failures:
        print()
        print(f"Failures ({len(batch.failures)}):")
        for failure in batch.failures:
            print(f"  [X] {failure.file_name}: {failure.cause}")
        print()
        print(f"[FAILED] {batch.failed} of {batch.total} installer(s) failed.")
        return 1

    print()
    print("[SUCCESS] All installers packaged successfully!")
    return 0


def cmd_msi_info(args: argparse.Namespace) -> int:
    """Handler for 'intunebatch msi-info' command.

    Reads ProductCode, ProductName, ProductVersion and Manufacturer from one
    MSI file or every MSI in a directory.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 if every MSI was read, 1 otherwise).
    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    target = Path(args.path).resolve()
    if target.is_dir():
        msi_files = sorted(
            (p for p in target.iterdir() if p.is_file() and p.suffix.lower() == ".msi"),
            key=lambda p: p.name.lower(),
        )
    elif target.is_file():
        msi_files = [target]
    else:
        print(f"Error: Path not found: {target}")
        return 1

    if not msi_files:
        print(f"Error: No .msi files found in {target}")
        return 1

    rows = []
    failed = 0
    print("=" * 70)
    print("MSI PROPERTIES")
    print("=" * 70)
    for msi_file in msi_files:
        result = extract_msi_metadata(msi_file)
        rows.append(msi_row(msi_file.name, result))
        print(f"File:            {msi_file.name}")
        if isinstance(result, ExtractionFailure):
            failed += 1
            print(f"  [X] {result.cause}")
        else:
            print(f"  ProductCode:    {result.product_code}")
            print(f"  ProductName:    {result.product_name}")
            print(f"  ProductVersion: {result.product_version}")
            print(f"  Manufacturer:   {result.manufacturer}")
            print(f"  Registry Path:  {result.registry_path}")
        print()
    print("=" * 70)

    if args.csv:
        written = write_csv(Path(args.csv), MSI_COLUMNS, rows)
        print(f"CSV written: {written}")

    if failed:
        print(f"[FAILED] {failed} of {len(msi_files)} MSI file(s) could not be read.")
        return 1
    return 0


def cmd_registry(args: argparse.Namespace) -> int:
    """Handler for 'intunebatch registry' command.

    Lists installed applications from the native and WOW6432Node uninstall
    keys, optionally filtered by a DisplayName substring.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success, 1 if the registry is unavailable).
    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    try:
        apps = enumerate_installed_applications()
    except NotImplementedError as err:
        print(f"Error: {err}")
        return 1

    apps = filter_installed_applications(apps, args.name)

    print("=" * 70)
    print("INSTALLED APPLICATIONS")
    print("=" * 70)
    for app in apps:
        arch = "x86" if app.is_32bit else "x64"
        print(f"{app.display_name} {app.display_version} ({arch})")
        if app.publisher:
            print(f"  Publisher:  {app.publisher}")
        print(f"  Key:        {app.key_path}")
        if app.quiet_uninstall_string:
            print(f"  Quiet:      {app.quiet_uninstall_string}")
        elif app.uninstall_string:
            print(f"  Uninstall:  {app.uninstall_string}")
    print("=" * 70)
    print(f"{len(apps)} application(s)")

    if args.csv:
        written = write_csv(Path(args.csv), REGISTRY_COLUMNS, (registry_row(a) for a in apps))
        print(f"CSV written: {written}")

    return 0


def _add_output_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show detailed debugging output (implies --verbose)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the intunebatch argument parser."""
    try:
        tool_version = version("intunebatch")
    except PackageNotFoundError:
        tool_version = "unknown"

    parser = argparse.ArgumentParser(
        prog="intunebatch",
        description="Batch-package Windows installers into .intunewin files for Intune",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"intunebatch {tool_version}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # 'package' command
    parser_package = subparsers.add_parser(
        "package",
        help="Package installers into .intunewin files",
        description=(
            "Package every .exe/.msi in a folder with IntuneWinAppUtil.exe and "
            "report install/uninstall commands and detection rules."
        ),
    )
    parser_package.add_argument(
        "source_dir",
        help="Directory containing the installers",
    )
    parser_package.add_argument(
        "--output-dir",
        default="./output",
        help="Directory for .intunewin packages (default: ./output)",
    )
    parser_package.add_argument(
        "--work-dir",
        default=None,
        help="Directory for per-installer working folders (default: <output-dir>/_work)",
    )
    parser_package.add_argument(
        "--keep-work-dir",
        action="store_true",
        help="Keep per-installer working folders after packaging",
    )
    parser_package.add_argument(
        "--config",
        default=None,
        help="YAML settings file",
    )
    parser_package.add_argument(
        "--overrides",
        default=None,
        help="YAML/JSON file mapping app names to installCommand/uninstallCommand",
    )
    parser_package.add_argument(
        "--tool",
        default=None,
        help="Path to IntuneWinAppUtil.exe (default: cached download)",
    )
    parser_package.add_argument(
        "--report",
        default=None,
        help="Write a CSV report to this path",
    )
    parser_package.add_argument(
        "--test-install",
        action="store_true",
        help="Test-install EXE installers to find silent switches (RUNS INSTALLERS)",
    )
    parser_package.add_argument(
        "--install-timeout",
        type=float,
        default=None,
        help="Seconds before a test install is killed (default: 600)",
    )
    parser_package.add_argument(
        "--registry-lookup",
        action="store_true",
        help="Search the uninstall registry for already-installed applications",
    )
    _add_output_flags(parser_package)
    parser_package.set_defaults(func=cmd_package)

    # 'msi-info' command
    parser_msi = subparsers.add_parser(
        "msi-info",
        help="Show MSI ProductCode, ProductName, ProductVersion and Manufacturer",
        description="Read MSI properties from one .msi file or every .msi in a folder.",
    )
    parser_msi.add_argument(
        "path",
        help="MSI file or directory containing MSI files",
    )
    parser_msi.add_argument(
        "--csv",
        default=None,
        help="Write results to this CSV file",
    )
    _add_output_flags(parser_msi)
    parser_msi.set_defaults(func=cmd_msi_info)

    # 'registry' command
    parser_registry = subparsers.add_parser(
        "registry",
        help="List installed applications from the uninstall registry",
        description="Enumerate native and WOW6432Node uninstall keys (Windows only).",
    )
    parser_registry.add_argument(
        "--name",
        default=None,
        help="Only show applications whose DisplayName contains this text",
    )
    parser_registry.add_argument(
        "--csv",
        default=None,
        help="Write results to this CSV file",
    )
    _add_output_flags(parser_registry)
    parser_registry.set_defaults(func=cmd_registry)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the intunebatch CLI.

    This function is registered as the 'intunebatch' console script in
    pyproject.toml.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
