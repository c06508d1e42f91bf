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

"""Public API return types for intunebatch.

This module defines dataclasses for return values from public API functions.
All dataclasses are frozen (immutable) to prevent accidental mutation of
return values.

Example:
    Using result types:
        ```python
        from pathlib import Path
        from intunebatch.core import package_installers

        batch = package_installers(Path("installers"), Path("output"))
        for result in batch.results:
            print(result.app_name, result.status)
        print(f"{batch.succeeded}/{batch.total} succeeded")
        ```

Note:
    Only public API return types belong in this module. Domain types (like
    MSIMetadata or DetectionRule) remain co-located with their related
    logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from intunebatch.synthesis import DetectionRule

STATUS_SUCCESS = "Success"
STATUS_FAILED = "Failed"


@dataclass(frozen=True)
class PackageResult:
    """Outcome of processing one installer.

    Attributes:
        app_name: Installer file name without extension.
        file_name: Installer file name.
        install_command: Synthesized install command line.
        uninstall_command: Synthesized uninstall command line.
        detection_rule: Synthesized detection rule.
        status: STATUS_SUCCESS or STATUS_FAILED.
        error_detail: Short failure cause when status is STATUS_FAILED.
        package_path: Created .intunewin file on success.
    """

    app_name: str
    file_name: str
    install_command: str
    uninstall_command: str
    detection_rule: DetectionRule
    status: str
    error_detail: str | None = None
    package_path: Path | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_SUCCESS


@dataclass(frozen=True)
class InstallerFailure:
    """An installer that could not be packaged.

    Attributes:
        file_name: Installer file name.
        cause: Short, human-readable failure cause.
    """

    file_name: str
    cause: str


@dataclass(frozen=True)
class BatchResult:
    """Outcome of a batch packaging run.

    Attributes:
        results: One PackageResult per installer, in processing order.
        failures: Installers that failed, in processing order.
        report_path: CSV report written for the run, if any.
    """

    results: tuple[PackageResult, ...]
    failures: tuple[InstallerFailure, ...]
    report_path: Path | None = None

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.succeeded)

    @property
    def failed(self) -> int:
        return len(self.failures)
