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

"""
intunebatch - Batch Intune Win32 packaging

A Python CLI tool that turns a folder of Windows installers (.exe/.msi) into
.intunewin packages for Microsoft Intune, and works out what Intune needs to
deploy each one.

intunebatch provides:
  - Installer discovery and classification by file extension
  - MSI ProductCode/ProductName/ProductVersion/Manufacturer extraction
  - Install/uninstall command synthesis with per-app overrides
  - Optional test installation to find working EXE silent switches
  - Installed-application lookup in the Windows uninstall registry
  - Detection rule selection (MSI product code, registry, or manual)
  - .intunewin package creation with IntuneWinAppUtil.exe
  - CSV reports for packages, MSI properties and installed applications

Quick Start
-----------
Package a folder of installers:

    $ intunebatch package ./installers --output-dir ./output --report report.csv

Read MSI product codes:

    $ intunebatch msi-info ./installers

For full CLI documentation:

    $ intunebatch --help

Package Structure
-----------------
cli : module
    Command-line interface with argparse.
core : module
    Batch orchestration.
installers : module
    Installer discovery and classification.
msi : module
    MSI property extraction.
registry : module
    Uninstall registry enumeration and matching.
install_test : module
    Test installation of EXE installers.
synthesis : module
    Install/uninstall command and detection rule synthesis.
report : module
    CSV reports.
config : package
    Run settings and command overrides.
build : package
    .intunewin package creation.

Public API
----------
    from intunebatch.core import package_installers
    from intunebatch.config import load_overrides, load_settings
    from intunebatch.msi import extract_msi_metadata
    from intunebatch.synthesis import synthesize
"""

__version__ = "0.1.0"

from .core import package_installers, process_installer
from .exceptions import ConfigError, IntuneBatchError, NetworkError, PackagingError
from .msi import extract_msi_metadata
from .synthesis import synthesize

__all__ = [
    "__version__",
    "package_installers",
    "process_installer",
    "extract_msi_metadata",
    "synthesize",
    "IntuneBatchError",
    "ConfigError",
    "NetworkError",
    "PackagingError",
]
