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

"""Exception hierarchy for intunebatch.

This module defines a custom exception hierarchy that allows library users
to distinguish between different types of errors:

- ConfigError: Run setup errors (missing source directory, bad settings file,
  no installers found)
- NetworkError: Download errors (fetching IntuneWinAppUtil.exe)
- PackagingError: Packaging errors (missing tool, tool failures, MSI backends)

All exceptions inherit from IntuneBatchError, allowing users to catch all
intunebatch errors with a single except clause if needed.

Example:
    Catching specific error types:
        ```python
        from pathlib import Path
        from intunebatch.core import package_installers
        from intunebatch.exceptions import ConfigError, PackagingError

        try:
            batch = package_installers(Path("installers"), Path("output"))
        except ConfigError as e:
            print(f"Configuration error: {e}")
        except PackagingError as e:
            print(f"Packaging error: {e}")
        ```

Note:
    Errors for a single installer (tool exit code, MSI extraction failure,
    registry miss) never escape the batch run. They are recorded on the
    per-installer result instead. Only pre-run errors are raised.
"""

from __future__ import annotations

__all__ = [
    "IntuneBatchError",
    "ConfigError",
    "NetworkError",
    "PackagingError",
]


class IntuneBatchError(Exception):
    """Base exception for all intunebatch errors.

    All intunebatch-specific exceptions inherit from this class, allowing
    users to catch all of them with a single except clause if needed.
    """

    pass


class ConfigError(IntuneBatchError):
    """Raised for configuration and run setup errors.

    This exception is raised when there are problems with:

    - Missing or unreadable source directory
    - No installers discovered in the source directory
    - Settings file parse errors or invalid structure

    Malformed override documents do NOT raise this error; they are logged
    as a warning and the run continues without overrides.
    """

    pass


class NetworkError(IntuneBatchError):
    """Raised for network/download-related errors.

    This exception is raised when IntuneWinAppUtil.exe has to be downloaded
    into the tool cache and the download fails.
    """

    pass


class PackagingError(IntuneBatchError):
    """Raised for packaging-related errors.

    This exception is raised when there are problems with:

    - Missing packaging tool (explicit IntuneWinAppUtil.exe path not found)
    - IntuneWinAppUtil.exe execution failures or timeouts
    - MSI property extraction backends

    Example:
        Catching packaging errors:
            ```python
            from intunebatch.build import create_intunewin
            from intunebatch.exceptions import PackagingError

            try:
                create_intunewin(tool, Path("work/Chrome"), "Chrome.msi", out)
            except PackagingError as e:
                print(f"Packaging error: {e}")
            ```
    """

    pass
