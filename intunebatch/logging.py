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

"""Console output for intunebatch.

Library modules never print directly. They fetch the process-wide logger
with get_global_logger() and write to one of four channels:

- step: per-installer progress ("[2/7] Processing Chrome.msi..."), always shown
- warning: recoverable problems (bad override file), always shown
- verbose: what is being done, shown with ``--verbose``
- debug: raw tool output and backend attempts, shown with ``--debug``

Until the CLI installs a DefaultLogger, the global logger is a SilentLogger,
so programmatic callers get no output.

Example:
    ```python
    from intunebatch.logging import get_global_logger, get_logger, set_global_logger

    set_global_logger(get_logger(verbose=True))

    logger = get_global_logger()
    logger.step(1, 3, "Processing Chrome.msi...")
    logger.verbose("MSI", "ProductCode: {8A69D345-...}")
    logger.warning("CONFIG", "Override file not found, continuing without")
    ```
"""

from __future__ import annotations

from typing import Protocol


class Logger(Protocol):
    """Output channels used by intunebatch library code."""

    def step(self, step: int, total: int, message: str) -> None:
        """Report progress through the installer batch (1-based)."""
        ...

    def verbose(self, prefix: str, message: str) -> None:
        """Report an action, tagged with a component prefix like "PACKAGE"."""
        ...

    def debug(self, prefix: str, message: str) -> None:
        """Report low-level detail, tagged with a component prefix."""
        ...

    def warning(self, prefix: str, message: str) -> None:
        """Report a recoverable problem, tagged with a component prefix."""
        ...


class DefaultLogger:
    """Stdout logger used by the CLI.

    Args:
        verbose: Show the verbose channel.
        debug: Show the debug channel. Turns on verbose as well.
    """

    def __init__(self, verbose: bool = False, debug: bool = False) -> None:
        self._show_verbose = verbose or debug
        self._show_debug = debug

    @staticmethod
    def _emit(prefix: str, message: str) -> None:
        print(f"[{prefix}] {message}")

    def step(self, step: int, total: int, message: str) -> None:
        print(f"[{step}/{total}] {message}")

    def verbose(self, prefix: str, message: str) -> None:
        if self._show_verbose:
            self._emit(prefix, message)

    def debug(self, prefix: str, message: str) -> None:
        if self._show_debug:
            self._emit(prefix, message)

    def warning(self, prefix: str, message: str) -> None:
        self._emit("WARNING", f"[{prefix}] {message}")


class SilentLogger:
    """Logger that discards everything."""

    def step(self, step: int, total: int, message: str) -> None:
        pass

    def verbose(self, prefix: str, message: str) -> None:
        pass

    def debug(self, prefix: str, message: str) -> None:
        pass

    def warning(self, prefix: str, message: str) -> None:
        pass


_global_logger: Logger = SilentLogger()


def get_logger(verbose: bool = False, debug: bool = False) -> Logger:
    """Create a stdout logger for the given verbosity."""
    return DefaultLogger(verbose=verbose, debug=debug)


def get_global_logger() -> Logger:
    """Return the logger library code should write to (silent by default)."""
    return _global_logger


def set_global_logger(logger: Logger) -> None:
    """Install logger as the process-wide logger.

    The CLI calls this once per command, before any library code runs.
    """
    global _global_logger
    _global_logger = logger
